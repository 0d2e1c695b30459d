"""
REST API server for the ATM store.

A presentation adapter: every mutating route turns the request into an
action and dispatches it; rendering is left to the client, which reads
the state (idle with balance, loading, or error) from GET /state.

Run with:
    python -m redux_essentials.api --config instant
"""
from __future__ import annotations

import argparse
import logging
from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from .app import create_store
from .config import ConfigError, StoreConfig, list_presets, resolve_config
from .core.state.action_types import (
    Action,
    deposit,
    edit_transaction,
    remove_transaction,
    retry,
    withdraw,
)
from .core.state.store import Store
from .effects.navigation import InMemoryNavigator
from .logging_config import configure_logging
from .types import AtmState
from .version import __version__

logger = logging.getLogger(__name__)


# ============================================================================
# Pydantic Models for API
# ============================================================================

class AmountRequest(BaseModel):
    """Request body for deposit and withdraw."""
    amount: str = Field(..., description="Raw amount text, validated asynchronously")
    description: str = Field("", description="Optional ledger description")


class TransactionModel(BaseModel):
    id: str
    amount: int
    kind: str
    description: str


class StateResponse(BaseModel):
    """Current account state."""
    balance: int
    status: str
    error: bool
    loading: bool
    pending: int
    transactions: Optional[List[TransactionModel]] = None


class DispatchResponse(BaseModel):
    """Result of submitting an action."""
    accepted: bool
    action: str
    state: Optional[StateResponse] = None


class ScreenResponse(BaseModel):
    screen: str
    transaction_id: Optional[str] = None


def _state_response(state: AtmState) -> StateResponse:
    return StateResponse(**state.to_dict())


# ============================================================================
# API Server
# ============================================================================

class ATMAPIServer:
    """
    FastAPI-based REST server around one store.

    Provides endpoints for:
    - Deposits and withdrawals
    - Error recovery (retry)
    - Ledger removal and edit navigation
    - State and screen queries
    """

    def __init__(self, config: Optional[StoreConfig] = None):
        """
        Initialize the API server.

        Args:
            config: Store configuration
        """
        self.config = config or StoreConfig()
        self.navigator = InMemoryNavigator()
        self.store: Store = create_store(self.config, navigator=self.navigator)

        self.app = FastAPI(
            title="Redux ATM API",
            description="Account balance managed by reducers and side-effects",
            version=__version__,
        )

        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        self._register_routes()

    async def _submit(self, action: Action, wait: bool) -> DispatchResponse:
        accepted = self.store.dispatch(action)
        if not accepted:
            logger.warning(f"Rejected {action.action_type.value}: store is saturated")
        if wait:
            await self.store.drain()
        return DispatchResponse(
            accepted=accepted,
            action=action.action_type.value,
            state=_state_response(self.store.get_snapshot()) if wait else None,
        )

    def _register_routes(self):
        """Register all API routes."""

        @self.app.get("/")
        async def root():
            """API health check."""
            return {
                "status": "ok",
                "engine": "Redux ATM",
                "version": __version__,
                "store": self.store.stats(),
            }

        @self.app.get("/presets", response_model=List[str])
        async def get_presets():
            """List available config presets."""
            return list_presets()

        @self.app.get("/state", response_model=StateResponse)
        async def get_state():
            """Latest published state."""
            return _state_response(self.store.get_snapshot())

        @self.app.post("/deposit", response_model=DispatchResponse, status_code=202)
        async def post_deposit(request: AmountRequest, wait: bool = Query(False)):
            """Request a deposit; validation happens asynchronously."""
            return await self._submit(deposit(request.amount, request.description), wait)

        @self.app.post("/withdraw", response_model=DispatchResponse, status_code=202)
        async def post_withdraw(request: AmountRequest, wait: bool = Query(False)):
            """Request a withdrawal; validation happens asynchronously."""
            return await self._submit(withdraw(request.amount, request.description), wait)

        @self.app.post("/retry", response_model=DispatchResponse, status_code=202)
        async def post_retry(wait: bool = Query(False)):
            """Leave the error state; the failed request is not replayed."""
            return await self._submit(retry(), wait)

        @self.app.delete(
            "/transactions/{transaction_id}",
            response_model=DispatchResponse,
            status_code=202,
        )
        async def delete_transaction(transaction_id: str, wait: bool = Query(False)):
            """Remove a ledger entry and reverse its balance effect."""
            return await self._submit(remove_transaction(transaction_id), wait)

        @self.app.post(
            "/transactions/{transaction_id}/edit",
            response_model=DispatchResponse,
            status_code=202,
        )
        async def post_edit_transaction(transaction_id: str, wait: bool = Query(False)):
            """Open a ledger entry on the transaction screen."""
            return await self._submit(edit_transaction(transaction_id), wait)

        @self.app.get("/transactions/{transaction_id}")
        async def get_transaction(transaction_id: str):
            txn = self.store.get_snapshot().find_transaction(transaction_id)
            if txn is None:
                raise HTTPException(status_code=404, detail="Transaction not found")
            return txn.to_dict()

        @self.app.get("/screen", response_model=ScreenResponse)
        async def get_screen():
            """Where the navigator currently points."""
            return ScreenResponse(**self.navigator.current.to_dict())

        @self.app.get("/stats")
        async def get_stats() -> Dict[str, object]:
            return self.store.stats()


def create_app(config: Optional[StoreConfig] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    return ATMAPIServer(config=config).app


def main():
    """Run the API server from command line."""
    import uvicorn

    parser = argparse.ArgumentParser(description="Redux ATM API Server")
    parser.add_argument("--config", help="Config file or preset name")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind to")
    parser.add_argument("--log-level", default="INFO", help="Log level")
    args = parser.parse_args()

    configure_logging(level=args.log_level)
    try:
        config = resolve_config(args.config)
    except ConfigError as e:
        logger.error(f"Invalid configuration: {e}")
        raise SystemExit(2)

    app = create_app(config)

    print(f"\nRedux ATM API starting on http://{args.host}:{args.port}")
    print(f"API docs: http://{args.host}:{args.port}/docs\n")

    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
