from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Optional, Tuple

from .app import create_store
from .config import ConfigError, list_presets, resolve_config
from .core.state.action_types import (
    Action,
    deposit,
    edit_transaction,
    remove_transaction,
    retry,
    withdraw,
)
from .core.state.store import Store
from .effects.navigation import InMemoryNavigator, Screen
from .logging_config import configure_logging
from .types import AtmState, Status

HELP = "Commands: deposit N | withdraw N | retry | remove ID | edit ID | back | history | status | quit"

_AMOUNT_COMMANDS = {"deposit": deposit, "withdraw": withdraw}
_ID_COMMANDS = {"remove": remove_transaction, "edit": edit_transaction}


def parse_command(line: str) -> Tuple[Optional[Action], Optional[str]]:
    """
    Turn a console line into an action.

    Returns:
        (action, None) for dispatchable commands, (None, command) for
        local commands, (None, None) for unknown input
    """
    parts = line.strip().split(maxsplit=1)
    if not parts:
        return None, None
    cmd = parts[0].lower()
    arg = parts[1] if len(parts) > 1 else ""

    if cmd in _AMOUNT_COMMANDS:
        # The raw text goes to the validator untouched
        return _AMOUNT_COMMANDS[cmd](arg), None
    if cmd in _ID_COMMANDS and arg:
        return _ID_COMMANDS[cmd](arg.strip()), None
    if cmd == "retry":
        return retry(), None
    if cmd in {"quit", "exit", "history", "status", "back", "help"}:
        return None, cmd
    return None, None


def render(state: AtmState) -> str:
    """One-line view of whatever the state represents."""
    if state.status == Status.ERROR:
        return "Error (type `retry`)"
    if state.status == Status.LOADING:
        return "Loading..."
    return f"Balance: {state.balance}"


def render_history(state: AtmState) -> str:
    if not state.ledger:
        return "  (no transactions)"
    lines = []
    for t in state.ledger:
        sign = "+" if t.signed_amount >= 0 else "-"
        lines.append(f"  {t.id[:8]}  {sign + str(t.amount):>9}  {t.description}")
    return "\n".join(lines)


def _resolve_id(store: Store, prefix: str) -> str:
    """Expand a short id shown by `history` to the full id."""
    matches = [t.id for t in store.get_snapshot().ledger if t.id.startswith(prefix)]
    return matches[0] if len(matches) == 1 else prefix


async def run_console(store: Store, navigator: InMemoryNavigator) -> None:
    loop = asyncio.get_running_loop()
    unsubscribe = store.subscribe(lambda state, action: print(f"[{render(state)}]"))

    print(f"\n{render(store.get_snapshot())}")
    print(f"{HELP}\n")

    try:
        while True:
            try:
                line = await loop.run_in_executor(None, input, "> ")
            except (EOFError, KeyboardInterrupt):
                print("\n[Goodbye]")
                break

            action, command = parse_command(line)

            if command in {"quit", "exit"}:
                break
            if command == "help":
                print(HELP)
                continue
            if command == "status":
                state = store.get_snapshot()
                print(f"  {render(state)}  ({len(state.ledger)} transactions)")
                print(f"  Screen: {navigator.current.screen.value}")
                print(f"  Store: {store.stats()}")
                continue
            if command == "history":
                print(render_history(store.get_snapshot()))
                continue
            if command == "back":
                print(f"  Screen: {navigator.back().screen.value}")
                continue
            if action is None:
                if line.strip():
                    print(f"Unknown command. {HELP}")
                continue

            if "transaction_id" in action.payload:
                action = Action(
                    action_type=action.action_type,
                    payload={"transaction_id": _resolve_id(store, action.payload["transaction_id"])},
                    source="cli",
                )
            if not store.dispatch(action):
                print("[Busy, try again]")
                continue

            if navigator.current.screen == Screen.TRANSACTION:
                await store.drain()
                txn = store.get_snapshot().find_transaction(navigator.current.transaction_id)
                if txn is not None:
                    print(f"  Editing {txn.id[:8]}: {txn.kind.value} {txn.amount} {txn.description!r}")
    finally:
        unsubscribe()
        await store.drain()


def main(argv=None):
    ap = argparse.ArgumentParser(
        description="Redux ATM - account balance managed by reducers and side-effects"
    )
    ap.add_argument(
        "--config",
        help=f"Config file (.json/.yaml) or preset name ({', '.join(list_presets())})",
    )
    ap.add_argument("--latency", type=float, help="Override validation latency (seconds)")
    ap.add_argument("--balance", type=int, help="Override starting balance")
    ap.add_argument("--log-dir", help="Write rotating log files to this directory")
    ap.add_argument("--json-logs", action="store_true", help="Emit JSON logs on the console")
    ap.add_argument("--verbose", action="store_true", help="Enable verbose logging")

    args = ap.parse_args(argv)

    configure_logging(
        level="DEBUG" if args.verbose else "WARNING",
        log_dir=args.log_dir,
        json_console=args.json_logs,
    )

    try:
        config = resolve_config(args.config).with_overrides(
            validation_latency=args.latency,
            initial_balance=args.balance,
        )
    except ConfigError as e:
        logging.getLogger(__name__).error(f"Invalid configuration: {e}")
        return 2

    navigator = InMemoryNavigator()

    async def _run():
        store = create_store(config, navigator=navigator, loop=asyncio.get_running_loop())
        await run_console(store, navigator)

    asyncio.run(_run())
    return 0


if __name__ == "__main__":
    sys.exit(main())
