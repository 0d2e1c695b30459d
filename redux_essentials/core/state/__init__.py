# State management with reducers and a side-effect chain
from .action_types import Action, ActionType
from .reducer import combine_reducers, default_reducer, reduce_state
from .middleware import SideEffect, compose_chain
from .store import Store
from .builder import StoreBuilder

__all__ = [
    "Action",
    "ActionType",
    "combine_reducers",
    "default_reducer",
    "reduce_state",
    "SideEffect",
    "compose_chain",
    "Store",
    "StoreBuilder",
]
