"""Response override dispatch.

- OverrideRegistry: (action, format, outcome) -> handler, per controller class
- OverrideDispatcher: picks the override or the default producer
- RequestResponseState / EmissionGuard: at most one response per request
"""

from overhook.respond.dispatcher import OverrideDispatcher, dispatch
from overhook.respond.registry import (
    Outcome,
    OverrideKey,
    OverrideRegistry,
    ResponseOverride,
    get_override_registry,
)
from overhook.respond.state import EmissionGuard, RequestResponseState

__all__ = [
    "Outcome",
    "OverrideKey",
    "OverrideRegistry",
    "ResponseOverride",
    "get_override_registry",
    "OverrideDispatcher",
    "dispatch",
    "RequestResponseState",
    "EmissionGuard",
]
