"""overhook - non-invasive extension of controller classes.

- Extension chains: replace methods on existing classes with call-through
  to the implementation they replace
- Response overrides: substitute what an action emits for a given
  (action, format, outcome), with at most one response per request
"""

from overhook.controller import Controller, Request, Response
from overhook.errors import (
    DoubleEmissionError,
    ExtensionError,
    InvalidOverrideError,
    MissingImplementationError,
    NoEmissionError,
    OverhookError,
    RegistryFrozenError,
    UnresolvedActionError,
    UnsupportedFormatError,
)
from overhook.extension import ExtensionUnit, extend, extension
from overhook.respond import Outcome, OverrideDispatcher, RequestResponseState

__all__ = [
    "Controller",
    "Request",
    "Response",
    "ExtensionUnit",
    "extend",
    "extension",
    "Outcome",
    "OverrideDispatcher",
    "RequestResponseState",
    "OverhookError",
    "DoubleEmissionError",
    "NoEmissionError",
    "UnresolvedActionError",
    "ExtensionError",
    "MissingImplementationError",
    "RegistryFrozenError",
    "InvalidOverrideError",
    "UnsupportedFormatError",
]
