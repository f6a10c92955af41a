"""Exception hierarchy for overhook.

All of these signal programmer or configuration mistakes. None of them are
retried and the core never converts them into responses; they propagate to
whoever is handling the request.
"""

from __future__ import annotations


class OverhookError(Exception):
    """Base class for all overhook errors."""


class ExtensionError(OverhookError):
    """An extension unit cannot be attached to its target."""


class MissingImplementationError(AttributeError):
    """Call-through reached a method the target never defined."""

    def __init__(self, target: type, name: str) -> None:
        super().__init__(f"{target.__name__}.{name} has no previous implementation to call through to")
        self.target = target
        self.name = name


class RegistryFrozenError(OverhookError):
    """A registration was attempted after the registration phase ended."""


class InvalidOverrideError(OverhookError, ValueError):
    """A declarative override mapping is malformed."""


class UnresolvedActionError(OverhookError):
    """An override targets an action the controller does not define.

    Only raised when strict validation is enabled; otherwise such overrides
    are reported as warnings and simply never fire.
    """


class UnsupportedFormatError(OverhookError):
    """The negotiated format is not one the action can respond with."""

    def __init__(self, action: str, format: str, supported: frozenset[str]) -> None:
        super().__init__(f"Action '{action}' cannot respond with format '{format}' (supports: {sorted(supported)})")
        self.action = action
        self.format = format
        self.supported = supported


class DoubleEmissionError(OverhookError):
    """A second response was emitted for one request."""

    def __init__(self, action: str | None, first: str | None, second: str | None) -> None:
        super().__init__(
            f"Response for action '{action}' already emitted via {first or 'unknown'}; "
            f"refusing second emission via {second or 'unknown'}"
        )
        self.action = action
        self.first = first
        self.second = second


class NoEmissionError(OverhookError):
    """A handler or default producer finished without emitting a response."""

    def __init__(self, action: str, format: str, outcome: str, producer: str) -> None:
        super().__init__(
            f"{producer} for ({action}, {format}, {outcome}) completed without emitting a response"
        )
        self.action = action
        self.format = format
        self.outcome = outcome
        self.producer = producer
