"""Response override registry.

Maps (action, format, outcome) to a handler, separately for each target
controller class. Lookups are exact on all three components: an override
for ``(update, html, failure)`` never applies to ``(update, json, failure)``.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, NamedTuple

from overhook.errors import InvalidOverrideError, RegistryFrozenError

logger = logging.getLogger(__name__)

Handler = Callable[..., Any]


class Outcome(Enum):
    """Binary result of an action's business logic."""

    SUCCESS = "success"
    FAILURE = "failure"

    @classmethod
    def parse(cls, value: Outcome | str) -> Outcome:
        """Coerce a string such as ``"failure"`` into an Outcome.

        Raises:
            InvalidOverrideError: If the value names no outcome
        """
        if isinstance(value, Outcome):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise InvalidOverrideError(f"Unknown outcome {value!r}; expected 'success' or 'failure'") from None


class OverrideKey(NamedTuple):
    action: str
    format: str
    outcome: Outcome

    def __str__(self) -> str:
        return f"({self.action}, {self.format}, {self.outcome.value})"


def _takes_controller(handler: Handler) -> bool:
    """True when the handler expects the controller as a positional argument."""
    try:
        signature = inspect.signature(handler)
    except (TypeError, ValueError):
        return False
    for param in signature.parameters.values():
        if param.kind is param.VAR_POSITIONAL:
            return True
        if param.kind in (param.POSITIONAL_ONLY, param.POSITIONAL_OR_KEYWORD) and param.default is param.empty:
            return True
    return False


@dataclass(frozen=True)
class ResponseOverride:
    """A registered substitute response producer.

    Attributes:
        key: Exact key this override answers
        handler: Zero-argument or one-argument (controller) callable
        source: Name of the extension unit that registered it
        takes_controller: Whether the handler receives the controller
    """

    key: OverrideKey
    handler: Handler
    source: str | None = None
    takes_controller: bool = False

    def invoke(self, controller: Any = None) -> Any:
        if self.takes_controller:
            return self.handler(controller)
        return self.handler()

    @property
    def description(self) -> str:
        name = getattr(self.handler, "__qualname__", repr(self.handler))
        return f"override {self.key} -> {name}" + (f" [{self.source}]" if self.source else "")


def _require_name(value: Any, what: str, mapping: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidOverrideError(f"Invalid {what} {value!r} in override mapping {mapping!r}")
    return value


class OverrideRegistry:
    """Registry of response overrides, scoped per target class."""

    def __init__(self) -> None:
        self._overrides: dict[type, dict[OverrideKey, ResponseOverride]] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __len__(self) -> int:
        return sum(len(entries) for entries in self._overrides.values())

    def register(
        self,
        target: type,
        action: str,
        format: str,
        outcome: Outcome | str,
        handler: Handler,
        source: str | None = None,
    ) -> ResponseOverride:
        """Insert or replace the override for one exact key.

        Raises:
            RegistryFrozenError: If called after the registration phase
            InvalidOverrideError: If a key component or the handler is invalid
        """
        if self._frozen:
            raise RegistryFrozenError(f"Cannot register override on {target.__name__}: overrides are frozen")
        if not callable(handler):
            raise InvalidOverrideError(f"Override handler for {action}/{format} is not callable: {handler!r}")

        key = OverrideKey(
            _require_name(action, "action", action),
            _require_name(format, "format", format),
            Outcome.parse(outcome),
        )
        override = ResponseOverride(key, handler, source=source, takes_controller=_takes_controller(handler))

        entries = self._overrides.setdefault(target, {})
        previous = entries.get(key)
        if previous is not None:
            logger.warning(
                "Override %s on %s replaced (was from %s, now from %s)",
                key,
                target.__name__,
                previous.source or "unknown",
                source or "unknown",
            )
        entries[key] = override
        logger.debug("Registered %s on %s", override.description, target.__name__)
        return override

    def register_mapping(
        self,
        target: type,
        mapping: Mapping[str, Any],
        source: str | None = None,
    ) -> list[ResponseOverride]:
        """Register a declarative ``action -> format -> outcome -> handler`` mapping.

        A callable given directly under a format is shorthand for its
        success outcome.

        Raises:
            InvalidOverrideError: If the mapping is empty or malformed
        """
        if not mapping:
            raise InvalidOverrideError(f"Invalid values supplied {mapping!r}")

        registered: list[ResponseOverride] = []
        for action, formats in mapping.items():
            _require_name(action, "action", mapping)
            if not isinstance(formats, Mapping) or not formats:
                raise InvalidOverrideError(f"Invalid values supplied for action '{action}': {formats!r}")

            for format, outcomes in formats.items():
                _require_name(format, "format", mapping)
                if callable(outcomes):
                    outcomes = {Outcome.SUCCESS: outcomes}
                if not isinstance(outcomes, Mapping) or not outcomes:
                    raise InvalidOverrideError(f"Invalid values supplied for {action}/{format}: {outcomes!r}")

                for outcome, handler in outcomes.items():
                    registered.append(self.register(target, action, format, outcome, handler, source=source))
        return registered

    def lookup(self, target: type, action: str, format: str, outcome: Outcome | str) -> ResponseOverride | None:
        """Exact-match lookup; no fallback across formats, outcomes or classes."""
        entries = self._overrides.get(target)
        if not entries:
            return None
        return entries.get(OverrideKey(action, format, Outcome.parse(outcome)))

    def overrides_for(self, target: type) -> dict[OverrideKey, ResponseOverride]:
        return dict(self._overrides.get(target, {}))

    def targets(self) -> list[type]:
        return list(self._overrides)

    def freeze(self) -> None:
        """End the registration phase."""
        self._frozen = True

    def clear(self) -> None:
        """Clear all overrides and reopen registration (for testing)."""
        self._overrides.clear()
        self._frozen = False


# Global registry
_override_registry = OverrideRegistry()


def get_override_registry() -> OverrideRegistry:
    """Get the global override registry."""
    return _override_registry
