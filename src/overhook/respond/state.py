"""Per-request response state and its emission guard.

A RequestResponseState is created when a request starts and dropped when it
finishes. It is never shared between requests, so it needs no locking.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field

from overhook.errors import DoubleEmissionError

logger = logging.getLogger(__name__)


@dataclass
class RequestResponseState:
    """Response bookkeeping for one in-flight request.

    Attributes:
        action: Action being handled
        intended_format: Negotiated response format
        request_id: Identifier used in log lines
        guard: Emission guard bound to this state
    """

    action: str
    intended_format: str = "html"
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    guard: EmissionGuard = field(init=False, repr=False, compare=False)
    _emitted: bool = field(default=False, init=False, repr=False)
    _emitted_via: str | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        self.guard = EmissionGuard(self)

    @property
    def emitted(self) -> bool:
        """Whether the single response for this request has been produced."""
        return self._emitted

    @property
    def emitted_via(self) -> str | None:
        """Label of the primitive that emitted, if any."""
        return self._emitted_via


class EmissionGuard:
    """Enforces at most one response per request."""

    __slots__ = ("_state",)

    def __init__(self, state: RequestResponseState) -> None:
        self._state = state

    def has_emitted(self) -> bool:
        return self._state._emitted

    def mark_emitted(self, via: str | None = None) -> None:
        """Record the request's response.

        Args:
            via: Short label of what emitted (e.g. "render(edit)")

        Raises:
            DoubleEmissionError: If a response was already emitted
        """
        state = self._state
        if state._emitted:
            raise DoubleEmissionError(state.action, state._emitted_via, via)
        state._emitted = True
        state._emitted_via = via or "unspecified"
        logger.debug("Request %s (%s) emitted via %s", state.request_id, state.action, state._emitted_via)
