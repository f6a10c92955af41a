"""Override dispatcher.

Decides, at each point an action would finalize its output, whether a
registered override or the default producer runs. Checking the emission
guard before any lookup lets an action dispatch once per outcome branch
while only the first applicable call produces output.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from overhook.errors import NoEmissionError
from overhook.respond.registry import Outcome, OverrideRegistry, get_override_registry
from overhook.respond.state import RequestResponseState

logger = logging.getLogger(__name__)


class OverrideDispatcher:
    """Chooses between a registered override and the default response.

    Attributes:
        registry: Override registry consulted on each dispatch
    """

    def __init__(self, registry: OverrideRegistry | None = None) -> None:
        self.registry = registry if registry is not None else get_override_registry()

    def dispatch(
        self,
        state: RequestResponseState,
        target: type,
        action: str,
        format: str,
        outcome: Outcome | str,
        default_producer: Callable[[], Any],
        controller: Any = None,
    ) -> Any:
        """Produce the response for one outcome branch of an action.

        Args:
            state: Response state of the current request
            target: Controller class whose overrides apply
            action: Action name
            format: Negotiated response format
            outcome: Result of the action's business logic
            default_producer: Framework's built-in response for this branch
            controller: Passed to one-argument override handlers

        Returns:
            Whatever the chosen producer returned, or None if the request
            had already emitted and nothing ran

        Raises:
            NoEmissionError: If the chosen producer did not emit
            InvalidOverrideError: If the outcome is not success or failure
        """
        if state.guard.has_emitted():
            logger.debug(
                "Request %s: (%s, %s, %s) skipped, already emitted via %s",
                state.request_id,
                action,
                format,
                getattr(outcome, "value", outcome),
                state.emitted_via,
            )
            return None

        outcome = Outcome.parse(outcome)

        override = self.registry.lookup(target, action, format, outcome)
        if override is not None:
            logger.debug("Request %s: running %s", state.request_id, override.description)
            producer_name = override.description
            result = override.invoke(controller)
        else:
            logger.debug(
                "Request %s: no override for (%s, %s, %s) on %s, using default",
                state.request_id,
                action,
                format,
                outcome.value,
                target.__name__,
            )
            producer_name = "default producer"
            result = default_producer()

        if not state.guard.has_emitted():
            raise NoEmissionError(action, format, outcome.value, producer_name)
        return result


def dispatch(
    state: RequestResponseState,
    target: type,
    action: str,
    format: str,
    outcome: Outcome | str,
    default_producer: Callable[[], Any],
    controller: Any = None,
) -> Any:
    """Dispatch against the global override registry."""
    return OverrideDispatcher().dispatch(state, target, action, format, outcome, default_producer, controller)
