"""Controller base class: the seam between actions and response overrides.

Actions run their business logic and then call ``respond_with`` (or
``respond`` for custom branches). The dispatcher decides whether an
extension's override or the built-in response below is emitted.

Routing, template rendering and persistence belong to the host framework;
here they are reduced to the emission primitives ``render``,
``redirect_to`` and ``render_data``.
"""

from __future__ import annotations

import dataclasses
import json
import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, ClassVar

from overhook.errors import UnsupportedFormatError
from overhook.respond.dispatcher import OverrideDispatcher
from overhook.respond.registry import Outcome, ResponseOverride, get_override_registry
from overhook.respond.state import RequestResponseState

logger = logging.getLogger(__name__)

CONTENT_TYPES = {
    "html": "text/html",
    "json": "application/json",
}

# View rendered again when a form action fails
REENTRY_VIEWS = {
    "create": "new",
    "update": "edit",
}


@dataclass
class Request:
    """Resolved request as handed over by the router."""

    action: str
    format: str = "html"
    params: dict[str, Any] = field(default_factory=dict)
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex)


@dataclass
class Response:
    """Emitted response."""

    status: int
    body: str = ""
    content_type: str = "text/html"
    template: str | None = None
    location: str | None = None


def has_errors(resource: Any) -> bool:
    """True when a resource carries validation errors."""
    return bool(getattr(resource, "errors", None))


def serialize(resource: Any) -> Any:
    """Convert a resource into JSON-compatible data."""
    if hasattr(resource, "to_dict"):
        return resource.to_dict()
    if dataclasses.is_dataclass(resource) and not isinstance(resource, type):
        return dataclasses.asdict(resource)
    if isinstance(resource, (dict, list, str, int, float, bool)) or resource is None:
        return resource
    return {k: v for k, v in vars(resource).items() if not k.startswith("_")}


class Controller:
    """Base for controller-like classes whose responses can be overridden.

    Attributes:
        formats: Formats every action of this controller can respond with
        request: Request being handled
        state: Response state of that request
        response: Emitted response, once there is one
    """

    formats: ClassVar[frozenset[str]] = frozenset({"html"})

    def __init__(self, request: Request, dispatcher: OverrideDispatcher | None = None) -> None:
        self.request = request
        self.state = RequestResponseState(
            action=request.action,
            intended_format=request.format,
            request_id=request.request_id,
        )
        self.dispatcher = dispatcher or OverrideDispatcher()
        self.response: Response | None = None

    @property
    def params(self) -> dict[str, Any]:
        return self.request.params

    @property
    def action_name(self) -> str:
        return self.request.action

    # Emission primitives

    def _emit(self, response: Response, via: str) -> Response:
        self.state.guard.mark_emitted(via)
        self.response = response
        return response

    def render(self, template: str | None = None, status: int = 200) -> Response:
        """Render a view (template name stands in for the rendered body)."""
        template = template or self.action_name
        return self._emit(
            Response(status=status, body=template, content_type=CONTENT_TYPES["html"], template=template),
            f"render({template})",
        )

    def redirect_to(self, location: str, status: int = 302) -> Response:
        return self._emit(
            Response(status=status, content_type=CONTENT_TYPES["html"], location=location),
            f"redirect_to({location})",
        )

    def render_data(self, data: Any, status: int = 200) -> Response:
        """Emit serialized data."""
        return self._emit(
            Response(status=status, body=json.dumps(data, default=str), content_type=CONTENT_TYPES["json"]),
            f"render_data({status})",
        )

    # Response resolution

    def respond(self, outcome: Outcome | str, default_producer: Callable[[], Any]) -> Any:
        """Dispatch one outcome branch of the current action."""
        return self.dispatcher.dispatch(
            self.state,
            type(self),
            self.action_name,
            self.request.format,
            outcome,
            default_producer,
            controller=self,
        )

    def respond_with(self, resource: Any, location: str | None = None) -> Any:
        """Respond for a resource, letting registered overrides take over.

        The outcome is failure when the resource carries errors.

        Raises:
            UnsupportedFormatError: If the request's format is not in ``formats``
        """
        format = self.request.format
        if format not in self.formats:
            raise UnsupportedFormatError(self.action_name, format, self.formats)

        outcome = Outcome.FAILURE if has_errors(resource) else Outcome.SUCCESS
        return self.respond(outcome, lambda: self.default_response(resource, outcome, location))

    def default_response(self, resource: Any, outcome: Outcome, location: str | None = None) -> Response:
        """Built-in response for a resource, by format and outcome."""
        if self.request.format == "json":
            if outcome is Outcome.FAILURE:
                return self.render_data({"errors": serialize(resource.errors)}, status=422)
            return self.render_data(serialize(resource))

        if outcome is Outcome.FAILURE:
            return self.render(REENTRY_VIEWS.get(self.action_name, self.action_name), status=422)
        if location:
            return self.redirect_to(location)
        return self.render()

    # Declarative registration

    @classmethod
    def respond_override(cls, **mapping: Any) -> list[ResponseOverride]:
        """Register overrides for this controller at load time.

        Example:
            ProductsController.respond_override(
                update={"html": {"failure": lambda c: c.render("shared/edit_product")}},
            )
        """
        return get_override_registry().register_mapping(cls, mapping, source=cls.__name__)

    # Request lifecycle

    @classmethod
    def process(cls, request: Request, dispatcher: OverrideDispatcher | None = None) -> Response:
        """Handle one request with a fresh controller and response state.

        When the action returns without emitting, its default view is
        rendered, as the host framework would.

        Raises:
            AttributeError: If the controller has no such action
        """
        if not is_action(cls, request.action):
            raise AttributeError(f"{cls.__name__} has no action '{request.action}'")

        controller = cls(request, dispatcher=dispatcher)
        action = getattr(controller, request.action)

        logger.debug("Request %s: %s#%s (%s)", request.request_id, cls.__name__, request.action, request.format)
        action()

        if not controller.state.emitted:
            controller.render()
        return controller.response  # type: ignore[return-value]


def is_action(target: type, name: str) -> bool:
    """Whether ``name`` is an action requests can be routed to on ``target``.

    Private names and the Controller machinery itself (``render``,
    ``respond_with``, ``process``...) are never actions.
    """
    if not name or name.startswith("_"):
        return False
    if issubclass(target, Controller) and hasattr(Controller, name):
        return False
    return callable(getattr(target, name, None))
