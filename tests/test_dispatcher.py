"""Tests for the override dispatcher."""

import logging
from unittest.mock import MagicMock

import pytest

from overhook.errors import DoubleEmissionError, InvalidOverrideError, NoEmissionError
from overhook.respond.dispatcher import OverrideDispatcher, dispatch
from overhook.respond.registry import Outcome, OverrideRegistry, get_override_registry
from overhook.respond.state import RequestResponseState


class ProductsController:
    pass


@pytest.fixture
def registry():
    return OverrideRegistry()


@pytest.fixture
def dispatcher(registry):
    return OverrideDispatcher(registry)


@pytest.fixture
def state():
    return RequestResponseState(action="update", intended_format="html")


def emitting(state, label, result=None):
    """Build a producer that emits through the guard."""

    def produce(*args):
        state.guard.mark_emitted(label)
        return result

    return MagicMock(side_effect=produce)


class TestDispatch:
    """Test dispatch decisions."""

    def test_registered_override_runs_instead_of_default(self, dispatcher, registry, state):
        """Test an override runs and the default producer never does."""
        handler = emitting(state, "override", result="partial")
        default = emitting(state, "default")
        registry.register(ProductsController, "update", "html", Outcome.FAILURE, lambda: handler())

        result = dispatcher.dispatch(state, ProductsController, "update", "html", Outcome.FAILURE, default)

        assert result == "partial"
        handler.assert_called_once()
        default.assert_not_called()
        assert state.emitted_via == "override"

    def test_no_override_runs_default(self, dispatcher, state):
        """Test pass-through when nothing is registered."""
        default = emitting(state, "default", result="view")

        result = dispatcher.dispatch(state, ProductsController, "update", "html", Outcome.SUCCESS, default)

        assert result == "view"
        default.assert_called_once_with()
        assert state.emitted

    def test_override_for_other_outcome_ignored(self, dispatcher, registry, state):
        """Test only the exact outcome's override applies."""
        handler = emitting(state, "override")
        registry.register(ProductsController, "update", "html", Outcome.FAILURE, lambda: handler())
        default = emitting(state, "default")

        dispatcher.dispatch(state, ProductsController, "update", "html", Outcome.SUCCESS, default)

        handler.assert_not_called()
        default.assert_called_once()

    def test_already_emitted_runs_nothing(self, dispatcher, registry, state):
        """Test dispatch is a no-op once the request emitted."""
        handler = MagicMock()
        default = MagicMock()
        registry.register(ProductsController, "update", "html", Outcome.SUCCESS, lambda: handler())
        state.guard.mark_emitted("earlier")

        result = dispatcher.dispatch(state, ProductsController, "update", "html", Outcome.SUCCESS, default)

        assert result is None
        handler.assert_not_called()
        default.assert_not_called()

    def test_already_emitted_skips_outcome_validation(self, dispatcher, state):
        """Test an emitted request makes dispatch a no-op even for a bad outcome."""
        state.guard.mark_emitted("earlier")
        default = MagicMock()

        assert dispatcher.dispatch(state, ProductsController, "update", "html", "partial", default) is None
        default.assert_not_called()

    def test_invalid_outcome_rejected_before_emission(self, dispatcher, state):
        with pytest.raises(InvalidOverrideError, match="Unknown outcome"):
            dispatcher.dispatch(state, ProductsController, "update", "html", "partial", MagicMock())

    def test_second_branch_is_noop(self, dispatcher, state):
        """Test failure then success on one request emits once, without errors."""
        failure_default = emitting(state, "render(edit)")
        success_default = emitting(state, "redirect")

        dispatcher.dispatch(state, ProductsController, "update", "html", Outcome.FAILURE, failure_default)
        dispatcher.dispatch(state, ProductsController, "update", "html", Outcome.SUCCESS, success_default)

        failure_default.assert_called_once()
        success_default.assert_not_called()
        assert state.emitted_via == "render(edit)"

    def test_one_argument_handler_gets_controller(self, dispatcher, registry, state):
        """Test one-argument handlers receive the controller."""
        controller = MagicMock()
        controller.state = state
        registry.register(
            ProductsController,
            "update",
            "html",
            Outcome.FAILURE,
            lambda c: c.state.guard.mark_emitted("partial"),
        )

        dispatcher.dispatch(
            state, ProductsController, "update", "html", "failure", MagicMock(), controller=controller
        )
        assert state.emitted_via == "partial"


class TestDispatchErrors:
    """Test protocol violations surface to the caller."""

    def test_override_without_emission_raises(self, dispatcher, registry, state):
        """Test a handler that emits nothing is a fatal error."""
        registry.register(ProductsController, "update", "html", Outcome.FAILURE, lambda: None, source="broken")

        with pytest.raises(NoEmissionError) as exc_info:
            dispatcher.dispatch(state, ProductsController, "update", "html", Outcome.FAILURE, MagicMock())

        assert "[broken]" in exc_info.value.producer
        assert exc_info.value.outcome == "failure"

    def test_default_without_emission_raises(self, dispatcher, state):
        """Test a default producer that emits nothing is a fatal error."""
        with pytest.raises(NoEmissionError, match="default producer"):
            dispatcher.dispatch(state, ProductsController, "update", "html", Outcome.SUCCESS, lambda: None)

    def test_double_emission_propagates(self, dispatcher, registry, state):
        """Test a handler that emits twice is not swallowed."""

        def twice():
            state.guard.mark_emitted("first")
            state.guard.mark_emitted("second")

        registry.register(ProductsController, "update", "html", Outcome.SUCCESS, twice)

        with pytest.raises(DoubleEmissionError):
            dispatcher.dispatch(state, ProductsController, "update", "html", Outcome.SUCCESS, MagicMock())

    def test_handler_exception_propagates(self, dispatcher, registry, state):
        """Test handler errors are not converted into responses."""

        def explode():
            raise RuntimeError("template missing")

        registry.register(ProductsController, "update", "html", Outcome.SUCCESS, explode)

        with pytest.raises(RuntimeError, match="template missing"):
            dispatcher.dispatch(state, ProductsController, "update", "html", Outcome.SUCCESS, MagicMock())
        assert not state.emitted


class TestModuleDispatch:
    """Test dispatch against the global registry."""

    def test_uses_global_registry(self, state, caplog):
        handler = emitting(state, "global override")
        get_override_registry().register(ProductsController, "update", "html", "success", lambda: handler())

        with caplog.at_level(logging.DEBUG, logger="overhook.respond.dispatcher"):
            dispatch(state, ProductsController, "update", "html", "success", MagicMock())

        handler.assert_called_once()
        assert "running override (update, html, success)" in caplog.text

    def test_empty_registry_is_not_replaced_by_global(self):
        """Test an explicitly given empty registry is kept."""
        registry = OverrideRegistry()
        assert OverrideDispatcher(registry).registry is registry
