"""Tests for per-request response state and the emission guard."""

import pytest

from overhook.errors import DoubleEmissionError
from overhook.respond.state import RequestResponseState


class TestEmissionGuard:
    """Test the at-most-one-response rule."""

    def test_fresh_state_not_emitted(self):
        state = RequestResponseState(action="update", intended_format="html")
        assert not state.emitted
        assert not state.guard.has_emitted()
        assert state.emitted_via is None

    def test_mark_emitted_once(self):
        """Test emitted transitions false to true."""
        state = RequestResponseState(action="update")
        state.guard.mark_emitted("render(edit)")

        assert state.emitted
        assert state.guard.has_emitted()
        assert state.emitted_via == "render(edit)"

    def test_second_mark_raises(self):
        """Test a second emission is refused and names both producers."""
        state = RequestResponseState(action="update")
        state.guard.mark_emitted("render(edit)")

        with pytest.raises(DoubleEmissionError) as exc_info:
            state.guard.mark_emitted("redirect_to(/products/1)")

        assert exc_info.value.first == "render(edit)"
        assert exc_info.value.second == "redirect_to(/products/1)"
        assert "already emitted via render(edit)" in str(exc_info.value)
        assert state.emitted_via == "render(edit)"

    def test_unlabelled_emission(self):
        state = RequestResponseState(action="show")
        state.guard.mark_emitted()
        assert state.emitted_via == "unspecified"

    def test_states_are_independent(self):
        """Test each request owns its own state."""
        first = RequestResponseState(action="update")
        second = RequestResponseState(action="update")
        first.guard.mark_emitted("render")

        assert first.emitted
        assert not second.emitted
        assert first.request_id != second.request_id

    def test_emitted_is_read_only(self):
        state = RequestResponseState(action="update")
        with pytest.raises(AttributeError):
            state.emitted = True  # type: ignore[misc]
