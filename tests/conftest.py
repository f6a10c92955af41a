"""Shared fixtures for overhook tests."""

import pytest

from overhook.config import clear_config_instance
from overhook.extension.chain import get_registry
from overhook.respond.registry import get_override_registry


@pytest.fixture(autouse=True)
def cleanup():
    """Reset global registries and config between tests."""
    yield
    get_registry().clear()
    get_override_registry().clear()
    clear_config_instance()
