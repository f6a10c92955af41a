"""Load-time registration phase.

Extensions are imported in configured order, overrides are checked against
the controllers they target, and then both registries are frozen so request
handling only ever reads them.
"""

from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass, field
from typing import Any

from overhook.config import OverhookConfig, get_config
from overhook.controller import is_action
from overhook.errors import ExtensionError, UnresolvedActionError
from overhook.extension.chain import get_registry
from overhook.extension.unit import ExtensionUnit
from overhook.respond.registry import get_override_registry

logger = logging.getLogger(__name__)


@dataclass
class LoadReport:
    """Outcome of the registration phase.

    Attributes:
        loaded: Extension entries loaded, in order
        failed: Entries that could not be loaded, with the reason
        unresolved: Messages for overrides whose action the target lacks
    """

    loaded: list[str] = field(default_factory=list)
    failed: list[tuple[str, str]] = field(default_factory=list)
    unresolved: list[str] = field(default_factory=list)


def import_object(path: str) -> Any:
    """Import a module or a module attribute from a dotted path.

    ``pkg.mod`` returns the module; ``pkg.mod.NAME`` or ``pkg.mod:NAME``
    returns the attribute.

    Raises:
        ImportError: If nothing importable lives at the path
    """
    if ":" in path:
        module_path, attr = path.split(":", 1)
        return getattr(importlib.import_module(module_path), attr)

    try:
        return importlib.import_module(path)
    except ModuleNotFoundError as e:
        # Only a missing leaf may be an attribute; a broken inner import is re-raised
        if "." not in path or e.name != path:
            raise
    module_path, attr = path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    try:
        return getattr(module, attr)
    except AttributeError:
        raise ImportError(f"Module '{module_path}' has no attribute '{attr}'") from None


def load_entry(entry: str | dict[str, Any]) -> str:
    """Load one configured extension entry.

    Returns:
        Display name of the entry

    Raises:
        ImportError: If the entry cannot be imported
        ExtensionError: If the entry is malformed or the unit has no target
    """
    if isinstance(entry, str):
        unit_path, target_path = entry, None
    elif isinstance(entry, dict):
        unit_path = entry.get("unit", "")
        target_path = entry.get("target")
        if not unit_path:
            raise ExtensionError(f"Extension entry missing 'unit' key: {entry}")
    else:
        raise ExtensionError(f"Invalid extension entry type: {type(entry)}")

    obj = import_object(unit_path)
    if isinstance(obj, ExtensionUnit):
        target = import_object(target_path) if target_path else obj.target
        if not isinstance(target, type):
            raise ExtensionError(f"Extension unit '{obj.name}' has no target class")
        get_registry().register(target, obj)
    elif target_path:
        raise ExtensionError(f"'{unit_path}' is not an ExtensionUnit but a target was given")

    return unit_path


def load_extensions(config: OverhookConfig, report: LoadReport | None = None) -> LoadReport:
    """Import all configured extensions in order.

    Failures are logged and skipped, except in strict mode where they raise.
    """
    report = report or LoadReport()
    for entry in config.extensions:
        try:
            report.loaded.append(load_entry(entry))
            logger.debug(f"Loaded extension: {entry}")
        except (ImportError, ExtensionError) as e:
            if config.strict:
                raise
            logger.error(f"Failed to load extension {entry}: {e}")
            report.failed.append((str(entry), str(e)))
    return report


def validate_overrides() -> list[str]:
    """Find overrides registered for actions their controller does not define.

    Such overrides are accepted but can never fire.

    Returns:
        List of warning messages
    """
    warnings: list[str] = []
    registry = get_override_registry()
    for target in registry.targets():
        for key, override in registry.overrides_for(target).items():
            if not is_action(target, key.action):
                warnings.append(
                    f"Override {key} on {target.__name__} from {override.source or 'unknown'} "
                    f"targets undefined action '{key.action}'"
                )
    return warnings


def bootstrap(config: OverhookConfig | None = None) -> LoadReport:
    """Run the registration phase and freeze the registries.

    Raises:
        UnresolvedActionError: In strict mode, if any override targets an
            undefined action
    """
    config = config or get_config()
    report = load_extensions(config)

    report.unresolved = validate_overrides()
    for warning in report.unresolved:
        logger.warning("Override validation: %s", warning)
    if report.unresolved and config.strict:
        raise UnresolvedActionError("\n".join(report.unresolved))

    get_registry().freeze()
    get_override_registry().freeze()

    logger.info(
        "Registration complete: %d extension(s) loaded, %d failed, %d chain(s), %d override(s)",
        len(report.loaded),
        len(report.failed),
        len(get_registry().get_all_chains()),
        len(get_override_registry()),
    )
    return report
