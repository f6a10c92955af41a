"""Per-class extension chains with call-through semantics.

Each replaced method is an ordered list of ChainLinks, oldest first. A link
holds a fixed reference to the implementation that was resolvable when it was
registered, so calling through always walks strictly backwards and ends at
the method the class originally defined.
"""

from __future__ import annotations

import functools
import logging
from collections import defaultdict
from collections.abc import Callable
from typing import Any

from overhook.errors import ExtensionError, MissingImplementationError, RegistryFrozenError
from overhook.extension.unit import ExtensionUnit, MethodWrapper

logger = logging.getLogger(__name__)

_MISSING = object()


class ChainLink:
    """One replacement bound to the implementation it wraps."""

    __slots__ = ("unit", "name", "fn", "prev", "class_level")

    def __init__(
        self,
        unit: str,
        name: str,
        fn: MethodWrapper,
        prev: Callable[..., Any],
        class_level: bool = False,
    ) -> None:
        self.unit = unit
        self.name = name
        self.fn = fn
        self.prev = prev
        self.class_level = class_level

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return self.fn(self.prev, *args, **kwargs)

    def __get__(self, instance: Any, owner: type | None = None) -> Any:
        if self.class_level:
            return functools.partial(self, owner if owner is not None else type(instance))
        if instance is None:
            return self
        return functools.partial(self, instance)

    def __repr__(self) -> str:
        kind = "classmethod" if self.class_level else "method"
        return f"<ChainLink {kind} {self.name!r} from unit {self.unit!r}>"


def _lookup_static(target: type, name: str) -> Any:
    """Find the raw class attribute along the MRO without binding it."""
    for klass in target.__mro__:
        if name in klass.__dict__:
            return klass.__dict__[name]
    return _MISSING


def _missing_implementation(target: type, name: str) -> Callable[..., Any]:
    def missing(*args: Any, **kwargs: Any) -> Any:
        raise MissingImplementationError(target, name)

    return missing


def _is_class_level(raw: Any) -> bool:
    if isinstance(raw, ChainLink):
        return raw.class_level
    return isinstance(raw, (classmethod, staticmethod))


class ExtensionChain:
    """Ordered extension links for a single target class.

    Attributes:
        target: The class being extended
    """

    def __init__(self, target: type) -> None:
        self.target = target
        self._units: dict[str, ExtensionUnit] = {}
        self._methods: dict[str, list[ChainLink]] = defaultdict(list)
        self._class_methods: dict[str, list[ChainLink]] = defaultdict(list)
        self._originals: dict[str, Any] = {}

    @property
    def units(self) -> list[str]:
        """Unit names in registration order."""
        return list(self._units)

    def __contains__(self, unit: object) -> bool:
        if isinstance(unit, ExtensionUnit):
            return self._units.get(unit.name) is unit
        return unit in self._units

    def add(self, unit: ExtensionUnit) -> bool:
        """Insert a unit at the head of every chain it touches.

        Args:
            unit: Extension unit to insert

        Returns:
            False if this exact unit was already attached to this target

        Raises:
            ExtensionError: If a name is replaced at both instance and class level,
                or a different unit already uses this unit's name
        """
        existing = self._units.get(unit.name)
        if existing is not None and existing is not unit:
            raise ExtensionError(
                f"A different unit named '{unit.name}' is already attached to {self.target.__name__}"
            )
        if existing is unit:
            logger.debug("Unit '%s' already attached to %s, skipping", unit.name, self.target.__name__)
            return False

        self._check_namespaces(unit)

        for name, fn in unit.methods.items():
            self._install(unit.name, name, fn, class_level=False)
        for name, fn in unit.class_methods.items():
            self._install(unit.name, name, fn, class_level=True)

        self._units[unit.name] = unit
        return True

    def _check_namespaces(self, unit: ExtensionUnit) -> None:
        both = set(unit.methods) & set(unit.class_methods)
        if both:
            raise ExtensionError(
                f"Unit '{unit.name}' replaces {sorted(both)} at both instance and class level on {self.target.__name__}"
            )

        for name in unit.methods:
            raw = _lookup_static(self.target, name)
            if name in self._class_methods or (raw is not _MISSING and _is_class_level(raw)):
                raise ExtensionError(
                    f"Unit '{unit.name}' replaces instance method '{name}' "
                    f"but {self.target.__name__}.{name} is class-level"
                )

        for name in unit.class_methods:
            raw = _lookup_static(self.target, name)
            if name in self._methods or (raw is not _MISSING and not _is_class_level(raw)):
                raise ExtensionError(
                    f"Unit '{unit.name}' replaces class method '{name}' "
                    f"but {self.target.__name__}.{name} is an instance method"
                )

    def _capture(self, name: str, class_level: bool) -> Callable[..., Any]:
        """Return the implementation currently resolvable for ``name``."""
        raw = _lookup_static(self.target, name)
        if raw is _MISSING:
            return _missing_implementation(self.target, name)
        if isinstance(raw, ChainLink):
            return raw
        if not class_level:
            return raw
        if isinstance(raw, classmethod):
            return raw.__func__
        static_fn = raw.__func__

        def call_static(cls: type, *args: Any, **kwargs: Any) -> Any:
            return static_fn(*args, **kwargs)

        return call_static

    def _install(self, unit_name: str, name: str, fn: MethodWrapper, class_level: bool) -> None:
        if name not in self._originals:
            self._originals[name] = self.target.__dict__.get(name, _MISSING)

        link = ChainLink(unit_name, name, fn, self._capture(name, class_level), class_level=class_level)
        links = self._class_methods if class_level else self._methods
        links[name].append(link)
        setattr(self.target, name, link)

    def resolve(self, name: str) -> Callable[..., Any]:
        """Most recently registered instance-level implementation of ``name``.

        Raises:
            AttributeError: If neither the chain nor the class defines it
        """
        if self._methods.get(name):
            return self._methods[name][-1]
        raw = _lookup_static(self.target, name)
        if raw is _MISSING or _is_class_level(raw):
            raise AttributeError(f"{self.target.__name__} has no instance method '{name}'")
        return raw

    def resolve_class(self, name: str) -> Callable[..., Any]:
        """Most recently registered class-level implementation of ``name``.

        The returned callable is bound to the target class.
        """
        if self._class_methods.get(name):
            return functools.partial(self._class_methods[name][-1], self.target)
        raw = _lookup_static(self.target, name)
        if raw is _MISSING or not _is_class_level(raw):
            raise AttributeError(f"{self.target.__name__} has no class method '{name}'")
        return getattr(self.target, name)

    def links(self, name: str, *, class_level: bool = False) -> list[ChainLink]:
        """Links for a method, oldest first."""
        links = self._class_methods if class_level else self._methods
        return list(links.get(name, []))

    def method_names(self) -> list[str]:
        return sorted(self._methods)

    def class_method_names(self) -> list[str]:
        return sorted(self._class_methods)

    def detach(self) -> None:
        """Restore the target's original attributes (for testing)."""
        for name, original in self._originals.items():
            if original is _MISSING:
                if name in self.target.__dict__:
                    delattr(self.target, name)
            else:
                setattr(self.target, name, original)
        self._originals.clear()
        self._methods.clear()
        self._class_methods.clear()
        self._units.clear()


class ExtensionRegistry:
    """Process-wide registry of extension chains, keyed by target class."""

    def __init__(self) -> None:
        self._chains: dict[type, ExtensionChain] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(self, target: type, unit: ExtensionUnit) -> ExtensionChain:
        """Attach a unit to a target class.

        The unit's attached hooks run once, after its methods are installed.

        Raises:
            RegistryFrozenError: If the registration phase is over
            ExtensionError: If the unit conflicts with the target's namespace
        """
        if self._frozen:
            raise RegistryFrozenError(f"Cannot attach '{unit.name}' to {target.__name__}: extensions are frozen")

        chain = self._chains.get(target)
        if chain is None:
            chain = ExtensionChain(target)
            self._chains[target] = chain

        if chain.add(unit):
            logger.debug(
                "Attached unit '%s' to %s (methods: %s, class methods: %s)",
                unit.name,
                target.__name__,
                sorted(unit.methods) or "-",
                sorted(unit.class_methods) or "-",
            )
            unit.attach(target)
        return chain

    def get_chain(self, target: type) -> ExtensionChain | None:
        return self._chains.get(target)

    def get_all_chains(self) -> dict[type, ExtensionChain]:
        return dict(self._chains)

    def resolve(self, target: type, name: str) -> Callable[..., Any]:
        """Resolve an instance method through the target's chain."""
        chain = self._chains.get(target) or ExtensionChain(target)
        return chain.resolve(name)

    def resolve_class(self, target: type, name: str) -> Callable[..., Any]:
        """Resolve a class-level method through the target's chain."""
        chain = self._chains.get(target) or ExtensionChain(target)
        return chain.resolve_class(name)

    def freeze(self) -> None:
        """End the registration phase."""
        self._frozen = True

    def clear(self) -> None:
        """Detach every unit and reopen registration (for testing)."""
        for chain in self._chains.values():
            chain.detach()
        self._chains.clear()
        self._frozen = False


# Global registry
_registry = ExtensionRegistry()


def get_registry() -> ExtensionRegistry:
    """Get the global extension registry."""
    return _registry


def extend(target: type | None, *units: ExtensionUnit) -> ExtensionChain | None:
    """Attach units to a target in the order given.

    Args:
        target: Class to extend; None uses each unit's declared target
        *units: Extension units, oldest first

    Returns:
        The chain of the last target extended

    Raises:
        ExtensionError: If a unit has no target to attach to
    """
    chain = None
    for unit in units:
        resolved = target or unit.target
        if resolved is None:
            raise ExtensionError(f"Unit '{unit.name}' declares no target and none was given")
        chain = _registry.register(resolved, unit)
    return chain
