"""Extension units and their decorators.

An ExtensionUnit bundles method replacements for one target class. Every
replacement receives the implementation it replaces as its first argument:

    products = ExtensionUnit("shared_partials", target=ProductsController)

    @products.method
    def update(prev, self):
        self.audit("update")
        return prev(self)

The unit is inert until it is registered with the extension registry.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from overhook.respond.registry import get_override_registry

# Type aliases
MethodWrapper = Callable[..., Any]
AttachedHook = Callable[[type], None]


@dataclass(eq=False)
class ExtensionUnit:
    """One bundle of behavior replacements for a target class.

    Attributes:
        name: Unit identifier; unique among the units attached to one target
        target: Default class this unit extends, if it declares one
        methods: Instance-level replacements, by method name
        class_methods: Class-level replacements, by method name
        attached_hooks: Callables run once with the target when attached
    """

    name: str
    target: type | None = None
    methods: dict[str, MethodWrapper] = field(default_factory=dict)
    class_methods: dict[str, MethodWrapper] = field(default_factory=dict)
    attached_hooks: list[AttachedHook] = field(default_factory=list)

    def method(self, fn: MethodWrapper | None = None, *, name: str | None = None) -> Any:
        """Decorator registering an instance-level replacement.

        Usable bare (``@unit.method``) or with an explicit name
        (``@unit.method(name="update")``).
        """

        def decorator(func: MethodWrapper) -> MethodWrapper:
            self.methods[name or func.__name__] = func
            return func

        if fn is not None:
            return decorator(fn)
        return decorator

    def class_method(self, fn: MethodWrapper | None = None, *, name: str | None = None) -> Any:
        """Decorator registering a class-level replacement.

        The wrapper is called as ``fn(prev, cls, *args, **kwargs)``.
        """

        def decorator(func: MethodWrapper) -> MethodWrapper:
            self.class_methods[name or func.__name__] = func
            return func

        if fn is not None:
            return decorator(fn)
        return decorator

    def on_attach(self, fn: AttachedHook) -> AttachedHook:
        """Decorator registering a hook run once when the unit is attached."""
        self.attached_hooks.append(fn)
        return fn

    def respond_override(self, **mapping: Any) -> None:
        """Declare response overrides registered when this unit is attached.

        Args:
            **mapping: ``action -> format -> outcome -> handler``; a bare
                handler in place of the outcome mapping means success.

        Example:
            unit.respond_override(update={"html": {"failure": lambda c: c.render("shared/edit")}})
        """

        def register_overrides(target: type) -> None:
            get_override_registry().register_mapping(target, mapping, source=self.name)

        self.attached_hooks.append(register_overrides)

    def attach(self, target: type) -> None:
        """Run attached hooks against the target."""
        for attached in self.attached_hooks:
            attached(target)


def extension(name: str, target: type | None = None) -> ExtensionUnit:
    """Create an empty ExtensionUnit (convenience for module-level units)."""
    return ExtensionUnit(name=name, target=target)
