"""Extension chains for non-invasive class extension.

Units replace methods on existing classes while keeping a fixed reference to
the implementation they replace:

    ExtensionChain(C).links("m") == [L1, L2]
    C().m() -> L2.fn(L1, self) -> L1.fn(C.m_original, self) -> C.m_original(self)
"""

from overhook.extension.chain import (
    ChainLink,
    ExtensionChain,
    ExtensionRegistry,
    extend,
    get_registry,
)
from overhook.extension.unit import ExtensionUnit, extension

__all__ = [
    "ChainLink",
    "ExtensionChain",
    "ExtensionRegistry",
    "ExtensionUnit",
    "extend",
    "extension",
    "get_registry",
]
