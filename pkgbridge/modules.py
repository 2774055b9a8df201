"""Module variants produced by classification.

Every request ends up as exactly one of the variants below. The variants
form a closed union (ClassifiedModule); callers dispatch on the ``kind``
tag rather than on subclass behaviour.

Hashing follows the host's contract: a module's hash is derived from its
identity and its built content. Bridge modules have no backing file, so
their hash is derived from a fixed tag and the request path only.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import ClassVar, Union

from pkgbridge.types import ModuleKind

# Tag mixed into hashes of modules owned by the external package tree
MODULE_HASH_TAG = b"external"


@dataclass(frozen=True)
class RegularModule:
    """A module left to the host's default handling."""

    resource: str
    kind: ClassVar[ModuleKind] = ModuleKind.REGULAR


@dataclass(frozen=True)
class BridgeModule:
    """Synthetic module delegating to the external runtime.

    Attributes:
        request: The literal ``external/<name>`` request.
        source: Generated source text; never read from disk.
    """

    request: str
    source: str
    kind: ClassVar[ModuleKind] = ModuleKind.BRIDGE

    @property
    def resource(self) -> str:
        """Bridge modules use the request as their resource identifier."""
        return self.request


@dataclass(frozen=True)
class OpaqueExternalModule:
    """An external package file that must never be statically parsed."""

    resource: str
    kind: ClassVar[ModuleKind] = ModuleKind.OPAQUE_PACKAGE


@dataclass(frozen=True)
class PackageIndexModule:
    """The package index file; parsed normally for its import edges."""

    resource: str
    kind: ClassVar[ModuleKind] = ModuleKind.PACKAGE_INDEX


@dataclass(frozen=True)
class GlobalBootstrapModule:
    """The global-bootstrap file; parsed normally."""

    resource: str
    kind: ClassVar[ModuleKind] = ModuleKind.GLOBAL_BOOTSTRAP


ClassifiedModule = Union[
    RegularModule,
    BridgeModule,
    OpaqueExternalModule,
    PackageIndexModule,
    GlobalBootstrapModule,
]

_VARIANTS: dict[ModuleKind, type] = {
    ModuleKind.REGULAR: RegularModule,
    ModuleKind.OPAQUE_PACKAGE: OpaqueExternalModule,
    ModuleKind.PACKAGE_INDEX: PackageIndexModule,
    ModuleKind.GLOBAL_BOOTSTRAP: GlobalBootstrapModule,
}


def module_for_kind(kind: ModuleKind, resource: str) -> ClassifiedModule:
    """Create the file-backed variant for a classification tag.

    Args:
        kind: Classification tag (anything but BRIDGE).
        resource: Resolved path of the module.

    Returns:
        The matching module variant.

    Raises:
        ValueError: If kind is BRIDGE, which has no backing file.
    """
    if kind is ModuleKind.BRIDGE:
        raise ValueError("Bridge modules are created by BridgeModuleFactory")
    return _VARIANTS[kind](resource)


def should_prevent_parsing(module: ClassifiedModule) -> bool:
    """Return True if the module body must not be scanned for imports."""
    return module.kind is ModuleKind.OPAQUE_PACKAGE


def module_hash(module: ClassifiedModule, content: str = "") -> str:
    """Compute the content hash of a built module.

    Args:
        module: Module variant.
        content: Built source text. Ignored for bridge modules.

    Returns:
        SHA-256 hex digest.
    """
    digest = hashlib.sha256()
    if module.kind is ModuleKind.BRIDGE:
        digest.update(MODULE_HASH_TAG)
        digest.update(b"\0")
        digest.update(module.resource.encode("utf-8"))
        return digest.hexdigest()

    if module.kind is ModuleKind.OPAQUE_PACKAGE:
        digest.update(MODULE_HASH_TAG)
        digest.update(b"\0")
    digest.update(module.resource.encode("utf-8"))
    digest.update(b"\0")
    digest.update(content.encode("utf-8"))
    return digest.hexdigest()


__all__ = [
    "MODULE_HASH_TAG",
    "BridgeModule",
    "ClassifiedModule",
    "GlobalBootstrapModule",
    "OpaqueExternalModule",
    "PackageIndexModule",
    "RegularModule",
    "module_for_kind",
    "module_hash",
    "should_prevent_parsing",
]
