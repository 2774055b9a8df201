"""Tests for modules.py module.

Tests module variants, parse prevention and module hashing.
"""

import pytest

from pkgbridge.bridge import create_bridge_module
from pkgbridge.modules import (
    GlobalBootstrapModule,
    OpaqueExternalModule,
    PackageIndexModule,
    RegularModule,
    module_for_kind,
    module_hash,
    should_prevent_parsing,
)
from pkgbridge.types import ModuleKind


class TestModuleForKind:
    """Tests for module_for_kind function."""

    @pytest.mark.parametrize(
        ("kind", "cls"),
        [
            (ModuleKind.REGULAR, RegularModule),
            (ModuleKind.OPAQUE_PACKAGE, OpaqueExternalModule),
            (ModuleKind.PACKAGE_INDEX, PackageIndexModule),
            (ModuleKind.GLOBAL_BOOTSTRAP, GlobalBootstrapModule),
        ],
    )
    def test_creates_variant(self, kind, cls):
        """Each tag should map to its variant."""
        module = module_for_kind(kind, "/a/b.js")
        assert isinstance(module, cls)
        assert module.kind == kind
        assert module.resource == "/a/b.js"

    def test_bridge_rejected(self):
        """Bridge modules have no backing file."""
        with pytest.raises(ValueError):
            module_for_kind(ModuleKind.BRIDGE, "external/x")


class TestShouldPreventParsing:
    """Tests for should_prevent_parsing function."""

    def test_only_opaque_is_unparsed(self):
        """Opaque modules are the only atomic leaves."""
        assert should_prevent_parsing(OpaqueExternalModule("/p/a.js")) is True
        assert should_prevent_parsing(PackageIndexModule("/p/modules.js")) is False
        assert should_prevent_parsing(GlobalBootstrapModule("/g.js")) is False
        assert should_prevent_parsing(RegularModule("/src/a.js")) is False
        assert should_prevent_parsing(create_bridge_module("external/x")) is False


class TestModuleHash:
    """Tests for module_hash function."""

    def test_bridge_hash_is_stable(self):
        """Identical bridge requests hash identically."""
        first = module_hash(create_bridge_module("external/tracker"))
        second = module_hash(create_bridge_module("external/tracker"))
        assert first == second
        assert len(first) == 64

    def test_bridge_hash_differs_per_request(self):
        """Different bridge requests never share a hash."""
        assert module_hash(create_bridge_module("external/a")) != module_hash(
            create_bridge_module("external/b")
        )

    def test_bridge_hash_ignores_content(self):
        """Bridge hashes depend on the request only."""
        module = create_bridge_module("external/a")
        assert module_hash(module, "anything") == module_hash(module, "else")

    def test_bridge_hash_differs_from_regular(self):
        """A regular module with the same identifier hashes differently."""
        assert module_hash(create_bridge_module("external/a")) != module_hash(
            RegularModule("external/a")
        )

    def test_content_changes_hash(self):
        """File-backed module hashes follow their content."""
        module = RegularModule("/src/a.js")
        assert module_hash(module, "a") != module_hash(module, "b")

    def test_opaque_tagged(self):
        """Opaque modules hash differently from regular ones."""
        assert module_hash(OpaqueExternalModule("/p/a.js"), "x") != module_hash(
            RegularModule("/p/a.js"), "x"
        )
