"""Tests for classify.py module.

Tests pattern construction and path/request classification.
"""

import pytest

from pkgbridge.classify import (
    classify_path,
    classify_request,
    compile_patterns,
    escape_for_regex,
    path_parts_to_regex,
    split_path,
)
from pkgbridge.types import ModuleKind

BUILD = "/proj/.external/local/build/programs/web.browser"
ROOT = f"{BUILD}/packages"


@pytest.fixture
def patterns():
    """Patterns for a POSIX packages root."""
    return compile_patterns(ROOT)


class TestEscaping:
    """Tests for escape_for_regex and path_parts_to_regex."""

    def test_escapes_special_characters(self):
        """Should escape dots, brackets and other regex characters."""
        assert escape_for_regex("web.browser") == r"web\.browser"
        assert escape_for_regex("a(b)[c]{d}") == r"a\(b\)\[c\]\{d\}"
        assert escape_for_regex("x+y*z?^$|") == r"x\+y\*z\?\^\$\|"

    def test_leaves_plain_text(self):
        """Should not touch ordinary characters."""
        assert escape_for_regex("packages") == "packages"
        assert escape_for_regex("my-pkg_1") == "my-pkg_1"

    def test_joins_with_separator_class(self):
        """Components should be joined by a class matching both separators."""
        assert path_parts_to_regex(["a", "b.c"]) == r"a[/\\]b\.c"

    def test_split_path_both_separators(self):
        """Should split on forward and back slashes alike."""
        assert split_path("C:\\proj/packages") == ["C:", "proj", "packages"]
        assert split_path("/proj/packages/") == ["", "proj", "packages"]


class TestOpaquePackages:
    """Tests for opaque package classification."""

    def test_top_level_package_file(self, patterns):
        """Files directly under the root are opaque."""
        assert classify_path(f"{ROOT}/underscore.js", patterns) == ModuleKind.OPAQUE_PACKAGE

    def test_nested_package_file(self, patterns):
        """Files in package subdirectories are opaque."""
        assert classify_path(f"{ROOT}/pkgA/foo.js", patterns) == ModuleKind.OPAQUE_PACKAGE

    def test_backslash_separators(self, patterns):
        """Backslash paths should classify the same as forward slash ones."""
        path = (ROOT + "/pkgA/foo.js").replace("/", "\\")
        assert classify_path(path, patterns) == ModuleKind.OPAQUE_PACKAGE

    def test_mixed_separators(self, patterns):
        """Mixed separators should still match."""
        assert classify_path(ROOT + "\\pkgA/foo.js", patterns) == ModuleKind.OPAQUE_PACKAGE

    def test_index_lookalikes_are_opaque(self, patterns):
        """Names merely containing the index filename are opaque."""
        assert classify_path(f"{ROOT}/modules.jsx", patterns) == ModuleKind.OPAQUE_PACKAGE
        assert classify_path(f"{ROOT}/my-modules.js", patterns) == ModuleKind.OPAQUE_PACKAGE
        assert (
            classify_path(f"{ROOT}/modulesjsx/foo.js", patterns)
            == ModuleKind.OPAQUE_PACKAGE
        )

    def test_sibling_directory_not_matched(self, patterns):
        """A sibling whose name starts with the root name is not inside it."""
        assert classify_path(f"{BUILD}/packages2/foo.js", patterns) == ModuleKind.REGULAR

    def test_root_itself_not_matched(self, patterns):
        """The root directory path is not a package file."""
        assert classify_path(ROOT, patterns) == ModuleKind.REGULAR

    def test_other_packages_directory(self, patterns):
        """A packages directory elsewhere is not matched."""
        assert classify_path("/elsewhere/packages/foo.js", patterns) == ModuleKind.REGULAR


class TestPackageIndex:
    """Tests for package index classification."""

    def test_index_at_root(self, patterns):
        """The index file directly under the root."""
        assert classify_path(f"{ROOT}/modules.js", patterns) == ModuleKind.PACKAGE_INDEX

    def test_index_in_package(self, patterns):
        """The index file inside a package directory."""
        assert classify_path(f"{ROOT}/pkg/modules.js", patterns) == ModuleKind.PACKAGE_INDEX

    def test_index_in_lookalike_directory(self, patterns):
        """A directory named like the index file must not confuse matching."""
        assert (
            classify_path(f"{ROOT}/modulesjsx/modules.js", patterns)
            == ModuleKind.PACKAGE_INDEX
        )

    def test_index_with_backslashes(self, patterns):
        """Backslash separators should be accepted."""
        path = (ROOT + "/pkg/modules.js").replace("/", "\\")
        assert classify_path(path, patterns) == ModuleKind.PACKAGE_INDEX

    def test_index_outside_root(self, patterns):
        """An index filename outside the root is a regular module."""
        assert classify_path("/proj/src/modules.js", patterns) == ModuleKind.REGULAR


class TestGlobalBootstrap:
    """Tests for global bootstrap classification."""

    def test_global_imports(self, patterns):
        """The bootstrap file is matched by filename."""
        assert (
            classify_path(f"{BUILD}/app/global-imports.js", patterns)
            == ModuleKind.GLOBAL_BOOTSTRAP
        )

    def test_global_imports_backslash(self, patterns):
        """Windows paths should match too."""
        assert (
            classify_path("C:\\proj\\app\\global-imports.js", patterns)
            == ModuleKind.GLOBAL_BOOTSTRAP
        )

    def test_suffix_must_be_whole_filename(self, patterns):
        """Filenames ending in the bootstrap name are not matched."""
        assert classify_path("/proj/my-global-imports.js", patterns) == ModuleKind.REGULAR


class TestRequests:
    """Tests for classify_request."""

    def test_bridge_namespace(self, patterns):
        """Namespace requests are bridge modules."""
        assert classify_request("external/tracker", patterns) == ModuleKind.BRIDGE

    def test_similar_prefix_not_bridged(self, patterns):
        """Only the exact namespace prefix bridges."""
        assert classify_request("externals/tracker", patterns) == ModuleKind.REGULAR
        assert classify_request("./external/tracker", patterns) == ModuleKind.REGULAR

    def test_paths_fall_through(self, patterns):
        """Non-namespace requests are classified as paths."""
        assert classify_request(f"{ROOT}/a.js", patterns) == ModuleKind.OPAQUE_PACKAGE


class TestPatternConstruction:
    """Tests for compile_patterns."""

    def test_cached_per_root(self):
        """The same root should reuse compiled patterns."""
        assert compile_patterns(ROOT) is compile_patterns(ROOT)

    def test_deterministic(self, patterns):
        """Repeated classification of the same path agrees."""
        path = f"{ROOT}/pkgA/foo.js"
        results = {classify_path(path, compile_patterns(ROOT)) for _ in range(5)}
        assert results == {ModuleKind.OPAQUE_PACKAGE}

    def test_root_with_special_characters(self):
        """Special characters in the root are matched literally."""
        patterns = compile_patterns("/proj (copy)/web.browser/packages")
        assert (
            classify_path("/proj (copy)/web.browser/packages/a.js", patterns)
            == ModuleKind.OPAQUE_PACKAGE
        )
        assert (
            classify_path("/proj (copy)/webXbrowser/packages/a.js", patterns)
            == ModuleKind.REGULAR
        )

    def test_windows_root(self):
        """A Windows root should match paths with either separator."""
        patterns = compile_patterns("C:\\proj\\packages")
        assert classify_path("C:/proj/packages/a.js", patterns) == ModuleKind.OPAQUE_PACKAGE
        assert (
            classify_path("C:\\proj\\packages\\modules.js", patterns)
            == ModuleKind.PACKAGE_INDEX
        )
