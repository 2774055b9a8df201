"""Path classification for the external package tree.

This module maps a filesystem path or module request to exactly one
ModuleKind using patterns precompiled from the configured packages root.
Classification is a pure function of the path string and the root, so
two calls with the same inputs always agree.

Patterns are separator agnostic: every root component is escaped and
components are joined with a class accepting both '/' and '\\'. Matching
is anchored to whole path segments, so a directory such as 'modulesjsx'
never matches the 'modules.js' index filename.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import PurePath

from pkgbridge.types import ModuleKind

# Requests under this prefix are bridged to the external runtime
BRIDGE_NAMESPACE = "external/"

# The only file in the packages subtree with real static dependency edges
PACKAGE_INDEX_FILENAME = "modules.js"
GLOBAL_BOOTSTRAP_FILENAME = "global-imports.js"

SEPARATOR_PATTERN = r"[/\\]"
_SPECIAL_CHARS = re.compile(r"[|\\{}()\[\]^$+*?.]")


def escape_for_regex(value: str) -> str:
    """Escape regex-special characters in a single path component."""
    return _SPECIAL_CHARS.sub(lambda m: "\\" + m.group(0), value)


def path_parts_to_regex(parts: list[str]) -> str:
    """Join escaped path components with a separator-agnostic pattern.

    Args:
        parts: Path components, without separators.

    Returns:
        Regex source matching the components joined by '/' or '\\'.
    """
    return SEPARATOR_PATTERN.join(escape_for_regex(part) for part in parts)


def split_path(path: str | PurePath) -> list[str]:
    """Split a path on both separators, keeping a leading empty root part."""
    text = str(path).rstrip("/\\")
    return re.split(SEPARATOR_PATTERN, text)


@dataclass(frozen=True)
class PathPatterns:
    """Compiled matchers for one packages root.

    Attributes:
        packages_root: The root the patterns were derived from.
        opaque_package: Any file under the root except the index file.
        package_index: The index file anywhere under the root.
        global_bootstrap: The global-bootstrap file anywhere.
    """

    packages_root: str
    opaque_package: re.Pattern[str]
    package_index: re.Pattern[str]
    global_bootstrap: re.Pattern[str]


@lru_cache(maxsize=32)
def compile_patterns(packages_root: str) -> PathPatterns:
    """Compile the classification patterns for a packages root.

    Args:
        packages_root: Absolute path of the external packages subtree.

    Returns:
        PathPatterns for the root.
    """
    root = "^" + path_parts_to_regex(split_path(packages_root))
    segments = rf"(?:{SEPARATOR_PATTERN}[^/\\]+)*{SEPARATOR_PATTERN}"
    index_name = escape_for_regex(PACKAGE_INDEX_FILENAME)

    return PathPatterns(
        packages_root=packages_root,
        opaque_package=re.compile(rf"{root}{segments}(?!{index_name}$)[^/\\]+$"),
        package_index=re.compile(rf"{root}{segments}{index_name}$"),
        global_bootstrap=re.compile(
            rf"(?:^|{SEPARATOR_PATTERN})"
            rf"{escape_for_regex(GLOBAL_BOOTSTRAP_FILENAME)}$"
        ),
    )


def classify_path(path: str | PurePath, patterns: PathPatterns) -> ModuleKind:
    """Classify a resolved filesystem path.

    Args:
        path: Absolute path, with either separator style.
        patterns: Patterns from compile_patterns().

    Returns:
        The ModuleKind; REGULAR when nothing matches.
    """
    text = str(path)
    if patterns.opaque_package.search(text):
        return ModuleKind.OPAQUE_PACKAGE
    if patterns.package_index.search(text):
        return ModuleKind.PACKAGE_INDEX
    if patterns.global_bootstrap.search(text):
        return ModuleKind.GLOBAL_BOOTSTRAP
    return ModuleKind.REGULAR


def is_bridge_request(request: str) -> bool:
    """Check whether a request belongs to the bridge namespace."""
    return request.startswith(BRIDGE_NAMESPACE)


def classify_request(request: str, patterns: PathPatterns) -> ModuleKind:
    """Classify a raw request string or resolved path.

    Bridge requests are recognized before any path matching, since they
    never correspond to a file.
    """
    if is_bridge_request(request):
        return ModuleKind.BRIDGE
    return classify_path(request, patterns)


__all__ = [
    "BRIDGE_NAMESPACE",
    "GLOBAL_BOOTSTRAP_FILENAME",
    "PACKAGE_INDEX_FILENAME",
    "SEPARATOR_PATTERN",
    "PathPatterns",
    "classify_path",
    "classify_request",
    "compile_patterns",
    "escape_for_regex",
    "is_bridge_request",
    "path_parts_to_regex",
    "split_path",
]
