"""Symbolic aliases for the generated entry modules.

Two whole-module names are registered on the host resolver. Each points
at a stub file shipped inside this package; the actual content is
produced by the matching content transformer at build time, so neither
name needs a file in the user's source tree.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pkgbridge.host import Alias, Resolver

logger = logging.getLogger(__name__)

IMPORTS_ALIAS = "external-imports"
CONFIG_ALIAS = "external-config"

ENTRIES_DIR = Path(__file__).parent / "entries"


def entry_path(alias: str) -> Path:
    """Return the generated-entry file an alias resolves to."""
    return ENTRIES_DIR / f"{alias}.js"


def build_aliases() -> list[Alias]:
    """Build the alias table, imports entry first."""
    return [
        Alias(name=name, target=entry_path(name), only_module=True)
        for name in (IMPORTS_ALIAS, CONFIG_ALIAS)
    ]


def register_aliases(resolver: Resolver) -> list[Alias]:
    """Register both aliases on a host resolver.

    Args:
        resolver: Host resolver.

    Returns:
        The registered aliases.
    """
    aliases = build_aliases()
    for alias in aliases:
        resolver.add_alias(alias)
        logger.debug("Registered alias %s -> %s", alias.name, alias.target)
    return aliases


__all__ = [
    "CONFIG_ALIAS",
    "ENTRIES_DIR",
    "IMPORTS_ALIAS",
    "build_aliases",
    "entry_path",
    "register_aliases",
]
