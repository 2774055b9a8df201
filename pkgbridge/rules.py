"""Transformer routing rules for the external package tree.

The host's rule engine takes the first matching rule, so order encodes
precedence: the two alias entries and the bridge namespace come before
the broad packages-subtree rule. Rules are appended after whatever rules
the host already has.
"""

from __future__ import annotations

import logging
import re

from pkgbridge.aliases import CONFIG_ALIAS, IMPORTS_ALIAS
from pkgbridge.classify import (
    SEPARATOR_PATTERN,
    compile_patterns,
    escape_for_regex,
    is_bridge_request,
)
from pkgbridge.config import BuildConfig
from pkgbridge.host import Rule, TransformContext

logger = logging.getLogger(__name__)

# Transformer names, resolved through the host's transformer registry
IMPORTS_TRANSFORMER = "external-imports"
CONFIG_TRANSFORMER = "external-config"
BRIDGE_TRANSFORMER = "external-bridge"
PACKAGE_TRANSFORMER = "external-package"
PACKAGE_INDEX_TRANSFORMER = "external-package-index"
GLOBAL_IMPORTS_TRANSFORMER = "external-global-imports"


def entry_pattern(alias: str) -> re.Pattern[str]:
    """Match the generated entry file of an alias by full filename."""
    return re.compile(rf"(?:^|{SEPARATOR_PATTERN}){escape_for_regex(alias)}\.js$")


def build_rules(config: BuildConfig) -> list[Rule]:
    """Build the ordered rule list for a configuration.

    Args:
        config: Resolved build configuration.

    Returns:
        Rules in evaluation order.
    """
    patterns = compile_patterns(str(config.external_packages_root))
    options = config.transformer_options()

    return [
        Rule(
            name="imports-entry",
            test=entry_pattern(IMPORTS_ALIAS),
            transformer=IMPORTS_TRANSFORMER,
            options={
                "mode": config.mode,
                "config": options,
                "externalBuild": str(config.external_build_root),
            },
        ),
        Rule(
            name="config-entry",
            test=entry_pattern(CONFIG_ALIAS),
            transformer=CONFIG_TRANSFORMER,
            options={"config": options},
        ),
        Rule(
            name="bridge",
            test=is_bridge_request,
            transformer=BRIDGE_TRANSFORMER,
        ),
        Rule(
            name="opaque-package",
            test=patterns.opaque_package,
            transformer=PACKAGE_TRANSFORMER,
            options=options,
        ),
        Rule(
            name="package-index",
            test=patterns.package_index,
            transformer=PACKAGE_INDEX_TRANSFORMER,
        ),
        Rule(
            name="global-imports",
            test=patterns.global_bootstrap,
            transformer=GLOBAL_IMPORTS_TRANSFORMER,
            options=options,
        ),
    ]


def register_rules(rules: list[Rule], config: BuildConfig) -> list[Rule]:
    """Append the external package rules to an existing rule list.

    Args:
        rules: The host's rule list; modified in place.
        config: Resolved build configuration.

    Returns:
        The appended rules.
    """
    added = build_rules(config)
    rules.extend(added)
    logger.debug("Registered %d transformer rules", len(added))
    return added


def passthrough(source: str, context: TransformContext) -> str:
    """Transformer for bridge modules, whose source is already generated."""
    return source


__all__ = [
    "BRIDGE_TRANSFORMER",
    "CONFIG_TRANSFORMER",
    "GLOBAL_IMPORTS_TRANSFORMER",
    "IMPORTS_TRANSFORMER",
    "PACKAGE_INDEX_TRANSFORMER",
    "PACKAGE_TRANSFORMER",
    "build_rules",
    "entry_pattern",
    "passthrough",
    "register_rules",
]
