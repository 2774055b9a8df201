"""Bridge modules for the external package namespace.

Requests such as ``external/tracker`` are answered during resolution,
before the host touches the filesystem, with a synthetic module whose
source delegates to the runtime registry exposed by the
``external-imports`` entry. The external package is located when the
bundle executes, not at build time.
"""

from __future__ import annotations

import json
import logging

from pkgbridge.aliases import IMPORTS_ALIAS
from pkgbridge.classify import BRIDGE_NAMESPACE
from pkgbridge.host import Callback, ModuleFactory
from pkgbridge.modules import BridgeModule
from pkgbridge.types import ModuleRequest

logger = logging.getLogger(__name__)

PLUGIN_NAME = "ExternalPackagesPlugin"


def bridge_source(request: str) -> str:
    """Render the source of a bridge module.

    Args:
        request: The literal namespace request, e.g. ``external/tracker``.

    Returns:
        One line of module source calling the runtime bridge.
    """
    return (
        f"module.exports = require({json.dumps(IMPORTS_ALIAS, ensure_ascii=False)})"
        f"({json.dumps(request, ensure_ascii=False)});"
    )


def create_bridge_module(request: str) -> BridgeModule:
    """Create the synthetic module for a namespace request."""
    return BridgeModule(request=request, source=bridge_source(request))


class BridgeModuleFactory:
    """Intercepts namespace requests on a host module factory.

    Attributes:
        namespace: Request prefix handled by the bridge.
        bridged: Requests answered since the last install, in order.
    """

    def __init__(self, namespace: str = BRIDGE_NAMESPACE) -> None:
        self.namespace = namespace
        self.bridged: list[str] = []

    def install(self, factory: ModuleFactory) -> ModuleFactory:
        """Register the interception on a module factory's resolve hook."""
        self.bridged.clear()
        factory.hooks.resolve.tap_async(PLUGIN_NAME, self.resolve)
        return factory

    def resolve(self, data: ModuleRequest, callback: Callback) -> None:
        """Answer namespace requests; defer everything else.

        The callback is invoked exactly once: with a BridgeModule for
        namespace requests, with no result otherwise.
        """
        request = data.request
        if not request.startswith(self.namespace):
            callback()
            return

        self.bridged.append(request)
        logger.debug("Bridging %s to the external runtime", request)
        callback(None, create_bridge_module(request))


__all__ = [
    "PLUGIN_NAME",
    "BridgeModuleFactory",
    "bridge_source",
    "create_bridge_module",
]
