"""Plugin wiring the external package tree into a host build pipeline.

On attachment the plugin:
- Resolves the BuildConfig from user options and the pipeline's context
- Appends the transformer rules for the alias entries and package tree
- Installs the bridge interception and module classification on every
  module factory the pipeline creates
- Registers the two aliases on the resolver
- Sets up autoupdate fingerprint emission
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pkgbridge.aliases import register_aliases
from pkgbridge.autoupdate import AutoupdateEmitter
from pkgbridge.bridge import PLUGIN_NAME, BridgeModuleFactory
from pkgbridge.classify import PathPatterns, classify_path, compile_patterns
from pkgbridge.config import BuildConfig, PluginOptions, resolve_config
from pkgbridge.host import BuildPipeline, ModuleFactory
from pkgbridge.modules import ClassifiedModule, module_for_kind
from pkgbridge.rules import BRIDGE_TRANSFORMER, passthrough, register_rules
from pkgbridge.types import ModuleKind, ResolveData

logger = logging.getLogger(__name__)


class ExternalPackagesPlugin:
    """Bridges an externally built package tree into the host graph.

    Attributes:
        config: Resolved configuration, set by apply().
        warnings: Configuration warnings raised while resolving.
        bridge: Interception for ``external/*`` requests.
        autoupdate: Fingerprint emitter, set by apply().
    """

    name = PLUGIN_NAME

    def __init__(
        self,
        options: PluginOptions | Mapping[str, Any] | None = None,
        *,
        dev_server: bool = False,
    ) -> None:
        self.options = options
        self.dev_server = dev_server
        self.config: BuildConfig | None = None
        self.warnings: list[str] = []
        self.patterns: PathPatterns | None = None
        self.bridge = BridgeModuleFactory()
        self.autoupdate: AutoupdateEmitter | None = None

    def apply(self, pipeline: BuildPipeline) -> None:
        """Resolve the configuration and register on a host pipeline.

        Args:
            pipeline: Host pipeline; its rules are extended and its
                compile, after_resolvers and after_plugins hooks tapped.

        Raises:
            pydantic.ValidationError: If the plugin options are invalid.
        """
        self.config, self.warnings = resolve_config(
            self.options,
            context=pipeline.context,
            mode=pipeline.mode,
            dev_server=self.dev_server,
        )
        self.patterns = compile_patterns(str(self.config.external_packages_root))

        register_rules(pipeline.rules, self.config)
        pipeline.transformers.setdefault(BRIDGE_TRANSFORMER, passthrough)

        pipeline.hooks.compile.tap(self.name, self._on_compile)
        pipeline.hooks.after_resolvers.tap(self.name, register_aliases)

        self.autoupdate = AutoupdateEmitter(self.config)
        self.autoupdate.attach(pipeline)
        logger.info(
            "Using external build at %s", self.config.external_build_root
        )

    def _on_compile(self, factory: ModuleFactory) -> None:
        self.bridge.install(factory)
        factory.hooks.create_module.tap(self.name, self.create_module)

    def create_module(self, data: ResolveData) -> ClassifiedModule | None:
        """Claim resolved files of the external package tree.

        Returns:
            The classified module, or None to let the host create a
            regular module.
        """
        if self.patterns is None:
            raise RuntimeError("ExternalPackagesPlugin.apply() has not run")
        kind = classify_path(data.resource, self.patterns)
        if kind is ModuleKind.REGULAR:
            return None
        return module_for_kind(kind, data.resource)


__all__ = ["ExternalPackagesPlugin"]
