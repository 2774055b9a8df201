"""Minimal host build pipeline.

This module models the boundary of the host bundler the bridge plugs
into:
- Hook points plugins register callbacks on (sync, bail and async bail)
- A resolver with whole-module alias support
- A module factory with resolve and create-module interception points
- An ordered, first-match rule engine routing resources to transformers
- A compilation that builds the module graph and emits the entry document

It is deliberately small. Resolution only understands aliases, relative
and absolute paths; transformers are looked up by name in a registry the
caller supplies.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from pkgbridge.modules import (
    BridgeModule,
    ClassifiedModule,
    RegularModule,
    module_hash,
    should_prevent_parsing,
)
from pkgbridge.types import DocumentData, ModuleKind, ModuleRequest, ResolveData

logger = logging.getLogger(__name__)

_REQUIRE_RE = re.compile(r"""require\(\s*["']([^"']+)["']\s*\)""")
_IMPORT_RE = re.compile(r"""import\s+(?:[\w*{}\s,]+\s+from\s+)?["']([^"']+)["']""")


class HookError(Exception):
    """Raised when a hook handler breaks the completion contract."""

    def __init__(self, message: str, code: str = "hook_error") -> None:
        super().__init__(message)
        self.code = code


class ResolveError(Exception):
    """Raised when a request cannot be resolved."""

    def __init__(self, message: str, request: str, code: str = "resolve_error") -> None:
        super().__init__(message)
        self.request = request
        self.code = code


class ModuleBuildError(Exception):
    """Raised when a module cannot be built."""

    def __init__(self, message: str, resource: str, code: str = "build_error") -> None:
        super().__init__(message)
        self.resource = resource
        self.code = code


# Completion callback for async hooks: (error, result)
Callback = Callable[..., None]


class SyncHook:
    """Ordered list of callbacks, all of which are invoked."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._taps: list[tuple[str, Callable[..., Any]]] = []

    def tap(self, plugin_name: str, fn: Callable[..., Any]) -> None:
        """Register a callback."""
        self._taps.append((plugin_name, fn))

    @property
    def taps(self) -> list[str]:
        """Names of registered plugins, in call order."""
        return [name for name, _ in self._taps]

    def call(self, *args: Any) -> None:
        for _, fn in self._taps:
            fn(*args)


class SyncBailHook(SyncHook):
    """Hook returning the first non-None callback result."""

    def call(self, *args: Any) -> Any:
        for _, fn in self._taps:
            result = fn(*args)
            if result is not None:
                return result
        return None


class AsyncBailHook:
    """Callback-style hook; each handler must complete exactly once.

    A handler receives its argument and a completion callback. Calling
    the callback with an error or a result stops the chain; calling it
    with neither passes control to the next handler.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._taps: list[tuple[str, Callable[[Any, Callback], None]]] = []

    def tap_async(self, plugin_name: str, fn: Callable[[Any, Callback], None]) -> None:
        """Register a callback-style handler."""
        self._taps.append((plugin_name, fn))

    @property
    def taps(self) -> list[str]:
        """Names of registered plugins, in call order."""
        return [name for name, _ in self._taps]

    def call_async(self, arg: Any, callback: Callback) -> None:
        """Run handlers in order until one yields an error or a result."""
        self._run(0, arg, callback)

    def _run(self, index: int, arg: Any, callback: Callback) -> None:
        if index >= len(self._taps):
            callback(None, None)
            return

        plugin_name, fn = self._taps[index]
        called = False

        def done(error: Exception | None = None, result: Any = None) -> None:
            nonlocal called
            if called:
                raise HookError(
                    f"{plugin_name} completed hook '{self.name}' more than once"
                )
            called = True
            if error is not None or result is not None:
                callback(error, result)
            else:
                self._run(index + 1, arg, callback)

        fn(arg, done)


@dataclass(frozen=True)
class Alias:
    """Resolver alias.

    Attributes:
        name: Request name the alias answers to.
        target: Path the alias resolves to.
        only_module: Match the whole request only, never as a path prefix.
    """

    name: str
    target: Path
    only_module: bool = True


class FileSystem:
    """File access used by the pipeline; records every read."""

    def __init__(self) -> None:
        self.reads: list[str] = []

    def exists(self, path: str) -> bool:
        return os.path.isfile(path)

    def read_text(self, path: str) -> str:
        self.reads.append(path)
        return Path(path).read_text(encoding="utf-8")


class Resolver:
    """Resolves requests to absolute paths."""

    def __init__(self, filesystem: FileSystem) -> None:
        self.filesystem = filesystem
        self.aliases: list[Alias] = []

    def add_alias(self, alias: Alias) -> None:
        """Register an alias; earlier aliases take precedence."""
        self.aliases.append(alias)

    def resolve(self, request: ModuleRequest, context: Path) -> str:
        """Resolve a request.

        Args:
            request: Module request.
            context: Directory relative requests are resolved against.

        Returns:
            Absolute path of the resolved file.

        Raises:
            ResolveError: If nothing matches.
        """
        name = request.request
        for alias in self.aliases:
            if name == alias.name:
                return str(alias.target)
            if not alias.only_module and name.startswith(alias.name + "/"):
                return str(alias.target / name[len(alias.name) + 1 :])

        if name.startswith(("./", "../")) or os.path.isabs(name):
            base = os.path.normpath(os.path.join(context, name))
            for candidate in (base, base + ".js"):
                if self.filesystem.exists(candidate):
                    return candidate

        raise ResolveError(f"Cannot resolve '{name}' from {context}", request=name)


@dataclass
class ModuleFactoryHooks:
    resolve: AsyncBailHook = field(default_factory=lambda: AsyncBailHook("resolve"))
    create_module: SyncBailHook = field(
        default_factory=lambda: SyncBailHook("create_module")
    )


class ModuleFactory:
    """Turns requests into module variants."""

    def __init__(self, resolver: Resolver, context: Path) -> None:
        self.resolver = resolver
        self.context = context
        self.hooks = ModuleFactoryHooks()

    def create(self, request: ModuleRequest) -> ClassifiedModule:
        """Create the module for a request.

        Resolve handlers run first and may answer without touching the
        filesystem. Otherwise the request is resolved to a path and
        create-module handlers may claim it.

        Raises:
            HookError: If a resolve handler never completes.
            ResolveError: If the request cannot be resolved.
        """
        outcome: dict[str, Any] = {}

        def done(error: Exception | None = None, result: Any = None) -> None:
            outcome["error"] = error
            outcome["result"] = result

        self.hooks.resolve.call_async(request, done)
        if not outcome:
            raise HookError(f"Resolution of '{request.request}' never completed")
        if outcome["error"] is not None:
            raise outcome["error"]
        if outcome["result"] is not None:
            return outcome["result"]

        resource = self.resolver.resolve(request, request.context or self.context)
        data = ResolveData(
            request=request.request,
            user_request=request.request,
            resource=resource,
        )
        module = self.hooks.create_module.call(data)
        if module is not None:
            return module
        return RegularModule(resource)


@dataclass(frozen=True)
class TransformContext:
    """Input handed to a content transformer alongside the source text."""

    resource: str
    kind: ModuleKind
    options: Mapping[str, Any]


class Transformer(Protocol):
    def __call__(self, source: str, context: TransformContext) -> str: ...


@dataclass(frozen=True)
class Rule:
    """Routes matching resources to a named transformer.

    Attributes:
        name: Identifier used in logs.
        test: Compiled pattern or predicate over the resource string.
        transformer: Name looked up in the pipeline's transformer registry.
        options: Per-rule configuration payload.
    """

    name: str
    test: re.Pattern[str] | Callable[[str], bool]
    transformer: str
    options: Mapping[str, Any] = field(default_factory=dict)

    def matches(self, resource: str) -> bool:
        if isinstance(self.test, re.Pattern):
            return self.test.search(resource) is not None
        return bool(self.test(resource))


def match_rule(rules: list[Rule], resource: str) -> Rule | None:
    """Return the first rule matching a resource, in list order."""
    for rule in rules:
        if rule.matches(resource):
            return rule
    return None


def scan_dependencies(source: str) -> list[str]:
    """Extract static require/import requests from source text."""
    found: list[str] = []
    for match in (*_REQUIRE_RE.finditer(source), *_IMPORT_RE.finditer(source)):
        request = match.group(1)
        if request not in found:
            found.append(request)
    return found


@dataclass
class BuiltModule:
    """A module after transformation and dependency scanning."""

    module: ClassifiedModule
    source: str
    dependencies: list[str]
    hash: str

    @property
    def kind(self) -> ModuleKind:
        return self.module.kind


@dataclass
class CompilationHooks:
    # Only present when a document plugin is installed
    after_document_processing: SyncHook | None = None


class Compilation:
    """One build of the module graph."""

    def __init__(self, pipeline: BuildPipeline, factory: ModuleFactory) -> None:
        self.pipeline = pipeline
        self.factory = factory
        self.hooks = CompilationHooks()
        self.modules: dict[str, BuiltModule] = {}
        self.document: DocumentData | None = None

    def add_entry(self, request: str) -> BuiltModule:
        """Build an entry request and everything it depends on."""
        module = self.factory.create(
            ModuleRequest(request=request, context=self.pipeline.context)
        )
        return self.build_module(module)

    def build_module(self, module: ClassifiedModule) -> BuiltModule:
        existing = self.modules.get(module.resource)
        if existing is not None:
            return existing

        if isinstance(module, BridgeModule):
            source = module.source
        else:
            source = self.pipeline.filesystem.read_text(module.resource)

        rule = match_rule(self.pipeline.rules, module.resource)
        if rule is not None:
            transformer = self.pipeline.transformers.get(rule.transformer)
            if transformer is None:
                raise ModuleBuildError(
                    f"No transformer registered for rule '{rule.name}'",
                    resource=module.resource,
                )
            source = transformer(
                source,
                TransformContext(
                    resource=module.resource, kind=module.kind, options=rule.options
                ),
            )

        dependencies = [] if should_prevent_parsing(module) else scan_dependencies(source)
        built = BuiltModule(
            module=module,
            source=source,
            dependencies=dependencies,
            hash=module_hash(module, source),
        )
        self.modules[module.resource] = built
        logger.debug("Built %s module %s", module.kind.value, module.resource)

        if isinstance(module, BridgeModule):
            context = self.pipeline.context
        else:
            context = Path(module.resource).parent
        for request in dependencies:
            child = self.factory.create(
                ModuleRequest(request=request, issuer=module.resource, context=context)
            )
            self.build_module(child)
        return built

    def emit(self) -> Path | None:
        """Run document processing and write the entry document.

        Returns:
            Path of the written document, or None without a document.
        """
        if self.document is None:
            return None
        if self.hooks.after_document_processing is not None:
            self.hooks.after_document_processing.call(self.document)

        output_path = self.pipeline.output_path / self.document.output_name
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(self.document.html, encoding="utf-8")
        logger.info("Emitted %s", output_path)
        return output_path


@dataclass
class PipelineHooks:
    after_plugins: SyncHook = field(default_factory=lambda: SyncHook("after_plugins"))
    after_resolvers: SyncHook = field(
        default_factory=lambda: SyncHook("after_resolvers")
    )
    compile: SyncHook = field(default_factory=lambda: SyncHook("compile"))
    compilation: SyncHook = field(default_factory=lambda: SyncHook("compilation"))


class Plugin(Protocol):
    def apply(self, pipeline: BuildPipeline) -> None: ...


class BuildPipeline:
    """The host build: configuration, hook points and the run loop."""

    def __init__(
        self,
        context: Path | str,
        *,
        mode: str = "development",
        output_path: Path | str | None = None,
        rules: list[Rule] | None = None,
        transformers: Mapping[str, Transformer] | None = None,
        filesystem: FileSystem | None = None,
        plugins: list[Plugin] | None = None,
    ) -> None:
        self.context = Path(context)
        self.mode = mode
        self.output_path = Path(output_path) if output_path else self.context / "dist"
        self.rules: list[Rule] = list(rules or [])
        self.transformers: dict[str, Transformer] = dict(transformers or {})
        self.filesystem = filesystem or FileSystem()
        self.resolver = Resolver(self.filesystem)
        self.hooks = PipelineHooks()

        for plugin in plugins or []:
            plugin.apply(self)
        self.hooks.after_plugins.call(self)
        self.hooks.after_resolvers.call(self.resolver)

    def run(self, entries: list[str]) -> Compilation:
        """Run one compilation over the given entry requests."""
        factory = ModuleFactory(self.resolver, self.context)
        self.hooks.compile.call(factory)

        compilation = Compilation(self, factory)
        self.hooks.compilation.call(compilation)

        for entry in entries:
            compilation.add_entry(entry)
        compilation.emit()
        return compilation


class DocumentPlugin:
    """Provides the entry document and its processing hook."""

    name = "DocumentPlugin"

    def __init__(self, template: str, filename: str = "index.html") -> None:
        self.template = template
        self.filename = filename

    def apply(self, pipeline: BuildPipeline) -> None:
        pipeline.hooks.compilation.tap(self.name, self._install)

    def _install(self, compilation: Compilation) -> None:
        compilation.hooks.after_document_processing = SyncHook(
            "after_document_processing"
        )
        compilation.document = DocumentData(html=self.template, output_name=self.filename)


__all__ = [
    "Alias",
    "AsyncBailHook",
    "BuildPipeline",
    "BuiltModule",
    "Compilation",
    "CompilationHooks",
    "DocumentPlugin",
    "FileSystem",
    "HookError",
    "ModuleBuildError",
    "ModuleFactory",
    "ResolveError",
    "Resolver",
    "Rule",
    "SyncBailHook",
    "SyncHook",
    "TransformContext",
    "Transformer",
    "match_rule",
    "scan_dependencies",
]
