"""Autoupdate fingerprint emission.

After the entry document's final content is known, a fingerprint of it is
injected into the document as a runtime-configuration value and written
to the ``autoupdate_version`` file in the output directory, where a
long-poll reload check can compare it against the running version.

The fingerprint is for change detection only; it is not a security
property. The file write is detached from the build: the emitted document
and the version file may become visible at different times.
"""

from __future__ import annotations

import hashlib
import logging
import re
from pathlib import Path
from typing import TYPE_CHECKING

from pkgbridge.tasks import DetachedTask, error_logger, spawn_detached
from pkgbridge.types import DocumentData

if TYPE_CHECKING:
    from pkgbridge.config import BuildConfig
    from pkgbridge.host import BuildPipeline, Compilation

logger = logging.getLogger(__name__)

PLUGIN_NAME = "ExternalPackagesAutoupdate"
AUTOUPDATE_VERSION_FILENAME = "autoupdate_version"
RUNTIME_CONFIG_GLOBAL = "__external_runtime_config__"

_HEAD_OPEN_RE = re.compile(r"(<\s*head\s*>)")


def compute_fingerprint(content: str | bytes) -> str:
    """Compute the change-detection fingerprint of document content.

    Args:
        content: Document text or bytes.

    Returns:
        Hex digest.
    """
    if isinstance(content, str):
        content = content.encode("utf-8")
    return hashlib.md5(content, usedforsecurity=False).hexdigest()


def runtime_config_script(fingerprint: str) -> str:
    """Render the inline script carrying the fingerprint."""
    return (
        f"<script>window.{RUNTIME_CONFIG_GLOBAL} = "
        f'{{autoupdateVersion:"{fingerprint}"}}</script>'
    )


def inject_fingerprint(html: str, fingerprint: str) -> str:
    """Insert the runtime-config script right after the first head tag.

    Documents without a head tag are returned unchanged.
    """
    script = runtime_config_script(fingerprint)
    return _HEAD_OPEN_RE.sub(lambda m: f"{m.group(1)}\n{script}", html, count=1)


def write_version_file(output_dir: Path, fingerprint: str) -> Path | None:
    """Write the fingerprint to the version file.

    Args:
        output_dir: Build output directory; created if missing.
        fingerprint: Fingerprint value, written as the whole content.

    Returns:
        Path of the written file, or None if the write failed.
    """
    output_file = output_dir / AUTOUPDATE_VERSION_FILENAME
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
        output_file.write_text(fingerprint, encoding="utf-8")
    except OSError as e:
        error_logger.error("Unable to write %s file: %s", output_file, e)
        return None
    logger.info("Wrote %s file to %s", AUTOUPDATE_VERSION_FILENAME, output_file)
    return output_file


class AutoupdateEmitter:
    """Injects and persists the autoupdate fingerprint once per compilation.

    Attributes:
        config: Resolved build configuration.
        output_dir: Override for the pipeline's output directory.
        tasks: Detached write tasks still running, plus the latest one.
    """

    def __init__(self, config: BuildConfig, output_dir: Path | None = None) -> None:
        self.config = config
        self.output_dir = output_dir
        self.tasks: list[DetachedTask] = []

    def attach(self, pipeline: BuildPipeline) -> bool:
        """Register on a pipeline.

        Returns:
            False if autoupdate is excluded or disabled.
        """
        if not self.config.autoupdate_enabled:
            logger.debug("Autoupdate fingerprint disabled")
            return False
        pipeline.hooks.after_plugins.tap(PLUGIN_NAME, self._after_plugins)
        return True

    def _after_plugins(self, pipeline: BuildPipeline) -> None:
        pipeline.hooks.compilation.tap(PLUGIN_NAME, self._on_compilation)

    def _on_compilation(self, compilation: Compilation) -> None:
        hook = compilation.hooks.after_document_processing
        if hook is None:
            logger.error(
                "The emitAutoupdateVersion setting requires a document plugin "
                "providing the after_document_processing hook and none was found."
            )
            return
        output_dir = self.output_dir or compilation.pipeline.output_path
        hook.tap(PLUGIN_NAME, lambda data: self.process(data, output_dir))

    def process(self, data: DocumentData, output_dir: Path) -> str:
        """Fingerprint a document, inject the value and start the write.

        The write is not awaited.

        Returns:
            The fingerprint.
        """
        fingerprint = compute_fingerprint(data.html)
        data.html = inject_fingerprint(data.html, fingerprint)
        self.tasks = [task for task in self.tasks if not task.done]
        self.tasks.append(
            spawn_detached(
                "autoupdate-version", write_version_file, output_dir, fingerprint
            )
        )
        return fingerprint


__all__ = [
    "AUTOUPDATE_VERSION_FILENAME",
    "PLUGIN_NAME",
    "RUNTIME_CONFIG_GLOBAL",
    "AutoupdateEmitter",
    "compute_fingerprint",
    "inject_fingerprint",
    "runtime_config_script",
    "write_version_file",
]
