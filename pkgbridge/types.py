"""Shared type definitions for pkgbridge.

This module contains enums and dataclasses shared across modules to
avoid circular imports between the classifier, the bridge factory and
the host pipeline.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


class ModuleKind(str, Enum):
    """Handling strategy assigned to a module request."""

    REGULAR = "regular"
    BRIDGE = "bridge"
    OPAQUE_PACKAGE = "opaque-package"
    PACKAGE_INDEX = "package-index"
    GLOBAL_BOOTSTRAP = "global-bootstrap"


@dataclass(frozen=True)
class ModuleRequest:
    """A request string presented by the host resolver.

    Attributes:
        request: Raw request string as written in source.
        issuer: Absolute path of the module containing the request.
        context: Directory the request is resolved against.
        resolve_options: Host resolver options for this attempt.
    """

    request: str
    issuer: str | None = None
    context: Path | None = None
    resolve_options: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ResolveData:
    """Result of host resolution, handed to module-creation handlers."""

    request: str
    user_request: str
    resource: str


@dataclass
class DocumentData:
    """Mutable entry document passed through document-processing hooks."""

    html: str
    output_name: str = "index.html"


__all__ = [
    "DocumentData",
    "ModuleKind",
    "ModuleRequest",
    "ResolveData",
]
