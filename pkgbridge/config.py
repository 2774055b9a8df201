"""Configuration for pkgbridge.

Two layers live here:
- Settings: process-level settings parsed by pydantic-settings from
  environment variables with the PKGBRIDGE_ prefix.
- Plugin options: user options merged over documented defaults into an
  immutable BuildConfig, including the absolute paths of the external
  build tree and its packages subtree.

Option conflicts never fail the build. They are resolved by fixed
precedence and reported as warnings.
"""

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

BuildMode = Literal["development", "production", "none"]

# Layout of the external build system below the project root
BUILD_PATH_PARTS = (".external", "local", "build", "programs", "web.browser")
PROGRAM_FOLDER = "web.browser"
PACKAGES_FOLDER = "packages"

DEFAULT_EXCLUDE: dict[str, bool] = {"autoupdate": True}
DEFAULT_DDP_PORT = 3000


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the PKGBRIDGE_
    prefix. CLI flags can override these at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="PKGBRIDGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    project_root: Path = Field(
        default_factory=Path.cwd,
        description="Project root the external build tree is located from",
    )
    options_file: Path | None = Field(
        default=None,
        description="YAML or JSON file with plugin options",
    )
    output_dir: Path | None = Field(
        default=None,
        description="Build output directory (defaults to <project>/dist)",
    )
    mode: BuildMode = Field(default="development", description="Build mode")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )


def get_settings() -> Settings:
    """Get the application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


class PluginOptions(BaseModel):
    """User-supplied plugin options.

    Option names follow the camelCase spelling used in build
    configuration files; snake_case field names are accepted as well.
    Whether an option was supplied at all is read from
    ``model_fields_set``.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    emit_autoupdate_version: bool = Field(default=True, alias="emitAutoupdateVersion")
    exclude: list[str] | dict[str, bool] = Field(default_factory=dict)
    exclude_globals: list[str] = Field(default_factory=list, alias="excludeGlobals")
    inject_runtime_config: bool = Field(default=True, alias="injectRuntimeConfig")
    log_included_packages: bool = Field(default=False, alias="logIncludedPackages")
    log_packages_without_files: bool = Field(
        default=False, alias="logPackagesWithoutFiles"
    )
    external_build_folder: str | None = Field(default=None, alias="externalBuildFolder")
    external_programs_folder: str | None = Field(
        default=None, alias="externalProgramsFolder"
    )
    settings_file_path: str | None = Field(default=None, alias="settingsFilePath")
    strip_packages_without_files: bool = Field(
        default=True, alias="stripPackagesWithoutFiles"
    )
    ddp_default_connection_port: int | None = Field(
        default=DEFAULT_DDP_PORT, alias="ddpDefaultConnectionPort"
    )
    legacy_ddp_default_connection_port: int | None = Field(
        default=None, alias="DDP_DEFAULT_CONNECTION_PORT"
    )
    ddp_default_connection_url: str | None = Field(
        default=None, alias="DDP_DEFAULT_CONNECTION_URL"
    )
    runtime_env: dict[str, str | None] | None = Field(default=None, alias="runtimeEnv")
    public_settings: dict[str, Any] | None = Field(default=None, alias="PUBLIC_SETTINGS")
    root_url: str | None = Field(default=None, alias="ROOT_URL")


class BuildConfig(BaseModel):
    """Resolved, immutable configuration for one build.

    Attributes:
        mode: Build mode of the host.
        exclude: Feature exclusions, normalized to a name -> bool map.
        external_build_root: Absolute path of the external program build.
        external_packages_root: Absolute path of its packages subtree.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    mode: BuildMode = "development"
    emit_autoupdate_version: bool = Field(default=True, alias="emitAutoupdateVersion")
    exclude: dict[str, bool] = Field(default_factory=lambda: dict(DEFAULT_EXCLUDE))
    exclude_globals: tuple[str, ...] = Field(default=(), alias="excludeGlobals")
    inject_runtime_config: bool = Field(default=True, alias="injectRuntimeConfig")
    log_included_packages: bool = Field(default=False, alias="logIncludedPackages")
    log_packages_without_files: bool = Field(
        default=False, alias="logPackagesWithoutFiles"
    )
    external_build_folder: str | None = Field(default=None, alias="externalBuildFolder")
    external_programs_folder: str | None = Field(
        default=None, alias="externalProgramsFolder"
    )
    settings_file_path: str | None = Field(default=None, alias="settingsFilePath")
    strip_packages_without_files: bool = Field(
        default=True, alias="stripPackagesWithoutFiles"
    )
    ddp_default_connection_port: int | None = Field(
        default=DEFAULT_DDP_PORT, alias="ddpDefaultConnectionPort"
    )
    ddp_default_connection_url: str | None = Field(
        default=None, alias="DDP_DEFAULT_CONNECTION_URL"
    )
    runtime_env: dict[str, str | None] = Field(default_factory=dict, alias="runtimeEnv")
    public_settings: dict[str, Any] | None = Field(default=None, alias="PUBLIC_SETTINGS")
    root_url: str | None = Field(default=None, alias="ROOT_URL")
    external_build_root: Path = Field(alias="externalBuildRoot")
    external_packages_root: Path = Field(alias="externalPackagesRoot")

    @property
    def autoupdate_enabled(self) -> bool:
        """Whether the autoupdate fingerprint should be emitted."""
        return self.emit_autoupdate_version and not self.exclude.get("autoupdate", False)

    def transformer_options(self) -> dict[str, Any]:
        """Serialize for use as a content-transformer payload."""
        return self.model_dump(mode="json", by_alias=True)


def normalize_exclude(exclude: list[str] | Mapping[str, bool] | None) -> dict[str, bool]:
    """Normalize an exclusion list or map, merged over the defaults.

    Args:
        exclude: Feature names, or a map of feature name to bool.

    Returns:
        Name -> bool mapping; names given as a list map to True.
    """
    if not exclude:
        normalized: dict[str, bool] = {}
    elif isinstance(exclude, Mapping):
        normalized = {name: bool(value) for name, value in exclude.items()}
    else:
        normalized = dict.fromkeys(exclude, True)
    return {**DEFAULT_EXCLUDE, **normalized}


def default_runtime_env(mode: str) -> dict[str, str | None]:
    """Return the runtime environment injected for a build mode."""
    return {"NODE_ENV": "production" if mode == "production" else None}


def _resolve(*parts: str | os.PathLike[str]) -> Path:
    return Path(os.path.abspath(os.path.join(*parts)))


def derive_paths(
    context: Path | str,
    external_build_folder: str | None = None,
    external_programs_folder: str | None = None,
) -> tuple[Path, Path]:
    """Derive the external build root and its packages subtree.

    Args:
        context: Project root.
        external_build_folder: Project folder of the external build,
            relative to the context.
        external_programs_folder: Explicit programs folder; takes
            precedence over the fixed build layout.

    Returns:
        Tuple of (build root, packages root), both absolute.
    """
    if external_programs_folder:
        build_root = _resolve(context, external_programs_folder, PROGRAM_FOLDER)
    else:
        build_root = _resolve(context, external_build_folder or "", *BUILD_PATH_PARTS)
    return build_root, build_root / PACKAGES_FOLDER


def resolve_config(
    options: PluginOptions | Mapping[str, Any] | None,
    *,
    context: Path | str,
    mode: BuildMode = "development",
    dev_server: bool = False,
) -> tuple[BuildConfig, list[str]]:
    """Merge user options over defaults into a BuildConfig.

    Args:
        options: User options (model or raw mapping).
        context: Project root.
        mode: Host build mode.
        dev_server: Whether the build runs under a development server.

    Returns:
        Tuple of (BuildConfig, warnings). Warnings are also logged.

    Raises:
        pydantic.ValidationError: If options contain unknown keys or
            values of the wrong type.
    """
    if not isinstance(options, PluginOptions):
        options = PluginOptions.model_validate(dict(options or {}))
    supplied = options.model_fields_set
    warnings: list[str] = []

    def warn(message: str) -> None:
        logger.warning(message)
        warnings.append(message)

    exclude = normalize_exclude(options.exclude)

    port = options.ddp_default_connection_port
    if "legacy_ddp_default_connection_port" in supplied:
        if "ddp_default_connection_port" in supplied:
            warn(
                'Both "DDP_DEFAULT_CONNECTION_PORT" and "ddpDefaultConnectionPort" '
                'specified. "DDP_DEFAULT_CONNECTION_PORT" will be ignored.'
            )
        else:
            warn(
                '"DDP_DEFAULT_CONNECTION_PORT" is deprecated and now called '
                '"ddpDefaultConnectionPort".'
            )
            port = options.legacy_ddp_default_connection_port

    port_supplied = bool(
        supplied & {"ddp_default_connection_port", "legacy_ddp_default_connection_port"}
    )
    if options.ddp_default_connection_url and port_supplied:
        warn(
            'Both "DDP_DEFAULT_CONNECTION_URL" and "ddpDefaultConnectionPort" '
            'specified. "ddpDefaultConnectionPort" will be ignored.'
        )
        port = None

    settings_file_path = options.settings_file_path
    if settings_file_path and options.public_settings is not None:
        warn(
            'Both "settingsFilePath" and "PUBLIC_SETTINGS" specified. '
            '"settingsFilePath" will be ignored.'
        )
        settings_file_path = None

    if exclude.get("autoupdate") is False and dev_server:
        warn(
            "Autoupdate is enabled while running a development server. This "
            "typically leads to an ever reloading page unless the external "
            "build is restarted on every change or AUTOUPDATE_VERSION is "
            "provided. Are you sure this is what you want to do?"
        )

    build_root, packages_root = derive_paths(
        context,
        external_build_folder=options.external_build_folder,
        external_programs_folder=options.external_programs_folder,
    )

    config = BuildConfig(
        mode=mode,
        emit_autoupdate_version=options.emit_autoupdate_version,
        exclude=exclude,
        exclude_globals=tuple(options.exclude_globals),
        inject_runtime_config=options.inject_runtime_config,
        log_included_packages=options.log_included_packages,
        log_packages_without_files=options.log_packages_without_files,
        external_build_folder=options.external_build_folder,
        external_programs_folder=options.external_programs_folder,
        settings_file_path=settings_file_path,
        strip_packages_without_files=options.strip_packages_without_files,
        ddp_default_connection_port=port,
        ddp_default_connection_url=options.ddp_default_connection_url,
        runtime_env=(
            options.runtime_env
            if options.runtime_env is not None
            else default_runtime_env(mode)
        ),
        public_settings=options.public_settings,
        root_url=options.root_url,
        external_build_root=build_root,
        external_packages_root=packages_root,
    )
    logger.debug("External packages root: %s", config.external_packages_root)
    return config, warnings


def load_options_file(path: Path) -> dict[str, Any]:
    """Load plugin options from a YAML or JSON file.

    Args:
        path: Path to a .yaml, .yml or .json file.

    Returns:
        Parsed options mapping.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the content is not a mapping.
    """
    with open(path, encoding="utf-8") as f:
        if path.suffix.lower() == ".json":
            data = json.load(f)
        else:
            data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected a mapping of options, got {type(data).__name__}")
    return data


def print_config_json(config: BuildConfig) -> str:
    """Render a resolved configuration as JSON."""
    return config.model_dump_json(indent=2, by_alias=True)


__all__ = [
    "BUILD_PATH_PARTS",
    "DEFAULT_DDP_PORT",
    "DEFAULT_EXCLUDE",
    "BuildConfig",
    "BuildMode",
    "PluginOptions",
    "Settings",
    "default_runtime_env",
    "derive_paths",
    "get_settings",
    "load_options_file",
    "normalize_exclude",
    "print_config_json",
    "resolve_config",
]
