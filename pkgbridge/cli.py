"""Thin CLI wrapper for pkgbridge.

This module provides the command-line interface using Typer.
All logic is delegated to core modules.
"""

import json
import logging
from pathlib import Path
from typing import Annotated, cast

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler

from pkgbridge import __version__
from pkgbridge.autoupdate import (
    AUTOUPDATE_VERSION_FILENAME,
    compute_fingerprint,
    inject_fingerprint,
    write_version_file,
)
from pkgbridge.bridge import bridge_source
from pkgbridge.classify import classify_request, compile_patterns
from pkgbridge.config import (
    BuildConfig,
    BuildMode,
    get_settings,
    load_options_file,
    print_config_json,
    resolve_config,
)

app = typer.Typer(
    name="pkgbridge",
    help="pkgbridge - bridge an external package build into a host bundler",
    no_args_is_help=True,
)
console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"pkgbridge version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """pkgbridge - bridge an external package build into a host bundler."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _load_config(
    project: Path | None,
    options_file: Path | None,
    mode: BuildMode | None,
    dev_server: bool = False,
) -> tuple[BuildConfig, list[str]]:
    settings = get_settings()
    options_path = options_file or settings.options_file
    try:
        options = load_options_file(options_path) if options_path else {}
        return resolve_config(
            options,
            context=project or settings.project_root,
            mode=mode or settings.mode,
            dev_server=dev_server,
        )
    except ValidationError as e:
        console.print("[red]Invalid options:[/red]")
        console.print(str(e), markup=False)
        raise typer.Exit(code=1) from None
    except (OSError, ValueError) as e:
        console.print(f"[red]Error loading options:[/red] {e}")
        raise typer.Exit(code=1) from None


ProjectOption = Annotated[
    Path | None,
    typer.Option("--project", "-p", help="Project root (default: current directory)"),
]
OptionsFileOption = Annotated[
    Path | None,
    typer.Option("--options", "-o", help="YAML or JSON file with plugin options"),
]
JsonOption = Annotated[bool, typer.Option("--json", help="Output as JSON")]


def _print_json(data: object) -> None:
    console.print(
        json.dumps(data, indent=2), soft_wrap=True, markup=False, highlight=False
    )


@app.command()
def config(
    project: ProjectOption = None,
    options_file: OptionsFileOption = None,
    mode: Annotated[
        str | None,
        typer.Option("--mode", "-m", help="Build mode (development, production)"),
    ] = None,
    dev_server: Annotated[
        bool,
        typer.Option("--dev-server", help="Resolve as for a development server"),
    ] = False,
    json_output: JsonOption = False,
) -> None:
    """Show the resolved plugin configuration."""
    if mode is not None and mode not in ("development", "production", "none"):
        console.print(f"[red]Error:[/red] unknown mode '{mode}'")
        raise typer.Exit(code=1)

    resolved, warnings = _load_config(
        project, options_file, cast(BuildMode | None, mode), dev_server
    )
    if json_output:
        data = json.loads(print_config_json(resolved))
        data["warnings"] = warnings
        _print_json(data)
        return

    console.print("[bold]Resolved Configuration:[/bold]")
    console.print()
    console.print("[bold]Paths:[/bold]")
    console.print(f"  External build:      {resolved.external_build_root}")
    console.print(f"  Packages:            {resolved.external_packages_root}")
    console.print()
    console.print("[bold]Features:[/bold]")
    console.print(f"  Mode:                {resolved.mode}")
    console.print(f"  Autoupdate:          {resolved.autoupdate_enabled}")
    console.print(f"  Runtime config:      {resolved.inject_runtime_config}")
    excluded = sorted(name for name, value in resolved.exclude.items() if value)
    console.print(f"  Excluded:            {', '.join(excluded) or '(none)'}")
    console.print()
    console.print("[bold]Connection:[/bold]")
    console.print(f"  DDP port:            {resolved.ddp_default_connection_port}")
    console.print(f"  DDP URL:             {resolved.ddp_default_connection_url}")
    console.print(f"  Root URL:            {resolved.root_url}")
    if warnings:
        console.print()
        console.print("[bold yellow]Warnings:[/bold yellow]")
        for warning in warnings:
            console.print(f"  - {warning}")


@app.command()
def classify(
    paths: Annotated[list[str], typer.Argument(help="Paths or requests to classify")],
    project: ProjectOption = None,
    options_file: OptionsFileOption = None,
    json_output: JsonOption = False,
) -> None:
    """Show how each path or request would be handled."""
    resolved, _ = _load_config(project, options_file, None)
    patterns = compile_patterns(str(resolved.external_packages_root))
    results = {path: classify_request(path, patterns).value for path in paths}

    if json_output:
        _print_json(results)
        return
    for path, kind in results.items():
        console.print(f"{kind:<18} {path}", soft_wrap=True, highlight=False)


@app.command()
def bridge(
    request: Annotated[str, typer.Argument(help="Request, e.g. external/tracker")],
) -> None:
    """Print the source generated for a bridge request."""
    console.print(
        bridge_source(request), soft_wrap=True, highlight=False, markup=False
    )


@app.command()
def fingerprint(
    document: Annotated[
        Path,
        typer.Argument(help="HTML document to fingerprint (rewritten in place)"),
    ],
    output: Annotated[
        Path | None,
        typer.Option("--output", help="Directory for the autoupdate_version file"),
    ] = None,
    json_output: JsonOption = False,
) -> None:
    """Inject the autoupdate fingerprint into a document and write it out."""
    try:
        html = document.read_text(encoding="utf-8")
    except OSError as e:
        console.print(f"[red]Error reading document:[/red] {e}")
        raise typer.Exit(code=1) from None

    value = compute_fingerprint(html)
    document.write_text(inject_fingerprint(html, value), encoding="utf-8")
    output_dir = output or document.parent
    written = write_version_file(output_dir, value)

    if json_output:
        _print_json(
            {
                "fingerprint": value,
                "document": str(document),
                "version_file": str(written) if written else None,
            }
        )
    else:
        console.print(f"Fingerprint: {value}")
        if written:
            console.print(f"Wrote {AUTOUPDATE_VERSION_FILENAME} to {written}")
        else:
            console.print(
                f"[yellow]Could not write {AUTOUPDATE_VERSION_FILENAME}[/yellow]"
            )
    if written is None:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
