"""
Command-line interface for Crate Safety Audit.

This module provides the CLI using Click framework for argument parsing
and orchestrates the audit pipeline.
"""

import sys
from pathlib import Path
from typing import Any, Callable, Optional

import click
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from crate_safety_audit import __version__
from crate_safety_audit.config import Config, find_config_file, load_config
from crate_safety_audit.console import console, setup_logging
from crate_safety_audit.errors import SafetyAuditError
from crate_safety_audit.models.tree import Charset, Prefix

OUTPUT_FORMATS = ["text", "json", "yaml"]


def _build_options(command: Callable[..., Any]) -> Callable[..., Any]:
    """Attach the options shared by every command that loads a crate."""
    options = [
        click.option(
            "--manifest-path",
            type=click.Path(dir_okay=False, path_type=Path),
            default=Path("Cargo.toml"),
            show_default=True,
            help="Path to the Cargo.toml to audit.",
        ),
        click.option(
            "--package",
            "-p",
            type=str,
            help="Package to audit, as NAME or NAME@VERSION.",
        ),
        click.option(
            "--metadata-file",
            type=click.Path(exists=True, dir_okay=False, path_type=Path),
            help="Read saved `cargo metadata --format-version 1` output instead of running cargo.",
        ),
        click.option(
            "--features",
            "-F",
            multiple=True,
            help="Space or comma separated list of features to activate.",
        ),
        click.option("--all-features", is_flag=True, help="Activate all available features."),
        click.option(
            "--no-default-features",
            is_flag=True,
            help="Do not activate the `default` feature.",
        ),
        click.option("--all-targets", is_flag=True, help="Check all targets."),
        click.option("--target", type=str, help="Target triple to build for."),
        click.option(
            "--jobs",
            "-j",
            type=click.IntRange(min=1),
            help="Number of parallel jobs.",
        ),
        click.option("--offline", is_flag=True, help="Run without accessing the network."),
        click.option("--locked", is_flag=True, help="Require Cargo.lock to be up to date."),
        click.option("--frozen", is_flag=True, help="Require Cargo.lock and cache to be up to date."),
        click.option(
            "--format",
            "-f",
            "output_format",
            type=click.Choice(OUTPUT_FORMATS),
            default="text",
            help="Output format (default: text).",
        ),
        click.option(
            "--output",
            "-o",
            type=click.Path(path_type=Path),
            help="Output file path. If not specified, prints to stdout.",
        ),
        click.option("--no-color", is_flag=True, help="Disable colored output."),
        click.option("--verbose", "-v", is_flag=True, help="Enable verbose output."),
    ]
    for option in reversed(options):
        command = option(command)
    return command


def _split_features(features: tuple[str, ...]) -> list[str]:
    return [f for value in features for f in value.replace(",", " ").split()]


def _resolve_config(ctx: click.Context, manifest_path: Path) -> Config:
    """Use the --config file, or else a config file found next to the manifest."""
    config: Optional[Config] = ctx.obj.get("config")
    if config is not None:
        return config
    found = find_config_file(manifest_path.resolve().parent)
    return load_config(found) if found else Config()


def _apply_build_flags(config: Config, params: dict[str, Any]) -> Config:
    """Override build settings with the flags given on the command line."""
    updates: dict[str, Any] = {}
    features = _split_features(params["features"])
    if features:
        updates["features"] = features
    for name in ("all_features", "no_default_features", "all_targets", "offline", "locked", "frozen"):
        if params[name]:
            updates[name] = True
    if params["target"]:
        updates["target"] = params["target"]
    if params["jobs"]:
        updates["jobs"] = params["jobs"]
    if not updates:
        return config
    return config.model_copy(update={"build": config.build.model_copy(update=updates)})


def _write_output(text: str, output: Optional[Path]) -> None:
    if output:
        output.write_text(text, encoding="utf-8")
        console.print(f"[green]Results written to:[/green] {output}")
    else:
        # Print directly to stdout to preserve ANSI codes from formatter
        sys.stdout.write(text)
        sys.stdout.flush()


def _make_auditor(config: Config, params: dict[str, Any]):
    from crate_safety_audit.analyzer.auditor import SafetyAuditor
    from crate_safety_audit.parser.metadata import CargoMetadata

    metadata = None
    if params["metadata_file"]:
        metadata = CargoMetadata.from_file(params["metadata_file"])
    return SafetyAuditor(
        manifest_path=params["manifest_path"],
        config=config,
        package=params["package"],
        metadata=metadata,
    )


@click.group()
@click.version_option(version=__version__, prog_name="crate-safety-audit")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file.",
)
@click.pass_context
def cli(ctx: click.Context, config: Optional[Path]) -> None:
    """Crate Safety Audit - Find unsafe Rust code in a crate and its dependencies."""
    ctx.ensure_object(dict)
    try:
        ctx.obj["config"] = load_config(config) if config else None
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise click.Abort()


@cli.command()
@_build_options
@click.option("--build-deps", is_flag=True, help="Include build dependencies.")
@click.option("--dev-deps", is_flag=True, help="Include dev dependencies.")
@click.option("--all-deps", is_flag=True, help="Include all dependency kinds.")
@click.option("--invert", "-i", is_flag=True, help="Invert the tree direction.")
@click.option(
    "--all",
    "-a",
    "show_all",
    is_flag=True,
    help="Don't truncate dependencies that have already been displayed.",
)
@click.option("--prefix-depth", is_flag=True, help="Display the numeric depth instead of tree vines.")
@click.option("--no-indent", is_flag=True, help="Display the dependencies as a list.")
@click.option(
    "--charset",
    type=click.Choice([c.value for c in Charset]),
    help="Character set to use in output.",
)
@click.option(
    "--format-pattern",
    type=str,
    help="Package display pattern: {p} package, {l} license, {r} repository, {f} features.",
)
@click.option(
    "--forbid-only",
    is_flag=True,
    help="Only check entry points for #![forbid(unsafe_code)]; skips the build.",
)
@click.option("--include-tests", is_flag=True, help="Count unsafe usage in test code.")
@click.option("--strict", is_flag=True, help="Fail instead of skipping packages that cannot be scanned.")
@click.pass_context
def scan(ctx: click.Context, **params: Any) -> None:
    """Build the crate, scan every compiled file and print the safety tree."""
    from crate_safety_audit.output.formatters import get_formatter

    verbose = params["verbose"]
    setup_logging(verbose)

    try:
        config = _apply_build_flags(_resolve_config(ctx, params["manifest_path"]), params)
        config = _apply_scan_flags(config, params)

        if verbose:
            console.print(f"[blue]Auditing crate at:[/blue] {params['manifest_path']}")
            if config.scan.forbid_only:
                console.print("[blue]Mode:[/blue] forbid-only (no build)")

        auditor = _make_auditor(config, params)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            TimeElapsedColumn(),
            console=console,
            transient=True,  # Remove progress bar when done
        ) as progress:
            task = progress.add_task("Initializing...", total=None)

            def update_progress(current: int, total: int, description: str) -> None:
                progress.update(task, completed=current, total=total, description=description)

            report = auditor.audit(progress_callback=update_progress)

        output_format = params["output_format"]
        options: dict[str, Any] = {}
        if output_format == "text":
            options = {
                "colorize": config.output.colorize and not params["output"],
                "charset": config.output.charset,
                "pattern": config.output.format,
            }
        formatter = get_formatter(output_format, **options)
        _write_output(formatter.format(report), params["output"])

    except SafetyAuditError as e:
        console.print(f"[red]Error:[/red] {e}")
        ctx.exit(e.exit_code)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise click.Abort()


def _apply_scan_flags(config: Config, params: dict[str, Any]) -> Config:
    """Override graph, scan and output settings with command line flags."""
    graph = config.graph.model_copy(update={
        name: True
        for name in ("build_deps", "dev_deps", "all_deps", "invert")
        if params[name]
    })

    scan_updates: dict[str, Any] = {}
    if params["forbid_only"]:
        scan_updates["forbid_only"] = True
    if params["include_tests"]:
        scan_updates["include_tests"] = True
    if params["strict"]:
        scan_updates["allow_partial_results"] = False

    output_updates: dict[str, Any] = {}
    if params["show_all"]:
        output_updates["all"] = True
    if params["prefix_depth"]:
        output_updates["prefix"] = Prefix.DEPTH
    elif params["no_indent"]:
        output_updates["prefix"] = Prefix.NONE
    if params["charset"]:
        output_updates["charset"] = Charset(params["charset"])
    if params["format_pattern"] is not None:
        output_updates["format"] = params["format_pattern"]
    if params["no_color"]:
        output_updates["colorize"] = False
    if params["verbose"]:
        output_updates["verbose"] = True

    return config.model_copy(update={
        "graph": graph,
        "scan": config.scan.model_copy(update=scan_updates),
        "output": config.output.model_copy(update=output_updates),
    })


@cli.command()
@_build_options
@click.pass_context
def files(ctx: click.Context, **params: Any) -> None:
    """Build the crate and list every compiled source file."""
    from crate_safety_audit.output.formatters import get_formatter

    setup_logging(params["verbose"])

    try:
        config = _apply_build_flags(_resolve_config(ctx, params["manifest_path"]), params)
        auditor = _make_auditor(config, params)

        with console.status("Building with rustc interception..."):
            compiled = auditor.list_compiled_files()

        output_format = params["output_format"]
        options: dict[str, Any] = {}
        if output_format == "text":
            options = {"colorize": config.output.colorize and not (params["no_color"] or params["output"])}
        formatter = get_formatter(output_format, **options)
        _write_output(formatter.format_files(compiled), params["output"])

    except SafetyAuditError as e:
        console.print(f"[red]Error:[/red] {e}")
        ctx.exit(e.exit_code)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise click.Abort()


def main() -> None:
    """Main entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
