"""
Configuration loading and validation for Crate Safety Audit.

This module handles configuration file parsing, validation, and provides
sensible defaults for all configuration options.
"""

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field

from crate_safety_audit.models.tree import Charset, Prefix


class BuildConfig(BaseModel):
    """Configuration for the intercepted cargo build."""

    cargo: str = Field(
        default="cargo",
        description="Cargo executable to run.",
    )
    features: list[str] = Field(
        default_factory=list,
        description="Features to activate.",
    )
    all_features: bool = Field(
        default=False,
        description="Activate all available features.",
    )
    no_default_features: bool = Field(
        default=False,
        description="Do not activate the default feature.",
    )
    all_targets: bool = Field(
        default=False,
        description="Check all targets (tests, benches, examples) too.",
    )
    target: Optional[str] = Field(
        default=None,
        description="Target triple to build for.",
    )
    jobs: Optional[int] = Field(
        default=None,
        ge=1,
        description="Number of parallel jobs (defaults to the CPU count).",
    )
    offline: bool = Field(default=False, description="Run cargo without network access.")
    locked: bool = Field(default=False, description="Require Cargo.lock to be up to date.")
    frozen: bool = Field(default=False, description="Require Cargo.lock and cache to be up to date.")


class GraphConfig(BaseModel):
    """Configuration for the dependency graph."""

    build_deps: bool = Field(
        default=False,
        description="Include build dependencies.",
    )
    dev_deps: bool = Field(
        default=False,
        description="Include dev dependencies.",
    )
    all_deps: bool = Field(
        default=False,
        description="Include all dependency kinds.",
    )
    invert: bool = Field(
        default=False,
        description="Show dependents instead of dependencies.",
    )


class ScanConfig(BaseModel):
    """Configuration for unsafe usage scanning."""

    forbid_only: bool = Field(
        default=False,
        description="Only scan entry points for #![forbid(unsafe_code)], skipping the build.",
    )
    include_tests: bool = Field(
        default=False,
        description="Count unsafe usage inside test code.",
    )
    allow_partial_results: bool = Field(
        default=True,
        description="Treat packages that fail to scan as unknown instead of aborting.",
    )


class OutputConfig(BaseModel):
    """Configuration for output formatting."""

    all: bool = Field(
        default=False,
        description="Do not truncate dependencies that have already been displayed.",
    )
    charset: Charset = Field(
        default=Charset.UTF8,
        description="Character set for tree vines and symbols.",
    )
    prefix: Prefix = Field(
        default=Prefix.INDENT,
        description="Line prefix style.",
    )
    format: str = Field(
        default="{p}",
        description="Package display pattern ({p}, {l}, {r}, {f}).",
    )
    colorize: bool = Field(
        default=True,
        description="Use colors in terminal output.",
    )
    verbose: bool = Field(
        default=False,
        description="Enable verbose output.",
    )


class Config(BaseModel):
    """Root configuration model for Crate Safety Audit."""

    build: BuildConfig = Field(default_factory=BuildConfig)
    graph: GraphConfig = Field(default_factory=GraphConfig)
    scan: ScanConfig = Field(default_factory=ScanConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    class Config:
        """Pydantic model configuration."""

        extra = "forbid"


def load_config(config_path: Optional[Path] = None) -> Config:
    """
    Load configuration from a YAML file.

    Args:
        config_path: Path to the configuration file. If None, returns defaults.

    Returns:
        Config object with loaded or default values.

    Raises:
        FileNotFoundError: If the specified config file doesn't exist.
        ValueError: If the config file is invalid.
    """
    if config_path is None:
        return Config()

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        return Config(**data)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in configuration file: {e}") from e
    except Exception as e:
        raise ValueError(f"Failed to load configuration: {e}") from e


def find_config_file(start_path: Path) -> Optional[Path]:
    """
    Search for a configuration file starting from the given path.

    Searches for `.crate-safety-audit.yaml` or `.crate-safety-audit.yml`
    in the start path and parent directories.

    Args:
        start_path: Directory to start searching from.

    Returns:
        Path to the config file if found, None otherwise.
    """
    config_names = [".crate-safety-audit.yaml", ".crate-safety-audit.yml"]

    current = start_path.resolve()
    while current != current.parent:
        for name in config_names:
            config_path = current / name
            if config_path.exists():
                return config_path
        current = current.parent

    return None
