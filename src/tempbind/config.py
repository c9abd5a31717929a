"""TOML config loading for tempbind.toml."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path

CONFIG_NAME = "tempbind.toml"


@dataclass
class LowerConfig:
    prefix: str = "_tb"
    target: str = "es2015"
    shadow_warnings: bool = True
    # Names defined outside the unit (e.g. a library global); never E304
    globals: list[str] = field(default_factory=list)


@dataclass
class OutputConfig:
    extension: str = ".js"
    sources: list[str] = field(default_factory=lambda: ["*.tbjs"])


@dataclass
class TempbindConfig:
    lower: LowerConfig = field(default_factory=LowerConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    path: Path | None = None


class ConfigError(Exception):
    """Raised for a tempbind.toml that parses but holds invalid values."""


def find_config(start_path: Path | None = None) -> Path | None:
    """Walk up directories to find tempbind.toml. Returns None if there is none."""
    path = (start_path or Path.cwd()).resolve()
    if path.is_file():
        path = path.parent
    while True:
        candidate = path / CONFIG_NAME
        if candidate.exists():
            return candidate
        parent = path.parent
        if parent == path:
            return None
        path = parent


def load_config(path: Path) -> TempbindConfig:
    """Parse a tempbind.toml file into a TempbindConfig."""
    with open(path, "rb") as f:
        data = tomllib.load(f)

    config = TempbindConfig(path=path)

    if "lower" in data:
        low = data["lower"]
        config.lower = LowerConfig(
            prefix=low.get("prefix", "_tb"),
            target=low.get("target", "es2015"),
            shadow_warnings=low.get("shadow_warnings", True),
            globals=low.get("globals", []),
        )

    if "output" in data:
        out = data["output"]
        config.output = OutputConfig(
            extension=out.get("extension", ".js"),
            sources=out.get("sources", ["*.tbjs"]),
        )

    validate(config, str(path))
    return config


def resolve_config(start_path: Path | None = None) -> TempbindConfig:
    """Load the nearest tempbind.toml above *start_path*, or the defaults."""
    path = find_config(start_path)
    if path is None:
        return TempbindConfig()
    return load_config(path)


def validate(config: TempbindConfig, origin: str) -> None:
    """Raise ConfigError for values that cannot produce valid output.

    *origin* names where the values came from, a file path or the command line.
    """
    if config.lower.target not in ("es2015", "es5"):
        raise ConfigError(
            f"{origin}: [lower] target must be 'es2015' or 'es5', got {config.lower.target!r}"
        )
    if not _is_identifier(config.lower.prefix):
        raise ConfigError(
            f"{origin}: [lower] prefix must be an identifier, got {config.lower.prefix!r}"
        )
    for name in config.lower.globals:
        if not isinstance(name, str) or not _is_identifier(name):
            raise ConfigError(f"{origin}: [lower] globals must be identifiers, got {name!r}")
    if not config.output.extension.startswith("."):
        raise ConfigError(
            f"{origin}: [output] extension must start with '.', got {config.output.extension!r}"
        )


def _is_identifier(name: str) -> bool:
    if not name or not (name[0].isalpha() or name[0] in "_$"):
        return False
    return all(c.isalnum() or c in "_$" for c in name)
