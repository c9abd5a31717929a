"""Config scaffolding for `tempbind init`."""

from __future__ import annotations

from pathlib import Path

from tempbind.config import CONFIG_NAME

_TEMPBIND_TOML_TEMPLATE = """\
[lower]
prefix = "{prefix}"
target = "{target}"
shadow_warnings = true
globals = []

[output]
extension = ".js"
sources = ["*.tbjs"]
"""

_EXAMPLE_TBJS = """\
// Each step reads the previous value through $.
const($) total = 10, $ + 2, $ * 2;
console.log(total);
"""


def scaffold(directory: Path | None = None, *, prefix: str = "_tb", target: str = "es2015",
             example: bool = False) -> Path:
    """Write a default tempbind.toml into *directory*. Returns the config path."""
    base = directory or Path.cwd()
    base.mkdir(parents=True, exist_ok=True)
    config_path = base / CONFIG_NAME

    if config_path.exists():
        raise FileExistsError(f"'{config_path}' already exists")

    config_path.write_text(_TEMPBIND_TOML_TEMPLATE.format(prefix=prefix, target=target))

    if example:
        (base / "example.tbjs").write_text(_EXAMPLE_TBJS)

    return config_path
