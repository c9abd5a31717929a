"""tempbind command-line interface."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from tempbind import __version__
from tempbind.compiler import Transformer, TransformResult
from tempbind.config import ConfigError, LowerConfig, TempbindConfig, resolve_config, validate
from tempbind.errors import CompileError, DiagnosticRenderer
from tempbind.lowering import TARGETS
from tempbind.project import scaffold


def _renderer(sources: dict[str, str]) -> DiagnosticRenderer:
    return DiagnosticRenderer(color=sys.stderr.isatty(), sources=sources)


def _load_config(path: Path, target: str | None = None, prefix: str | None = None) -> TempbindConfig:
    try:
        config = resolve_config(path)
        if target is not None:
            config.lower.target = target
        if prefix is not None:
            config.lower.prefix = prefix
        if target is not None or prefix is not None:
            validate(config, "command line")
    except ConfigError as e:
        click.echo(f"error: {e}", err=True)
        raise SystemExit(1)
    return config


def _source_files(path: Path, config: TempbindConfig) -> list[Path]:
    if path.is_file():
        return [path]
    found: set[Path] = set()
    for pattern in config.output.sources:
        found.update(p for p in path.rglob(pattern) if p.is_file())
    return sorted(found)


def _transform_file(source_file: Path, config: TempbindConfig) -> TransformResult:
    source = source_file.read_text(encoding="utf-8")
    result = Transformer(config.lower).transform(source, str(source_file))
    renderer = _renderer({str(source_file): source})
    for diag in result.diagnostics:
        click.echo(renderer.render(diag), err=True)
    return result


def _output_path(source_file: Path, root: Path, out: Path | None, extension: str) -> Path:
    if out is None:
        return source_file.with_suffix(extension)
    if root.is_file():
        if out.is_dir():
            return out / source_file.with_suffix(extension).name
        return out
    return out / source_file.relative_to(root).with_suffix(extension)


@click.group()
@click.version_option(__version__, prog_name="tempbind")
@click.option("-q", "--quiet", is_flag=True, help="Only print diagnostics.")
@click.pass_context
def main(ctx: click.Context, quiet: bool) -> None:
    """Lower Temporary Binding constructs into plain JavaScript."""
    ctx.ensure_object(dict)
    ctx.obj["quiet"] = quiet


@main.command()
@click.argument("path", type=click.Path(exists=True))
@click.option("-o", "--out", type=click.Path(), default=None, help="Output file or directory.")
@click.option("--target", type=click.Choice(TARGETS), default=None, help="Output dialect.")
@click.option("--prefix", default=None, help="Prefix for synthetic binding names.")
@click.option("--check", is_flag=True, help="Report diagnostics without writing output.")
@click.pass_context
def lower(
    ctx: click.Context, path: str, out: str | None, target: str | None,
    prefix: str | None, check: bool,
) -> None:
    """Lower one source file, or every source file under a directory."""
    quiet = ctx.obj.get("quiet", False)
    root = Path(path)
    config = _load_config(root, target, prefix)
    out_path = Path(out) if out is not None else None

    files = _source_files(root, config)
    if not files:
        click.echo(f"warning: no source files matching {', '.join(config.output.sources)}", err=True)
        return

    had_errors = False
    for source_file in files:
        result = _transform_file(source_file, config)
        if not result.ok:
            had_errors = True
            continue
        if check:
            continue

        # A single file without -o goes to stdout
        if root.is_file() and out_path is None:
            click.echo(result.code, nl=False)
            continue

        dest = _output_path(source_file, root, out_path, config.output.extension)
        if dest.resolve() == source_file.resolve():
            click.echo(f"error: output would overwrite {source_file}", err=True)
            had_errors = True
            continue
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_text(result.code, encoding="utf-8")
        if not quiet:
            click.echo(f"lowering {source_file} -> {dest}")

    if had_errors:
        raise SystemExit(1)


@main.command()
@click.argument("path", default=".", type=click.Path(exists=True))
@click.pass_context
def check(ctx: click.Context, path: str) -> None:
    """Report diagnostics for source files without writing output."""
    quiet = ctx.obj.get("quiet", False)
    root = Path(path)
    config = _load_config(root)
    files = _source_files(root, config)

    errors = 0
    warnings = 0
    for source_file in files:
        result = _transform_file(source_file, config)
        errors += len(result.errors)
        warnings += len(result.warnings)

    if not quiet:
        click.echo(f"checked {len(files)} file(s): {errors} error(s), {warnings} warning(s)")
    if errors:
        raise SystemExit(1)


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--target", type=click.Choice(TARGETS), default=None, help="Output dialect.")
def run(file: str, target: str | None) -> None:
    """Lower a file and execute it with the reference evaluator."""
    from tempbind.interp import EvalError, Interpreter, ThrowSignal

    source_file = Path(file)
    config = _load_config(source_file, target)
    result = _transform_file(source_file, config)
    if not result.ok:
        raise SystemExit(1)

    interp = Interpreter()
    try:
        interp.run(result.module)
    except (EvalError, ThrowSignal) as e:
        for line in interp.output:
            click.echo(line)
        click.echo(f"error: {e}", err=True)
        raise SystemExit(1)
    for line in interp.output:
        click.echo(line)


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--lowered", is_flag=True, help="Show the tree after lowering.")
def view(file: str, lowered: bool) -> None:
    """View the AST of a source file."""
    source_file = Path(file)
    config = _load_config(source_file)

    if lowered:
        result = _transform_file(source_file, config)
        if result.module is None:
            raise SystemExit(1)
        _dump_ast(result.module, 0)
        return

    source = source_file.read_text(encoding="utf-8")
    filename = str(source_file)
    renderer = _renderer({filename: source})
    try:
        module, _log, diagnostics = Transformer(config.lower).parse(source, filename)
    except CompileError as e:
        for diag in e.diagnostics:
            click.echo(renderer.render(diag), err=True)
        raise SystemExit(1)
    for diag in diagnostics:
        click.echo(renderer.render(diag), err=True)
    _dump_ast(module, 0)


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--color/--no-color", default=None, help="Force or disable syntax highlighting.")
def show(file: str, color: bool | None) -> None:
    """Print the lowered source with syntax highlighting."""
    from tempbind.highlight import highlight

    source_file = Path(file)
    config = _load_config(source_file)
    result = _transform_file(source_file, config)
    if result.code is None:
        raise SystemExit(1)
    if color is None:
        color = sys.stdout.isatty()
    click.echo(highlight(result.code, color=color), nl=False, color=color)
    if not result.ok:
        raise SystemExit(1)


@main.command()
@click.argument("directory", default=".", type=click.Path(file_okay=False))
@click.option("--target", type=click.Choice(TARGETS), default="es2015", help="Output dialect.")
@click.option("--prefix", default="_tb", help="Prefix for synthetic binding names.")
@click.option("--example", is_flag=True, help="Also write an example.tbjs.")
def init(directory: str, target: str, prefix: str, example: bool) -> None:
    """Write a default tempbind.toml."""
    try:
        validate(TempbindConfig(lower=LowerConfig(prefix=prefix, target=target)), "command line")
        config_path = scaffold(Path(directory), prefix=prefix, target=target, example=example)
        click.echo(f"created {config_path}")
    except (ConfigError, FileExistsError) as e:
        click.echo(f"error: {e}", err=True)
        raise SystemExit(1)


def _dump_ast(node: object, depth: int) -> None:
    """Print a readable AST dump."""
    indent = "  " * depth
    name = type(node).__name__

    if hasattr(node, "__dataclass_fields__"):
        fields = node.__dataclass_fields__  # type: ignore[union-attr]
        click.echo(f"{indent}{name}")
        for field_name in fields:
            if field_name == "span":
                continue
            value = getattr(node, field_name)
            if isinstance(value, list):
                if value and hasattr(value[0], "__dataclass_fields__"):
                    click.echo(f"{indent}  {field_name}:")
                    for item in value:
                        _dump_ast(item, depth + 2)
                else:
                    click.echo(f"{indent}  {field_name}: {value!r}")
            elif hasattr(value, "__dataclass_fields__"):
                click.echo(f"{indent}  {field_name}:")
                _dump_ast(value, depth + 2)
            elif value is not None:
                shown = value.value if hasattr(value, "value") and not isinstance(value, str) else value
                click.echo(f"{indent}  {field_name}: {shown!r}")
    else:
        click.echo(f"{indent}{name}: {node!r}")
