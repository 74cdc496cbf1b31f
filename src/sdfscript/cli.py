"""Click CLI entry point for the sdfscript toolchain."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import TypeVar

import click

from sdfscript import __version__
from sdfscript.codegen import TARGETS, generate, unparse
from sdfscript.errors import SdfScriptError
from sdfscript.evaluator import evaluate
from sdfscript.lexer import TokenType, tokenize
from sdfscript.models import SceneSpec
from sdfscript.parser import parse_source
from sdfscript.preprocessing import expand
from sdfscript.scene import check_probes, is_scene_file, load_program
from sdfscript.warning_policy import WarningPolicy

F = TypeVar("F", bound=Callable[..., object])

PROBE_FAILURE_EXIT_CODE = 3


def _build_warning_policy(
    warn_as_error: str | None, suppress_warning: str | None
) -> WarningPolicy | None:
    try:
        return WarningPolicy.from_options(warn_as_error, suppress_warning)
    except ValueError as e:
        raise click.ClickException(str(e)) from e


def _warning_options(fn: F) -> F:
    fn = click.option(
        "--suppress-warning",
        "suppress_warning",
        type=str,
        default=None,
        help="Comma-separated W-codes to suppress (e.g. W03).",
    )(fn)
    fn = click.option(
        "--warn-as-error",
        "warn_as_error",
        type=str,
        default=None,
        help="Comma-separated W-codes to treat as errors (e.g. W01,W02).",
    )(fn)
    return fn


def _load(input_file: Path) -> SceneSpec:
    try:
        return load_program(input_file)
    except SdfScriptError as e:
        raise click.ClickException(str(e)) from e


def _write_output(text: str, output: Path | None) -> None:
    if output is None:
        click.echo(text, nl=False)
        return
    try:
        output.write_text(text, encoding="utf-8")
    except OSError as e:
        raise click.ClickException(f"Cannot write {output}: {e}") from e
    click.echo(f"Wrote: {output}")


@click.group()
@click.version_option(version=__version__, prog_name="sdfscript")
def main() -> None:
    """sdfscript: a terse language for signed-distance-field scenes."""


@main.command("expand")
@click.argument("input_file", type=click.Path(exists=True, path_type=Path))
@_warning_options
def expand_cmd(
    input_file: Path,
    warn_as_error: str | None = None,
    suppress_warning: str | None = None,
) -> None:
    """Print the macro-expanded source."""
    policy = _build_warning_policy(warn_as_error, suppress_warning)
    scene = _load(input_file)
    try:
        click.echo(expand(scene.source, policy=policy))
    except SdfScriptError as e:
        raise click.ClickException(str(e))


@main.command()
@click.argument("input_file", type=click.Path(exists=True, path_type=Path))
@_warning_options
def tokens(
    input_file: Path,
    warn_as_error: str | None = None,
    suppress_warning: str | None = None,
) -> None:
    """Print one token per line: offset, type, value."""
    policy = _build_warning_policy(warn_as_error, suppress_warning)
    scene = _load(input_file)
    try:
        toks = tokenize(scene.source, policy=policy)
    except SdfScriptError as e:
        raise click.ClickException(str(e))
    for tok in toks:
        if tok.type == TokenType.FUNCTION:
            value = tok.value.name
        elif tok.type == TokenType.NUMBER:
            value = f"{tok.value:g}"
        else:
            value = tok.value
        click.echo(f"{tok.pos}\t{tok.type.name}\t{value}")


@main.command()
@click.argument("input_file", type=click.Path(exists=True, path_type=Path))
@_warning_options
def parse(
    input_file: Path,
    warn_as_error: str | None = None,
    suppress_warning: str | None = None,
) -> None:
    """Print the parsed AST."""
    policy = _build_warning_policy(warn_as_error, suppress_warning)
    scene = _load(input_file)
    try:
        click.echo(repr(parse_source(scene.source, policy=policy)))
    except SdfScriptError as e:
        raise click.ClickException(str(e))


@main.command("eval")
@click.argument("input_file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--point",
    "points",
    type=(float, float, float),
    multiple=True,
    help="Point to evaluate at (X Y Z). Repeatable. Defaults to the origin.",
)
@click.option("--a0", type=float, default=None, help="First angle parameter (overrides the scene).")
@click.option("--a1", type=float, default=None, help="Second angle parameter (overrides the scene).")
@_warning_options
def eval_cmd(
    input_file: Path,
    points: tuple[tuple[float, float, float], ...] = (),
    a0: float | None = None,
    a1: float | None = None,
    warn_as_error: str | None = None,
    suppress_warning: str | None = None,
) -> None:
    """Evaluate the distance field at one or more points."""
    policy = _build_warning_policy(warn_as_error, suppress_warning)
    scene = _load(input_file)
    a0 = scene.angles.a0 if a0 is None else a0
    a1 = scene.angles.a1 if a1 is None else a1
    try:
        statement = parse_source(scene.source, policy=policy)
        for point in points or ((0.0, 0.0, 0.0),):
            click.echo(f"{evaluate(statement, point, a0, a1):.9g}")
    except SdfScriptError as e:
        raise click.ClickException(str(e))


@main.command()
@click.argument("input_file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--target",
    type=click.Choice(TARGETS),
    default=None,
    help="Output language. Defaults to the scene setting, else python.",
)
@click.option("--width", type=click.IntRange(min=1), default=None, help="Preferred line width.")
@click.option("--function-name", type=str, default=None, help="Name of the generated function.")
@click.option("--a0", type=float, default=None, help="First angle parameter (overrides the scene).")
@click.option("--a1", type=float, default=None, help="Second angle parameter (overrides the scene).")
@click.option(
    "-o",
    "--output",
    type=click.Path(path_type=Path),
    default=None,
    help="Write generated source to this file instead of stdout.",
)
@_warning_options
def codegen(
    input_file: Path,
    target: str | None = None,
    width: int | None = None,
    function_name: str | None = None,
    a0: float | None = None,
    a1: float | None = None,
    output: Path | None = None,
    warn_as_error: str | None = None,
    suppress_warning: str | None = None,
) -> None:
    """Generate host source code for the scene."""
    policy = _build_warning_policy(warn_as_error, suppress_warning)
    scene = _load(input_file)
    options = scene.codegen
    try:
        statement = parse_source(scene.source, policy=policy)
        source = generate(
            statement,
            width or options.width,
            a0=scene.angles.a0 if a0 is None else a0,
            a1=scene.angles.a1 if a1 is None else a1,
            target=target or options.target,
            function_name=function_name or options.function_name,
            standalone=True,
        )
    except SdfScriptError as e:
        raise click.ClickException(str(e))
    if not source.endswith("\n"):
        source += "\n"
    _write_output(source, output)


@main.command()
@click.argument("input_file", type=click.Path(exists=True, path_type=Path))
@click.option("--width", type=click.IntRange(min=1), default=100, show_default=True)
@click.option(
    "-o",
    "--output",
    type=click.Path(path_type=Path),
    default=None,
    help="Write formatted output to this file instead of stdout.",
)
@click.option(
    "--in-place",
    is_flag=True,
    default=False,
    help="Overwrite the input file with formatted output.",
)
@click.option(
    "--check",
    is_flag=True,
    default=False,
    help="Exit with code 1 if the file would change (CI mode). No output is written.",
)
def fmt(
    input_file: Path,
    width: int = 100,
    output: Path | None = None,
    in_place: bool = False,
    check: bool = False,
) -> None:
    """Format a plain sdfscript file to canonical style (macros are expanded)."""
    if in_place and output is not None:
        raise click.UsageError("--in-place and -o/--output are mutually exclusive")
    if in_place and check:
        raise click.UsageError("--in-place and --check are mutually exclusive")
    if is_scene_file(input_file):
        raise click.UsageError("fmt formats plain sdfscript files, not scene files")

    try:
        source = input_file.read_text(encoding="utf-8")
    except OSError as e:
        raise click.ClickException(f"Cannot read {input_file}: {e}") from e

    try:
        formatted = unparse(parse_source(source), width) + "\n"
    except SdfScriptError as e:
        raise click.ClickException(str(e))

    if check:
        if formatted != source:
            raise SystemExit(1)
        return

    if in_place:
        input_file.write_text(formatted, encoding="utf-8")
        click.echo(f"Formatted: {input_file}")
    else:
        _write_output(formatted, output)


@main.command()
@click.argument("input_file", type=click.Path(exists=True, path_type=Path))
@_warning_options
def check(
    input_file: Path,
    warn_as_error: str | None = None,
    suppress_warning: str | None = None,
) -> None:
    """Evaluate a scene's probes and report mismatches (exit code 3)."""
    policy = _build_warning_policy(warn_as_error, suppress_warning)
    scene = _load(input_file)
    if not scene.probes:
        raise click.ClickException(f"Scene {input_file} defines no probes")
    try:
        results = check_probes(scene, policy=policy)
    except SdfScriptError as e:
        raise click.ClickException(str(e))

    failures = 0
    for result in results:
        x, y, z = result.probe.point
        status = "ok" if result.ok else "FAIL"
        click.echo(
            f"{status}\t({x:g}, {y:g}, {z:g})\texpected {result.probe.expect:.9g}"
            f"\tgot {result.actual:.9g}"
        )
        failures += not result.ok

    if failures:
        click.echo(f"{failures} of {len(results)} probes failed", err=True)
        raise SystemExit(PROBE_FAILURE_EXIT_CODE)
    click.echo(f"All {len(results)} probes passed")
