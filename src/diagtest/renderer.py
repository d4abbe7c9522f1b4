"""Human-readable rendering of expectations and diagnostics."""

from __future__ import annotations

import io
from collections.abc import Sequence
from typing import TextIO

import click

from diagtest.matcher import diagnostic_message, offset_to_line_number
from diagtest.models import Diagnostic, Expectation


def styled(
    text: str, formatted: bool, fg: str | None = None, bold: bool = True, reverse: bool = False
) -> str:
    """Apply click styles only when formatting is enabled."""
    if not formatted:
        return text
    return click.style(text, fg=fg, bold=bold, reverse=reverse)


def _kind_color(kind: str) -> str:
    return "yellow" if kind == "Warning" else "red"


def _write_success(out: TextIO, prefix: str, formatted: bool) -> None:
    out.write(styled(f"{prefix}Success", formatted, fg="green", bold=True) + "\n")


def render_expectations(
    out: TextIO,
    expectations: Sequence[Expectation],
    prefix: str = "",
    formatted: bool = True,
) -> None:
    """Write the expected diagnostics, one per line."""
    if not expectations:
        _write_success(out, prefix, formatted)
        return
    for expectation in expectations:
        head = f"{prefix}{expectation.kind}: "
        out.write(styled(head, formatted, fg=_kind_color(expectation.kind), bold=True))
        out.write(expectation.message + "\n")


def render_diagnostics(
    out: TextIO,
    diagnostics: Sequence[Diagnostic],
    prefix: str = "",
    formatted: bool = True,
    ignore_warnings: bool = False,
    source: str | None = None,
    header_length: int = 0,
) -> None:
    """Write the obtained diagnostics, one per line.

    Passing ``source`` turns on line numbers, computed from each diagnostic's
    offset minus ``header_length``.
    """
    if not diagnostics:
        _write_success(out, prefix, formatted)
        return
    for diagnostic in diagnostics:
        if ignore_warnings and diagnostic.is_warning:
            continue
        head = prefix
        if source is not None:
            line = offset_to_line_number(diagnostic.offset, source, header_length)
            if line is not None:
                head += f"({line}): "
        head += f"{diagnostic.kind}: "
        out.write(styled(head, formatted, fg=_kind_color(diagnostic.kind), bold=True))
        out.write(diagnostic_message(diagnostic) + "\n")


def render_mismatch(
    out: TextIO,
    expectations: Sequence[Expectation],
    diagnostics: Sequence[Diagnostic],
    prefix: str = "",
    formatted: bool = True,
) -> None:
    """Write the expected block followed by the obtained block."""
    nested = prefix + "  "
    out.write(styled(f"{prefix}Expected result:", formatted, fg="cyan", bold=True) + "\n")
    render_expectations(out, expectations, nested, formatted)
    out.write(styled(f"{prefix}Obtained result:", formatted, fg="cyan", bold=True) + "\n")
    render_diagnostics(out, diagnostics, nested, formatted)


def render_expectation_block(diagnostics: Sequence[Diagnostic]) -> str:
    """Render diagnostics as the expectation lines written after the delimiter."""
    if not diagnostics:
        return ""
    buf = io.StringIO()
    render_diagnostics(buf, diagnostics, prefix="// ", formatted=False)
    return buf.getvalue()


def render_source(source: str, prefix: str = "    ") -> str:
    """Indent each source line for display."""
    lines = [f"{prefix}{line}\n" for line in source.splitlines()]
    return "".join(lines) + "\n"
