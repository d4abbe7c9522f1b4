"""Fixture file parser.

Format:
    <source lines>
    // ----
    // <Kind>: <message>
    // <Kind>: <message>

Everything before the delimiter line is source. Each non-blank line after it
is one expectation, in order. A file without a delimiter expects no
diagnostics.
"""

from __future__ import annotations

import io
from pathlib import Path
from typing import TextIO

from diagtest.models import Expectation, Fixture

DELIMITER = "// ----"


class FixtureLoadError(Exception):
    """Raised when a fixture file cannot be opened or read."""


def parse_source(stream: TextIO) -> str:
    """Consume lines up to and including the delimiter; return the source."""
    lines: list[str] = []
    for line in stream:
        line = line.rstrip("\r\n")
        if line.startswith(DELIMITER):
            break
        lines.append(line + "\n")
    return "".join(lines)


def parse_expectation_line(line: str) -> Expectation | None:
    """Parse one expectation line, or return None for a blank one."""
    text = line.rstrip("\r\n").lstrip("/").lstrip()
    if not text:
        return None
    kind, colon, message = text.partition(":")
    if not colon:
        return Expectation(kind=kind, message="")
    return Expectation(kind=kind, message=message.lstrip())


def parse_expectations(stream: TextIO) -> list[Expectation]:
    expectations: list[Expectation] = []
    for line in stream:
        expectation = parse_expectation_line(line)
        if expectation is not None:
            expectations.append(expectation)
    return expectations


def parse_fixture_stream(stream: TextIO, path: str | None = None) -> Fixture:
    """Parse an open text stream into a Fixture."""
    source = parse_source(stream)
    expectations = parse_expectations(stream)
    return Fixture(source=source, expectations=tuple(expectations), path=path)


def parse_fixture_string(content: str, path: str | None = None) -> Fixture:
    return parse_fixture_stream(io.StringIO(content), path=path)


def parse_fixture_file(path: Path) -> Fixture:
    """Parse a fixture file. Raises FixtureLoadError if it cannot be read."""
    try:
        with open(path, encoding="utf-8", newline="") as f:
            return parse_fixture_stream(f, path=str(path))
    except (OSError, UnicodeDecodeError) as e:
        raise FixtureLoadError(f'Cannot open test contract: "{path}": {e}') from e
