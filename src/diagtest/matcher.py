"""Comparison of analyzer diagnostics against fixture expectations."""

from __future__ import annotations

from collections.abc import Sequence

from diagtest.models import Diagnostic, Expectation

NO_COMMENT = "NONE"


def diagnostic_message(diagnostic: Diagnostic) -> str:
    """Return the comment as written in a fixture: newlines escaped, NONE if absent."""
    if diagnostic.comment is None:
        return NO_COMMENT
    return diagnostic.comment.replace("\n", "\\n")


def matches(actual: Sequence[Diagnostic], expected: Sequence[Expectation]) -> bool:
    """True iff both lists have the same length and agree pairwise, in order."""
    if len(actual) != len(expected):
        return False
    for diagnostic, expectation in zip(actual, expected):
        if diagnostic.kind != expectation.kind:
            return False
        if diagnostic_message(diagnostic) != expectation.message:
            return False
    return True


def offset_to_line_number(offset: int | None, source: str, header_length: int) -> int | None:
    """Map an analyzer byte offset back to a 1-based line of the fixture source.

    Returns None when the offset is missing or falls outside the source once
    the header is subtracted.
    """
    if offset is None:
        return None
    location = offset - header_length
    encoded = source.encode("utf-8")
    if location < 0 or location >= len(encoded):
        return None
    return 1 + encoded[:location].count(b"\n")


def header_length(header: str) -> int:
    return len(header.encode("utf-8"))
