"""Shared test fixtures for diagtest."""

from __future__ import annotations

from pathlib import Path

import pytest

from diagtest.analyzer import AnalyzerCrash
from diagtest.models import DEFAULT_HEADER, Diagnostic

pytest_plugins = ["pytester"]


class FakeAnalyzer:
    """Scripted stand-in for the front-end.

    ``responses`` maps a substring of the source to the diagnostics reported
    for it; sources matching nothing get no diagnostics. A source containing
    ``CRASH`` raises AnalyzerCrash.
    """

    def __init__(self, responses: dict[str, list[Diagnostic]] | None = None) -> None:
        self.responses = responses or {}
        self.calls: list[tuple[str, bool]] = []

    def analyze(self, source: str, stop_at_first_error: bool):
        self.calls.append((source, stop_at_first_error))
        if "CRASH" in source:
            raise AnalyzerCrash(
                "internal parser error",
                [
                    Diagnostic("Warning", "ignored", len(DEFAULT_HEADER)),
                    Diagnostic("ParserError", "Expected token", source.index("CRASH")),
                ],
            )
        for marker, diagnostics in self.responses.items():
            if marker in source:
                return None, list(diagnostics)
        return None, []


@pytest.fixture
def fake_analyzer() -> FakeAnalyzer:
    return FakeAnalyzer({
        "unused": [Diagnostic("Warning", "Unused variable.", 30)],
        "broken": [Diagnostic("TypeError", "Type mismatch.\nSecond line.", 40)],
    })


@pytest.fixture
def sample_fixture_content() -> str:
    """A fixture with source and one expected warning."""
    return """\
contract C { uint unused; }
// ----
// Warning: Unused variable.
"""


@pytest.fixture
def fixture_tree(tmp_path: Path) -> Path:
    """A test root with libsolidity/syntaxTests holding three fixtures.

    Sorted walk order: a_ok.sol, b_mismatch.sol, c_ok.sol.
    """
    suite = tmp_path / "test" / "libsolidity" / "syntaxTests"
    suite.mkdir(parents=True)
    (suite / "a_ok.sol").write_text("contract A { }\n")
    (suite / "b_mismatch.sol").write_text(
        "contract B { uint unused; }\n// ----\n// Warning: Unused var.\n"
    )
    (suite / "c_ok.sol").write_text(
        "contract C { uint unused; }\n// ----\n// Warning: Unused variable.\n"
    )
    return tmp_path / "test"
