"""Core data models for diagtest."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

DEFAULT_HEADER = "pragma solidity >=0.0;\n"
DEFAULT_SUITE = "libsolidity/syntaxTests"


@dataclass(frozen=True)
class Expectation:
    """A single expected diagnostic declared in a fixture file."""

    kind: str
    message: str


@dataclass(frozen=True)
class Fixture:
    """Source snippet plus the ordered diagnostics it is expected to produce."""

    source: str
    expectations: tuple[Expectation, ...] = ()
    path: str | None = None


@dataclass(frozen=True)
class Diagnostic:
    """One finding reported by the analyzer.

    ``offset`` is a byte offset into the header-prefixed source the analyzer
    was given, or None when the analyzer reported no location.
    """

    kind: str
    comment: str | None = None
    offset: int | None = None

    @property
    def is_warning(self) -> bool:
        return self.kind == "Warning"


class RunOutcome(Enum):
    """Result classification of running one fixture."""

    SUCCESS = "success"
    MISMATCH = "mismatch"
    ANALYZER_FAILURE = "analyzer-failure"
    LOAD_FAILURE = "load-failure"


@dataclass
class RunResult:
    """Everything the runner learned about one fixture."""

    outcome: RunOutcome
    fixture: Fixture | None = None
    diagnostics: list[Diagnostic] = field(default_factory=list)
    report: str = ""
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.outcome is RunOutcome.SUCCESS


@dataclass
class SessionStats:
    """Run/success counters for an interactive walk."""

    success_count: int = 0
    run_count: int = 0

    def begin_run(self) -> None:
        self.run_count += 1

    def retract_run(self) -> None:
        if self.run_count == 0:
            raise ValueError("No run in flight to retract")
        self.run_count -= 1

    def record_success(self) -> None:
        self.success_count += 1

    @property
    def all_passed(self) -> bool:
        return self.success_count == self.run_count


@dataclass
class HarnessConfig:
    """Harness configuration, merged from diagtest.yaml and the command line."""

    test_path: Path | None = None
    suite: str = DEFAULT_SUITE
    header: str = DEFAULT_HEADER
    editor: str | None = field(default_factory=lambda: os.environ.get("EDITOR"))
    formatted: bool = True
    analyzer: str | None = None
    analyzer_command: str | None = None
