"""Non-interactive registration of a fixture tree as a hierarchical test suite.

Used for unattended runs through pytest (see diagtest.pytest_suite): nothing
here reads input, and every failing case is reported.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path

from diagtest.models import RunOutcome, RunResult
from diagtest.runner import FixtureRunner


@dataclass
class FixtureCase:
    """A leaf test case: one fixture file."""

    name: str
    path: Path  # relative to the registration base
    full_path: Path

    def run(self, runner: FixtureRunner) -> RunResult:
        return runner.run(self.full_path)


@dataclass
class TestSuite:
    """A named group of cases and nested suites, one per directory."""

    __test__ = False  # not a pytest class

    name: str
    suites: list[TestSuite] = field(default_factory=list)
    cases: list[FixtureCase] = field(default_factory=list)

    def iter_cases(self, prefix: str = "") -> Iterator[tuple[str, FixtureCase]]:
        """Yield (qualified name, case) for every leaf, depth first."""
        qualified = f"{prefix}/{self.name}" if prefix else self.name
        for case in self.cases:
            yield f"{qualified}/{case.name}", case
        for suite in self.suites:
            yield from suite.iter_cases(qualified)

    @property
    def count(self) -> int:
        return len(self.cases) + sum(s.count for s in self.suites)


def register_tests(suite: TestSuite, base_path: Path, path: Path) -> int:
    """Add the fixture or directory at base_path/path to suite.

    Directories become nested suites; files become cases named after their
    stem. Returns the number of cases added.
    """
    full_path = base_path / path
    if full_path.is_dir():
        sub_suite = TestSuite(name=path.name)
        added = 0
        for entry in sorted(full_path.iterdir(), key=lambda p: p.name):
            added += register_tests(sub_suite, base_path, path / entry.name)
        suite.suites.append(sub_suite)
        return added

    suite.cases.append(FixtureCase(name=path.stem, path=path, full_path=full_path))
    return 1


def build_suite(base_path: Path, path: Path, name: str = "diagtest") -> TestSuite:
    """Register the tree rooted at base_path/path under a fresh root suite."""
    root = TestSuite(name=name)
    register_tests(root, base_path, path)
    return root


def failure_message(result: RunResult) -> str:
    if result.outcome is RunOutcome.MISMATCH:
        return "Test expectation mismatch.\n" + result.report
    if result.outcome is RunOutcome.ANALYZER_FAILURE:
        return f"Analyzer failed: {result.error}\n" + result.report
    return f"Cannot load fixture: {result.error}"

