"""Running a single fixture: load, analyze, compare."""

from __future__ import annotations

import io
import logging
from pathlib import Path

from diagtest.analyzer import Analyzer
from diagtest.matcher import header_length, matches
from diagtest.models import DEFAULT_HEADER, RunOutcome, RunResult
from diagtest.parser import FixtureLoadError, parse_fixture_file
from diagtest.renderer import render_diagnostics, render_mismatch, styled

log = logging.getLogger(__name__)


class FixtureRunner:
    """Runs fixtures through an analyzer and classifies the outcome."""

    def __init__(
        self,
        analyzer: Analyzer,
        header: str = DEFAULT_HEADER,
        formatted: bool = True,
        prefix: str = "  ",
    ) -> None:
        self.analyzer = analyzer
        self.header = header
        self.formatted = formatted
        self.prefix = prefix

    def run(self, path: Path) -> RunResult:
        try:
            fixture = parse_fixture_file(path)
        except FixtureLoadError as e:
            log.debug("load failed for %s: %s", path, e)
            return RunResult(outcome=RunOutcome.LOAD_FAILURE, report=str(e), error=str(e))

        log.debug("analyzing %s (%d expectation(s))", path, len(fixture.expectations))
        try:
            _, diagnostics = self.analyzer.analyze(self.header + fixture.source, False)
        except Exception as e:
            # The analyzer is a black box; whatever it raises is a crash, not a diagnostic.
            partial = list(getattr(e, "diagnostics", []) or [])
            log.debug("analyzer crashed on %s: %r", path, e)
            return RunResult(
                outcome=RunOutcome.ANALYZER_FAILURE,
                fixture=fixture,
                diagnostics=partial,
                report=self._crash_report(fixture.source, partial),
                error=str(e) or type(e).__name__,
            )

        diagnostics = list(diagnostics)
        if matches(diagnostics, fixture.expectations):
            return RunResult(outcome=RunOutcome.SUCCESS, fixture=fixture, diagnostics=diagnostics)

        out = io.StringIO()
        render_mismatch(out, fixture.expectations, diagnostics, self.prefix, self.formatted)
        return RunResult(
            outcome=RunOutcome.MISMATCH,
            fixture=fixture,
            diagnostics=diagnostics,
            report=out.getvalue(),
        )

    def _crash_report(self, source: str, diagnostics: list) -> str:
        out = io.StringIO()
        out.write(self.prefix)
        out.write(styled("Parsing failed:", self.formatted, fg="red", reverse=True) + "\n")
        render_diagnostics(
            out,
            diagnostics,
            prefix=self.prefix + "  ",
            formatted=self.formatted,
            ignore_warnings=True,
            source=source,
            header_length=header_length(self.header),
        )
        return out.getvalue()
