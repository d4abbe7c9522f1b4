"""Interactive, operator-driven walk over a fixture tree.

Each fixture moves through an explicit state machine:

    RUNNING --> SUCCESS
            --> NEEDS_DECISION --> SKIP | UPDATE | EDIT | QUIT

UPDATE and EDIT retry the same fixture. The fixture stays at the head of the
work queue and its run is retracted, so however many retries it takes it is
counted once.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable
from enum import Enum
from pathlib import Path

import click

from diagtest.matcher import matches
from diagtest.models import HarnessConfig, RunOutcome, RunResult, SessionStats
from diagtest.parser import DELIMITER, parse_fixture_string
from diagtest.renderer import render_expectation_block, render_source, styled
from diagtest.runner import FixtureRunner

log = logging.getLogger(__name__)


class SessionState(Enum):
    RUNNING = "running"
    SUCCESS = "success"
    NEEDS_DECISION = "needs-decision"
    SKIP = "skip"
    UPDATE = "update"
    EDIT = "edit"
    QUIT = "quit"


class Decision(Enum):
    """Operator choices, keyed by the character that selects them."""

    SKIP = "s"
    UPDATE = "u"
    EDIT = "e"
    QUIT = "q"


_DECISION_STATES = {
    Decision.SKIP: SessionState.SKIP,
    Decision.UPDATE: SessionState.UPDATE,
    Decision.EDIT: SessionState.EDIT,
    Decision.QUIT: SessionState.QUIT,
}


def after_run(outcome: RunOutcome) -> SessionState:
    """Transition out of RUNNING."""
    if outcome is RunOutcome.SUCCESS:
        return SessionState.SUCCESS
    return SessionState.NEEDS_DECISION


def offered_decisions(outcome: RunOutcome) -> tuple[Decision, ...]:
    """Decisions available after a failed run, in prompt order."""
    if outcome is RunOutcome.MISMATCH:
        return (Decision.EDIT, Decision.UPDATE, Decision.SKIP, Decision.QUIT)
    if outcome is RunOutcome.SUCCESS:
        return ()
    return (Decision.EDIT, Decision.SKIP, Decision.QUIT)


def resolve(outcome: RunOutcome, decision: Decision) -> SessionState:
    """Transition out of NEEDS_DECISION. Raises ValueError for a decision not on offer."""
    if decision not in offered_decisions(outcome):
        raise ValueError(f"Decision '{decision.name.lower()}' not allowed after {outcome.value}")
    return _DECISION_STATES[decision]


def prompt_text(outcome: RunOutcome) -> str:
    labels = {
        Decision.EDIT: "(e)dit",
        Decision.UPDATE: "(u)pdate expectations",
        Decision.SKIP: "(s)kip",
        Decision.QUIT: "(q)uit",
    }
    return "/".join(labels[d] for d in offered_decisions(outcome)) + "? "


def updated_fixture_text(result: RunResult) -> str:
    """The fixture contents that make the observed diagnostics the expectation."""
    if result.fixture is None:
        raise ValueError("Cannot update a fixture that failed to load")
    return (
        result.fixture.source
        + DELIMITER + "\n"
        + render_expectation_block(result.diagnostics)
    )


def update_round_trips(result: RunResult) -> bool:
    """True if the rewritten fixture would parse back to the observed diagnostics.

    Comments with leading whitespace and kinds containing a colon cannot be
    written as expectation lines.
    """
    fixture = parse_fixture_string(updated_fixture_text(result))
    return matches(result.diagnostics, fixture.expectations)


class SessionController:
    """Walks a fixture tree breadth-first, asking the operator what to do on failure."""

    def __init__(
        self,
        config: HarnessConfig,
        runner: FixtureRunner,
        read_char: Callable[[], str] | None = None,
        edit_file: Callable[[Path], None] | None = None,
    ) -> None:
        self.config = config
        self.runner = runner
        self.read_char = read_char or click.getchar
        self.edit_file = edit_file or self._launch_editor

    def process_path(self, base_path: Path, path: Path) -> SessionStats:
        """Run every fixture under base_path/path. Stops early on QUIT."""
        stats = SessionStats()
        queue: deque[Path] = deque([path])

        while queue:
            current = queue[0]
            full_path = base_path / current
            if full_path.is_dir():
                queue.popleft()
                for entry in sorted(full_path.iterdir(), key=lambda p: p.name):
                    queue.append(current / entry.name)
                continue

            stats.begin_run()
            result = self.process(current, full_path)
            state = after_run(result.outcome)

            if state is SessionState.SUCCESS:
                stats.record_success()
                queue.popleft()
                continue

            state = resolve(result.outcome, self.ask(result.outcome))
            while state is SessionState.UPDATE and not update_round_trips(result):
                click.echo(
                    "Cannot update: the observed diagnostics cannot be written as expectations.",
                    err=True,
                )
                state = resolve(result.outcome, self.ask(result.outcome))
            log.debug("%s: %s", current, state.value)
            if state is SessionState.QUIT:
                return stats
            if state is SessionState.SKIP:
                queue.popleft()
                continue

            if state is SessionState.UPDATE:
                full_path.write_text(updated_fixture_text(result), encoding="utf-8")
            elif state is SessionState.EDIT:
                self.edit_file(full_path)
            stats.retract_run()
            click.echo("Re-running test case...")

        return stats

    def process(self, name: Path, full_path: Path) -> RunResult:
        """Run one fixture and print its outcome."""
        formatted = self.config.formatted
        click.echo(styled(f"{name}: ", formatted), nl=False)
        result = self.runner.run(full_path)

        if result.outcome is RunOutcome.SUCCESS:
            click.echo(styled("OK", formatted, fg="green"))
            return result
        if result.outcome is RunOutcome.LOAD_FAILURE:
            click.echo(styled(f"cannot read test: {result.error}", formatted, fg="red"))
            return result

        click.echo(styled("FAIL", formatted, fg="red"))
        if result.fixture is not None:
            click.echo(styled("  Contract:", formatted, fg="cyan"))
            click.echo(render_source(result.fixture.source), nl=False)
        click.echo(result.report)
        return result

    def ask(self, outcome: RunOutcome) -> Decision:
        """Block until the operator picks one of the offered decisions."""
        offered = offered_decisions(outcome)
        click.echo(prompt_text(outcome), nl=False)
        while True:
            try:
                char = self.read_char()
            except EOFError:
                char = ""
            if not char:
                # End of input: nothing more can be decided.
                click.echo()
                return Decision.QUIT
            for decision in offered:
                if char.lower() == decision.value:
                    click.echo()
                    return decision

    def _launch_editor(self, path: Path) -> None:
        click.echo()
        try:
            click.edit(filename=str(path), editor=self.config.editor)
        except click.ClickException as e:
            click.echo(f"Error running editor command: {e.format_message()}\n", err=True)
