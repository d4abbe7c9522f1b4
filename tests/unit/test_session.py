"""Unit tests for diagtest.session."""

from collections.abc import Callable
from pathlib import Path

import click
import pytest

from diagtest.models import Diagnostic, Fixture, HarnessConfig, RunOutcome, RunResult
from diagtest.parser import parse_fixture_file
from diagtest.runner import FixtureRunner
from diagtest.session import (
    Decision,
    SessionController,
    SessionState,
    after_run,
    offered_decisions,
    prompt_text,
    resolve,
    update_round_trips,
    updated_fixture_text,
)


def _keys(keys: str) -> Callable[[], str]:
    """Operator input from a string; empty string once exhausted."""
    it = iter(keys)
    return lambda: next(it, "")


def _controller(fake_analyzer, keys: str, edit_file=None) -> SessionController:
    config = HarnessConfig(formatted=False, editor="true")
    runner = FixtureRunner(fake_analyzer, formatted=False)
    return SessionController(config, runner, read_char=_keys(keys), edit_file=edit_file)


def _walk(controller: SessionController, fixture_tree: Path):
    return controller.process_path(fixture_tree / "libsolidity", Path("syntaxTests"))


# ── State machine ────────────────────────────────────────────────────


class TestTransitions:
    def test_after_run(self) -> None:
        assert after_run(RunOutcome.SUCCESS) is SessionState.SUCCESS
        for outcome in (RunOutcome.MISMATCH, RunOutcome.ANALYZER_FAILURE, RunOutcome.LOAD_FAILURE):
            assert after_run(outcome) is SessionState.NEEDS_DECISION

    def test_update_only_for_mismatch(self) -> None:
        assert Decision.UPDATE in offered_decisions(RunOutcome.MISMATCH)
        assert Decision.UPDATE not in offered_decisions(RunOutcome.ANALYZER_FAILURE)
        assert Decision.UPDATE not in offered_decisions(RunOutcome.LOAD_FAILURE)

    def test_resolve(self) -> None:
        assert resolve(RunOutcome.MISMATCH, Decision.UPDATE) is SessionState.UPDATE
        assert resolve(RunOutcome.ANALYZER_FAILURE, Decision.EDIT) is SessionState.EDIT
        assert resolve(RunOutcome.LOAD_FAILURE, Decision.SKIP) is SessionState.SKIP
        assert resolve(RunOutcome.MISMATCH, Decision.QUIT) is SessionState.QUIT

    def test_resolve_rejects_update_after_crash(self) -> None:
        with pytest.raises(ValueError, match="not allowed"):
            resolve(RunOutcome.ANALYZER_FAILURE, Decision.UPDATE)

    def test_prompts(self) -> None:
        assert prompt_text(RunOutcome.MISMATCH) == "(e)dit/(u)pdate expectations/(s)kip/(q)uit? "
        assert prompt_text(RunOutcome.ANALYZER_FAILURE) == "(e)dit/(s)kip/(q)uit? "


class TestUpdatedFixtureText:
    def test_writes_observed_diagnostics(self) -> None:
        result = RunResult(
            outcome=RunOutcome.MISMATCH,
            fixture=Fixture(source="contract C { }\n"),
            diagnostics=[Diagnostic("Warning", "a\nb")],
        )
        assert updated_fixture_text(result) == "contract C { }\n// ----\n// Warning: a\\nb\n"

    def test_no_diagnostics_leaves_empty_block(self) -> None:
        result = RunResult(outcome=RunOutcome.MISMATCH, fixture=Fixture(source="x\n"))
        assert updated_fixture_text(result) == "x\n// ----\n"

    def test_load_failure_cannot_be_updated(self) -> None:
        with pytest.raises(ValueError, match="failed to load"):
            updated_fixture_text(RunResult(outcome=RunOutcome.LOAD_FAILURE, error="gone"))


class TestUpdateRoundTrips:
    @staticmethod
    def _result(*diagnostics: Diagnostic) -> RunResult:
        return RunResult(
            outcome=RunOutcome.MISMATCH,
            fixture=Fixture(source="contract C { }\n"),
            diagnostics=list(diagnostics),
        )

    def test_plain_diagnostics(self) -> None:
        assert update_round_trips(self._result(
            Diagnostic("Warning", "Unused variable."),
            Diagnostic("TypeError", "first\nsecond"),
            Diagnostic("Warning"),
        ))

    def test_leading_whitespace_in_comment(self) -> None:
        assert not update_round_trips(self._result(Diagnostic("Warning", "  indented comment")))

    def test_colon_in_kind(self) -> None:
        assert not update_round_trips(self._result(Diagnostic("Error:Internal", "x")))


# ── Walking a tree ───────────────────────────────────────────────────


class TestProcessPath:
    def test_all_pass(self, fixture_tree: Path, fake_analyzer, capsys) -> None:
        (fixture_tree / "libsolidity" / "syntaxTests" / "b_mismatch.sol").unlink()
        stats = _walk(_controller(fake_analyzer, ""), fixture_tree)
        assert (stats.run_count, stats.success_count) == (2, 2)
        out = capsys.readouterr().out
        assert "syntaxTests/a_ok.sol: OK" in out
        assert "syntaxTests/c_ok.sol: OK" in out

    def test_skip_counts_as_run(self, fixture_tree: Path, fake_analyzer, capsys) -> None:
        stats = _walk(_controller(fake_analyzer, "s"), fixture_tree)
        assert (stats.run_count, stats.success_count) == (3, 2)
        assert not stats.all_passed
        out = capsys.readouterr().out
        assert "b_mismatch.sol: FAIL" in out
        assert "  Contract:\n    contract B { uint unused; }\n" in out
        assert "Expected result:" in out

    def test_edit_then_rerun_counts_once(self, fixture_tree: Path, fake_analyzer, capsys) -> None:
        edited: list[Path] = []

        def fix(path: Path) -> None:
            edited.append(path)
            path.write_text(path.read_text().replace("Unused var.", "Unused variable."))

        stats = _walk(_controller(fake_analyzer, "e", edit_file=fix), fixture_tree)
        assert (stats.run_count, stats.success_count) == (3, 3)
        assert edited == [fixture_tree / "libsolidity" / "syntaxTests" / "b_mismatch.sol"]
        assert "Re-running test case..." in capsys.readouterr().out

    def test_repeated_edits_count_once(self, fixture_tree: Path, fake_analyzer) -> None:
        attempts: list[Path] = []

        def fix_on_second_try(path: Path) -> None:
            attempts.append(path)
            if len(attempts) == 2:
                path.write_text(path.read_text().replace("Unused var.", "Unused variable."))

        stats = _walk(_controller(fake_analyzer, "ee", edit_file=fix_on_second_try), fixture_tree)
        assert len(attempts) == 2
        assert (stats.run_count, stats.success_count) == (3, 3)

    def test_update_rewrites_and_reruns(self, fixture_tree: Path, fake_analyzer) -> None:
        path = fixture_tree / "libsolidity" / "syntaxTests" / "b_mismatch.sol"
        stats = _walk(_controller(fake_analyzer, "u"), fixture_tree)
        assert (stats.run_count, stats.success_count) == (3, 3)
        assert path.read_text() == (
            "contract B { uint unused; }\n// ----\n// Warning: Unused variable.\n"
        )

    def test_update_round_trip(self, tmp_path: Path, fake_analyzer) -> None:
        fake_analyzer.responses["multi"] = [
            Diagnostic("TypeError", "first\nsecond", 40),
            Diagnostic("Warning", None, 41),
            Diagnostic("DeclarationError", "colon: inside", 42),
        ]
        path = tmp_path / "multi.sol"
        path.write_text("contract multi { }\n")
        runner = FixtureRunner(fake_analyzer, formatted=False)
        first = runner.run(path)
        assert first.outcome is RunOutcome.MISMATCH

        path.write_text(updated_fixture_text(first))
        assert runner.run(path).success
        assert len(parse_fixture_file(path).expectations) == 3

    def test_quit_stops_walk(self, fixture_tree: Path, fake_analyzer) -> None:
        stats = _walk(_controller(fake_analyzer, "q"), fixture_tree)
        assert (stats.run_count, stats.success_count) == (2, 1)
        # c_ok.sol was never analyzed.
        assert len(fake_analyzer.calls) == 2

    def test_unknown_keys_ignored(self, fixture_tree: Path, fake_analyzer) -> None:
        stats = _walk(_controller(fake_analyzer, "xz?s"), fixture_tree)
        assert (stats.run_count, stats.success_count) == (3, 2)

    def test_end_of_input_quits(self, fixture_tree: Path, fake_analyzer) -> None:
        stats = _walk(_controller(fake_analyzer, ""), fixture_tree)
        assert (stats.run_count, stats.success_count) == (2, 1)

    def test_eof_from_terminal_quits(self, fixture_tree: Path, fake_analyzer, capsys) -> None:
        def ctrl_d() -> str:
            raise EOFError

        controller = _controller(fake_analyzer, "")
        controller.read_char = ctrl_d
        stats = _walk(controller, fixture_tree)
        assert (stats.run_count, stats.success_count) == (2, 1)
        assert "c_ok.sol" not in capsys.readouterr().out

    def test_update_refused_when_not_representable(
        self, tmp_path: Path, fake_analyzer, capsys
    ) -> None:
        fake_analyzer.responses["indent"] = [Diagnostic("Warning", "  indented comment", 30)]
        path = tmp_path / "indent.sol"
        path.write_text("contract indent { }\n")
        stats = _controller(fake_analyzer, "us").process_path(tmp_path, Path("indent.sol"))
        assert (stats.run_count, stats.success_count) == (1, 0)
        assert path.read_text() == "contract indent { }\n"
        captured = capsys.readouterr()
        assert "Cannot update" in captured.err
        assert "Re-running test case..." not in captured.out

    def test_update_not_offered_after_crash(self, tmp_path: Path, fake_analyzer, capsys) -> None:
        path = tmp_path / "crash.sol"
        path.write_text("CRASH\n// ----\n// ParserError: x\n")
        controller = _controller(fake_analyzer, "us")
        stats = controller.process_path(tmp_path, Path("crash.sol"))
        assert (stats.run_count, stats.success_count) == (1, 0)
        assert path.read_text() == "CRASH\n// ----\n// ParserError: x\n"
        out = capsys.readouterr().out
        assert "Parsing failed:" in out
        assert "(e)dit/(s)kip/(q)uit? " in out

    def test_load_failure_is_shown(self, tmp_path: Path, fake_analyzer, capsys) -> None:
        (tmp_path / "bad.sol").write_bytes(b"\xff\xfe")
        stats = _controller(fake_analyzer, "s").process_path(tmp_path, Path("bad.sol"))
        assert (stats.run_count, stats.success_count) == (1, 0)
        assert "bad.sol: cannot read test:" in capsys.readouterr().out

    def test_breadth_first_order(self, tmp_path: Path, fake_analyzer, capsys) -> None:
        root = tmp_path / "t"
        (root / "a_dir").mkdir(parents=True)
        (root / "a_dir" / "inner.sol").write_text("x\n")
        (root / "b.sol").write_text("x\n")
        stats = _controller(fake_analyzer, "").process_path(tmp_path, Path("t"))
        assert stats.run_count == 2
        out = capsys.readouterr().out
        assert out.index("t/b.sol: OK") < out.index("t/a_dir/inner.sol: OK")


class TestLaunchEditor:
    def test_editor_failure_still_reruns(
        self, fixture_tree: Path, fake_analyzer, monkeypatch: pytest.MonkeyPatch, capsys
    ) -> None:
        calls: list[tuple[str, str | None]] = []

        def failing_edit(filename: str, editor: str | None) -> None:
            calls.append((filename, editor))
            raise click.ClickException("nope: Editing failed")

        monkeypatch.setattr(click, "edit", failing_edit)
        stats = _walk(_controller(fake_analyzer, "es"), fixture_tree)
        assert calls[0][1] == "true"
        assert calls[0][0].endswith("b_mismatch.sol")
        assert (stats.run_count, stats.success_count) == (3, 2)
        captured = capsys.readouterr()
        assert "Error running editor command" in captured.err
        assert "Re-running test case..." in captured.out
