"""Runs a registered fixture suite under pytest.

This module is itself the test module: ``run_pytest`` hands its own file to
``pytest.main`` together with a ``DiagtestPlugin`` that parametrizes
``test_fixture`` with every case of the suite. Test ids keep the directory
structure, e.g. ``test_fixture[diagtest/syntaxTests/types/t]``.
"""

from __future__ import annotations

from collections.abc import Sequence

import pytest

from diagtest.registrar import FixtureCase, TestSuite, failure_message
from diagtest.runner import FixtureRunner

SUITE_KEY = pytest.StashKey[TestSuite]()
RUNNER_KEY = pytest.StashKey[FixtureRunner]()


class DiagtestPlugin:
    """Carries the suite and runner into the pytest session."""

    def __init__(self, suite: TestSuite, runner: FixtureRunner) -> None:
        self.suite = suite
        self.runner = runner

    def pytest_configure(self, config: pytest.Config) -> None:
        config.stash[SUITE_KEY] = self.suite
        config.stash[RUNNER_KEY] = self.runner

    def pytest_generate_tests(self, metafunc: pytest.Metafunc) -> None:
        if "fixture_case" not in metafunc.fixturenames:
            return
        cases = list(self.suite.iter_cases())
        metafunc.parametrize(
            "fixture_case",
            [case for _, case in cases],
            ids=[name for name, _ in cases],
        )


@pytest.fixture
def fixture_runner(pytestconfig: pytest.Config) -> FixtureRunner:
    return pytestconfig.stash[RUNNER_KEY]


def test_fixture(fixture_case: FixtureCase, fixture_runner: FixtureRunner) -> None:
    result = fixture_case.run(fixture_runner)
    if not result.success:
        pytest.fail(failure_message(result), pytrace=False)


def run_pytest(
    suite: TestSuite, runner: FixtureRunner, args: Sequence[str] = ()
) -> int:
    """Run every case of the suite through pytest. Returns pytest's exit code."""
    plugin = DiagtestPlugin(suite, runner)
    return int(pytest.main([__file__, "-p", "no:cacheprovider", *args], plugins=[plugin]))
