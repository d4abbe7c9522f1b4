"""The analyzer collaborator: the front-end whose diagnostics fixtures pin down.

diagtest never implements analysis itself. Anything with an ``analyze``
method returning ``(result, diagnostics)`` can be plugged in, either as a
Python object named by import path or as an external command speaking JSON.
"""

from __future__ import annotations

import importlib
import json
import logging
import shlex
import subprocess
from collections.abc import Callable
from typing import Any, Protocol

from diagtest.config import ConfigurationError
from diagtest.models import Diagnostic, HarnessConfig

log = logging.getLogger(__name__)


class AnalyzerCrash(Exception):
    """Raised when the analyzer fails internally instead of reporting diagnostics."""

    def __init__(self, message: str, diagnostics: list[Diagnostic] | None = None) -> None:
        super().__init__(message)
        self.diagnostics = diagnostics or []


class Analyzer(Protocol):
    def analyze(
        self, source: str, stop_at_first_error: bool
    ) -> tuple[Any, list[Diagnostic]]: ...


class CallableAnalyzer:
    """Adapts a plain function to the Analyzer protocol.

    The function may return a diagnostic list or a ``(result, diagnostics)`` pair.
    """

    def __init__(self, func: Callable[..., Any]) -> None:
        self.func = func

    def analyze(self, source: str, stop_at_first_error: bool) -> tuple[Any, list[Diagnostic]]:
        value = self.func(source, stop_at_first_error)
        if isinstance(value, tuple):
            result, diagnostics = value
            return result, list(diagnostics)
        return None, list(value)


def decode_diagnostics(data: Any) -> tuple[Any, list[Diagnostic]]:
    """Decode the JSON emitted by an external analyzer."""
    result: Any = None
    if isinstance(data, dict):
        result = data.get("result")
        data = data.get("diagnostics", [])
    if not isinstance(data, list):
        raise ValueError("expected a list of diagnostics")
    diagnostics: list[Diagnostic] = []
    for entry in data:
        if not isinstance(entry, dict) or "kind" not in entry:
            raise ValueError(f"invalid diagnostic entry: {entry!r}")
        offset = entry.get("offset")
        diagnostics.append(Diagnostic(
            kind=str(entry["kind"]),
            comment=entry.get("comment"),
            offset=int(offset) if offset is not None else None,
        ))
    return result, diagnostics


class SubprocessAnalyzer:
    """Runs an external command with the source on stdin and JSON on stdout."""

    ALL_ERRORS_FLAG = "--all-errors"

    def __init__(self, command: str) -> None:
        self.command = command

    def analyze(self, source: str, stop_at_first_error: bool) -> tuple[Any, list[Diagnostic]]:
        args = shlex.split(self.command)
        if not stop_at_first_error:
            args.append(self.ALL_ERRORS_FLAG)
        log.debug("running analyzer command %s", args)
        try:
            proc = subprocess.run(args, input=source, capture_output=True, text=True)
        except OSError as e:
            raise AnalyzerCrash(f"Cannot run analyzer command: {e}") from e

        try:
            result, diagnostics = decode_diagnostics(json.loads(proc.stdout))
        except (TypeError, ValueError) as e:
            if proc.returncode != 0:
                raise AnalyzerCrash(_crash_message(proc)) from e
            raise AnalyzerCrash(f"Invalid analyzer output: {e}") from e

        if proc.returncode != 0:
            raise AnalyzerCrash(_crash_message(proc), diagnostics)
        return result, diagnostics


def _crash_message(proc: subprocess.CompletedProcess[str]) -> str:
    detail = proc.stderr.strip() or "no output"
    return f"Analyzer exited with status {proc.returncode}: {detail}"


def import_analyzer(target: str) -> Analyzer:
    """Resolve "package.module:attribute" to an Analyzer."""
    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        raise ConfigurationError(f"Invalid analyzer '{target}', expected module:attribute")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(f"Cannot import analyzer module '{module_name}': {e}") from e
    try:
        obj = getattr(module, attr)
    except AttributeError as e:
        raise ConfigurationError(f"Module '{module_name}' has no attribute '{attr}'") from e

    if isinstance(obj, type):
        obj = obj()
    if hasattr(obj, "analyze"):
        return obj
    if callable(obj):
        return CallableAnalyzer(obj)
    raise ConfigurationError(f"Analyzer '{target}' is neither callable nor has analyze()")


def load_analyzer(config: HarnessConfig) -> Analyzer:
    if config.analyzer:
        return import_analyzer(config.analyzer)
    if config.analyzer_command:
        return SubprocessAnalyzer(config.analyzer_command)
    raise ConfigurationError(
        "No analyzer configured. Use --analyzer or --analyzer-cmd, or set one in diagtest.yaml."
    )
