"""Shared fixtures for the script-resume tests."""

import runpy
import textwrap

import pytest

from script_resume.config import EngineSettings

from helpers import ScriptedPrompter


@pytest.fixture
def settings():
    """Non-interactive settings without the lock file."""
    return EngineSettings(interactive=False, use_lock=False)


@pytest.fixture
def write_script(tmp_path):
    """Write a script into the test directory and return its path."""
    def _write(source, name="pipeline.py"):
        path = tmp_path / name
        path.write_bytes(textwrap.dedent(source).encode("utf-8"))
        return str(path)
    return _write


@pytest.fixture
def run_script(settings):
    """Run a script like a launch, injecting the prompter and a call log."""
    def _run(path, prompter=None, log=None, fail_at=None, run_settings=None):
        init_globals = {
            "PROMPTER": prompter if prompter is not None else ScriptedPrompter(),
            "SETTINGS": run_settings or settings,
            "LOG": log if log is not None else [],
            "FAIL_AT": fail_at,
        }
        return runpy.run_path(path, init_globals=init_globals)
    return _run
