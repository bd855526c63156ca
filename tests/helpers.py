"""Helpers shared by the test modules."""

from pathlib import Path

from script_resume.core.models import RemediationAction
from script_resume.prompting import Prompter


class ScriptedPrompter(Prompter):
    """Prompter answering from queued choices, falling back to defaults."""

    def __init__(self, resume=None, remediation=None):
        self.resume_choices = list(resume or [])
        self.remediation_choices = list(remediation or [])
        self.analyses = []
        self.details = []
        self.blocks = []

    def choose_remediation(self, block, source, allowed):
        self.blocks.append((block, list(source), list(allowed)))
        if self.remediation_choices:
            return self.remediation_choices.pop(0)
        return RemediationAction.IGNORE

    def choose_resume(self, analysis):
        self.analyses.append(analysis)
        if self.resume_choices:
            return self.resume_choices.pop(0)
        return analysis.default_choice

    def show_details(self, details):
        self.details.append(details)


THREE_STAGES = '''\
from script_resume import open_session

session = open_session(prompter=PROMPTER, settings=SETTINGS)


@session.stage
def first(data):
    LOG.append("first")
    if FAIL_AT == "first":
        raise RuntimeError("first stage failed")
    data["x"] = 5


@session.stage
def second(data):
    LOG.append("second")
    data["y"] = data["x"] * 2


@session.stage
def third(data):
    LOG.append("third")
    if FAIL_AT == "third":
        raise RuntimeError("third stage failed")
    print(data["y"])


session.finalize()
'''


def checkpoint_file(script_path) -> Path:
    return Path(str(script_path) + ".resume.json")


def line_of(script_path, text) -> int:
    """1-based number of the first line containing text."""
    lines = Path(script_path).read_text(encoding="utf-8").splitlines()
    for number, line in enumerate(lines, start=1):
        if text in line:
            return number
    raise AssertionError(f"{text!r} not found in {script_path}")
