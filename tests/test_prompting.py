"""Tests for the console and non-interactive prompters."""

from script_resume.config import EngineSettings
from script_resume.core.models import (
    CheckpointDetails,
    CheckpointRecord,
    CheckpointStatus,
    NonResumableBlock,
    RemediationAction,
    ResumeAnalysis,
    ResumeChoice,
    StageIdentity,
    utc_now,
)
from script_resume.prompting import (
    ConsolePrompter,
    NonInteractivePrompter,
    default_prompter,
)


def scripted_input(*answers):
    pending = list(answers)

    def _input(prompt):
        if not pending:
            raise EOFError
        return pending.pop(0)
    return _input


def make_analysis(status=CheckpointStatus.MATCHING, default=ResumeChoice.RESUME):
    record = CheckpointRecord(
        script_path="/job.py",
        script_hash="h",
        last_completed_stage=StageIdentity(script_path="/job.py", line=4, ordinal=0),
    )
    return ResumeAnalysis(
        script_path="/job.py",
        status=status,
        current_hash="h",
        record=record,
        default_choice=default,
        available_choices=list(ResumeChoice),
        recommendations=[{"type": "optimal", "message": "Resume after /job.py:4"}],
    )


def test_console_resume_default_on_empty_answer():
    """Test that pressing enter takes the default choice."""
    output = []
    prompter = ConsolePrompter(input_func=scripted_input(""), output_func=output.append)

    assert prompter.choose_resume(make_analysis()) == ResumeChoice.RESUME
    assert any("Last completed stage: /job.py:4" in line for line in output)


def test_console_resume_reprompts_on_unknown_answer():
    """Test an invalid answer followed by a valid one."""
    output = []
    prompter = ConsolePrompter(input_func=scripted_input("x", "F"), output_func=output.append)

    choice = prompter.choose_resume(make_analysis(CheckpointStatus.MODIFIED, ResumeChoice.FRESH))

    assert choice == ResumeChoice.FRESH
    assert any("modified" in line for line in output)
    assert any(line.startswith("Please answer one of") for line in output)


def test_console_end_of_input_quits():
    """Test that a closed stdin counts as quit."""
    prompter = ConsolePrompter(input_func=scripted_input(), output_func=lambda line: None)

    assert prompter.choose_resume(make_analysis()) == ResumeChoice.QUIT
    block = NonResumableBlock(lines=(2,))
    assert prompter.choose_remediation(block, ["x = 1"], list(RemediationAction)) == RemediationAction.QUIT


def test_console_remediation_offers_only_allowed_actions():
    """Test the remediation menu."""
    output = []
    prompter = ConsolePrompter(input_func=scripted_input("m", "w"), output_func=output.append)
    allowed = [a for a in RemediationAction if a != RemediationAction.MOVE]

    action = prompter.choose_remediation(NonResumableBlock(lines=(3, 4)), ["a()", "b()"], allowed)

    assert action == RemediationAction.WRAP
    assert any("    3 | a()" in line for line in output)
    assert not any(line.strip().startswith("[m]") for line in output)


def test_console_show_details():
    """Test printing the details view."""
    output = []
    prompter = ConsolePrompter(input_func=scripted_input(), output_func=output.append)

    prompter.show_details(CheckpointDetails(
        last_stage="/job.py:4",
        timestamp=utc_now(),
        status=CheckpointStatus.MODIFIED,
        shared_data_summary={"n": "int 2"},
        stage_source=["@stage", "def a(data):"],
        source_diff=["+# new"],
    ))

    assert "  n: int 2" in output
    assert "  def a(data):" in output
    assert "  +# new" in output


def test_non_interactive_uses_defaults():
    """Test answers without a terminal."""
    prompter = NonInteractivePrompter(RemediationAction.MOVE)
    block = NonResumableBlock(lines=(2,))

    assert prompter.choose_resume(make_analysis()) == ResumeChoice.RESUME
    assert prompter.choose_remediation(block, ["x()"], [RemediationAction.MOVE]) == RemediationAction.MOVE
    assert prompter.choose_remediation(block, ["x()"], [RemediationAction.IGNORE]) == RemediationAction.IGNORE


def test_default_prompter_follows_settings():
    """Test choosing the prompter from settings."""
    assert isinstance(default_prompter(EngineSettings(interactive=True)), ConsolePrompter)
    prompter = default_prompter(EngineSettings(
        interactive=False, non_interactive_remediation=RemediationAction.DELETE
    ))
    assert isinstance(prompter, NonInteractivePrompter)
    assert prompter.remediation == RemediationAction.DELETE
