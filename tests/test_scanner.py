"""Tests for the stage grammar and the non-resumable code scanner."""

import textwrap

import pytest

from script_resume.errors import ScriptParseError
from script_resume.scanning import NonResumableScanner, PythonStageGrammar, scan_source

SAMPLE = textwrap.dedent('''\
    """Doc."""
    import os
    from script_resume import open_session

    session = open_session()
    counter = 0
    print("setup")


    @session.stage
    def load(data):
        data["a"] = 1


    # comment
    total = (
        1 + 2
    )

    session.stage(lambda data: None)
    print("tail")
    session.finalize()
    print("after finalize")
''')


def test_grammar_finds_stages_and_finalize():
    """Test stage spans for decorated functions and statement calls."""
    layout = PythonStageGrammar().parse(SAMPLE)

    assert [(s.start, s.end, s.ordinal, s.name) for s in layout.stages] == [
        (10, 12, 0, "load"),
        (20, 20, 1, None),
    ]
    assert (layout.finalize.start, layout.finalize.end) == (22, 22)
    assert layout.stage_opener == "session.stage"
    assert layout.line_count == 23


def test_grammar_live_lines():
    """Test which top-level lines count as live code."""
    layout = PythonStageGrammar().parse(SAMPLE)

    assert sorted(layout.live_lines) == [6, 7, 16, 17, 18, 21, 23]


def test_identities_follow_stage_order():
    """Test identities derived from the layout."""
    layout = PythonStageGrammar().parse(SAMPLE)
    identities = layout.identities("/work/job.py")

    assert [i.key for i in identities] == ["/work/job.py:10", "/work/job.py:20"]
    assert [i.ordinal for i in identities] == [0, 1]


def test_scanner_groups_live_lines_into_blocks():
    """Test blocks in the three scanned regions."""
    blocks = scan_source(SAMPLE)

    assert [(b.lines, b.is_trailing) for b in blocks] == [
        ((6, 7), False),
        ((16, 17, 18), False),
        ((21,), True),
    ]


def test_code_after_finalize_is_not_flagged():
    """Test that lines after the finalize call are out of scope."""
    blocks = scan_source(SAMPLE)
    assert all(23 not in block.lines for block in blocks)


def test_without_finalize_region_runs_to_end_of_file():
    """Test the last region when the script never finalizes."""
    source = textwrap.dedent('''\
        @session.stage
        def only(data):
            pass

        print("one")
        print("two")
    ''')
    blocks = scan_source(source)

    assert [(b.lines, b.is_trailing) for b in blocks] == [((5, 6), False)]


def test_blank_lines_split_blocks():
    """Test that only consecutive live lines form one block."""
    source = textwrap.dedent('''\
        x = 1

        y = 2
        @stage
        def only(data):
            pass
    ''')
    blocks = scan_source(source)

    assert [b.lines for b in blocks] == [(1,), (3,)]


def test_script_without_stages_has_no_blocks():
    """Test that scanning is skipped when there are no stages."""
    assert scan_source("print('hello')\nx = compute()\n") == []


def test_ignore_markers_hide_code():
    """Test that marked regions are never live."""
    source = textwrap.dedent('''\
        session = open_session()
        # resume: ignore-begin
        setup()
        # resume: ignore-end
        @session.stage
        def a(data):
            pass
        session.finalize()
    ''')
    layout = PythonStageGrammar().parse(source)

    assert layout.ignored_lines == frozenset({2, 3, 4})
    assert NonResumableScanner().scan(layout) == []


def test_unclosed_ignore_region_runs_to_end():
    """Test an ignore-begin marker without its end marker."""
    grammar = PythonStageGrammar()
    lines = ["a = 1\n", "# resume: ignore-begin\n", "b = 2\n", "c = 3\n"]

    assert grammar.ignored_lines(lines) == frozenset({2, 3, 4})


def test_inert_statements():
    """Test declarations that are not live code."""
    source = textwrap.dedent('''\
        import sys
        from os import path
        session = ExecutionSession.open(settings=None)
        other: object = open_session()


        def helper():
            return 1


        class Config:
            value = 2


        pass
        "a bare string"
        @session.stage
        def only(data):
            pass
    ''')
    layout = PythonStageGrammar().parse(source)

    assert layout.live_lines == frozenset()


def test_custom_stage_names():
    """Test a grammar recognizing other stage and finalize names."""
    source = textwrap.dedent('''\
        @runner.step
        def a(data):
            pass
        work()
        runner.done()
    ''')
    grammar = PythonStageGrammar(stage_names=("step",), finalize_names=("done",))
    layout = grammar.parse(source)

    assert [(s.start, s.end) for s in layout.stages] == [(1, 3)]
    assert layout.finalize.start == 5
    assert [(b.lines, b.is_trailing) for b in NonResumableScanner().scan(layout)] == [((4,), True)]


def test_crlf_source_keeps_line_endings():
    """Test that parsing keeps the original line terminators."""
    layout = PythonStageGrammar().parse("x = 1\r\n@stage\r\ndef a(data):\r\n    pass\r\n")

    assert layout.newline == "\r\n"
    assert layout.lines[0] == "x = 1\r\n"
    assert layout.text_of(layout.stages[0]) == ["@stage", "def a(data):", "    pass"]


def test_invalid_source_raises_parse_error():
    """Test a script that is not valid Python."""
    with pytest.raises(ScriptParseError):
        PythonStageGrammar().parse("def broken(:\n")
