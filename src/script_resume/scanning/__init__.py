"""Scanning module for code that runs outside stages.

This module provides:
- Pluggable stage grammars
- The non-resumable code scanner
- The script rewriter and the operator review that drives it
"""

from .grammar import IGNORE_BEGIN, IGNORE_END, PythonStageGrammar, StageGrammar
from .remediation import NonResumableCodeReview
from .rewriter import ScriptRewriter
from .scanner import NonResumableScanner, scan_source

__all__ = [
    "StageGrammar",
    "PythonStageGrammar",
    "IGNORE_BEGIN",
    "IGNORE_END",
    "NonResumableScanner",
    "scan_source",
    "ScriptRewriter",
    "NonResumableCodeReview",
]
