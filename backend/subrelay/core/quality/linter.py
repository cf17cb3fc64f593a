"""Subtitle quality linter.

Runs cheap structural checks over translated lines. HIGH severity issues
make the batch scheduler re-run a window once; lower severities are only
reported.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from subrelay.models.database.enums import Severity
from subrelay.utils.text import preview

# Issue types
BROKEN_ASS_TAGS = "Broken ASS Tags"
BRACKET_MISMATCH = "Bracket Mismatch"
ENGLISH_RESIDUAL = "English Residual"
EXCESSIVE_PUNCTUATION = "Excessive Punctuation"
GLOSSARY_MISMATCH = "Glossary Mismatch"

CONTENT_PREVIEW_CHARS = 50

_OPEN_TO_CLOSE = {"(": ")", "[": "]", "{": "}"}
_CLOSERS = frozenset(_OPEN_TO_CLOSE.values())

_UNCLOSED_TAG = re.compile(r"\{[^}]*$")
_REPEATED_PUNCTUATION = re.compile(r"([!?.])[!?.]{2,}")
_ENGLISH_WORDS = (
    "the", "is", "are", "was", "were", "have", "has", "had",
    "hello", "goodbye", "yes", "no", "what", "where", "when",
)
_ENGLISH_PATTERNS = [(word, re.compile(rf"\b{word}\b")) for word in _ENGLISH_WORDS]


@dataclass
class LintIssue:
    """A single problem found on a line."""

    line_number: int  # 1-based position in the checked lines
    severity: Severity
    issue_type: str
    content: str
    suggestion: str
    auto_fixable: bool = False


@dataclass
class LintResult:
    """Outcome of a lint pass."""

    issues: List[LintIssue] = field(default_factory=list)
    passed: bool = True

    @property
    def high_severity(self) -> List[LintIssue]:
        return [issue for issue in self.issues if issue.severity == Severity.HIGH]


class SubtitleLinter:
    """Checks translated subtitle lines.

    Glossary mismatches are reported as warnings and never fail the pass.
    """

    def __init__(
        self,
        source_language: Optional[str] = None,
        target_language: Optional[str] = None,
        glossary: Optional[Dict[str, str]] = None,
    ):
        self.source_language = source_language
        self.target_language = target_language
        self.glossary = dict(glossary or {})

    @property
    def checks_residue(self) -> bool:
        source = (self.source_language or "").lower()
        target = (self.target_language or "").lower()
        return bool(source) and source != target and not target.startswith("en")

    def check(self, lines: Sequence[str]) -> LintResult:
        """Run all checks over ``lines``."""
        result = LintResult()

        for number, line in enumerate(lines, start=1):
            failing = [
                check_ass_tags(number, line),
                check_brackets(number, line),
                check_punctuation(number, line),
            ]
            if self.checks_residue:
                failing.append(check_source_residue(number, line))

            for issue in failing:
                if issue is not None:
                    result.issues.append(issue)
                    result.passed = False

            if self.glossary:
                warning = check_glossary_mismatch(number, line, self.glossary)
                if warning is not None:
                    result.issues.append(warning)

        return result

    def auto_fix(self, lines: Sequence[str], issues: Sequence[LintIssue]) -> List[str]:
        """Apply fixes for every auto-fixable issue; returns a new list."""
        fixed = list(lines)
        for issue in issues:
            if not issue.auto_fixable:
                continue
            index = issue.line_number - 1
            if not 0 <= index < len(fixed):
                continue
            fixer = _FIXERS.get(issue.issue_type)
            if fixer:
                fixed[index] = fixer(fixed[index])
        return fixed


def _issue(number: int, severity: Severity, issue_type: str, text: str,
           suggestion: str, auto_fixable: bool) -> LintIssue:
    return LintIssue(
        line_number=number,
        severity=severity,
        issue_type=issue_type,
        content=preview(text, CONTENT_PREVIEW_CHARS),
        suggestion=suggestion,
        auto_fixable=auto_fixable,
    )


def check_ass_tags(number: int, text: str) -> Optional[LintIssue]:
    """An override tag opened with ``{`` and never closed."""
    if _UNCLOSED_TAG.search(text):
        return _issue(number, Severity.HIGH, BROKEN_ASS_TAGS, text,
                      "Add closing '}' to ASS tags", True)
    return None


def check_brackets(number: int, text: str) -> Optional[LintIssue]:
    stack: List[str] = []
    for char in text:
        if char in _OPEN_TO_CLOSE:
            stack.append(_OPEN_TO_CLOSE[char])
        elif char in _CLOSERS:
            if not stack or stack[-1] != char:
                return _issue(number, Severity.MEDIUM, BRACKET_MISMATCH, text,
                              f"Mismatched bracket: {char}", True)
            stack.pop()

    if stack:
        return _issue(number, Severity.MEDIUM, BRACKET_MISMATCH, text,
                      "Unclosed brackets detected", True)
    return None


def check_source_residue(number: int, text: str) -> Optional[LintIssue]:
    """Common English words left in a non-English translation."""
    lowered = text.lower()
    for word, pattern in _ENGLISH_PATTERNS:
        if pattern.search(lowered):
            return _issue(number, Severity.MEDIUM, ENGLISH_RESIDUAL, text,
                          f"English word detected: '{word}'", False)
    return None


def check_punctuation(number: int, text: str) -> Optional[LintIssue]:
    if _REPEATED_PUNCTUATION.search(text):
        return _issue(number, Severity.LOW, EXCESSIVE_PUNCTUATION, text,
                      "Reduce repeated punctuation", True)
    return None


def check_glossary_mismatch(
    number: int, text: str, glossary: Dict[str, str]
) -> Optional[LintIssue]:
    """A glossary term left untranslated while its translation is missing."""
    lowered = text.lower()
    for term, expected in glossary.items():
        if term.lower() in lowered and expected.lower() not in lowered:
            return _issue(number, Severity.LOW, GLOSSARY_MISMATCH, text,
                          f"Expected '{term}' to be translated as '{expected}'", False)
    return None


def fix_ass_tags(text: str) -> str:
    return _UNCLOSED_TAG.sub(lambda match: match.group(0) + "}", text)


def fix_brackets(text: str) -> str:
    """Drop closing brackets without an opener and openers never closed."""
    kept: List[Optional[str]] = []
    open_positions: List[int] = []
    for char in text:
        if char in _OPEN_TO_CLOSE:
            open_positions.append(len(kept))
            kept.append(char)
        elif char in _CLOSERS:
            if open_positions and _OPEN_TO_CLOSE[kept[open_positions[-1]]] == char:
                open_positions.pop()
                kept.append(char)
        else:
            kept.append(char)

    for position in open_positions:
        kept[position] = None
    return "".join(char for char in kept if char is not None)


def fix_punctuation(text: str) -> str:
    """Collapse runs of three or more ``!?.`` to two of the first mark."""
    return _REPEATED_PUNCTUATION.sub(lambda match: match.group(1) * 2, text)


_FIXERS = {
    BROKEN_ASS_TAGS: fix_ass_tags,
    BRACKET_MISMATCH: fix_brackets,
    EXCESSIVE_PUNCTUATION: fix_punctuation,
}
