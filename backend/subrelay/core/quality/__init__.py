"""Quality checks for translated subtitle lines."""

from .linter import LintIssue, LintResult, SubtitleLinter

__all__ = ["LintIssue", "LintResult", "SubtitleLinter"]
