"""Text helpers for log previews and lint reports."""

import re

# Break points considered when shortening text, including CJK punctuation
_BREAK_CHARS = frozenset(" \n\t,.!?;:-。，、")
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_SUBTITLE_BREAKS = re.compile(r"\\[Nn]")


def safe_truncate(text: str, max_chars: int, suffix: str = "...") -> str:
    """Truncate text to ``max_chars`` characters plus ``suffix``.

    Prefers to cut at a nearby word boundary (looking back at most 20
    characters) so previews stay readable.

    Args:
        text: Text to truncate
        max_chars: Maximum characters kept (excluding suffix)
        suffix: Suffix appended when truncated

    Returns:
        The original text when short enough, otherwise the truncated text
    """
    if not text or len(text) <= max_chars:
        return text

    truncated = text[:max_chars]
    for back in range(1, min(20, max_chars - 1) + 1):
        if truncated[-back] in _BREAK_CHARS:
            candidate = truncated[:len(truncated) - back + 1].rstrip()
            if candidate:
                truncated = candidate
            break

    return truncated + suffix


def preview(text: str, max_chars: int = 50) -> str:
    """Single-line, control-character free preview of a subtitle line."""
    if not text:
        return ""
    text = _CONTROL_CHARS.sub("", text)
    text = _SUBTITLE_BREAKS.sub(" ", text)
    text = re.sub(r"\s+", " ", text).strip()
    return safe_truncate(text, max_chars)
