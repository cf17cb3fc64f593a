"""System prompt construction for batch requests."""

from typing import Dict, Optional, Sequence

from .models import TranslatedUnit

GLOSSARY_PLACEHOLDER = "{{glossary}}"


def render_glossary(glossary: Optional[Dict[str, str]]) -> str:
    """Render glossary terms for the prompt; empty string without terms."""
    if not glossary:
        return ""
    lines = ["", "", "Glossary (preserve these terms exactly as specified):"]
    for term, translation in sorted(glossary.items()):
        lines.append(f'- "{term}" -> "{translation}"')
    return "\n".join(lines) + "\n"


def render_passive_context(context_lines: Sequence[TranslatedUnit]) -> str:
    """Render prior output as a read-only block the backend must not translate."""
    if not context_lines:
        return ""
    parts = [
        "",
        "",
        "---",
        "PASSIVE CONTEXT (Previous lines for reference - DO NOT translate these):",
    ]
    for position, line in enumerate(context_lines, start=1):
        parts.append(f"{position}. {line.translated_text}")
    parts.append("---")
    return "\n".join(parts) + "\n"


def build_system_prompt(
    template: str,
    glossary: Optional[Dict[str, str]] = None,
    context_lines: Sequence[TranslatedUnit] = (),
) -> str:
    """Build the system prompt for one backend call.

    Args:
        template: Prompt template containing the glossary placeholder
        glossary: Term -> required translation
        context_lines: Passive context for the window

    Returns:
        Prompt with the glossary substituted and the context block appended
    """
    prompt = template.replace(GLOSSARY_PLACEHOLDER, render_glossary(glossary), 1)
    return prompt + render_passive_context(context_lines)
