"""Tests for passive context propagation and system prompt building."""

import pytest

from subrelay.config import DEFAULT_PROMPT_TEMPLATE
from subrelay.core.translation import ContextPropagator, TranslatedUnit, build_system_prompt, context_tail


def translated(count: int, start: int = 1):
    return [
        TranslatedUnit(id=i, source_text=f"line {i}", translated_text=f"linha {i}")
        for i in range(start, start + count)
    ]


class TestContextPropagator:

    def test_starts_empty(self):
        assert ContextPropagator(3).current() == []

    def test_advance_keeps_tail(self):
        context = ContextPropagator(3)
        context.advance(translated(10))
        assert [unit.id for unit in context.current()] == [8, 9, 10]

    def test_short_output(self):
        context = ContextPropagator(3)
        context.advance(translated(2))
        assert [unit.id for unit in context.current()] == [1, 2]

    def test_advance_replaces_previous(self):
        context = ContextPropagator(3)
        context.advance(translated(5))
        context.advance(translated(4, start=6))
        assert [unit.id for unit in context.current()] == [7, 8, 9]

    def test_current_is_a_copy(self):
        context = ContextPropagator(3)
        context.advance(translated(3))
        context.current().clear()
        assert len(context.current()) == 3

    def test_seed_from_checkpoint(self):
        context = ContextPropagator(2)
        context.seed(translated(6))
        assert [unit.id for unit in context.current()] == [5, 6]

    def test_zero_size(self):
        context = ContextPropagator(0)
        context.advance(translated(5))
        assert context.current() == []
        assert context_tail(translated(5), 0) == []

    def test_negative_size_rejected(self):
        with pytest.raises(ValueError):
            ContextPropagator(-1)


class TestBuildSystemPrompt:

    def test_empty_glossary_removes_placeholder(self):
        prompt = build_system_prompt("Translate.{{glossary}} Done.")
        assert prompt == "Translate. Done."

    def test_glossary_terms_rendered(self):
        prompt = build_system_prompt(
            DEFAULT_PROMPT_TEMPLATE, glossary={"Night City": "Cidade Noturna"}
        )
        assert "{{glossary}}" not in prompt
        assert '"Night City" -> "Cidade Noturna"' in prompt

    def test_passive_context_block(self):
        prompt = build_system_prompt("Translate.", context_lines=translated(3))
        assert "PASSIVE CONTEXT" in prompt
        assert "DO NOT translate" in prompt
        assert "1. linha 1" in prompt
        assert "3. linha 3" in prompt

    def test_no_context_block_without_lines(self):
        prompt = build_system_prompt("Translate.")
        assert "PASSIVE CONTEXT" not in prompt
