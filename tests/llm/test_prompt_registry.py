"""Tests for prompt registry.

Tests the prompt loading, variable substitution, and caching mechanisms.
"""

import pytest

from examdesk.prompts.registry import (
    PROMPTS_DIR,
    clear_cache,
    get_prompt,
    list_prompts,
)


class TestGetPrompt:
    """Tests for get_prompt function."""

    def test_get_prompt_loads_file(self):
        prompt = get_prompt("evaluation/system")
        assert len(prompt) > 0
        assert prompt == prompt.strip()

    def test_get_prompt_substitutes_variables(self):
        """Variables {name} are replaced."""
        prompt = get_prompt("evaluation/user", student_name="Asha Patel")
        assert 'student_name: "Asha Patel"' in prompt
        assert "{student_name}" not in prompt

    def test_unknown_braces_left_alone(self):
        """Literal JSON in templates survives substitution."""
        prompt = get_prompt("generation/questions_user", subject="Physics")
        assert '"text": "Question text"' in prompt
        assert "{topic}" in prompt

    def test_get_prompt_missing_raises(self):
        with pytest.raises(FileNotFoundError):
            get_prompt("nonexistent/prompt")

    def test_bypass_cache_sees_file_changes(self, tmp_path, monkeypatch):
        (tmp_path / "custom").mkdir()
        template = tmp_path / "custom" / "hello.md"
        template.write_text("Hello {name}")
        monkeypatch.setattr("examdesk.prompts.registry.PROMPTS_DIR", tmp_path)
        clear_cache()

        assert get_prompt("custom/hello", name="Asha") == "Hello Asha"
        template.write_text("Hi {name}")
        assert get_prompt("custom/hello", name="Asha") == "Hello Asha"
        assert get_prompt("custom/hello", use_cache=False, name="Asha") == "Hi Asha"
        clear_cache()


class TestListPrompts:
    def test_list_prompts_returns_all(self):
        prompts = list_prompts()
        assert prompts == sorted(prompts)
        for key in (
            "analysis/paper_system",
            "analysis/report_system",
            "analysis/report_user",
            "evaluation/ocr_instruction",
            "evaluation/ocr_system",
            "evaluation/system",
            "evaluation/user",
            "generation/questions_system",
            "generation/questions_user",
        ):
            assert key in prompts

    def test_prompts_dir_exists(self):
        assert PROMPTS_DIR.is_dir()
