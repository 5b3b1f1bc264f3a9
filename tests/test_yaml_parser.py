"""Tests for the YAML parser service."""

import pytest

from rasa_xref.services.yaml_parser import YamlParserService

from conftest import write_file


class TestParseContent:
    def test_valid_yaml(self, parser):
        result = parser.parse_content("intents:\n  - greet\n", "domain.yml")

        assert result.success
        assert result.ok
        assert result.data == {"intents": ["greet"]}

    def test_empty_document_succeeds_without_data(self, parser):
        result = parser.parse_content("", "empty.yml")

        assert result.success
        assert not result.ok
        assert result.data is None

    def test_syntax_error_has_position(self, parser):
        result = parser.parse_content("intents:\n  - greet\n bad: [\n", "domain.yml")

        assert not result.success
        assert "line" in result.error and "column" in result.error


class TestParseFile:
    @pytest.mark.asyncio
    async def test_reads_file(self, parser, tmp_path):
        path = write_file(tmp_path, "domain.yml", "intents:\n  - greet\n")
        result = await parser.parse_domain(str(path))

        assert result.success
        assert result.file_path == str(path)

    @pytest.mark.asyncio
    async def test_missing_file(self, parser, tmp_path):
        result = await parser.parse_file(str(tmp_path / "nope.yml"))
        assert not result.success
        assert result.error

    @pytest.mark.asyncio
    async def test_file_over_size_limit(self, tmp_path):
        path = write_file(tmp_path, "data/nlu.yml", "nlu: []\n" + "# padding\n" * 20)
        result = await YamlParserService(max_file_size=16).parse_nlu(str(path))

        assert not result.success
        assert "exceeds maximum allowed" in result.error


class TestValidateYaml:
    def test_clean_buffer(self, parser):
        assert parser.validate_yaml("stories: []\n") == []

    def test_zero_based_mark(self, parser):
        issues = parser.validate_yaml("a: 1\nb: [\n")

        assert len(issues) == 1
        assert issues[0].line is not None
        assert issues[0].line >= 1


class TestScalarTyping:
    def test_yes_no_on_off_stay_strings(self, parser):
        result = parser.parse_content("intents:\n  - yes\n  - no\n  - on\n  - off\n  - greet\n", "domain.yml")
        assert result.data == {"intents": ["yes", "no", "on", "off", "greet"]}

    def test_true_false_are_still_booleans(self, parser):
        result = parser.parse_content("slots:\n  city:\n    influence_conversation: false\n    x: True\n", "domain.yml")
        assert result.data["slots"]["city"] == {"influence_conversation": False, "x": True}

    def test_null_is_still_none(self, parser):
        result = parser.parse_content("steps:\n  - active_loop: null\n", "stories.yml")
        assert result.data == {"steps": [{"active_loop": None}]}
