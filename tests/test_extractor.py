"""Tests for the usage extractor."""

import pytest
import yaml

from rasa_xref.validators.extractor import (
    UsageExtractor,
    classify_action,
    extract_flow_usages,
    extract_nlu_usages,
    iter_step_usages,
)
from rasa_xref.validators.models import ReferenceKind, UsageIndex, UsageOrigin

from conftest import NLU_YML, RULES_YML, STORIES_YML, write_file


def test_classify_action_by_prefix():
    assert classify_action("utter_greet", "utter_") == ReferenceKind.RESPONSE
    assert classify_action("action_check_weather", "utter_") == ReferenceKind.ACTION


class TestStepGrammar:
    def test_basic_steps(self):
        steps = yaml.safe_load(STORIES_YML)["stories"][0]["steps"]
        usages = list(iter_step_usages(steps, "utter_"))

        assert usages == [
            (ReferenceKind.INTENT, "greet"),
            (ReferenceKind.RESPONSE, "utter_greet"),
            (ReferenceKind.INTENT, "ask_weather"),
            (ReferenceKind.ACTION, "weather_form"),
            (ReferenceKind.FORM, "weather_form"),
            (ReferenceKind.SLOT, "city"),
            (ReferenceKind.ACTION, "action_check_weather"),
        ]

    def test_null_active_loop_is_not_a_usage(self):
        usages = list(iter_step_usages([{"active_loop": None}], "utter_"))
        assert usages == []

    def test_slot_was_set_encodings(self):
        steps = [
            {"slot_was_set": {"city": "Paris"}},
            {"slot_was_set": [{"date": None}, "requested_slot"]},
        ]
        usages = list(iter_step_usages(steps, "utter_"))

        assert usages == [
            (ReferenceKind.SLOT, "city"),
            (ReferenceKind.SLOT, "date"),
            (ReferenceKind.SLOT, "requested_slot"),
        ]

    def test_or_block_is_walked(self):
        steps = [{"or": [{"intent": "affirm"}, {"intent": "thankyou"}]}, {"action": "utter_welcome"}]
        usages = list(iter_step_usages(steps, "utter_"))

        assert usages == [
            (ReferenceKind.INTENT, "affirm"),
            (ReferenceKind.INTENT, "thankyou"),
            (ReferenceKind.RESPONSE, "utter_welcome"),
        ]

    def test_malformed_steps_are_skipped(self):
        steps = ["intent: greet", None, {"intent": True}, {"action": ""}, {"active_loop": False}]
        assert list(iter_step_usages(steps, "utter_")) == []
        assert list(iter_step_usages({"intent": "greet"}, "utter_")) == []


class TestDocumentExtraction:
    def test_nlu_intents_only(self):
        index = UsageIndex()
        count = extract_nlu_usages(index, "data/nlu.yml", yaml.safe_load(NLU_YML))

        assert count == 3
        assert index.nlu_intents() == {"greet", "goodbye", "ask_weather"}
        assert index.flow_intents() == set()

    def test_rule_condition_is_walked(self):
        document = {
            "rules": [{
                "rule": "submit form",
                "condition": [{"active_loop": "weather_form"}],
                "steps": [{"action": "weather_form"}, {"active_loop": None}],
            }]
        }
        index = UsageIndex()
        extract_flow_usages(index, UsageOrigin.RULE, "data/rules.yml", document, "utter_")

        assert index.flow_forms() == {"weather_form"}
        assert index.flow_actions() == {"weather_form"}

    def test_story_and_rule_usage_stay_separate(self):
        index = UsageIndex()
        extract_flow_usages(index, UsageOrigin.STORY, "data/stories.yml", yaml.safe_load(STORIES_YML), "utter_")
        extract_flow_usages(index, UsageOrigin.RULE, "data/rules.yml", yaml.safe_load(RULES_YML), "utter_")

        assert index.names(ReferenceKind.INTENT, (UsageOrigin.RULE,)) == ["goodbye"]
        assert "goodbye" not in index.names(ReferenceKind.INTENT, (UsageOrigin.STORY,))
        assert index.flow_intents() == {"greet", "ask_weather", "goodbye"}
        assert index.sources(ReferenceKind.RESPONSE, "utter_goodbye") == ["data/rules.yml"]

    def test_custom_response_prefix(self):
        index = UsageIndex()
        document = {"stories": [{"steps": [{"action": "say_hello"}, {"action": "utter_greet"}]}]}
        extract_flow_usages(index, UsageOrigin.STORY, "s.yml", document, "say_")

        assert index.flow_responses() == {"say_hello"}
        assert index.flow_actions() == {"utter_greet"}


class TestUsageExtractor:
    @pytest.mark.asyncio
    async def test_extract_from_files(self, rasa_project):
        extractor = UsageExtractor(response_prefix="utter_")
        index, failures = await extractor.extract(
            [str(rasa_project / "data/nlu.yml")],
            [str(rasa_project / "data/stories.yml")],
            [str(rasa_project / "data/rules.yml")],
        )

        assert failures == []
        assert index.nlu_intents() == {"greet", "goodbye", "ask_weather"}
        assert index.flow_responses() == {"utter_greet", "utter_goodbye"}
        assert index.sources(ReferenceKind.INTENT, "greet", (UsageOrigin.NLU,)) == [str(rasa_project / "data/nlu.yml")]

    @pytest.mark.asyncio
    async def test_broken_file_contributes_nothing(self, rasa_project):
        broken = write_file(rasa_project, "data/stories_broken.yml", "stories:\n  - story: x\n    steps: [\n")

        index, failures = await UsageExtractor().extract(
            [],
            [str(broken), str(rasa_project / "data/stories.yml")],
            [],
        )

        assert [f.file_path for f in failures] == [str(broken)]
        assert "greet" in index.flow_intents()


class TestScalarNames:
    @pytest.mark.asyncio
    async def test_yes_intent_in_nlu_and_stories(self, tmp_path):
        nlu = write_file(tmp_path, "data/nlu.yml", "nlu:\n  - intent: yes\n    examples: |\n      - yep\n")
        stories = write_file(tmp_path, "data/stories.yml", "stories:\n  - story: s\n    steps:\n      - intent: no\n      - slot_was_set:\n          - off: true\n")

        index, failures = await UsageExtractor(response_prefix="utter_").extract([str(nlu)], [str(stories)], [])

        assert failures == []
        assert index.nlu_intents() == {"yes"}
        assert index.flow_intents() == {"no"}
        assert index.flow_slots() == {"off"}
