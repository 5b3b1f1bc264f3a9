"""Tests for the detection rules and the validation engine."""

import pytest

from rasa_xref.validators.aggregator import build_catalog
from rasa_xref.validators.base import BaseRule
from rasa_xref.validators.engine import ValidationEngine
from rasa_xref.validators.extractor import extract_flow_usages, extract_nlu_usages
from rasa_xref.validators.models import (
    IssueKind,
    RuleCode,
    Severity,
    UsageIndex,
    UsageOrigin,
    ValidationReport,
)
from rasa_xref.validators.reference_data import BUILTIN_ACTIONS
from rasa_xref.validators.unused_definition_validator import UnusedSlotRule


def _usages(nlu=None, stories=None, rules=None) -> UsageIndex:
    index = UsageIndex()
    if nlu is not None:
        extract_nlu_usages(index, "data/nlu.yml", {"nlu": nlu})
    if stories is not None:
        extract_flow_usages(index, UsageOrigin.STORY, "data/stories.yml", {"stories": [{"steps": stories}]}, "utter_")
    if rules is not None:
        extract_flow_usages(index, UsageOrigin.RULE, "data/rules.yml", {"rules": [{"steps": rules}]}, "utter_")
    return index


def _evaluate(domain: dict, usages: UsageIndex):
    catalog = build_catalog([("domain.yml", domain)])
    return ValidationEngine().evaluate(catalog, usages)


def _kinds(issues):
    return [(issue.kind, issue.subject_name) for issue in issues]


class TestScenarios:
    def test_intent_used_in_flow_without_training_data(self):
        issues = _evaluate(
            {"intents": ["greet", "goodbye"]},
            _usages(
                nlu=[{"intent": "greet", "examples": "- hi"}],
                stories=[{"intent": "greet"}, {"intent": "goodbye"}],
            ),
        )

        assert [i for i in issues if i.kind == IssueKind.UNDEFINED_INTENT] == []
        assert _kinds(issues) == [("unused-intent", "goodbye")]
        assert issues[0].code == RuleCode.INTENT_NO_TRAINING_DATA
        assert issues[0].severity == Severity.WARNING

    def test_undeclared_intent_in_story(self):
        issues = _evaluate({"intents": []}, _usages(stories=[{"intent": "book_flight"}]))

        assert _kinds(issues) == [("undefined-intent", "book_flight")]
        assert issues[0].severity == Severity.ERROR
        assert issues[0].evidence_files == ["data/stories.yml"]

    def test_response_never_used(self):
        issues = _evaluate({"responses": {"utter_thanks": [{"text": "Thanks"}]}}, _usages(stories=[]))

        assert _kinds(issues) == [("unused-response", "utter_thanks")]
        assert issues[0].severity == Severity.INFO
        assert issues[0].evidence_files == ["domain.yml"]

    def test_builtin_action_is_always_valid(self):
        issues = _evaluate({}, _usages(rules=[{"action": "action_listen"}]))
        assert issues == []


class TestUndefinedRules:
    @pytest.mark.parametrize("action", sorted(BUILTIN_ACTIONS))
    def test_every_builtin_is_exempt(self, action):
        assert _evaluate({}, _usages(stories=[{"action": action}])) == []

    def test_undefined_response_and_action(self):
        issues = _evaluate({}, _usages(stories=[{"action": "utter_missing"}, {"action": "action_missing"}]))

        assert _kinds(issues) == [
            ("undefined-response", "utter_missing"),
            ("undefined-action", "action_missing"),
        ]
        assert [i.code for i in issues] == [RuleCode.ACTION_UNDEFINED, RuleCode.ACTION_UNDEFINED]

    def test_response_prefixed_action_is_not_checked_against_actions(self):
        # Declared as a custom action, not as a response
        issues = _evaluate({"actions": ["utter_custom"]}, _usages(stories=[{"action": "utter_custom"}]))
        assert _kinds(issues) == [("undefined-response", "utter_custom")]

    def test_form_name_is_a_valid_action(self):
        domain = {"forms": {"weather_form": {"required_slots": []}}}
        issues = _evaluate(domain, _usages(stories=[{"action": "weather_form"}, {"active_loop": "weather_form"}]))
        assert issues == []

    def test_undefined_slot_and_form(self):
        issues = _evaluate(
            {},
            _usages(rules=[{"slot_was_set": [{"city": "Paris"}]}, {"active_loop": "booking_form"}, {"active_loop": None}]),
        )

        assert _kinds(issues) == [("undefined-slot", "city"), ("undefined-form", "booking_form")]

    def test_nlu_only_intent_is_checked(self):
        issues = _evaluate({}, _usages(nlu=[{"intent": "chitchat", "examples": "- hey"}]))
        assert _kinds(issues) == [("undefined-intent", "chitchat")]
        assert issues[0].evidence_files == ["data/nlu.yml"]

    def test_custom_allowlist(self):
        catalog = build_catalog([])
        usages = _usages(stories=[{"action": "action_external"}])

        assert ValidationEngine(allowlist=frozenset({"action_external"})).evaluate(catalog, usages) == []
        assert len(ValidationEngine().evaluate(catalog, usages, frozenset())) == 1


class TestUnusedRules:
    def test_dead_intent_fires_both_rules(self):
        issues = _evaluate({"intents": ["orphan"]}, _usages())

        assert _kinds(issues) == [("unused-intent", "orphan"), ("unused-intent", "orphan")]
        assert [i.code for i in issues] == [RuleCode.INTENT_NO_TRAINING_DATA, RuleCode.INTENT_DEAD_DEFINITION]

    def test_response_used_as_plain_action(self):
        # A response without the prefix is still run by an action step
        issues = _evaluate({"responses": {"say_hi": [{"text": "hi"}]}}, _usages(stories=[{"action": "say_hi"}]))
        assert [i for i in issues if i.kind == IssueKind.UNUSED_RESPONSE] == []

    def test_unused_slot(self):
        issues = _evaluate({"slots": {"city": {"type": "text"}, "date": {"type": "text"}}},
                           _usages(stories=[{"slot_was_set": [{"city": "Paris"}]}]))
        assert _kinds(issues) == [("unused-slot", "date")]

    def test_slot_filled_only_by_form_is_still_unused(self):
        domain = {"slots": {"city": {"type": "text"}}, "forms": {"weather_form": {"required_slots": ["city"]}}}
        catalog = build_catalog([("domain.yml", domain)])
        assert len(UnusedSlotRule().evaluate(catalog, _usages(), BUILTIN_ACTIONS)) == 1

    def test_entities_are_never_reported(self):
        assert _evaluate({"entities": ["city"]}, _usages()) == []

    def test_defining_then_using_clears_issue(self):
        domain = {"intents": ["greet"], "responses": {"utter_greet": [{"text": "hi"}]}}
        before = _evaluate(domain, _usages())
        after = _evaluate(domain, _usages(
            nlu=[{"intent": "greet", "examples": "- hi"}],
            stories=[{"intent": "greet"}, {"action": "utter_greet"}],
        ))

        assert {i.subject_name for i in before} == {"greet", "utter_greet"}
        assert after == []


class _ExplodingRule(BaseRule):
    @property
    def name(self) -> str:
        return "ExplodingRule"

    @property
    def code(self) -> RuleCode:
        return RuleCode.ENTITY_UNUSED

    def evaluate(self, catalog, usages, allowlist):
        raise RuntimeError("boom")


class TestValidationEngine:
    def test_failing_rule_does_not_stop_others(self):
        engine = ValidationEngine()
        engine.rules.insert(0, _ExplodingRule())

        issues = engine.evaluate(build_catalog([]), _usages(stories=[{"intent": "book_flight"}]))
        assert _kinds(issues) == [("undefined-intent", "book_flight")]

    def test_add_and_remove_rule(self):
        engine = ValidationEngine(rules=[])
        engine.add_rule(_ExplodingRule())
        assert [r.name for r in engine.rules] == ["ExplodingRule"]

        engine.remove_rule("ExplodingRule")
        assert engine.rules == []

    def test_default_rule_order(self):
        names = [r.name for r in ValidationEngine().rules]
        assert names == [
            "UndefinedIntentRule",
            "UndefinedActionRule",
            "UndefinedSlotRule",
            "UndefinedFormRule",
            "IntentWithoutTrainingDataRule",
            "DeadIntentRule",
            "UnusedResponseRule",
            "UnusedSlotRule",
            "UnusedEntityRule",
        ]

    def test_same_input_same_output(self):
        domain = {"intents": ["a", "b"], "slots": {"s": {}}}
        usages = _usages(stories=[{"intent": "c"}, {"action": "utter_x"}])
        assert _evaluate(domain, usages) == _evaluate(domain, usages)


class TestValidationReport:
    def test_build_sorts_by_severity_and_counts(self):
        issues = _evaluate(
            {"intents": ["orphan"], "responses": {"utter_unused": []}},
            _usages(stories=[{"intent": "book_flight"}]),
        )
        report = ValidationReport.build(issues, generation=3)

        assert [i.severity for i in report.issues] == ["error", "warning", "warning", "info"]
        assert report.summary == {"error": 1, "warning": 2, "info": 1}
        assert report.generation == 3
