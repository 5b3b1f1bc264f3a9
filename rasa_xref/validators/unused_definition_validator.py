"""Unused definition rules — components declared in the domain but never used.

Issues carry the declaring files as evidence and surface in those files.
"""

from rasa_xref.validators.base import BaseRule
from rasa_xref.validators.models import (
    Issue,
    IssueKind,
    ProjectCatalog,
    RuleCode,
    Severity,
    UsageIndex,
)


class IntentWithoutTrainingDataRule(BaseRule):
    """Intents with no NLU examples, whether or not a story uses them."""

    @property
    def name(self) -> str:
        return "IntentWithoutTrainingDataRule"

    @property
    def code(self) -> RuleCode:
        return RuleCode.INTENT_NO_TRAINING_DATA

    def evaluate(self, catalog: ProjectCatalog, usages: UsageIndex, allowlist: frozenset[str]) -> list[Issue]:
        issues = []
        trained = usages.nlu_intents()

        for intent, item in catalog.intents.items():
            if intent in trained:
                continue
            issues.append(self._issue(
                kind=IssueKind.UNUSED_INTENT,
                severity=Severity.WARNING,
                subject_name=intent,
                message=f"Intent '{intent}' is defined in domain but has no training examples in NLU data",
                evidence_files=item.declaring_files,
            ))

        return issues


class DeadIntentRule(BaseRule):
    """Intents used nowhere at all: no NLU examples and no flow step.

    Always fires together with IntentWithoutTrainingDataRule for the same
    name. The two point at different authoring mistakes.
    """

    @property
    def name(self) -> str:
        return "DeadIntentRule"

    @property
    def code(self) -> RuleCode:
        return RuleCode.INTENT_DEAD_DEFINITION

    def evaluate(self, catalog: ProjectCatalog, usages: UsageIndex, allowlist: frozenset[str]) -> list[Issue]:
        issues = []
        used = usages.nlu_intents() | usages.flow_intents()

        for intent, item in catalog.intents.items():
            if intent in used:
                continue
            issues.append(self._issue(
                kind=IssueKind.UNUSED_INTENT,
                severity=Severity.WARNING,
                subject_name=intent,
                message=f"Intent '{intent}' is defined in domain but not used in NLU data or stories/rules",
                evidence_files=item.declaring_files,
            ))

        return issues


class UnusedResponseRule(BaseRule):
    """Responses never run by an action step."""

    @property
    def name(self) -> str:
        return "UnusedResponseRule"

    @property
    def code(self) -> RuleCode:
        return RuleCode.RESPONSE_UNUSED

    def evaluate(self, catalog: ProjectCatalog, usages: UsageIndex, allowlist: frozenset[str]) -> list[Issue]:
        issues = []
        # A response without the prefix is still run by name from an action step
        referenced = usages.flow_responses() | usages.flow_actions()

        for response, item in catalog.responses.items():
            if response in referenced:
                continue
            issues.append(self._issue(
                kind=IssueKind.UNUSED_RESPONSE,
                severity=Severity.INFO,
                subject_name=response,
                message=f"Response '{response}' is defined in domain but never used in stories/rules",
                evidence_files=item.declaring_files,
            ))

        return issues


class UnusedSlotRule(BaseRule):
    """Slots never checked by slot_was_set in a story or rule."""

    @property
    def name(self) -> str:
        return "UnusedSlotRule"

    @property
    def code(self) -> RuleCode:
        return RuleCode.SLOT_UNUSED

    def evaluate(self, catalog: ProjectCatalog, usages: UsageIndex, allowlist: frozenset[str]) -> list[Issue]:
        issues = []
        referenced = usages.flow_slots()

        for slot, item in catalog.slots.items():
            if slot in referenced or self._slot_used_in_forms(slot, catalog):
                continue
            issues.append(self._issue(
                kind=IssueKind.UNUSED_SLOT,
                severity=Severity.INFO,
                subject_name=slot,
                message=f"Slot '{slot}' is defined in domain but never referenced in stories/rules or forms",
                evidence_files=item.declaring_files,
            ))

        return issues

    def _slot_used_in_forms(self, slot: str, catalog: ProjectCatalog) -> bool:
        # Form required_slots are not collected into the catalog yet, so a
        # slot filled only by a form is still reported as unused.
        return False


class UnusedEntityRule(BaseRule):
    """Entities declared but never used.

    Entity usage lives in annotated NLU examples and slot mappings, neither of
    which is parsed, so this rule reports nothing.
    """

    @property
    def name(self) -> str:
        return "UnusedEntityRule"

    @property
    def code(self) -> RuleCode:
        return RuleCode.ENTITY_UNUSED

    def evaluate(self, catalog: ProjectCatalog, usages: UsageIndex, allowlist: frozenset[str]) -> list[Issue]:
        return []
