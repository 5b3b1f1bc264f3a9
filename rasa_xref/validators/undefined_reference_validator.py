"""Undefined reference rules — names used in NLU, stories or rules but never declared.

Issues carry the usage source files as evidence. Where they surface is the
router's decision (every flow file), since occurrences are not tracked.
"""

from rasa_xref.validators.base import BaseRule
from rasa_xref.validators.models import (
    ComponentKind,
    Issue,
    IssueKind,
    ProjectCatalog,
    ReferenceKind,
    RuleCode,
    Severity,
    UsageIndex,
    UsageOrigin,
)

ALL_ORIGINS = (UsageOrigin.NLU, UsageOrigin.STORY, UsageOrigin.RULE)


class UndefinedIntentRule(BaseRule):
    """Intents named by a training example or a flow step but missing from the domain."""

    @property
    def name(self) -> str:
        return "UndefinedIntentRule"

    @property
    def code(self) -> RuleCode:
        return RuleCode.INTENT_UNDEFINED

    def evaluate(self, catalog: ProjectCatalog, usages: UsageIndex, allowlist: frozenset[str]) -> list[Issue]:
        issues = []
        for intent in usages.names(ReferenceKind.INTENT, ALL_ORIGINS):
            if catalog.has(ComponentKind.INTENT, intent):
                continue
            issues.append(self._issue(
                kind=IssueKind.UNDEFINED_INTENT,
                severity=Severity.ERROR,
                subject_name=intent,
                message=f"Intent '{intent}' is referenced in NLU data or stories/rules but not defined in domain",
                evidence_files=usages.sources(ReferenceKind.INTENT, intent, ALL_ORIGINS),
            ))
        return issues


class UndefinedActionRule(BaseRule):
    """Actions named by flow steps that resolve to nothing.

    Response actions (``utter_*``) must exist under ``responses``. Every other
    action must be a declared action or a form, since running a form through
    an action step activates it. Built-in actions are always valid.
    """

    @property
    def name(self) -> str:
        return "UndefinedActionRule"

    @property
    def code(self) -> RuleCode:
        return RuleCode.ACTION_UNDEFINED

    def evaluate(self, catalog: ProjectCatalog, usages: UsageIndex, allowlist: frozenset[str]) -> list[Issue]:
        issues = []

        for response in usages.names(ReferenceKind.RESPONSE):
            if response in allowlist or catalog.has(ComponentKind.RESPONSE, response):
                continue
            issues.append(self._issue(
                kind=IssueKind.UNDEFINED_RESPONSE,
                severity=Severity.ERROR,
                subject_name=response,
                message=f"Response action '{response}' is referenced in stories/rules but not defined in domain responses",
                evidence_files=usages.sources(ReferenceKind.RESPONSE, response),
            ))

        for action in usages.names(ReferenceKind.ACTION):
            if action in allowlist:
                continue
            if catalog.has(ComponentKind.ACTION, action) or catalog.has(ComponentKind.FORM, action):
                continue
            issues.append(self._issue(
                kind=IssueKind.UNDEFINED_ACTION,
                severity=Severity.ERROR,
                subject_name=action,
                message=f"Action '{action}' is referenced in stories/rules but not defined in domain actions or forms",
                evidence_files=usages.sources(ReferenceKind.ACTION, action),
            ))

        return issues


class UndefinedSlotRule(BaseRule):
    """Slots checked with slot_was_set but missing from the domain."""

    @property
    def name(self) -> str:
        return "UndefinedSlotRule"

    @property
    def code(self) -> RuleCode:
        return RuleCode.SLOT_UNDEFINED

    def evaluate(self, catalog: ProjectCatalog, usages: UsageIndex, allowlist: frozenset[str]) -> list[Issue]:
        issues = []
        for slot in usages.names(ReferenceKind.SLOT):
            if catalog.has(ComponentKind.SLOT, slot):
                continue
            issues.append(self._issue(
                kind=IssueKind.UNDEFINED_SLOT,
                severity=Severity.ERROR,
                subject_name=slot,
                message=f"Slot '{slot}' is referenced in stories/rules but not defined in domain",
                evidence_files=usages.sources(ReferenceKind.SLOT, slot),
            ))
        return issues


class UndefinedFormRule(BaseRule):
    """Forms activated with active_loop but missing from the domain."""

    @property
    def name(self) -> str:
        return "UndefinedFormRule"

    @property
    def code(self) -> RuleCode:
        return RuleCode.FORM_UNDEFINED

    def evaluate(self, catalog: ProjectCatalog, usages: UsageIndex, allowlist: frozenset[str]) -> list[Issue]:
        issues = []
        for form in usages.names(ReferenceKind.FORM):
            if catalog.has(ComponentKind.FORM, form):
                continue
            issues.append(self._issue(
                kind=IssueKind.UNDEFINED_FORM,
                severity=Severity.ERROR,
                subject_name=form,
                message=f"Form '{form}' is referenced in stories/rules (active_loop) but not defined in domain",
                evidence_files=usages.sources(ReferenceKind.FORM, form),
            ))
        return issues
