"""Validation Engine — runs every detection rule over one catalog and usage index.

Usage:
    engine = ValidationEngine()
    issues = engine.evaluate(catalog, usages)
"""

import time
from typing import Optional

import structlog

from rasa_xref.validators.base import BaseRule
from rasa_xref.validators.models import Issue, ProjectCatalog, UsageIndex
from rasa_xref.validators.reference_data import BUILTIN_ACTIONS

# Import all rules
from rasa_xref.validators.undefined_reference_validator import (
    UndefinedActionRule,
    UndefinedFormRule,
    UndefinedIntentRule,
    UndefinedSlotRule,
)
from rasa_xref.validators.unused_definition_validator import (
    DeadIntentRule,
    IntentWithoutTrainingDataRule,
    UnusedEntityRule,
    UnusedResponseRule,
    UnusedSlotRule,
)

logger = structlog.get_logger()


class ValidationEngine:
    """Evaluates the detection rules in order and concatenates their issues.

    Design principles:
        - Deterministic: same catalog and usages → same issues, same order
        - Isolated: a rule that raises contributes nothing; the rest still run
        - Extensible: add rules without modifying the engine
        - Observable: logs every run with per-rule timing
    """

    def __init__(self, rules: Optional[list[BaseRule]] = None, allowlist: Optional[frozenset[str]] = None):
        """Initialize with default rules or a custom list.

        Args:
            rules: Optional list of rules. If None, uses all defaults.
            allowlist: Action names valid without declaration. Defaults to the built-ins.
        """
        self.rules = rules if rules is not None else self._default_rules()
        self.allowlist = allowlist if allowlist is not None else BUILTIN_ACTIONS

    @staticmethod
    def _default_rules() -> list[BaseRule]:
        """Create the default rule chain in evaluation order."""
        return [
            UndefinedIntentRule(),
            UndefinedActionRule(),          # Also reports undefined responses
            UndefinedSlotRule(),
            UndefinedFormRule(),
            IntentWithoutTrainingDataRule(),
            DeadIntentRule(),               # Stronger twin of the rule above
            UnusedResponseRule(),
            UnusedSlotRule(),
            UnusedEntityRule(),             # Placeholder, reports nothing
        ]

    def evaluate(
        self,
        catalog: ProjectCatalog,
        usages: UsageIndex,
        allowlist: Optional[frozenset[str]] = None,
    ) -> list[Issue]:
        """Run all rules and return their issues in rule order.

        Args:
            catalog: Merged domain declarations
            usages: References from NLU, stories and rules
            allowlist: Overrides the engine's allowlist for this call

        Returns:
            Flat list of issues
        """
        start_time = time.perf_counter()
        allowed = allowlist if allowlist is not None else self.allowlist

        all_issues: list[Issue] = []
        rule_timings: dict[str, float] = {}

        for rule in self.rules:
            r_start = time.perf_counter()
            try:
                all_issues.extend(rule.evaluate(catalog, usages, allowed))
            except Exception as e:
                # One broken rule must not take the whole pass down
                logger.error(
                    "rule_failed",
                    rule=rule.name,
                    error=str(e),
                )
            finally:
                r_duration = (time.perf_counter() - r_start) * 1000
                rule_timings[rule.name] = round(r_duration, 2)

        total_duration = (time.perf_counter() - start_time) * 1000

        logger.info(
            "rules_evaluated",
            total_issues=len(all_issues),
            duration_ms=round(total_duration, 2),
            rule_timings=rule_timings,
        )

        return all_issues

    def add_rule(self, rule: BaseRule) -> None:
        """Add a custom rule to the chain."""
        self.rules.append(rule)

    def remove_rule(self, rule_name: str) -> None:
        """Remove a rule by name."""
        self.rules = [r for r in self.rules if r.name != rule_name]


# Module-level singleton
validation_engine = ValidationEngine()
