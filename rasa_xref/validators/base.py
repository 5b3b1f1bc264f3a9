"""Base rule — abstract class implementing the Strategy Pattern.

Each detection rule is a standalone, independently testable unit.
New rules are added without modifying the engine.
"""

from abc import ABC, abstractmethod
from typing import Iterable

from rasa_xref.validators.models import (
    Issue,
    IssueKind,
    ProjectCatalog,
    RuleCode,
    Severity,
    UsageIndex,
)


class BaseRule(ABC):
    """Abstract base for all cross-file detection rules.

    Contract:
        - evaluate() is deterministic: same catalog and usages → same issues
        - evaluate() returns at most one issue per subject name
        - evaluate() never reads files; everything comes from its arguments
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name for logging."""
        ...

    @property
    @abstractmethod
    def code(self) -> RuleCode:
        """Stable code attached to every issue this rule produces."""
        ...

    @abstractmethod
    def evaluate(
        self,
        catalog: ProjectCatalog,
        usages: UsageIndex,
        allowlist: frozenset[str],
    ) -> list[Issue]:
        """Run the rule.

        Args:
            catalog: Merged declarations from every domain file
            usages: References found in NLU, stories and rules
            allowlist: Action names that are valid without a declaration

        Returns:
            List of Issue findings (empty if no issues)
        """
        ...

    # ── Helper Methods ──

    def _issue(
        self,
        kind: IssueKind,
        severity: Severity,
        subject_name: str,
        message: str,
        evidence_files: Iterable[str] = (),
    ) -> Issue:
        """Convenience method to create an Issue tagged with this rule's code."""
        return Issue(
            kind=kind,
            code=self.code,
            severity=severity,
            subject_name=subject_name,
            message=message,
            evidence_files=list(evidence_files),
        )
