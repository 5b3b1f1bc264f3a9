"""Cross-file validators — deterministic consistency checks for Rasa projects.

Usage:
    from rasa_xref.validators import validation_engine

    issues = validation_engine.evaluate(catalog, usages)
    issues_by_file = route_issues(issues, catalog, flow_files)
"""

from rasa_xref.validators.engine import ValidationEngine, validation_engine
from rasa_xref.validators.models import Issue, IssueKind, ProjectCatalog, RuleCode, Severity, UsageIndex, ValidationReport
from rasa_xref.validators.router import route_issues

__all__ = [
    "ValidationEngine",
    "validation_engine",
    "Issue",
    "IssueKind",
    "ProjectCatalog",
    "RuleCode",
    "Severity",
    "UsageIndex",
    "ValidationReport",
    "route_issues",
]
