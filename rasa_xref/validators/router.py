"""Issue Router — decides which file each issue is reported in.

Undefined references surface in every story and rule file, because the exact
occurrence is not tracked. Unused definitions surface in the files that
declared them.
"""

from typing import Iterable

from rasa_xref.validators.models import (
    UNUSED_KIND_COMPONENT,
    Issue,
    IssueKind,
    ProjectCatalog,
)


def route_issues(
    issues: Iterable[Issue],
    catalog: ProjectCatalog,
    flow_files: Iterable[str],
) -> dict[str, list[Issue]]:
    """Group issues by file path.

    No deduplication across issue kinds: the two unused-intent issues for one
    name both land in its domain file. Files without issues are left out.
    """
    flow_files = list(dict.fromkeys(flow_files))
    by_file: dict[str, list[Issue]] = {}

    for issue in issues:
        kind = IssueKind(issue.kind)
        if kind.is_undefined:
            targets = flow_files
        else:
            targets = catalog.declaring_files(UNUSED_KIND_COMPONENT[kind], issue.subject_name)

        for file_path in targets:
            by_file.setdefault(file_path, []).append(issue)

    return by_file
