"""Diagnostics — places routed issues in file text for the editor.

Placement is approximate: an issue is pinned to the first whole-token
occurrence of its subject name in the file.
"""

import asyncio
import re
from pathlib import Path
from typing import Optional

import structlog

from rasa_xref.models.responses import Diagnostic
from rasa_xref.validators.models import Issue

logger = structlog.get_logger()


def find_item_location(text: str, item_name: str) -> Optional[tuple[int, int]]:
    """(line, column) of the first occurrence of item_name as a whole token."""
    if not item_name:
        return None
    pattern = re.compile(rf"(?<!\w){re.escape(item_name)}(?!\w)")
    for line_number, line in enumerate(text.split("\n")):
        match = pattern.search(line)
        if match:
            return line_number, match.start()
    return None


def to_diagnostics(file_path: str, issues: list[Issue], text: str = "") -> list[Diagnostic]:
    """Convert one file's issues to diagnostics."""
    diagnostics = []
    for issue in issues:
        location = find_item_location(text, issue.subject_name)
        line, column = location if location else (0, 0)
        diagnostics.append(Diagnostic(
            file_path=file_path,
            line=line,
            start_column=column,
            end_column=column + len(issue.subject_name) if location else 0,
            severity=issue.severity,
            message=issue.message,
            code=issue.kind,
            subject_name=issue.subject_name,
        ))
    return diagnostics


def _read_text(file_path: str) -> str:
    try:
        return Path(file_path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.debug("diagnostic_source_unreadable", file_path=file_path, error=str(e))
        return ""


async def build_diagnostics(issues_by_file: dict[str, list[Issue]]) -> dict[str, list[Diagnostic]]:
    """Read each file once and place its issues."""
    result = {}
    for file_path, issues in issues_by_file.items():
        text = await asyncio.to_thread(_read_text, file_path) if issues else ""
        result[file_path] = to_diagnostics(file_path, issues, text)
    return result
