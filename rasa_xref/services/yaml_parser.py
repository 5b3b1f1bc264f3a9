"""YAML parser — turns Rasa project files into plain Python trees.

Never raises for malformed-but-readable input: every call returns a
ParseResult carrying either the parsed data or the error message.
"""

import asyncio
import re
from pathlib import Path
from typing import Any, Optional

import structlog
import yaml
from pydantic import BaseModel

from rasa_xref.config import get_settings

logger = structlog.get_logger()

BOOL_TAG = "tag:yaml.org,2002:bool"


class RasaSafeLoader(yaml.SafeLoader):
    """SafeLoader with YAML 1.2 core-schema booleans.

    Only true/false resolve to bools, so names such as `yes`, `no`, `on` and
    `off` load as strings, the way Rasa itself reads them.
    """


RasaSafeLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != BOOL_TAG]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}
RasaSafeLoader.add_implicit_resolver(
    BOOL_TAG,
    re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$"),
    list("tTfF"),
)


def load_yaml(content: str):
    """Parse one YAML document with RasaSafeLoader."""
    return yaml.load(content, Loader=RasaSafeLoader)


class ParseResult(BaseModel):
    """Outcome of parsing one file."""

    file_path: str
    success: bool
    data: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.success and self.data is not None


class YamlIssue(BaseModel):
    """A YAML syntax problem, with 0-based position when the parser knows it."""

    message: str
    line: Optional[int] = None
    column: Optional[int] = None


class YamlParserService:
    """Parses domain, NLU, stories and rules files with PyYAML."""

    def __init__(self, max_file_size: Optional[int] = None):
        self.max_file_size = max_file_size or get_settings().MAX_FILE_SIZE

    async def parse_file(self, file_path: str) -> ParseResult:
        """Read and parse a file off the event loop."""
        return await asyncio.to_thread(self._parse_file_sync, file_path)

    def _parse_file_sync(self, file_path: str) -> ParseResult:
        path = Path(file_path)
        try:
            size = path.stat().st_size
            if size > self.max_file_size:
                return ParseResult(
                    file_path=file_path,
                    success=False,
                    error=f"File size ({size} bytes) exceeds maximum allowed ({self.max_file_size} bytes)",
                )
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("yaml_read_failed", file_path=file_path, error=str(e))
            return ParseResult(file_path=file_path, success=False, error=str(e))

        return self.parse_content(content, file_path)

    def parse_content(self, content: str, source_name: str = "unknown") -> ParseResult:
        """Parse YAML text that is already in memory (e.g. an unsaved editor buffer)."""
        try:
            data = load_yaml(content)
        except yaml.YAMLError as e:
            message = _format_yaml_error(e)
            logger.warning("yaml_parse_failed", file_path=source_name, error=message)
            return ParseResult(file_path=source_name, success=False, error=message)

        return ParseResult(file_path=source_name, success=True, data=data)

    async def parse_domain(self, file_path: str) -> ParseResult:
        return await self.parse_file(file_path)

    async def parse_nlu(self, file_path: str) -> ParseResult:
        return await self.parse_file(file_path)

    async def parse_stories(self, file_path: str) -> ParseResult:
        return await self.parse_file(file_path)

    async def parse_rules(self, file_path: str) -> ParseResult:
        return await self.parse_file(file_path)

    def validate_yaml(self, content: str, source_name: str = "unknown") -> list[YamlIssue]:
        """Report YAML syntax errors for a buffer. Empty list means it parses."""
        try:
            load_yaml(content)
        except yaml.MarkedYAMLError as e:
            mark = e.problem_mark
            return [YamlIssue(
                message=_format_yaml_error(e),
                line=mark.line if mark else None,
                column=mark.column if mark else None,
            )]
        except yaml.YAMLError as e:
            return [YamlIssue(message=str(e))]
        return []


def _format_yaml_error(error: yaml.YAMLError) -> str:
    """One-line message with a 1-based position, as editors display it."""
    if isinstance(error, yaml.MarkedYAMLError) and error.problem_mark is not None:
        mark = error.problem_mark
        problem = error.problem or error.context or "invalid YAML"
        return f"{problem} (line {mark.line + 1}, column {mark.column + 1})"
    return str(error)
