"""Project service — detects a Rasa project and sorts its files into buckets."""

import asyncio
import re
from pathlib import Path
from typing import Iterable, Literal, Optional

import structlog

from rasa_xref.config import get_settings

logger = structlog.get_logger()

FileBucket = Literal["domain", "nlu", "stories", "rules", "config", "tests"]

# Files scanned under the workspace root (any depth)
RASA_FILE_PATTERNS = [
    "**/domain.yml",
    "**/domain.yaml",
    "**/domain/*.yml",
    "**/domain/*.yaml",
    "**/config.yml",
    "**/data/**/*.yml",
    "**/data/**/*.yaml",
    "**/nlu.yml",
    "**/stories.yml",
    "**/rules.yml",
    "**/endpoints.yml",
    "**/credentials.yml",
    "**/tests/*.yml",
    "**/tests/*.yaml",
]

IGNORED_DIRS = {"node_modules", ".venv", "venv", ".git"}

# Relative paths accepted when a single file is created or changed
RASA_PATH_PATTERNS = [
    re.compile(r"^domain\.ya?ml$"),
    re.compile(r"^domain/.*\.ya?ml$"),
    re.compile(r"^config\.yml$"),
    re.compile(r"^data/.*\.ya?ml$"),
    re.compile(r"^nlu\.yml$"),
    re.compile(r"^stories\.yml$"),
    re.compile(r"^rules\.yml$"),
    re.compile(r"^endpoints\.yml$"),
    re.compile(r"^credentials\.yml$"),
    re.compile(r"^tests/.*\.ya?ml$"),
]

DOMAIN_KEY_PATTERN = re.compile(r"\b(intents|entities|slots|responses|actions|forms|version)\b")


class RasaProjectService:
    """Detects a Rasa project in a workspace and keeps a cache of its files.

    The cache maps workspace-relative POSIX paths to absolute paths. The
    list_* methods are the only way the validation engine sees files.
    """

    def __init__(self, workspace_root: Optional[str] = None):
        root = workspace_root or get_settings().WORKSPACE_ROOT
        self.workspace_root = Path(root).resolve()
        self._is_rasa_project = False
        self._files: dict[str, Path] = {}

    async def initialize(self) -> bool:
        """Detect the project and scan its files. Returns detection result."""
        logger.info("project_initializing", workspace_root=str(self.workspace_root))

        if not self.workspace_root.is_dir():
            logger.warning("workspace_root_missing", workspace_root=str(self.workspace_root))
            self._is_rasa_project = False
            return False

        self._is_rasa_project = await asyncio.to_thread(self._detect_rasa_project)
        if self._is_rasa_project:
            await asyncio.to_thread(self._scan_project_files)
            logger.info("rasa_project_detected", files=len(self._files))
        else:
            self._files.clear()
            logger.info("rasa_project_not_detected")

        return self._is_rasa_project

    def _detect_rasa_project(self) -> bool:
        if self._first_match("**/config.yml") is None:
            logger.debug("required_file_missing", file="config.yml")
            return False

        domain_file = self._first_match("**/domain.yml")
        if domain_file is not None:
            try:
                text = domain_file.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("domain_read_failed", file_path=str(domain_file), error=str(e))
                return False
            return bool(DOMAIN_KEY_PATTERN.search(text))

        # Split domain: a domain/ directory of YAML files
        return (
            self._first_match("**/domain/*.yml") is not None
            or self._first_match("**/domain/*.yaml") is not None
        )

    def _first_match(self, pattern: str) -> Optional[Path]:
        for path in self.workspace_root.glob(pattern):
            if path.is_file() and not self._is_ignored(path):
                return path
        return None

    def _is_ignored(self, path: Path) -> bool:
        relative = path.relative_to(self.workspace_root)
        return any(part in IGNORED_DIRS for part in relative.parts)

    def _scan_project_files(self) -> None:
        self._files.clear()
        for pattern in RASA_FILE_PATTERNS:
            for path in self.workspace_root.glob(pattern):
                if path.is_file() and not self._is_ignored(path):
                    self._files[self._relative(path)] = path
        logger.debug("project_files_scanned", count=len(self._files))

    def _relative(self, path: Path) -> str:
        return path.relative_to(self.workspace_root).as_posix()

    def is_rasa_file(self, relative_path: str) -> bool:
        return any(p.match(relative_path) for p in RASA_PATH_PATTERNS)

    async def refresh_files(self, paths: Iterable[str]) -> None:
        """Bring the cache in line with the file system for the given paths.

        Existing Rasa files are added or refreshed. Vanished files are dropped,
        and so is every cached file under a vanished directory.
        Creating a file can turn a plain folder into a Rasa project.
        """
        needs_detection = False
        for raw in paths:
            path = Path(raw)
            if not path.is_absolute():
                path = self.workspace_root / path
            try:
                relative = path.resolve().relative_to(self.workspace_root).as_posix()
            except ValueError:
                # Outside the workspace
                continue

            if path.is_file():
                if self.is_rasa_file(relative):
                    self._files[relative] = self.workspace_root / relative
                    if not self._is_rasa_project:
                        needs_detection = True
            elif not path.exists():
                # A removed directory takes every cached file under it along
                removed = [key for key in self._files if key == relative or key.startswith(relative + "/")]
                for key in removed:
                    del self._files[key]
                if removed:
                    logger.debug("project_files_removed", path=relative, count=len(removed))

        if needs_detection:
            await self.initialize()

    def is_rasa_project(self) -> bool:
        return self._is_rasa_project

    def files_by_type(self, bucket: FileBucket) -> list[str]:
        """Absolute paths of cached files in a bucket, sorted for stable passes."""
        selected = []
        for relative, path in self._files.items():
            name = relative.rsplit("/", 1)[-1]
            if bucket == "domain":
                match = relative.startswith("domain") or name in ("domain.yml", "domain.yaml")
            elif bucket == "config":
                match = name == "config.yml"
            elif bucket == "tests":
                match = relative.startswith("tests/")
            else:
                match = bucket in relative
            if match:
                selected.append(str(path))
        return sorted(selected)

    def list_definition_files(self) -> list[str]:
        return self.files_by_type("domain")

    def list_example_files(self) -> list[str]:
        return self.files_by_type("nlu")

    def list_story_files(self) -> list[str]:
        return self.files_by_type("stories")

    def list_rule_files(self) -> list[str]:
        return self.files_by_type("rules")

    def list_flow_files(self) -> list[str]:
        """Stories then rules, without repeats."""
        return list(dict.fromkeys(self.list_story_files() + self.list_rule_files()))
