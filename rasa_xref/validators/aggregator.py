"""Definition Aggregator — merges every domain file into one ProjectCatalog.

Domains may be split across any number of files. The merge is a union with
provenance: a name declared in two files is one catalog entry with two
declaring files, never an error.

Usage:
    catalog, failures = await DefinitionAggregator(parser).aggregate(paths)

    # or, without I/O:
    catalog = build_catalog([("domain.yml", {"intents": ["greet"]})])
"""

from typing import Any, Iterable, Optional

import structlog

from rasa_xref.services.yaml_parser import YamlParserService
from rasa_xref.validators.models import ComponentKind, ParseFailure, ProjectCatalog
from rasa_xref.validators.reference_data import DOMAIN_SECTIONS

logger = structlog.get_logger()

# Kinds declared as a list of names or single-key mappings; the rest are
# mappings keyed by name
LISTED_KINDS = (ComponentKind.INTENT, ComponentKind.ENTITY, ComponentKind.ACTION)


def as_name(value: Any) -> Optional[str]:
    """A scalar as a component name. Numbers like ``404`` count as names."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str) and value:
        return value
    return None


def resolve_name(entry: Any) -> Optional[str]:
    """Resolve one list entry to a component name.

    ``greet`` and ``{greet: {use_entities: []}}`` both name ``greet``.
    Mappings with zero or several keys, empty strings and nulls have no
    usable name.
    """
    if isinstance(entry, dict):
        return as_name(next(iter(entry))) if len(entry) == 1 else None
    return as_name(entry)


def extract_names(document: dict, kind: ComponentKind, file_path: str = "") -> list[str]:
    """Names of one component kind declared in a parsed domain document."""
    kind = ComponentKind(kind)
    section = document.get(DOMAIN_SECTIONS[kind.value])
    if section is None:
        return []

    if kind in LISTED_KINDS:
        if not isinstance(section, list):
            logger.warning("domain_section_not_list", file_path=file_path, section=DOMAIN_SECTIONS[kind.value])
            return []
        names = (resolve_name(entry) for entry in section)
        return [name for name in names if name]

    if not isinstance(section, dict):
        logger.warning("domain_section_not_mapping", file_path=file_path, section=DOMAIN_SECTIONS[kind.value])
        return []
    names = (as_name(key) for key in section)
    return [name for name in names if name]


def merge_document(catalog: ProjectCatalog, file_path: str, document: dict) -> None:
    """Fold one parsed domain document into the catalog."""
    for kind in ComponentKind:
        for name in extract_names(document, kind, file_path):
            catalog.upsert(kind, name, file_path)


def build_catalog(documents: Iterable[tuple[str, Any]]) -> ProjectCatalog:
    """Pure union-with-provenance fold over ordered (path, document) pairs.

    Documents that are not mappings (empty files, bare lists) contribute
    nothing. Feeding the same path twice is the same as feeding it once.
    """
    catalog = ProjectCatalog()
    for file_path, document in documents:
        if not isinstance(document, dict):
            continue
        merge_document(catalog, file_path, document)
    return catalog


class DefinitionAggregator:
    """Parses domain files and merges them into a fresh catalog."""

    def __init__(self, parser: Optional[YamlParserService] = None):
        self.parser = parser or YamlParserService()

    async def aggregate(self, definition_files: list[str]) -> tuple[ProjectCatalog, list[ParseFailure]]:
        """Build the catalog for one pass.

        A file that fails to parse is logged and skipped. So is one whose
        contents trip extraction; one bad file never aborts the catalog.
        """
        catalog = ProjectCatalog()
        failures: list[ParseFailure] = []

        for file_path in definition_files:
            result = await self.parser.parse_domain(file_path)
            if not result.success:
                logger.warning("definition_file_parse_failed", file_path=file_path, error=result.error)
                failures.append(ParseFailure(file_path=file_path, error=result.error or "unknown error"))
                continue
            if not isinstance(result.data, dict):
                logger.debug("definition_file_empty", file_path=file_path)
                continue

            # Merge through a scratch catalog so a failing file adds nothing
            try:
                scratch = build_catalog([(file_path, result.data)])
            except Exception as e:
                logger.error("definition_file_extract_failed", file_path=file_path, error=str(e))
                continue
            catalog.merge(scratch)

            logger.debug("definition_file_parsed", file_path=file_path)

        logger.info("definitions_aggregated", files=len(definition_files), **catalog.counts())
        return catalog, failures
