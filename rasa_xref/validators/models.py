"""Validation models — component kinds, usages, issues, and report structure.

All cross-file validation is deterministic: same file set and contents → same
output. The catalog and usage index are built fresh for every pass and
discarded afterwards.
"""

from collections import defaultdict
from enum import Enum
from typing import Iterable, Optional

from pydantic import BaseModel, Field


class ComponentKind(str, Enum):
    """Kinds of named components declared in definition (domain) files."""

    INTENT = "intent"
    ENTITY = "entity"
    SLOT = "slot"
    RESPONSE = "response"
    ACTION = "action"
    FORM = "form"


class ReferenceKind(str, Enum):
    """Kinds of names referenced from example and flow files.

    An ``action`` step naming a response (``utter_*``) is recorded as RESPONSE,
    so rules never re-derive the prefix convention.
    """

    INTENT = "intent"
    ACTION = "action"
    RESPONSE = "response"
    SLOT = "slot"
    FORM = "form"


class UsageOrigin(str, Enum):
    """Document class a usage was found in."""

    NLU = "nlu"
    STORY = "story"
    RULE = "rule"


FLOW_ORIGINS = (UsageOrigin.STORY, UsageOrigin.RULE)


class Severity(str, Enum):
    """Issue severity levels, mapped one-to-one onto editor diagnostics."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class IssueKind(str, Enum):
    """The nine cross-file issue kinds."""

    UNDEFINED_INTENT = "undefined-intent"
    UNDEFINED_ACTION = "undefined-action"
    UNDEFINED_RESPONSE = "undefined-response"
    UNDEFINED_SLOT = "undefined-slot"
    UNDEFINED_FORM = "undefined-form"
    UNUSED_INTENT = "unused-intent"
    UNUSED_RESPONSE = "unused-response"
    UNUSED_SLOT = "unused-slot"
    UNUSED_ENTITY = "unused-entity"

    @property
    def is_undefined(self) -> bool:
        return self.value.startswith("undefined-")

    @property
    def is_unused(self) -> bool:
        return self.value.startswith("unused-")


class RuleCode(str, Enum):
    """Deterministic code for every detection rule.

    Naming convention: COMPONENT_PROBLEM
    """

    INTENT_UNDEFINED = "INTENT_UNDEFINED"
    ACTION_UNDEFINED = "ACTION_UNDEFINED"
    SLOT_UNDEFINED = "SLOT_UNDEFINED"
    FORM_UNDEFINED = "FORM_UNDEFINED"
    INTENT_NO_TRAINING_DATA = "INTENT_NO_TRAINING_DATA"
    INTENT_DEAD_DEFINITION = "INTENT_DEAD_DEFINITION"
    RESPONSE_UNUSED = "RESPONSE_UNUSED"
    SLOT_UNUSED = "SLOT_UNUSED"
    ENTITY_UNUSED = "ENTITY_UNUSED"


# Catalog kind an unused-* issue refers back to
UNUSED_KIND_COMPONENT = {
    IssueKind.UNUSED_INTENT: ComponentKind.INTENT,
    IssueKind.UNUSED_RESPONSE: ComponentKind.RESPONSE,
    IssueKind.UNUSED_SLOT: ComponentKind.SLOT,
    IssueKind.UNUSED_ENTITY: ComponentKind.ENTITY,
}


def _append_unique(files: list[str], file_path: str) -> None:
    if file_path not in files:
        files.append(file_path)


class DefinedItem(BaseModel):
    """A named component and every file that declared it."""

    kind: ComponentKind
    name: str
    declaring_files: list[str] = Field(default_factory=list)

    def add_declaration(self, file_path: str) -> None:
        _append_unique(self.declaring_files, file_path)


class ProjectCatalog(BaseModel):
    """Merged, provenance-tracked declarations — one map per component kind."""

    intents: dict[str, DefinedItem] = Field(default_factory=dict)
    entities: dict[str, DefinedItem] = Field(default_factory=dict)
    slots: dict[str, DefinedItem] = Field(default_factory=dict)
    responses: dict[str, DefinedItem] = Field(default_factory=dict)
    actions: dict[str, DefinedItem] = Field(default_factory=dict)
    forms: dict[str, DefinedItem] = Field(default_factory=dict)

    def items_of(self, kind: ComponentKind) -> dict[str, DefinedItem]:
        return {
            ComponentKind.INTENT: self.intents,
            ComponentKind.ENTITY: self.entities,
            ComponentKind.SLOT: self.slots,
            ComponentKind.RESPONSE: self.responses,
            ComponentKind.ACTION: self.actions,
            ComponentKind.FORM: self.forms,
        }[ComponentKind(kind)]

    def upsert(self, kind: ComponentKind, name: str, file_path: str) -> DefinedItem:
        """Create the item if absent, else record one more declaring file."""
        items = self.items_of(kind)
        item = items.get(name)
        if item is None:
            item = DefinedItem(kind=kind, name=name)
            items[name] = item
        item.add_declaration(file_path)
        return item

    def merge(self, other: "ProjectCatalog") -> None:
        for kind in ComponentKind:
            for name, item in other.items_of(kind).items():
                for file_path in item.declaring_files:
                    self.upsert(kind, name, file_path)

    def has(self, kind: ComponentKind, name: str) -> bool:
        return name in self.items_of(kind)

    def declaring_files(self, kind: ComponentKind, name: str) -> list[str]:
        item = self.items_of(kind).get(name)
        return list(item.declaring_files) if item else []

    def counts(self) -> dict[str, int]:
        return {kind.value: len(self.items_of(kind)) for kind in ComponentKind}


class UsageRecord(BaseModel):
    """One referenced name for an (origin, kind) pair, with its source files."""

    kind: ReferenceKind
    name: str
    origin: UsageOrigin
    source_files: list[str] = Field(default_factory=list)


class UsageIndex:
    """Referenced names grouped by origin and reference kind.

    "Flow" usage is the union of story and rule usage; each origin also stays
    queryable on its own.
    """

    def __init__(self):
        self._records: dict[tuple[UsageOrigin, ReferenceKind], dict[str, UsageRecord]] = defaultdict(dict)

    def add(self, origin: UsageOrigin, kind: ReferenceKind, name: str, file_path: str) -> None:
        bucket = self._records[(UsageOrigin(origin), ReferenceKind(kind))]
        record = bucket.get(name)
        if record is None:
            record = UsageRecord(kind=kind, name=name, origin=origin)
            bucket[name] = record
        _append_unique(record.source_files, file_path)

    def merge(self, other: "UsageIndex") -> None:
        for (origin, kind), bucket in other._records.items():
            for name, record in bucket.items():
                for file_path in record.source_files:
                    self.add(origin, kind, name, file_path)

    def records(self, kind: ReferenceKind, origins: Iterable[UsageOrigin] = FLOW_ORIGINS) -> list[UsageRecord]:
        result = []
        for origin in origins:
            result.extend(self._records.get((origin, kind), {}).values())
        return result

    def names(self, kind: ReferenceKind, origins: Iterable[UsageOrigin] = FLOW_ORIGINS) -> list[str]:
        """Distinct referenced names, in first-seen order across the given origins."""
        seen: dict[str, None] = {}
        for record in self.records(kind, origins):
            seen.setdefault(record.name, None)
        return list(seen)

    def sources(self, kind: ReferenceKind, name: str, origins: Iterable[UsageOrigin] = FLOW_ORIGINS) -> list[str]:
        files: list[str] = []
        for origin in origins:
            record = self._records.get((origin, kind), {}).get(name)
            if record:
                for file_path in record.source_files:
                    _append_unique(files, file_path)
        return files

    # ── Named usage sets ──

    def nlu_intents(self) -> set[str]:
        return set(self.names(ReferenceKind.INTENT, (UsageOrigin.NLU,)))

    def flow_intents(self) -> set[str]:
        return set(self.names(ReferenceKind.INTENT))

    def flow_actions(self) -> set[str]:
        return set(self.names(ReferenceKind.ACTION))

    def flow_responses(self) -> set[str]:
        return set(self.names(ReferenceKind.RESPONSE))

    def flow_slots(self) -> set[str]:
        return set(self.names(ReferenceKind.SLOT))

    def flow_forms(self) -> set[str]:
        return set(self.names(ReferenceKind.FORM))

    def __len__(self) -> int:
        return sum(len(bucket) for bucket in self._records.values())


class Issue(BaseModel):
    """A single cross-file finding. Never mutated after creation."""

    kind: IssueKind
    code: RuleCode
    severity: Severity
    subject_name: str
    message: str
    evidence_files: list[str] = Field(default_factory=list)

    model_config = {"frozen": True, "use_enum_values": True}


class ParseFailure(BaseModel):
    """A file that could not be parsed during a pass."""

    file_path: str
    error: str


class ValidationReport(BaseModel):
    """Complete result of one validation pass."""

    generation: int = 0
    issues: list[Issue] = Field(default_factory=list)
    summary: dict = Field(
        description="Count of issues by severity",
        default_factory=lambda: {"error": 0, "warning": 0, "info": 0},
    )
    catalog_counts: dict[str, int] = Field(default_factory=dict)
    files_parsed: int = 0
    parse_failures: list[ParseFailure] = Field(default_factory=list)
    duration_ms: float = 0.0

    @classmethod
    def build(
        cls,
        issues: list[Issue],
        generation: int = 0,
        catalog: Optional[ProjectCatalog] = None,
        files_parsed: int = 0,
        parse_failures: Optional[list[ParseFailure]] = None,
        duration_ms: float = 0.0,
    ) -> "ValidationReport":
        """Build a report from a list of issues."""
        summary = {"error": 0, "warning": 0, "info": 0}
        for issue in issues:
            summary[Severity(issue.severity).value] += 1

        # Stable sort keeps rule order within a severity
        order = list(Severity)
        return cls(
            generation=generation,
            issues=sorted(issues, key=lambda i: order.index(Severity(i.severity))),
            summary=summary,
            catalog_counts=catalog.counts() if catalog else {},
            files_parsed=files_parsed,
            parse_failures=parse_failures or [],
            duration_ms=round(duration_ms, 2),
        )
