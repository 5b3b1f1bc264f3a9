"""Usage Extractor — collects every referenced name from NLU, stories and rules.

Stories and rules share one step grammar. A step can carry an intent, an
action, a form activation (active_loop) or slot assignments (slot_was_set).
`or:` steps nest further steps, and rules have a `condition:` block that
uses the same grammar.
"""

from typing import Any, Callable, Iterator, Optional

import structlog

from rasa_xref.config import get_settings
from rasa_xref.services.yaml_parser import ParseResult, YamlParserService
from rasa_xref.validators.aggregator import as_name
from rasa_xref.validators.models import ParseFailure, ReferenceKind, UsageIndex, UsageOrigin
from rasa_xref.validators.reference_data import (
    ACTION_KEY,
    ACTIVE_LOOP_KEY,
    CONDITION_KEY,
    INTENT_KEY,
    NLU_KEY,
    OR_KEY,
    RULES_KEY,
    SLOT_WAS_SET_KEY,
    STEPS_KEY,
    STORIES_KEY,
)

logger = structlog.get_logger()

FLOW_KEYS = {
    UsageOrigin.STORY: STORIES_KEY,
    UsageOrigin.RULE: RULES_KEY,
}


def classify_action(name: str, response_prefix: str) -> ReferenceKind:
    """An action step naming a response is a RESPONSE reference."""
    return ReferenceKind.RESPONSE if name.startswith(response_prefix) else ReferenceKind.ACTION


def _slot_names(value: Any) -> Iterator[str]:
    """`slot_was_set` is a mapping or a list of mappings (or bare slot names)."""
    if isinstance(value, dict):
        yield from filter(None, map(as_name, value))
    elif isinstance(value, list):
        for entry in value:
            if isinstance(entry, dict):
                yield from filter(None, map(as_name, entry))
            else:
                name = as_name(entry)
                if name:
                    yield name


def iter_step_usages(steps: Any, response_prefix: str) -> Iterator[tuple[ReferenceKind, str]]:
    """Yield (kind, name) for every reference in an ordered step list."""
    if not isinstance(steps, list):
        return

    for step in steps:
        if not isinstance(step, dict):
            continue

        intent = as_name(step.get(INTENT_KEY))
        if intent:
            yield ReferenceKind.INTENT, intent

        action = as_name(step.get(ACTION_KEY))
        if action:
            yield classify_action(action, response_prefix), action

        # `active_loop: null` deactivates a form; it is not a usage
        loop = as_name(step.get(ACTIVE_LOOP_KEY))
        if loop:
            yield ReferenceKind.FORM, loop

        if SLOT_WAS_SET_KEY in step:
            for slot in _slot_names(step[SLOT_WAS_SET_KEY]):
                yield ReferenceKind.SLOT, slot

        if OR_KEY in step:
            yield from iter_step_usages(step[OR_KEY], response_prefix)


def extract_nlu_usages(index: UsageIndex, file_path: str, document: Any) -> int:
    """Record the intent of every training item. Returns the number recorded."""
    if not isinstance(document, dict):
        return 0
    items = document.get(NLU_KEY)
    if not isinstance(items, list):
        return 0

    count = 0
    for item in items:
        # synonym / regex / lookup items carry no intent
        if isinstance(item, dict):
            intent = as_name(item.get(INTENT_KEY))
            if intent:
                index.add(UsageOrigin.NLU, ReferenceKind.INTENT, intent, file_path)
                count += 1
    return count


def extract_flow_usages(
    index: UsageIndex,
    origin: UsageOrigin,
    file_path: str,
    document: Any,
    response_prefix: Optional[str] = None,
) -> int:
    """Record every reference made by the stories or rules of one document."""
    if not isinstance(document, dict):
        return 0
    flows = document.get(FLOW_KEYS[UsageOrigin(origin)])
    if not isinstance(flows, list):
        return 0

    prefix = response_prefix if response_prefix is not None else get_settings().RESPONSE_PREFIX
    count = 0
    for flow in flows:
        if not isinstance(flow, dict):
            continue
        for key in (CONDITION_KEY, STEPS_KEY):
            for kind, name in iter_step_usages(flow.get(key), prefix):
                index.add(origin, kind, name, file_path)
                count += 1
    return count


class UsageExtractor:
    """Parses example and flow files and builds the usage index for one pass."""

    def __init__(self, parser: Optional[YamlParserService] = None, response_prefix: Optional[str] = None):
        self.parser = parser or YamlParserService()
        self.response_prefix = response_prefix or get_settings().RESPONSE_PREFIX

    async def extract(
        self,
        example_files: list[str],
        story_files: list[str],
        rule_files: list[str],
    ) -> tuple[UsageIndex, list[ParseFailure]]:
        index = UsageIndex()
        failures: list[ParseFailure] = []

        for file_path in example_files:
            result = await self.parser.parse_nlu(file_path)
            if self._usable(result, "nlu", failures):
                self._merge_file(index, file_path, lambda scratch: extract_nlu_usages(scratch, file_path, result.data))

        for origin, files, parse in (
            (UsageOrigin.STORY, story_files, self.parser.parse_stories),
            (UsageOrigin.RULE, rule_files, self.parser.parse_rules),
        ):
            for file_path in files:
                result = await parse(file_path)
                if self._usable(result, origin.value, failures):
                    self._merge_file(index, file_path, lambda scratch: extract_flow_usages(
                        scratch, origin, file_path, result.data, self.response_prefix
                    ))

        logger.info(
            "usages_extracted",
            nlu_files=len(example_files),
            story_files=len(story_files),
            rule_files=len(rule_files),
            records=len(index),
        )
        return index, failures

    @staticmethod
    def _usable(result: ParseResult, file_type: str, failures: list[ParseFailure]) -> bool:
        if not result.success:
            logger.warning("usage_file_parse_failed", file_type=file_type, file_path=result.file_path, error=result.error)
            failures.append(ParseFailure(file_path=result.file_path, error=result.error or "unknown error"))
            return False
        return result.data is not None

    @staticmethod
    def _merge_file(index: UsageIndex, file_path: str, extract: Callable[[UsageIndex], int]) -> None:
        """Extract one file into a scratch index; an unexpected shape drops the whole file."""
        scratch = UsageIndex()
        try:
            extract(scratch)
        except Exception as e:
            logger.error("usage_file_extract_failed", file_path=file_path, error=str(e))
            return
        index.merge(scratch)
