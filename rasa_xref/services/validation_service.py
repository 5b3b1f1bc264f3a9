"""Cross-file validation service — runs validation passes and publishes results.

A pass goes Idle → Aggregating → Evaluating → Routed → Idle. Passes start
on demand (validate_project) or after a quiet period following change
signals (on_files_changed). Every signal restarts the quiet-period timer.

Passes are not cancelled when superseded, so two can overlap. Each pass
takes an increasing generation number, and a result older than the last
published one is not published.
"""

import asyncio
import time
from enum import Enum
from typing import Iterable, Literal, Optional

import structlog

from rasa_xref.config import get_settings
from rasa_xref.models.events import (
    DiagnosticsPublishedEvent,
    ErrorEvent,
    ValidationCompletedEvent,
    ValidationStartedEvent,
)
from rasa_xref.services.diagnostics import build_diagnostics
from rasa_xref.services.event_bus import DIAGNOSTICS_CHANNEL, EventBus
from rasa_xref.services.project_service import RasaProjectService
from rasa_xref.services.yaml_parser import YamlParserService
from rasa_xref.validators.aggregator import DefinitionAggregator
from rasa_xref.validators.engine import ValidationEngine, validation_engine
from rasa_xref.validators.extractor import UsageExtractor
from rasa_xref.validators.models import Issue, ValidationReport
from rasa_xref.validators.router import route_issues

logger = structlog.get_logger()


class PassState(str, Enum):
    """Lifecycle of a validation pass."""

    IDLE = "idle"
    AGGREGATING = "aggregating"
    EVALUATING = "evaluating"
    ROUTED = "routed"


class CrossFileValidationService:
    """Owns the debounce policy and the validate_project() entry point."""

    def __init__(
        self,
        project_service: RasaProjectService,
        event_bus: Optional[EventBus] = None,
        parser: Optional[YamlParserService] = None,
        engine: Optional[ValidationEngine] = None,
        debounce_seconds: Optional[float] = None,
        enabled: Optional[bool] = None,
    ):
        settings = get_settings()
        parser = parser or YamlParserService()

        self.project_service = project_service
        self.event_bus = event_bus or EventBus()
        self.aggregator = DefinitionAggregator(parser)
        self.extractor = UsageExtractor(parser, settings.RESPONSE_PREFIX)
        self.engine = engine or validation_engine
        self.debounce_seconds = debounce_seconds if debounce_seconds is not None else settings.DEBOUNCE_SECONDS
        self.enabled = enabled if enabled is not None else settings.CROSS_FILE_VALIDATION_ENABLED

        self.state = PassState.IDLE
        self.latest_results: dict[str, list[Issue]] = {}
        self.latest_report: Optional[ValidationReport] = None
        self.latest_diagnostics: dict = {}

        self._generation = 0
        self._published_generation = 0
        self._timer: Optional[asyncio.TimerHandle] = None
        self._pending_paths: list[str] = []
        self._tasks: set[asyncio.Task] = set()

    @property
    def generation(self) -> int:
        """Number of passes started so far."""
        return self._generation

    @property
    def published_generation(self) -> int:
        return self._published_generation

    # ── Entry points ──

    async def validate_project(self) -> dict[str, list[Issue]]:
        """Run one pass now and return issues grouped by file.

        Never raises: internal errors are logged and give partial or empty
        results.
        """
        results, _ = await self._run("explicit")
        return results

    async def validate_project_with_report(self) -> tuple[dict[str, list[Issue]], ValidationReport]:
        """Like validate_project(), plus the report of that same pass.

        The report is returned even when the pass turned out stale and was
        not published. A failed pass gives an empty report.
        """
        return await self._run("explicit")

    def on_files_changed(self, paths: Iterable[str]) -> None:
        """Restart the quiet-period timer; a pass starts when it fires.

        Must be called from the event loop thread.
        """
        if not self.enabled:
            return

        paths = list(paths)
        accepted = [p for p in paths if isinstance(p, str) and p]
        if len(accepted) < len(paths):
            logger.warning("invalid_changed_paths_dropped", dropped=len(paths) - len(accepted))
        self._pending_paths.extend(accepted)
        if self._timer is not None:
            self._timer.cancel()

        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.debounce_seconds, self._on_timer)
        logger.debug("validation_debounced", pending=len(self._pending_paths), state=self.state.value)

    async def drain(self) -> None:
        """Wait until no timer is pending and no pass is in flight."""
        while self._timer is not None or self._tasks:
            if self._tasks:
                await asyncio.gather(*list(self._tasks), return_exceptions=True)
            else:
                await asyncio.sleep(self.debounce_seconds)

    def dispose(self) -> None:
        """Drop the pending timer. In-flight passes still finish."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._pending_paths = []

    # ── Debounce ──

    def _on_timer(self) -> None:
        self._timer = None
        paths, self._pending_paths = self._pending_paths, []
        task = asyncio.create_task(self._debounced_pass(paths))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _debounced_pass(self, paths: list[str]) -> None:
        try:
            await self.project_service.refresh_files(paths)
        except Exception as e:
            logger.error("project_refresh_failed", error=str(e), paths=len(paths))
        await self._run("debounced", paths)

    # ── Pass ──

    async def _run(
        self,
        trigger: Literal["explicit", "debounced"],
        changed: Optional[list[str]] = None,
    ) -> tuple[dict[str, list[Issue]], ValidationReport]:
        self._generation += 1
        generation = self._generation
        start_time = time.perf_counter()

        results: dict[str, list[Issue]] = {}
        report = ValidationReport.build([], generation=generation)

        if not self.project_service.is_rasa_project():
            logger.info("validation_skipped_not_rasa_project", generation=generation)
            return results, report

        try:
            await self._emit(ValidationStartedEvent(
                generation=generation,
                trigger=trigger,
                changed_files=list(dict.fromkeys(changed or [])),
            ).model_dump())
            results, report = await self._run_pass(generation, start_time)
        except Exception as e:
            logger.error("cross_file_validation_failed", generation=generation, error=str(e))
            await self._emit_error(f"Cross-file validation failed: {e}", generation)
            self._set_state(PassState.IDLE, generation)
            return {}, ValidationReport.build([], generation=generation)

        try:
            await self._publish(generation, results, report)
        except Exception as e:
            logger.error("validation_publish_failed", generation=generation, error=str(e))
        finally:
            self._set_state(PassState.IDLE, generation)

        return results, report

    async def _run_pass(self, generation: int, start_time: float) -> tuple[dict[str, list[Issue]], ValidationReport]:
        ps = self.project_service

        # One snapshot of the file set for the whole pass
        definition_files = ps.list_definition_files()
        example_files = ps.list_example_files()
        story_files = ps.list_story_files()
        rule_files = ps.list_rule_files()
        flow_files = list(dict.fromkeys(story_files + rule_files))

        self._set_state(PassState.AGGREGATING, generation)
        catalog, definition_failures = await self.aggregator.aggregate(definition_files)
        usages, usage_failures = await self.extractor.extract(example_files, story_files, rule_files)

        self._set_state(PassState.EVALUATING, generation)
        issues = self.engine.evaluate(catalog, usages)

        results = route_issues(issues, catalog, flow_files)
        self._set_state(PassState.ROUTED, generation)

        failures = definition_failures + usage_failures
        all_files = set(definition_files) | set(example_files) | set(flow_files)
        report = ValidationReport.build(
            issues,
            generation=generation,
            catalog=catalog,
            files_parsed=len(all_files) - len({f.file_path for f in failures}),
            parse_failures=failures,
            duration_ms=(time.perf_counter() - start_time) * 1000,
        )

        logger.info(
            "cross_file_validation_complete",
            generation=generation,
            total_issues=len(issues),
            summary=report.summary,
            files_with_issues=len(results),
            parse_failures=len(failures),
            duration_ms=report.duration_ms,
        )
        return results, report

    async def _publish(self, generation: int, results: dict[str, list[Issue]], report: ValidationReport) -> None:
        diagnostics = await build_diagnostics(results)

        if generation < self._published_generation:
            logger.info(
                "stale_result_discarded",
                generation=generation,
                published_generation=self._published_generation,
            )
            return

        # Files that had issues last time and have none now get cleared
        for file_path in self.latest_results:
            diagnostics.setdefault(file_path, [])

        self._published_generation = generation
        self.latest_results = results
        self.latest_report = report
        self.latest_diagnostics = {path: diags for path, diags in diagnostics.items() if diags}

        await self._emit(ValidationCompletedEvent(
            generation=generation,
            summary=report.summary,
            total_issues=len(report.issues),
            files_with_issues=len(results),
            parse_failures=len(report.parse_failures),
            duration_ms=report.duration_ms,
        ).model_dump())
        await self._emit(DiagnosticsPublishedEvent(generation=generation, files=diagnostics).model_dump())

    async def _emit(self, event: dict) -> None:
        await self.event_bus.publish(DIAGNOSTICS_CHANNEL, event)

    async def _emit_error(self, message: str, generation: int) -> None:
        try:
            await self._emit(ErrorEvent(message=message, generation=generation).model_dump())
        except Exception as e:
            logger.error("error_event_failed", generation=generation, error=str(e))

    def _set_state(self, state: PassState, generation: int) -> None:
        self.state = state
        logger.debug("validation_state", state=state.value, generation=generation)
