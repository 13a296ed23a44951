"""Schedule compilation pipeline architecture for schedulebot.

The compiler runs feed occurrences through a fixed sequence of stages. Each
stage reads and writes a shared :class:`CompileContext`, which keeps stages
independently testable and makes the order of the steps explicit.

Usage:
    pipeline = CompilationPipeline()
    pipeline.add_stage(NormalizeStage())
    pipeline.add_stage(FilterStage(occurrence_filter))
    pipeline.add_stage(PartitionStage())

    context = CompileContext(...)
    result = pipeline.process(context)

Unlike event rendering, compilation has no partial result worth showing, so
errors are raised rather than collected: :class:`ScheduleError` subclasses
propagate unchanged, anything else is logged and wrapped.
"""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

from ..exceptions import ScheduleError
from ..models import Activity, Occurrence, TimeRange
from ..partitioner import Partition

logger = logging.getLogger(__name__)


@dataclass
class CompileContext:
    """Context passed between pipeline stages.

    Stages read from and write to this context.
    """

    # Input
    occurrences: list[Occurrence] = field(default_factory=list)  # working copy, mutated
    updated: Optional[datetime.datetime] = None  # feed update timestamp

    # Span of the unfiltered feed
    start: Optional[datetime.date] = None
    end: Optional[datetime.date] = None

    # Processing state (modified by stages)
    partitions: list[Partition] = field(default_factory=list)
    base_times: list[TimeRange] = field(default_factory=list)
    activities: tuple[Activity, ...] = ()


@dataclass
class StageResult:
    """Result from a pipeline stage or a complete pipeline run."""

    stage_name: str = ""
    occurrences_in: int = 0
    occurrences_out: int = 0
    warnings: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    def add_warning(self, message: str) -> None:
        """Add a warning message."""
        self.warnings.append(message)
        logger.warning("[%s] %s", self.stage_name, message)


class CompileStage(Protocol):
    """Protocol for a single stage in the compilation pipeline."""

    def process(self, context: CompileContext) -> StageResult:
        """Run this stage's step on the context.

        Args:
            context: Compilation context

        Returns:
            Result with statistics and any warnings
        """
        ...

    @property
    def name(self) -> str:
        """Name of this stage for logging."""
        ...


class CompilationPipeline:
    """Runs compilation stages in sequence over one context.

    Example:
        pipeline = create_compile_pipeline(occurrence_filter)
        context = CompileContext(occurrences=occurrences, updated=feed.updated)
        pipeline.process(context)
        activities = context.activities
    """

    def __init__(self) -> None:
        """Initialize empty pipeline."""
        self.stages: list[CompileStage] = []

    def add_stage(self, stage: CompileStage) -> CompilationPipeline:
        """Add a stage to the pipeline (builder pattern).

        Args:
            stage: Stage to add

        Returns:
            Self for method chaining
        """
        self.stages.append(stage)
        logger.debug("Added stage to pipeline: %s", stage.name)
        return self

    def process(self, context: CompileContext) -> StageResult:
        """Execute all stages in sequence.

        Args:
            context: Compilation context with initial state

        Returns:
            Aggregated result from all stages

        Raises:
            ScheduleError: If a stage fails
        """
        logger.debug("Starting pipeline with %d stages", len(self.stages))

        aggregated = StageResult(stage_name="Pipeline", occurrences_in=len(context.occurrences))

        for i, stage in enumerate(self.stages):
            stage_num = i + 1
            logger.debug("Executing stage %d/%d: %s", stage_num, len(self.stages), stage.name)

            try:
                stage_result = stage.process(context)
            except ScheduleError:
                raise
            except Exception as e:
                logger.exception("Stage %s failed with exception", stage.name)
                raise ScheduleError(f"stage {stage.name} failed") from e

            logger.debug(
                "Stage %s/%s (%s) completed: occurrences_in=%s, occurrences_out=%s, warnings=%s",
                stage_num,
                len(self.stages),
                stage.name,
                stage_result.occurrences_in,
                stage_result.occurrences_out,
                len(stage_result.warnings),
            )
            aggregated.warnings.extend(stage_result.warnings)
            aggregated.metadata.update(stage_result.metadata)

        aggregated.occurrences_out = len(context.occurrences)
        logger.info(
            "Pipeline completed: %s of %s occurrences compiled into %s activities, %s warnings",
            aggregated.occurrences_out,
            aggregated.occurrences_in,
            len(context.activities),
            len(aggregated.warnings),
        )
        return aggregated

    def clear_stages(self) -> None:
        """Remove all stages from the pipeline."""
        self.stages.clear()
        logger.debug("Cleared all pipeline stages")

    def __repr__(self) -> str:
        stage_names = [stage.name for stage in self.stages]
        return f"CompilationPipeline(stages={stage_names})"
