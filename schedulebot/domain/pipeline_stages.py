"""Concrete compilation stages.

Each stage wraps one compiler component into the :class:`CompileStage`
protocol so that they can be composed by :func:`create_compile_pipeline`.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..filters import OccurrenceFilter, apply_filter
from ..merger import merge_recurrences
from ..normalizer import normalize_occurrences
from ..partitioner import check_unique, partition_occurrences
from ..synthesizer import synthesize_activities
from .pipeline import CompilationPipeline, CompileContext, StageResult

logger = logging.getLogger(__name__)


class NormalizeStage:
    """Trim names and convert textual cancellation markers."""

    name = "Normalize"

    def process(self, context: CompileContext) -> StageResult:
        n = len(context.occurrences)
        normalize_occurrences(context.occurrences)
        cancelled = sum(1 for o in context.occurrences if o.cancelled)
        return StageResult(
            stage_name=self.name,
            occurrences_in=n,
            occurrences_out=n,
            metadata={"cancelled": cancelled},
        )


class FilterStage:
    """Apply the caller's occurrence filter, keeping feed order."""

    name = "Filter"

    def __init__(self, occurrence_filter: Optional[OccurrenceFilter] = None) -> None:
        self.occurrence_filter = occurrence_filter

    def process(self, context: CompileContext) -> StageResult:
        result = StageResult(stage_name=self.name, occurrences_in=len(context.occurrences))
        context.occurrences = apply_filter(context.occurrences, self.occurrence_filter)
        result.occurrences_out = len(context.occurrences)

        if result.occurrences_out < result.occurrences_in:
            logger.debug(
                "Filter: %s → %s occurrences (%s removed)",
                result.occurrences_in,
                result.occurrences_out,
                result.occurrences_in - result.occurrences_out,
            )
        return result


class UniquenessStage:
    """Reject feeds with two occurrences of one activity at one place and start."""

    name = "Uniqueness"

    def process(self, context: CompileContext) -> StageResult:
        n = len(context.occurrences)
        check_unique(context.occurrences)
        return StageResult(stage_name=self.name, occurrences_in=n, occurrences_out=n)


class PartitionStage:
    """Group occurrences by activity, location and weekday."""

    name = "Partition"

    def process(self, context: CompileContext) -> StageResult:
        n = len(context.occurrences)
        context.partitions = partition_occurrences(context.occurrences)
        return StageResult(
            stage_name=self.name,
            occurrences_in=n,
            occurrences_out=n,
            metadata={
                "partitions": len(context.partitions),
                "time_groups": sum(len(p.groups) for p in context.partitions),
            },
        )


class MergeStage:
    """Merge time groups and assign base time ranges."""

    name = "Merge"

    def process(self, context: CompileContext) -> StageResult:
        n = len(context.occurrences)
        context.base_times = merge_recurrences(
            context.occurrences,
            context.partitions,
            context.start,
            context.end,
        )
        return StageResult(
            stage_name=self.name,
            occurrences_in=n,
            occurrences_out=n,
            metadata={"base_times": len(set(context.base_times))},
        )


class SynthesizeStage:
    """Build the compiled activity tree and its exceptions."""

    name = "Synthesize"

    def process(self, context: CompileContext) -> StageResult:
        n = len(context.occurrences)
        result = StageResult(stage_name=self.name, occurrences_in=n, occurrences_out=n)
        if context.updated is None:
            result.add_warning("feed update timestamp missing; first-day truncation not applied")

        context.activities = synthesize_activities(
            context.occurrences,
            context.base_times,
            context.start,
            context.end,
            context.updated,
        )
        result.metadata["activities"] = len(context.activities)
        return result


def create_compile_pipeline(occurrence_filter: Optional[OccurrenceFilter] = None) -> CompilationPipeline:
    """Create the full compilation pipeline.

    1. Normalize names and cancellations
    2. Filter
    3. Check the uniqueness invariant
    4. Partition
    5. Merge, split and resolve base collisions
    6. Synthesize the activity tree

    Args:
        occurrence_filter: Optional filter applied after normalization

    Returns:
        Configured pipeline
    """
    return (
        CompilationPipeline()
        .add_stage(NormalizeStage())
        .add_stage(FilterStage(occurrence_filter))
        .add_stage(UniquenessStage())
        .add_stage(PartitionStage())
        .add_stage(MergeStage())
        .add_stage(SynthesizeStage())
    )
