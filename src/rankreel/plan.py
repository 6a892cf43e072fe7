"""Composition planning — which overlay is visible where, and when.

Ranks are revealed countdown-style: the lowest-priority entry (highest
index) appears first and rank 1 (index 0) appears last.

Two plans:

  auto_stitch  One step per source clip. Step i (0-based) overlays the
               title, watermark and the last i+1 ranks on clip i for its
               whole duration. Clips are then concatenated in order.

  pre_edited   One source clip. A base step (title + watermark) visible
               over [0, end - lead), then one step per rank, each visible
               over [mark, end). Marks are taken in ascending order and
               assigned to ranks in reverse index order. Steps are listed
               bottom layer first; each composites on top of the result
               of the previous ones.
"""

import math
from dataclasses import dataclass

from PIL import Image

from .errors import ValidationError
from .layout_config import DEFAULT_LAYOUT, LayoutConfig
from .overlays import (
    render_base_overlay,
    render_overlay_image,
    render_rank_overlay,
    revealed_indices,
)


AUTO_STITCH = "auto_stitch"
PRE_EDITED = "pre_edited"

STEP_CLIP = "clip"
STEP_BASE = "base"
STEP_RANK = "rank"


@dataclass(frozen=True)
class TimestampMark:
    """A point on the source clip's timeline where one rank appears."""

    time: float


@dataclass(frozen=True)
class RenderStep:
    """One overlay application.

    kind:
      "clip"  overlay `rank_indices` on source clip `clip_index`, full duration.
      "base"  title + watermark layer, visible during `window`.
      "rank"  single-rank layer, visible during `window`.
    """

    kind: str
    rank_indices: tuple[int, ...] = ()
    clip_index: int = 0
    window: tuple[float, float] | None = None


@dataclass(frozen=True)
class RenderPlan:
    mode: str
    steps: tuple[RenderStep, ...]
    end_time: float | None = None


# ── Reveal policies ──────────────────────────────────────────────


def cumulative_reveal(rank_count: int, step: int) -> tuple[int, ...]:
    """Rank indices visible at 1-indexed *step* of a cumulative reveal.

    Step 1 shows only the last rank; step rank_count shows them all.
    """
    return tuple(revealed_indices(rank_count, step))


def timed_reveal(
    rank_count: int, marks: list[TimestampMark], end_time: float,
) -> list[tuple[TimestampMark, int, tuple[float, float]]]:
    """Pair each mark (ascending) with the rank it reveals and its window.

    The earliest mark reveals index rank_count - 1, the latest reveals
    index 0; every window runs from the mark to *end_time*.
    """
    ordered = sorted(marks, key=lambda m: m.time)
    return [
        (mark, rank_count - 1 - position, (mark.time, end_time))
        for position, mark in enumerate(ordered)
    ]


# ── Plans ────────────────────────────────────────────────────────


def plan_auto_stitch(rank_count: int, clip_count: int) -> RenderPlan:
    """Cumulative-by-clip plan: clip i reveals one more rank than clip i-1.

    Raises:
        ValidationError: No clips, no ranks, or more clips than ranks.
    """
    if rank_count < 1:
        raise ValidationError("Auto-stitch plan needs at least one rank")
    if clip_count < 1:
        raise ValidationError("Auto-stitch plan needs at least one clip")
    if clip_count > rank_count:
        raise ValidationError(
            f"Auto-stitch plan: {clip_count} clips but only {rank_count} ranks to reveal"
        )
    steps = tuple(
        RenderStep(STEP_CLIP, rank_indices=cumulative_reveal(rank_count, i + 1), clip_index=i)
        for i in range(clip_count)
    )
    return RenderPlan(AUTO_STITCH, steps)


def plan_timed(
    rank_count: int,
    marks: list[TimestampMark],
    end_time: float,
    lead: float = DEFAULT_LAYOUT.fade_lead,
) -> RenderPlan:
    """Timestamp-gated plan over a single pre-edited clip.

    Raises:
        ValidationError: No marks, end_time not finite and > 0, a mark outside
            [0, end_time), or a mark count different from the rank count.
    """
    if not marks:
        raise ValidationError("Timed plan needs at least one timestamp")
    if end_time is None or not 0 < end_time < math.inf:
        raise ValidationError(
            f"Timed plan: end time must be a finite number > 0, got {end_time!r}"
        )
    if len(marks) != rank_count:
        raise ValidationError(
            f"Timed plan: {len(marks)} timestamps for {rank_count} ranks "
            f"(need one timestamp per rank)"
        )
    for mark in marks:
        if not 0 <= mark.time < end_time:
            raise ValidationError(
                f"Timed plan: timestamp {mark.time} outside [0, {end_time})"
            )

    steps = [RenderStep(STEP_BASE, window=(0.0, max(end_time - lead, 0.0)))]
    for _, index, window in timed_reveal(rank_count, marks, end_time):
        steps.append(RenderStep(STEP_RANK, rank_indices=(index,), window=window))
    return RenderPlan(PRE_EDITED, tuple(steps), end_time=end_time)


def plan_for_job(job: dict, lead: float = DEFAULT_LAYOUT.fade_lead) -> RenderPlan:
    """Build the plan for a normalized job dict (see job_manifest)."""
    if job["mode"] == AUTO_STITCH:
        return plan_auto_stitch(len(job["ranks"]), len(job["clips"]))
    if job["mode"] == PRE_EDITED:
        marks = [TimestampMark(t) for t in job["timestamps"]]
        return plan_timed(len(job["ranks"]), marks, job["end_time"], lead=lead)
    raise ValidationError(f"Unknown job mode '{job['mode']}'")


# ── Step rendering ───────────────────────────────────────────────


def render_step_overlay(
    step: RenderStep,
    title: str,
    ranks: list[str],
    layout: LayoutConfig = DEFAULT_LAYOUT,
    **render_kwargs,
) -> Image.Image:
    """Rasterize the overlay image for one plan step."""
    if step.kind == STEP_CLIP:
        return render_overlay_image(
            title, ranks, len(step.rank_indices), layout, **render_kwargs,
        )
    if step.kind == STEP_BASE:
        return render_base_overlay(title, layout, **render_kwargs)
    if step.kind == STEP_RANK:
        return render_rank_overlay(
            title, ranks, step.rank_indices[0], layout, **render_kwargs,
        )
    raise ValueError(f"Unknown step kind '{step.kind}'")
