"""Tests for composition planning (reveal order, timing windows)."""

import pytest

from rankreel.errors import ValidationError
from rankreel.plan import (
    AUTO_STITCH,
    PRE_EDITED,
    STEP_BASE,
    STEP_CLIP,
    STEP_RANK,
    RenderStep,
    TimestampMark,
    cumulative_reveal,
    plan_auto_stitch,
    plan_for_job,
    plan_timed,
    render_step_overlay,
    timed_reveal,
)


def _marks(*times):
    return [TimestampMark(t) for t in times]


class TestCumulativeReveal:
    def test_first_step_shows_last_rank(self):
        assert cumulative_reveal(5, 1) == (4,)

    def test_last_step_shows_all(self):
        assert cumulative_reveal(5, 5) == (0, 1, 2, 3, 4)

    def test_each_step_adds_the_next_higher_rank(self):
        for step in range(1, 5):
            before = set(cumulative_reveal(5, step))
            after = set(cumulative_reveal(5, step + 1))
            assert after - before == {5 - step - 1}


class TestTimedReveal:
    def test_earliest_mark_reveals_last_rank(self):
        pairs = timed_reveal(3, _marks(2.0, 5.0, 8.0), 10.0)
        assert [(m.time, idx, win) for m, idx, win in pairs] == [
            (2.0, 2, (2.0, 10.0)),
            (5.0, 1, (5.0, 10.0)),
            (8.0, 0, (8.0, 10.0)),
        ]

    def test_unsorted_marks_are_ordered(self):
        pairs = timed_reveal(3, _marks(8.0, 2.0, 5.0), 10.0)
        assert [idx for _, idx, _ in pairs] == [2, 1, 0]
        assert [m.time for m, _, _ in pairs] == [2.0, 5.0, 8.0]


class TestPlanAutoStitch:
    def test_five_ranks_five_clips(self):
        plan = plan_auto_stitch(5, 5)
        assert plan.mode == AUTO_STITCH
        assert len(plan.steps) == 5
        for i, step in enumerate(plan.steps):
            assert step.kind == STEP_CLIP
            assert step.clip_index == i
            assert set(step.rank_indices) == set(range(5 - (i + 1), 5))
            assert step.window is None

    def test_fewer_clips_than_ranks(self):
        plan = plan_auto_stitch(5, 2)
        assert [s.rank_indices for s in plan.steps] == [(4,), (3, 4)]

    def test_more_clips_than_ranks_rejected(self):
        with pytest.raises(ValidationError, match="only 2 ranks"):
            plan_auto_stitch(2, 3)

    def test_no_clips_rejected(self):
        with pytest.raises(ValidationError, match="clip"):
            plan_auto_stitch(3, 0)

    def test_no_ranks_rejected(self):
        with pytest.raises(ValidationError, match="rank"):
            plan_auto_stitch(0, 1)


class TestPlanTimed:
    def test_base_then_ranks(self):
        plan = plan_timed(3, _marks(2.0, 5.0, 8.0), 10.0)
        assert plan.mode == PRE_EDITED
        assert plan.end_time == 10.0
        base, *ranks = plan.steps
        assert base.kind == STEP_BASE
        assert base.window == pytest.approx((0.0, 9.8))
        assert [(s.kind, s.rank_indices, s.window) for s in ranks] == [
            (STEP_RANK, (2,), (2.0, 10.0)),
            (STEP_RANK, (1,), (5.0, 10.0)),
            (STEP_RANK, (0,), (8.0, 10.0)),
        ]

    def test_custom_lead(self):
        plan = plan_timed(1, _marks(1.0), 4.0, lead=0.5)
        assert plan.steps[0].window == (0.0, 3.5)

    def test_base_window_never_negative(self):
        plan = plan_timed(1, _marks(0.0), 0.1, lead=0.2)
        assert plan.steps[0].window == (0.0, 0.0)

    def test_mark_at_zero_allowed(self):
        plan = plan_timed(2, _marks(0.0, 1.0), 3.0)
        assert plan.steps[1].window == (0.0, 3.0)

    def test_empty_marks_rejected(self):
        with pytest.raises(ValidationError, match="at least one"):
            plan_timed(3, [], 10.0)

    @pytest.mark.parametrize("end", [0, -1.0, None, float("nan"), float("inf")])
    def test_bad_end_rejected(self, end):
        with pytest.raises(ValidationError, match="end time"):
            plan_timed(1, _marks(0.5), end)

    def test_nan_mark_rejected(self):
        with pytest.raises(ValidationError, match="outside"):
            plan_timed(1, _marks(float("nan")), 10.0)

    def test_mark_count_mismatch_rejected(self):
        with pytest.raises(ValidationError, match="one timestamp per rank"):
            plan_timed(3, _marks(1.0, 2.0), 10.0)

    def test_mark_at_end_rejected(self):
        with pytest.raises(ValidationError, match="outside"):
            plan_timed(1, _marks(10.0), 10.0)

    def test_negative_mark_rejected(self):
        with pytest.raises(ValidationError, match="outside"):
            plan_timed(1, _marks(-0.5), 10.0)


class TestPlanForJob:
    def test_auto_stitch_job(self):
        job = {"mode": AUTO_STITCH, "ranks": ["a", "b", "c"], "clips": ["x.mp4", "y.mp4"]}
        plan = plan_for_job(job)
        assert plan.mode == AUTO_STITCH
        assert len(plan.steps) == 2

    def test_pre_edited_job(self):
        job = {
            "mode": PRE_EDITED, "ranks": ["a", "b"], "clips": ["x.mp4"],
            "timestamps": [1.0, 3.0], "end_time": 5.0,
        }
        plan = plan_for_job(job, lead=0.0)
        assert plan.steps[0].window == (0.0, 5.0)
        assert len(plan.steps) == 3

    def test_unknown_mode(self):
        with pytest.raises(ValidationError, match="Unknown job mode"):
            plan_for_job({"mode": "montage", "ranks": ["a"], "clips": ["x"]})


class TestRenderStepOverlay:
    def test_each_kind_renders_full_canvas(self, small_layout):
        title, ranks = "Top picks", ["One", "Two"]
        steps = [
            RenderStep(STEP_CLIP, rank_indices=(1,)),
            RenderStep(STEP_BASE, window=(0.0, 1.0)),
            RenderStep(STEP_RANK, rank_indices=(0,), window=(0.5, 1.0)),
        ]
        for step in steps:
            img = render_step_overlay(step, title, ranks, small_layout, emoji_lookup=lambda e: None)
            assert img.size == (180, 320)

    def test_rank_step_has_no_band(self, small_layout):
        step = RenderStep(STEP_RANK, rank_indices=(0,), window=(0.5, 1.0))
        img = render_step_overlay(step, "Top picks", ["One"], small_layout)
        assert img.getpixel((0, 0))[3] == 0

    def test_unknown_kind(self, small_layout):
        with pytest.raises(ValueError, match="Unknown step kind"):
            render_step_overlay(RenderStep("fade"), "T", ["a"], small_layout)
