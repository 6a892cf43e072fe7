"""CLI for previewing overlays without running a job.

Renders overlay steps of a job manifest to a PNG for layout iteration.
With --frame, the overlay is blended onto a frame of a local clip
(scaled and cropped to the canvas the way the transcoder does it).

For pre_edited jobs, --at T composites every layer visible at T
(base + ranks revealed so far); otherwise --step picks one plan step.

Usage:
    rankreel preview --job job.yaml --output overlay.png
    rankreel preview --job job.yaml --output step2.png --step 2
    rankreel preview --job job.yaml --output t6.png --frame clip.mp4 --at 6.0
"""

import argparse

from moviepy import VideoFileClip
from PIL import Image

from .common import register_fonts
from .emoji import clear_emoji_cache
from .job_manifest import load_job_manifest
from .layout_config import load_layout_config
from .overlays import composite_over_frame, frame_to_canvas
from .plan import PRE_EDITED, plan_for_job, render_step_overlay


def visible_steps(plan, at: float | None, step_index: int | None) -> list:
    """Plan steps to draw for a preview."""
    if plan.mode == PRE_EDITED and at is not None:
        return [s for s in plan.steps if s.window[0] <= at < s.window[1]]
    if step_index is None:
        step_index = len(plan.steps) - 1
    if not 0 <= step_index < len(plan.steps):
        raise ValueError(
            f"--step {step_index} out of range (plan has {len(plan.steps)} steps, "
            f"0-{len(plan.steps) - 1})"
        )
    return [plan.steps[step_index]]


def main(args=None):
    parser = argparse.ArgumentParser(description="Render overlay steps of a job to PNG.")
    parser.add_argument("--job", required=True, help="Path to job manifest")
    parser.add_argument("--output", required=True, help="Output PNG path")
    parser.add_argument("--layout", default=None, help="Layout YAML")
    parser.add_argument("--step", type=int, default=None, help="Plan step index (0-based)")
    parser.add_argument("--frame", default=None, help="Local clip to use as background")
    parser.add_argument("--at", type=float, default=None, help="Time in seconds")
    parsed = parser.parse_args(args)

    job = load_job_manifest(parsed.job)
    layout = load_layout_config(parsed.layout)
    plan = plan_for_job(job, lead=layout.fade_lead)
    steps = visible_steps(plan, parsed.at, parsed.step)

    register_fonts()
    try:
        overlay = Image.new("RGBA", layout.canvas_size, (0, 0, 0, 0))
        for step in steps:
            overlay.alpha_composite(render_step_overlay(step, job["title"], job["ranks"], layout))
    finally:
        clear_emoji_cache()

    if parsed.frame:
        with VideoFileClip(parsed.frame) as clip:
            t = min(parsed.at or 0.0, max(clip.duration - 0.05, 0.0))
            frame = frame_to_canvas(clip.get_frame(t), layout.canvas_size)
        Image.fromarray(composite_over_frame(frame, overlay)).save(parsed.output)
    else:
        overlay.save(parsed.output)

    print(f"Done: {parsed.output} ({len(steps)} layer(s))")


if __name__ == "__main__":
    main()
