"""Job orchestration — download, render, composite, publish, clean up.

    PENDING -> DOWNLOADING -> RENDERING -> COMPOSITING
            -> CONCATENATING (auto_stitch only) -> PUBLISHING -> READY
    any stage -> FAILED

run_job is the only place that decides a job's terminal status. Stage
helpers raise FetchError / RenderError / TranscodeError / PublishError;
run_job reports FAILED with the reason and re-raises. Whatever happens,
the job's scratch directory is removed and the emoji cache cleared
before run_job returns.

Fan-out uses a thread pool: clip downloads, per-clip render+composite
(auto_stitch) and per-rank overlay renders (pre_edited) run
concurrently and are joined before the next stage. Results are kept in
plan order regardless of completion order.
"""

import shutil
import tempfile
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

from . import status as st
from .emoji import clear_emoji_cache
from .errors import FetchError, JobError, PublishError, RenderError
from .layout_config import DEFAULT_LAYOUT, LayoutConfig
from .plan import AUTO_STITCH, RenderPlan, RenderStep, plan_for_job, render_step_overlay
from .settings import Settings
from .status import StatusReporter
from .storage import LocalObjectStorage
from .transcode import (
    OverlayLayer,
    compose_layers,
    concat_segments,
    extract_thumbnail,
    probe_duration,
)


THUMBNAIL_AT_S = 1.0


# ── Stage helpers ────────────────────────────────────────────────


def _map_ordered(fn, items, workers):
    """Run fn over items concurrently; return results in item order.

    The first exception propagates once in-flight siblings finish.
    """
    if workers <= 1 or len(items) <= 1:
        return [fn(item) for item in items]
    results = [None] * len(items)
    with ThreadPoolExecutor(max_workers=min(workers, len(items))) as pool:
        futures = {pool.submit(fn, item): i for i, item in enumerate(items)}
        for future in as_completed(futures):
            results[futures[future]] = future.result()
    return results


def _download_clips(storage, bucket, keys, scratch, workers) -> list[Path]:
    def _fetch(indexed_key):
        i, key = indexed_key
        dest = scratch / f"in_{i}{Path(key).suffix or '.mp4'}"
        print(f"  FETCH  {bucket}/{key}", flush=True)
        try:
            return storage.download(bucket, key, dest)
        except (OSError, ValueError) as exc:
            raise FetchError(f"Could not download source clip '{key}': {exc}") from exc

    return _map_ordered(_fetch, list(enumerate(keys)), workers)


def _render_to_png(step: RenderStep, job: dict, layout: LayoutConfig, path: Path) -> Path:
    """Rasterize one plan step's overlay and save it as PNG."""
    try:
        image = render_step_overlay(step, job["title"], job["ranks"], layout)
        image.save(path, format="PNG")
    except Exception as exc:
        raise RenderError(f"Overlay render failed ({step.kind} step): {exc}") from exc
    return path


def _run_auto_stitch(plan, job, layout, local, scratch, reporter, workers) -> Path:
    """Overlay each clip with its cumulative reveal, then concatenate."""
    reporter.update(st.RENDERING, 10)
    n = len(plan.steps)

    def _process(step):
        i = step.clip_index
        label = f"[clip {i}] ranks {min(step.rank_indices) + 1}-{max(step.rank_indices) + 1}"
        print(f"  RENDER {label}", flush=True)
        t0 = time.monotonic()
        overlay = _render_to_png(step, job, layout, scratch / f"ov_{i}.png")
        segment = scratch / f"proc_{i}.mp4"
        compose_layers(str(local[i]), [OverlayLayer(str(overlay))], str(segment), layout.canvas_size)
        print(f"  DONE   {label} — {time.monotonic() - t0:.1f}s wall", flush=True)
        return segment

    segments = [None] * n
    if workers <= 1 or n == 1:
        for done, step in enumerate(plan.steps, start=1):
            segments[step.clip_index] = _process(step)
            reporter.update(st.COMPOSITING, 10 + (done * 60) // n)
    else:
        with ThreadPoolExecutor(max_workers=min(workers, n)) as pool:
            futures = {pool.submit(_process, step): step.clip_index for step in plan.steps}
            for done, future in enumerate(as_completed(futures), start=1):
                segments[futures[future]] = future.result()
                reporter.update(st.COMPOSITING, 10 + (done * 60) // n)

    # Barrier: every segment exists before the concat starts.
    reporter.update(st.CONCATENATING, 80)
    final = scratch / "final.mp4"
    print(f"  CONCAT {n} segments", flush=True)
    concat_segments([str(s) for s in segments], str(final), str(scratch / "concat.txt"))
    return final


def _run_timed(plan, job, layout, local, scratch, reporter, workers) -> Path:
    """Render base + per-rank overlays, then one gated compositing pass."""
    reporter.update(st.RENDERING, 10)

    def _render(indexed_step):
        k, step = indexed_step
        name = "ov_base.png" if step.kind == "base" else f"ov_rank_{step.rank_indices[0]}.png"
        print(f"  RENDER [{k}] {step.kind} {step.window[0]:.2f}s-{step.window[1]:.2f}s", flush=True)
        return _render_to_png(step, job, layout, scratch / name)

    overlays = _map_ordered(_render, list(enumerate(plan.steps)), workers)

    reporter.update(st.COMPOSITING, 40)
    layers = [
        OverlayLayer(str(path), window=step.window)
        for step, path in zip(plan.steps, overlays)
    ]
    final = scratch / "final.mp4"
    print(f"  COMPOSE {len(layers)} layers over {Path(local[0]).name}", flush=True)
    compose_layers(str(local[0]), layers, str(final), layout.canvas_size)
    return final


def _publish(storage, settings, job_id, video, thumbnail) -> dict:
    """Upload video + thumbnail together; on failure remove both."""
    video_key = f"{job_id}.mp4"
    thumb_key = f"{job_id}.jpg"
    uploads = [
        (settings.output_bucket, video, video_key, "video/mp4"),
        (settings.thumbnail_bucket, thumbnail, thumb_key, "image/jpeg"),
    ]

    def _upload(item):
        bucket, path, key, content_type = item
        print(f"  PUBLISH {bucket}/{key}", flush=True)
        storage.upload(bucket, path, key, content_type)

    try:
        _map_ordered(_upload, uploads, 2)
    except (OSError, ValueError) as exc:
        for bucket, _, key, _ in uploads:
            try:
                storage.delete(bucket, key)
            except OSError as cleanup_exc:
                print(f"  WARN   could not remove partial {bucket}/{key}: {cleanup_exc}", flush=True)
        raise PublishError(f"Upload failed: {exc}") from exc

    return {"video": video_key, "thumbnail": thumb_key}


def failure_reason(exc: Exception) -> str:
    """Human-readable one-paragraph reason for a FAILED status."""
    if isinstance(exc, JobError):
        return f"{exc.stage} failed: {exc}"
    return f"{type(exc).__name__}: {exc}"


# ── Main entry ───────────────────────────────────────────────────


def run_job(
    job: dict,
    storage: LocalObjectStorage,
    settings: Settings = Settings(),
    layout: LayoutConfig = DEFAULT_LAYOUT,
    reporter: StatusReporter | None = None,
) -> dict:
    """Run one validated job (see job_manifest.parse_job) to completion.

    Returns:
        {"status": "READY", "video": key, "thumbnail": key}

    Raises:
        ValidationError: Invalid plan; raised before any status or I/O.
        JobError: A stage failed. FAILED has already been reported.
    """
    plan: RenderPlan = plan_for_job(job, lead=layout.fade_lead)

    job_id = job["job_id"]
    if reporter is None:
        reporter = StatusReporter(
            storage, settings.output_bucket, job_id,
            callback_url=job.get("callback_url") or settings.callback_url,
            secret=settings.internal_secret,
        )

    if settings.work_dir:
        Path(settings.work_dir).mkdir(parents=True, exist_ok=True)
    scratch = Path(tempfile.mkdtemp(prefix=f"rankreel-{job_id}-", dir=settings.work_dir))
    print(f"  START  {job_id} ({plan.mode}, {len(job['clips'])} clip(s), {len(job['ranks'])} ranks)", flush=True)
    t0 = time.monotonic()

    try:
        reporter.update(st.DOWNLOADING, 5)
        local = _download_clips(
            storage, settings.source_bucket, job["clips"], scratch, settings.workers,
        )

        if plan.mode == AUTO_STITCH:
            final = _run_auto_stitch(plan, job, layout, local, scratch, reporter, settings.workers)
        else:
            final = _run_timed(plan, job, layout, local, scratch, reporter, settings.workers)

        reporter.update(st.PUBLISHING, 90)
        thumbnail = scratch / "thumb.jpg"
        at = min(THUMBNAIL_AT_S, probe_duration(str(final)) / 2)
        extract_thumbnail(str(final), str(thumbnail), at=at)
        published = _publish(storage, settings, job_id, final, thumbnail)
    except Exception as exc:
        reason = failure_reason(exc)
        print(f"  FAILED {job_id} — {reason}", flush=True)
        reporter.fail(reason)
        raise
    else:
        result = {"status": st.READY, **published}
        reporter.succeed(published)
        print(f"  DONE   {job_id} — {time.monotonic() - t0:.1f}s wall", flush=True)
        return result
    finally:
        shutil.rmtree(scratch, ignore_errors=True)
        clear_emoji_cache()
