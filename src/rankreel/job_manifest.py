"""Job manifest loader — one render request, from YAML or JSON.

Job manifest schema:
  job_id: "post-123"
  mode: auto_stitch               # or pre_edited
  title: "Best pizza toppings 🍕"
  ranks: ["Pepperoni", "Mushroom", "Pineapple"]
  paths:
    session: "sess-42"
  clips:
    - "${session}/v_0.mp4"
  timestamps: [2.0, 5.0, 8.0]     # pre_edited only, one per rank
  end_time: 10.0                  # pre_edited only
  callback_url: "https://example.com"   # optional webhook base

Everything is checked here so a bad request fails before any download
or render starts.
"""

import json
import math
import re
from pathlib import Path

import yaml

from .common import resolve_path_vars
from .errors import ValidationError
from .plan import AUTO_STITCH, PRE_EDITED


VALID_MODES = {AUTO_STITCH, PRE_EDITED}

JOB_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


def load_job_manifest(manifest_path: str | Path) -> dict:
    """Load and validate a job manifest file (YAML; JSON also parses).

    Raises:
        ValidationError: Missing/invalid fields.
        FileNotFoundError: Missing manifest file.
    """
    with open(manifest_path) as f:
        raw = yaml.safe_load(f)
    return parse_job(raw)


def _number(value, what: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"Job: {what} must be a number, got {value!r}")
    if not math.isfinite(value):
        raise ValidationError(f"Job: {what} must be a finite number, got {value!r}")
    return float(value)


def _parse_ranks(raw_ranks) -> list[str]:
    # Clients may send the list JSON-encoded in a form field.
    if isinstance(raw_ranks, str):
        try:
            raw_ranks = json.loads(raw_ranks)
        except json.JSONDecodeError as exc:
            raise ValidationError(f"Job: 'ranks' string is not valid JSON: {exc}") from exc
    if not isinstance(raw_ranks, list) or not raw_ranks:
        raise ValidationError("Job: 'ranks' must be a non-empty list")
    ranks = []
    for i, rank in enumerate(raw_ranks):
        if not isinstance(rank, (str, int, float)) or isinstance(rank, bool):
            raise ValidationError(f"Job: rank {i} must be text, got {rank!r}")
        ranks.append(str(rank))
    return ranks


def _parse_timestamps(raw_marks) -> list[float]:
    if not isinstance(raw_marks, list) or not raw_marks:
        raise ValidationError("Job: pre_edited mode needs a non-empty 'timestamps' list")
    times = []
    for i, mark in enumerate(raw_marks):
        if isinstance(mark, dict):
            if "time" not in mark:
                raise ValidationError(f"Job: timestamp {i} is missing 'time'")
            mark = mark["time"]
        times.append(_number(mark, f"timestamp {i}"))
    return sorted(times)


def parse_job(raw) -> dict:
    """Validate and normalize a job request dict.

    Returns:
        {job_id, mode, title, ranks, clips, timestamps, end_time,
         callback_url} with timestamps sorted ascending (None for
        auto_stitch).

    Raises:
        ValidationError: Missing/invalid fields.
    """
    if not isinstance(raw, dict):
        raise ValidationError("Job: expected a mapping at top level")

    job_id = raw.get("job_id")
    if not isinstance(job_id, str) or not JOB_ID_PATTERN.match(job_id):
        raise ValidationError(
            f"Job: 'job_id' must match {JOB_ID_PATTERN.pattern}, got {job_id!r}"
        )

    mode = raw.get("mode", AUTO_STITCH)
    if mode not in VALID_MODES:
        raise ValidationError(f"Job: invalid mode '{mode}'. Valid: {sorted(VALID_MODES)}")

    title = raw.get("title")
    if not isinstance(title, str) or not title.strip():
        raise ValidationError("Job: 'title' must be a non-empty string")

    ranks = _parse_ranks(raw.get("ranks"))

    clips_raw = raw.get("clips")
    if not isinstance(clips_raw, list) or not clips_raw:
        raise ValidationError("Job: 'clips' must be a non-empty list of storage keys")
    paths = raw.get("paths", {}) or {}
    try:
        clips = [resolve_path_vars(str(c), paths) for c in clips_raw]
    except ValueError as exc:
        raise ValidationError(f"Job: {exc}") from exc

    timestamps = None
    end_time = None
    if mode == AUTO_STITCH:
        if len(clips) > len(ranks):
            raise ValidationError(
                f"Job: {len(clips)} clips but only {len(ranks)} ranks "
                f"(each clip reveals one more rank)"
            )
    else:
        if len(clips) != 1:
            raise ValidationError(
                f"Job: pre_edited mode takes exactly one clip, got {len(clips)}"
            )
        timestamps = _parse_timestamps(raw.get("timestamps"))
        if "end_time" not in raw:
            raise ValidationError("Job: pre_edited mode needs 'end_time'")
        end_time = _number(raw["end_time"], "end_time")
        if not end_time > 0:
            raise ValidationError(f"Job: end_time must be > 0, got {end_time}")
        if len(timestamps) != len(ranks):
            raise ValidationError(
                f"Job: {len(timestamps)} timestamps for {len(ranks)} ranks "
                f"(need one per rank)"
            )
        for t in timestamps:
            if not 0 <= t < end_time:
                raise ValidationError(f"Job: timestamp {t} outside [0, {end_time})")

    callback_url = raw.get("callback_url")
    if callback_url is not None and not isinstance(callback_url, str):
        raise ValidationError("Job: 'callback_url' must be a string")

    return {
        "job_id": job_id,
        "mode": mode,
        "title": title,
        "ranks": ranks,
        "clips": clips,
        "timestamps": timestamps,
        "end_time": end_time,
        "callback_url": callback_url,
    }
