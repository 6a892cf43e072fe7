"""ffmpeg operations — overlay compositing, concatenation, thumbnails.

Compositing takes a structured chain of OverlayLayer values and turns it
into a linear filter graph:

    [0:v] scale-to-cover, crop to canvas          -> [v0]
    [v0][1:v] overlay (optionally time-gated)     -> [v1]
    [v1][2:v] overlay ...                         -> [v2]
    ...

Only file paths (as separate argv entries) and numbers reach ffmpeg;
user text is always pre-rendered into the overlay PNGs.
"""

import subprocess
from dataclasses import dataclass
from pathlib import Path

import imageio_ffmpeg
from moviepy import VideoFileClip

from .errors import TranscodeError

_FFMPEG = imageio_ffmpeg.get_ffmpeg_exe()

ENCODE_ARGS = [
    "-c:v", "libx264", "-preset", "ultrafast", "-crf", "23", "-pix_fmt", "yuv420p",
    "-c:a", "aac",
    "-movflags", "+faststart",
]


@dataclass(frozen=True)
class OverlayLayer:
    """An overlay image and the [start, end) seconds it is visible.

    window=None means visible for the whole clip.
    """

    path: str
    window: tuple[float, float] | None = None


def _enable_expr(window: tuple[float, float]) -> str:
    start, end = window
    return f"gte(t,{start:.3f})*lt(t,{end:.3f})"


def build_filter_graph(
    layers: list[OverlayLayer], canvas: tuple[int, int],
) -> tuple[str, str]:
    """Build the linear compositing chain for *layers* over input 0.

    Layer k is ffmpeg input k+1. Each overlay stacks on the previous
    result, so later layers sit on top.

    Returns:
        (filter_graph_string, output_label)
    """
    w, h = canvas
    parts = [
        f"[0:v]scale={w}:{h}:force_original_aspect_ratio=increase,"
        f"crop={w}:{h},setsar=1[v0]"
    ]
    for k, layer in enumerate(layers, start=1):
        opts = "overlay=0:0"
        if layer.window is not None:
            opts += f":enable='{_enable_expr(layer.window)}'"
        parts.append(f"[v{k - 1}][{k}:v]{opts}[v{k}]")
    return ";".join(parts), f"[v{len(layers)}]"


def _run_ffmpeg(cmd: list[str], what: str) -> None:
    """Run ffmpeg, raising TranscodeError with its stderr tail on failure."""
    try:
        result = subprocess.run(cmd, capture_output=True, text=True)
    except OSError as exc:
        raise TranscodeError(f"{what}: could not start ffmpeg: {exc}") from exc
    if result.returncode != 0:
        raise TranscodeError(f"{what} failed", result.returncode, result.stderr)


def compose_layers(
    source: str,
    layers: list[OverlayLayer],
    output: str,
    canvas: tuple[int, int] = (1080, 1920),
) -> None:
    """Fit *source* to the canvas and composite *layers* on top, in order.

    Audio from the source is kept when present.
    """
    Path(output).parent.mkdir(parents=True, exist_ok=True)
    graph, out_label = build_filter_graph(layers, canvas)

    inputs = ["-i", source]
    for layer in layers:
        inputs.extend(["-i", layer.path])

    cmd = [
        _FFMPEG, "-y",
        *inputs,
        "-filter_complex", graph,
        "-map", out_label, "-map", "0:a?",
        *ENCODE_ARGS,
        output,
    ]
    _run_ffmpeg(cmd, f"Compositing {Path(source).name}")


def _concat_line(path: str) -> str:
    # concat demuxer quoting: close quote, escaped quote, reopen.
    escaped = str(Path(path).resolve()).replace("'", "'\\''")
    return f"file '{escaped}'"


def concat_segments(segments: list[str], output: str, list_path: str) -> None:
    """Join same-codec segments in order with stream copy."""
    if not segments:
        raise ValueError("No segments to concatenate")
    Path(output).parent.mkdir(parents=True, exist_ok=True)
    with open(list_path, "w") as f:
        f.write("\n".join(_concat_line(p) for p in segments) + "\n")

    cmd = [
        _FFMPEG, "-y",
        "-f", "concat", "-safe", "0", "-i", list_path,
        "-c", "copy", "-movflags", "+faststart",
        output,
    ]
    _run_ffmpeg(cmd, f"Concatenating {len(segments)} segments")


def extract_thumbnail(video: str, output: str, at: float = 1.0) -> None:
    """Write one JPEG frame of *video* taken at *at* seconds."""
    Path(output).parent.mkdir(parents=True, exist_ok=True)
    cmd = [
        _FFMPEG, "-y",
        "-ss", f"{at:.3f}", "-i", video,
        "-frames:v", "1", "-q:v", "2",
        output,
    ]
    _run_ffmpeg(cmd, "Thumbnail extraction")


def probe_duration(path: str) -> float:
    """Clip duration in seconds (moviepy; imageio_ffmpeg has no ffprobe)."""
    try:
        with VideoFileClip(str(path)) as clip:
            return float(clip.duration)
    except (OSError, KeyError) as exc:
        raise TranscodeError(f"Could not probe {path}: {exc}") from exc
