"""Shared test fixtures for rankreel tests."""

import subprocess

import pytest
import imageio_ffmpeg
from PIL import Image

from rankreel.layout_config import LayoutConfig
from rankreel.script import FontClass

_FFMPEG = imageio_ffmpeg.get_ffmpeg_exe()


def make_clip(path, color="blue", duration=2, size="320x240"):
    """Write a solid-color test clip with a silent audio track."""
    subprocess.run(
        [
            _FFMPEG, "-y",
            "-f", "lavfi", "-i", f"color=c={color}:s={size}:d={duration}:r=10",
            "-f", "lavfi", "-i", "anullsrc=r=44100:cl=mono",
            "-shortest",
            "-c:v", "libx264", "-crf", "28", "-pix_fmt", "yuv420p",
            "-c:a", "aac", "-b:a", "32k",
            str(path),
        ],
        check=True,
        capture_output=True,
    )
    return path


@pytest.fixture
def source_video(tmp_path):
    """A 2-second 320x240 clip with audio."""
    return make_clip(tmp_path / "source.mp4")


@pytest.fixture
def clip_factory(tmp_path):
    """Build named test clips under tmp_path: clip_factory("a.mp4", "red")."""
    def _make(name, color="blue", duration=2, size="320x240"):
        return make_clip(tmp_path / name, color, duration, size)
    return _make


@pytest.fixture
def fake_advance():
    """Deterministic glyph metrics: default glyphs are half an em wide,
    wide-script glyphs a full em."""
    def _advance(font_class, size, text):
        per_char = size if font_class == FontClass.WIDE else size * 0.5
        return len(text) * per_char
    return _advance


@pytest.fixture
def red_emoji():
    """Emoji lookup that returns a solid red bitmap for every emoji."""
    bitmap = Image.new("RGBA", (72, 72), (255, 0, 0, 255))
    return lambda emoji: bitmap


@pytest.fixture
def small_layout():
    """A 180x320 canvas scaled down from the production layout."""
    return LayoutConfig(
        canvas_width=180, canvas_height=320,
        title_font_size=18, title_line_spacing=6, title_box_width=160,
        title_padding_top=5, title_padding_bottom=6,
        rank_font_size=12, rank_spacing=24, rank_padding_top=12,
        rank_number_x=8, rank_text_x=24, rank_box_width=140,
        watermark_font_size=10, watermark_padding=4, outline_width=2,
    )
