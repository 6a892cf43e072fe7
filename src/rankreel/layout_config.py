"""Layout configuration for ranked-list overlays.

One LayoutConfig instance describes every size, offset and color the
overlay renderer uses. It is frozen; a deployment loads it once (from
the defaults or a YAML file) and passes it to every render.

Layout YAML schema (all keys optional, unknown keys rejected):
  canvas_width: 1080
  canvas_height: 1920
  title_font_size: 100
  rank_colors: ["#FFD700", "silver", "bronze"]
  watermark_text: "ranktop.net"
  ...
"""

from dataclasses import dataclass, fields, replace
from pathlib import Path

import yaml

from .common import resolve_color


Color = tuple[int, int, int]

# Sizes and spacings that must be strictly positive.
_POSITIVE_FIELDS = (
    "canvas_width", "canvas_height",
    "title_font_size", "title_line_spacing", "title_box_width",
    "title_max_lines", "title_padding_top", "title_padding_bottom",
    "rank_font_size", "rank_spacing", "rank_padding_top",
    "rank_number_x", "rank_text_x", "rank_box_width", "rank_max_lines",
    "watermark_font_size", "watermark_padding",
    "outline_width", "fit_step",
)

_COLOR_FIELDS = ("default_rank_color", "title_color", "title_band_color",
                 "watermark_color", "outline_color")


@dataclass(frozen=True)
class LayoutConfig:
    """Sizes (px), colors and text for one overlay canvas."""

    canvas_width: int = 1080
    canvas_height: int = 1920

    title_font_size: int = 100
    title_line_spacing: int = 60
    title_box_width: int = 980
    title_max_lines: int = 2
    title_padding_top: int = 30
    title_padding_bottom: int = 40
    title_color: Color = (255, 255, 255)
    title_band_color: Color = (0, 0, 0)

    rank_font_size: int = 60
    rank_spacing: int = 140
    rank_padding_top: int = 80
    rank_number_x: int = 45
    rank_text_x: int = 125
    rank_box_width: int = 830
    rank_max_lines: int = 1
    # Tier colors for rank 1, 2, 3, ...; ranks past the end use the default.
    rank_colors: tuple[Color, ...] = (
        (255, 215, 0), (192, 192, 192), (205, 127, 50),
        (255, 255, 255), (255, 255, 255),
    )
    default_rank_color: Color = (255, 255, 255)

    watermark_text: str = "ranktop.net"
    watermark_font_size: int = 48
    watermark_padding: int = 20
    watermark_color: Color = (255, 255, 255)

    # Canvas-style outline width: half of it lands outside the glyph.
    outline_width: int = 12
    outline_color: Color = (0, 0, 0)

    fit_step: int = 2
    # Seconds the base title/watermark layer clears before the end time.
    fade_lead: float = 0.2

    def __post_init__(self) -> None:
        for name in _POSITIVE_FIELDS:
            value = getattr(self, name)
            if not isinstance(value, int) or value <= 0:
                raise ValueError(f"Layout: {name} must be a positive integer, got {value!r}")
        if self.fade_lead < 0:
            raise ValueError(f"Layout: fade_lead must be >= 0, got {self.fade_lead!r}")

    @property
    def canvas_size(self) -> tuple[int, int]:
        return (self.canvas_width, self.canvas_height)

    def rank_color(self, index: int) -> Color:
        """Tier color for the rank at 0-based *index*."""
        if 0 <= index < len(self.rank_colors):
            return self.rank_colors[index]
        return self.default_rank_color


DEFAULT_LAYOUT = LayoutConfig()


def layout_from_dict(raw: dict | None, base: LayoutConfig = DEFAULT_LAYOUT) -> LayoutConfig:
    """Overlay *raw* keys on *base*, parsing colors.

    Raises:
        ValueError: Unknown key, bad color, or non-positive size.
    """
    raw = dict(raw or {})
    known = {f.name for f in fields(LayoutConfig)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ValueError(f"Layout: unknown key(s) {unknown}. Valid: {sorted(known)}")

    for name in _COLOR_FIELDS:
        if name in raw:
            raw[name] = resolve_color(raw[name])
    if "rank_colors" in raw:
        raw["rank_colors"] = tuple(resolve_color(c) for c in raw["rank_colors"])
    if "watermark_text" in raw:
        raw["watermark_text"] = str(raw["watermark_text"])
    if "fade_lead" in raw:
        raw["fade_lead"] = float(raw["fade_lead"])

    return replace(base, **raw)


def load_layout_config(path: str | Path | None) -> LayoutConfig:
    """Load a layout YAML file; None returns the defaults."""
    if path is None:
        return DEFAULT_LAYOUT
    with open(path) as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Layout file {path}: expected a mapping at top level")
    return layout_from_dict(raw)
