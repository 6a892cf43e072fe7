"""Overlay rasterization for ranked-list videos.

An overlay is a transparent full-canvas RGBA image holding only drawn
text: a title band across the top, rank rows below it, and a watermark
in the bottom-right corner. Three variants share one layout:

  - render_overlay_image: title + the last `ranks_to_show` ranks +
    watermark (one image per clip when stitching clips).
  - render_base_overlay: title + watermark only.
  - render_rank_overlay: a single rank row, positioned exactly where
    render_overlay_image would put it.

Row positions depend on the title band height, so every variant fits the
title the same way before placing anything.

All text is drawn with draw_mixed_text, which switches fonts per script
run and pastes emoji bitmaps inline.
"""

import numpy as np
from PIL import Image, ImageDraw

from .common import load_font
from .emoji import get_emoji_bitmap
from .layout_config import DEFAULT_LAYOUT, LayoutConfig
from .script import FontClass, segment_text
from .textfit import FitResult, fit_text_to_box, font_advance, measure_mixed_text


# Emoji bitmaps sit slightly below the text top to line up with glyphs.
EMOJI_Y_OFFSET_FRAC = 0.1


# ── Mixed text ───────────────────────────────────────────────────


def _paste_clipped(img: Image.Image, glyph: Image.Image, x: int, y: int) -> None:
    """alpha_composite *glyph* at (x, y), keeping only the on-canvas part."""
    left, top = max(-x, 0), max(-y, 0)
    right = min(glyph.width, img.width - x)
    bottom = min(glyph.height, img.height - y)
    if right <= left or bottom <= top:
        return
    img.alpha_composite(
        glyph, dest=(x + left, y + top), source=(left, top, right, bottom),
    )


def draw_mixed_text(
    img: Image.Image,
    text: str,
    position: tuple[float, float],
    size: int,
    fill: tuple[int, int, int],
    stroke: tuple[int, int, int] | None = None,
    stroke_width: int = 0,
    advance=font_advance,
    emoji_lookup=get_emoji_bitmap,
) -> float:
    """Draw *text* with its top-left at *position*; return the end x.

    Non-emoji runs are drawn in their class font, outlined first when a
    stroke is given. Each emoji is pasted as a size x size bitmap; if its
    bitmap is unavailable it is skipped but still takes up `size` px.

    Args:
        img: RGBA target, modified in place.
        stroke_width: Canvas-style outline width. Pillow strokes outward
            only, so half of it is applied.
    """
    draw = ImageDraw.Draw(img)
    x, y = position
    pil_stroke = stroke_width // 2 if stroke is not None else 0

    for segment in segment_text(text):
        if segment.font_class == FontClass.EMOJI:
            for emoji in segment.text:
                bitmap = emoji_lookup(emoji)
                if bitmap is not None:
                    _paste_clipped(
                        img, bitmap.resize((size, size), Image.LANCZOS),
                        int(round(x)), int(round(y + size * EMOJI_Y_OFFSET_FRAC)),
                    )
                x += size
            continue

        font = load_font(size, segment.font_class)
        draw.text(
            (x, y), segment.text, font=font, fill=(*fill, 255), anchor="la",
            stroke_width=pil_stroke,
            stroke_fill=(*stroke, 255) if stroke is not None else None,
        )
        x += advance(segment.font_class, size, segment.text)

    return x


# ── Layout helpers ───────────────────────────────────────────────


def fit_title(title: str, layout: LayoutConfig = DEFAULT_LAYOUT, advance=font_advance) -> FitResult:
    return fit_text_to_box(
        title, layout.title_box_width, layout.title_max_lines,
        layout.title_font_size, step=layout.fit_step, advance=advance,
    )


def fit_rank(label: str, layout: LayoutConfig = DEFAULT_LAYOUT, advance=font_advance) -> FitResult:
    return fit_text_to_box(
        label, layout.rank_box_width, layout.rank_max_lines,
        layout.rank_font_size, step=layout.fit_step, advance=advance,
    )


def title_text_height(fit: FitResult, layout: LayoutConfig) -> int:
    """Height of the stacked title lines, without band padding."""
    n = len(fit.lines)
    return n * fit.font_size + max(n - 1, 0) * layout.title_line_spacing


def title_band_height(
    title: str, layout: LayoutConfig = DEFAULT_LAYOUT, advance=font_advance,
) -> int:
    """Full title band height: padding + stacked lines + padding."""
    fit = fit_title(title, layout, advance)
    return layout.title_padding_top + title_text_height(fit, layout) + layout.title_padding_bottom


def rank_row_y(index: int, band_height: int, layout: LayoutConfig = DEFAULT_LAYOUT) -> int:
    """Top y of the row for the rank at 0-based *index*."""
    return layout.rank_padding_top + band_height + index * layout.rank_spacing


def _new_canvas(layout: LayoutConfig) -> Image.Image:
    return Image.new("RGBA", layout.canvas_size, (0, 0, 0, 0))


# ── Drawing steps ────────────────────────────────────────────────


def _draw_title_band(img, title, layout, advance, emoji_lookup) -> int:
    """Opaque band with the title centered in it. Returns band height."""
    fit = fit_title(title, layout, advance)
    text_h = title_text_height(fit, layout)
    band_h = layout.title_padding_top + text_h + layout.title_padding_bottom

    draw = ImageDraw.Draw(img)
    draw.rectangle(
        [(0, 0), (layout.canvas_width - 1, band_h - 1)],
        fill=(*layout.title_band_color, 255),
    )

    y = (band_h - text_h) / 2
    for line in fit.lines:
        line_w = measure_mixed_text(line, fit.font_size, advance)
        draw_mixed_text(
            img, line, ((layout.canvas_width - line_w) / 2, y), fit.font_size,
            layout.title_color, advance=advance, emoji_lookup=emoji_lookup,
        )
        y += fit.font_size + layout.title_line_spacing
    return band_h


def _draw_rank_row(img, ranks, index, band_h, layout, advance, emoji_lookup) -> None:
    """Tier-colored rank number plus the fitted label, both outlined."""
    y = rank_row_y(index, band_h, layout)
    draw_mixed_text(
        img, f"{index + 1}.", (layout.rank_number_x, y), layout.rank_font_size,
        layout.rank_color(index), stroke=layout.outline_color,
        stroke_width=layout.outline_width, advance=advance, emoji_lookup=emoji_lookup,
    )

    fit = fit_rank(ranks[index], layout, advance)
    # Center the (possibly smaller) label against the number.
    label_y = y + (layout.rank_font_size - fit.font_size) / 2
    for line in fit.lines:
        draw_mixed_text(
            img, line, (layout.rank_text_x, label_y), fit.font_size,
            (255, 255, 255), stroke=layout.outline_color,
            stroke_width=layout.outline_width, advance=advance, emoji_lookup=emoji_lookup,
        )
        label_y += fit.font_size


def _draw_watermark(img, layout, advance, emoji_lookup) -> None:
    text = layout.watermark_text
    if not text:
        return
    size = layout.watermark_font_size
    w = measure_mixed_text(text, size, advance)
    x = layout.canvas_width - w - layout.watermark_padding
    y = layout.canvas_height - size - layout.watermark_padding
    draw_mixed_text(
        img, text, (x, y), size, layout.watermark_color,
        stroke=layout.outline_color, stroke_width=layout.outline_width,
        advance=advance, emoji_lookup=emoji_lookup,
    )


# ── Overlay variants ─────────────────────────────────────────────


def revealed_indices(rank_count: int, ranks_to_show: int) -> list[int]:
    """0-based indices visible when the last *ranks_to_show* are revealed."""
    ranks_to_show = max(0, min(ranks_to_show, rank_count))
    return list(range(rank_count - ranks_to_show, rank_count))


def render_overlay_image(
    title: str,
    ranks: list[str],
    ranks_to_show: int,
    layout: LayoutConfig = DEFAULT_LAYOUT,
    advance=font_advance,
    emoji_lookup=get_emoji_bitmap,
) -> Image.Image:
    """Title band, the last *ranks_to_show* rank rows, and the watermark."""
    img = _new_canvas(layout)
    band_h = _draw_title_band(img, title, layout, advance, emoji_lookup)
    for index in revealed_indices(len(ranks), ranks_to_show):
        _draw_rank_row(img, ranks, index, band_h, layout, advance, emoji_lookup)
    _draw_watermark(img, layout, advance, emoji_lookup)
    return img


def render_base_overlay(
    title: str,
    layout: LayoutConfig = DEFAULT_LAYOUT,
    advance=font_advance,
    emoji_lookup=get_emoji_bitmap,
) -> Image.Image:
    """Title band and watermark, no ranks."""
    img = _new_canvas(layout)
    _draw_title_band(img, title, layout, advance, emoji_lookup)
    _draw_watermark(img, layout, advance, emoji_lookup)
    return img


def render_rank_overlay(
    title: str,
    ranks: list[str],
    index: int,
    layout: LayoutConfig = DEFAULT_LAYOUT,
    advance=font_advance,
    emoji_lookup=get_emoji_bitmap,
) -> Image.Image:
    """Only the row for rank *index*, placed below an (undrawn) title band."""
    if not 0 <= index < len(ranks):
        raise IndexError(f"rank index {index} out of range for {len(ranks)} ranks")
    img = _new_canvas(layout)
    band_h = title_band_height(title, layout, advance)
    _draw_rank_row(img, ranks, index, band_h, layout, advance, emoji_lookup)
    return img


# ── Preview compositing ──────────────────────────────────────────


def frame_to_canvas(frame: np.ndarray, size: tuple[int, int]) -> np.ndarray:
    """Scale a video frame to cover *size*, then center-crop to it.

    Mirrors the transcoder's scale=increase + crop so previews match
    the final video.
    """
    canvas_w, canvas_h = size
    img = Image.fromarray(frame[:, :, :3].astype(np.uint8))
    scale = max(canvas_w / img.width, canvas_h / img.height)
    scaled = img.resize(
        (max(canvas_w, round(img.width * scale)), max(canvas_h, round(img.height * scale))),
        Image.BICUBIC,
    )
    left = (scaled.width - canvas_w) // 2
    top = (scaled.height - canvas_h) // 2
    return np.array(scaled.crop((left, top, left + canvas_w, top + canvas_h)))


def composite_over_frame(frame: np.ndarray, overlay: Image.Image) -> np.ndarray:
    """Alpha-blend an RGBA overlay onto an RGB frame of the same size."""
    patch = np.array(overlay.convert("RGBA"))
    if patch.shape[:2] != frame.shape[:2]:
        raise ValueError(
            f"Overlay size {patch.shape[1]}x{patch.shape[0]} does not match "
            f"frame size {frame.shape[1]}x{frame.shape[0]}"
        )
    alpha = patch[:, :, 3:4].astype(np.float32) / 255.0
    rgb = patch[:, :, :3].astype(np.float32)
    dest = frame[:, :, :3].astype(np.float32)
    blended = dest * (1 - alpha) + rgb * alpha
    return blended.astype(np.uint8)
