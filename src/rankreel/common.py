"""rankreel.common — shared utilities for overlay rendering.

Contains: color parsing, path variable resolution, and per-font-class
font registration and loading.
"""

import os
import re
import threading
from functools import lru_cache
from pathlib import Path

from PIL import ImageFont

from .script import FontClass


# ── Font paths ─────────────────────────────────────────────────────
# Each font class has an ordered list of candidates; the first one that
# exists wins. RANKREEL_FONT / RANKREEL_WIDE_FONT put a deployment font
# in front of the list.

FONT_PATHS = {
    FontClass.DEFAULT: [
        Path("/usr/share/fonts/truetype/custom/font.ttf"),
        Path("/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf"),
        Path("/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"),
    ],
    FontClass.WIDE: [
        Path("/usr/share/fonts/opentype/noto/NotoSansCJK-Bold.ttc"),
        Path("/usr/share/fonts/opentype/noto/NotoSansCJK-Regular.ttc"),
        Path("/usr/share/fonts/noto-cjk/NotoSansCJK-Regular.ttc"),
    ],
}

_FONT_ENV_VARS = {
    FontClass.DEFAULT: "RANKREEL_FONT",
    FontClass.WIDE: "RANKREEL_WIDE_FONT",
}

# font class -> resolved path (None means Pillow's built-in font).
_registered_fonts: dict[FontClass, Path | None] = {}
# Guards _registered_fonts; reentrant so load_font can register lazily.
_font_lock = threading.RLock()


# ── Color utilities ────────────────────────────────────────────────

NAMED_COLORS = {
    "white": (255, 255, 255),
    "black": (0, 0, 0),
    "gold": (255, 215, 0),
    "silver": (192, 192, 192),
    "bronze": (205, 127, 50),
}


def parse_hex_color(hex_str: str) -> tuple[int, int, int]:
    """Convert '#RRGGBB' or 'RRGGBB' string to (R, G, B) tuple."""
    hex_str = hex_str.lstrip("#")
    return (int(hex_str[0:2], 16), int(hex_str[2:4], 16), int(hex_str[4:6], 16))


def resolve_color(
    value, palette: dict[str, tuple[int, int, int]] = NAMED_COLORS,
) -> tuple[int, int, int]:
    """Resolve a color reference: palette name, inline hex, or RGB list.

    Palette keys are tried first. If the value starts with '#' or is 6 hex
    chars, it's parsed as inline hex. Otherwise raises ValueError.
    """
    if isinstance(value, (list, tuple)) and len(value) == 3:
        return tuple(int(c) for c in value)
    if not isinstance(value, str):
        raise ValueError(f"Unknown color: {value!r}")
    if value.lower() in palette:
        return palette[value.lower()]
    if (value.startswith("#") and len(value) == 7) or (
        len(value) == 6
        and all(c in "0123456789abcdefABCDEF" for c in value)
    ):
        return parse_hex_color(value)
    raise ValueError(
        f"Unknown color: '{value}'. Not a named color and not a hex value."
    )


# ── Path utilities ─────────────────────────────────────────────────

def resolve_path_vars(text: str, paths: dict[str, str]) -> str:
    """Replace ${name} variables in a string using the paths dict."""
    def _replace(match):
        key = match.group(1)
        if key not in paths:
            raise ValueError(f"Unknown path variable: ${{{key}}}")
        return paths[key]
    return re.sub(r"\$\{(\w+)\}", _replace, text)


# ── Font registration ──────────────────────────────────────────────

def register_fonts(overrides: dict[FontClass, str] | None = None) -> dict:
    """Resolve the font file for each text font class, once per process.

    Call at startup. Calling again re-resolves (e.g. with new overrides)
    and drops previously loaded font objects. Lookups that start while a
    registration runs wait for it, so they never see a partial mapping.

    Returns:
        Mapping of font class to the chosen path (None = built-in font).
    """
    overrides = overrides or {}
    resolved = {}

    with _font_lock:
        for font_class, candidates in FONT_PATHS.items():
            ordered = list(candidates)
            env_path = os.environ.get(_FONT_ENV_VARS[font_class])
            if env_path:
                ordered.insert(0, Path(env_path))
            if font_class in overrides:
                ordered.insert(0, Path(overrides[font_class]))

            chosen = None
            for font_path in ordered:
                if font_path.exists():
                    chosen = font_path
                    break
            # Wide script falls back to the default font before the built-in.
            if chosen is None and font_class == FontClass.WIDE:
                chosen = resolved.get(FontClass.DEFAULT)
            resolved[font_class] = chosen

        _registered_fonts.clear()
        _registered_fonts.update(resolved)
        load_font.cache_clear()
    return dict(resolved)


@lru_cache(maxsize=256)
def load_font(
    size: int, font_class: FontClass = FontClass.DEFAULT,
) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """Load the registered font for *font_class* at the given pixel size.

    Font collections (.ttc) use face index 0. Last resort is Pillow's
    built-in scalable font.
    """
    if font_class == FontClass.EMOJI:
        raise ValueError("Emoji are drawn from bitmaps, not a font")
    with _font_lock:
        if not _registered_fonts:
            register_fonts()
        font_path = _registered_fonts.get(font_class)
    if font_path is not None:
        try:
            return ImageFont.truetype(str(font_path), size=size, index=0)
        except (OSError, IndexError):
            pass
    return ImageFont.load_default(size=size)
