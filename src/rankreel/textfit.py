"""Mixed-script text measurement and box fitting.

Width of a mixed string is the sum over its font-class runs: emoji are
square bitmaps exactly `size` wide; every other run is measured with the
font registered for its class. Box fitting steps the font size down
until a greedy word wrap fits the box in at most `max_lines` lines.

The glyph-metrics oracle is a plain callable
    advance(font_class, size, text) -> float
so layout can be tested against a deterministic fake.
"""

from typing import Callable, NamedTuple

from .common import load_font
from .script import FontClass, segment_text


GlyphAdvance = Callable[[FontClass, int, str], float]

FONT_SIZE_FLOOR = 1


class FitResult(NamedTuple):
    """Chosen font size and the wrapped lines at that size."""

    font_size: int
    lines: list[str]


def font_advance(font_class: FontClass, size: int, text: str) -> float:
    """Advance width of *text* in the registered font for *font_class*."""
    return load_font(size, font_class).getlength(text)


def measure_mixed_text(
    text: str, size: int, advance: GlyphAdvance = font_advance,
) -> float:
    """Rendered width of *text* at *size*, summed across font-class runs."""
    total = 0.0
    for segment in segment_text(text):
        if segment.font_class == FontClass.EMOJI:
            total += size * len(segment.text)
        else:
            total += advance(segment.font_class, size, segment.text)
    return total


def wrap_words(
    text: str, box_width: float, size: int, advance: GlyphAdvance = font_advance,
) -> tuple[list[str], bool]:
    """Greedy word wrap of *text* at *size*.

    Words are packed onto a line while the line still measures within
    *box_width*; the word that overflows starts the next line.

    Returns:
        (lines, overflowed) where overflowed is True when some single
        word is wider than the box on its own.
    """
    lines = []
    current = ""
    overflowed = False
    for word in text.split():
        candidate = f"{current} {word}" if current else word
        if measure_mixed_text(candidate, size, advance) <= box_width:
            current = candidate
            continue
        if current:
            lines.append(current)
        current = word
        if measure_mixed_text(word, size, advance) > box_width:
            overflowed = True
    if current:
        lines.append(current)
    return lines, overflowed


def fit_text_to_box(
    text: str,
    box_width: float,
    max_lines: int,
    initial_size: int,
    step: int = 2,
    advance: GlyphAdvance = font_advance,
) -> FitResult:
    """Find the largest font size at which *text* wraps into the box.

    Tries initial_size, initial_size - step, ... down to FONT_SIZE_FLOOR.
    A size fits when the wrap needs at most *max_lines* lines and no
    single word overflows the box width.

    If nothing fits, returns the smallest size tried with the whole text
    as one unwrapped line; callers must tolerate overflow in that case.

    Raises:
        ValueError: Non-positive box width, line count, size or step.
    """
    if box_width <= 0:
        raise ValueError(f"box_width must be > 0, got {box_width}")
    if max_lines < 1:
        raise ValueError(f"max_lines must be >= 1, got {max_lines}")
    if initial_size <= 0 or step <= 0:
        raise ValueError(
            f"initial_size and step must be > 0, got {initial_size}, {step}"
        )

    size = initial_size
    smallest = initial_size
    while size >= FONT_SIZE_FLOOR:
        lines, overflowed = wrap_words(text, box_width, size, advance)
        if len(lines) <= max_lines and not overflowed:
            return FitResult(size, lines)
        smallest = size
        size -= step

    return FitResult(smallest, [" ".join(text.split())])
