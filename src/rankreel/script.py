"""Script classification and font-run segmentation.

Every character is drawn by one of three glyph sources: an emoji bitmap,
the wide-script (CJK) font, or the default display font. Text is split
into maximal runs of one class so each run can be measured and drawn
with a single font.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterator


class FontClass(str, Enum):
    """Glyph source for a character."""

    EMOJI = "emoji"
    WIDE = "wide"
    DEFAULT = "default"


# ── Character ranges ─────────────────────────────────────────────
# Unicode Extended_Pictographic (emoji-data 15.0). The stdlib re module
# has no \p{...} support, so the property is spelled out as ranges.

EXTENDED_PICTOGRAPHIC = re.compile(
    "["
    "\U000000a9\U000000ae\U0000203c\U00002049\U00002122\U00002139"
    "\U00002194-\U00002199\U000021a9-\U000021aa"
    "\U0000231a-\U0000231b\U00002328\U00002388\U000023cf"
    "\U000023e9-\U000023f3\U000023f8-\U000023fa"
    "\U000024c2\U000025aa-\U000025ab\U000025b6\U000025c0\U000025fb-\U000025fe"
    "\U00002600-\U00002605\U00002607-\U00002612"
    "\U00002614-\U00002685\U00002690-\U00002705"
    "\U00002708-\U00002712\U00002714\U00002716\U0000271d\U00002721\U00002728"
    "\U00002733-\U00002734\U00002744\U00002747\U0000274c\U0000274e"
    "\U00002753-\U00002755\U00002757\U00002763-\U00002767\U00002795-\U00002797"
    "\U000027a1\U000027b0\U000027bf\U00002934-\U00002935"
    "\U00002b05-\U00002b07\U00002b1b-\U00002b1c\U00002b50\U00002b55"
    "\U00003030\U0000303d\U00003297\U00003299"
    "\U0001f000-\U0001f0ff"
    "\U0001f10d-\U0001f10f\U0001f12f"
    "\U0001f16c-\U0001f171\U0001f17e-\U0001f17f\U0001f18e"
    "\U0001f191-\U0001f19a\U0001f1ad-\U0001f1e5"
    "\U0001f201-\U0001f20f\U0001f21a\U0001f22f"
    "\U0001f232-\U0001f23a\U0001f23c-\U0001f23f"
    "\U0001f249-\U0001f3fa"
    "\U0001f400-\U0001f53d\U0001f546-\U0001f64f"
    "\U0001f680-\U0001f6ff"
    "\U0001f774-\U0001f77f\U0001f7d5-\U0001f7ff"
    "\U0001f80c-\U0001f80f\U0001f848-\U0001f84f"
    "\U0001f85a-\U0001f85f\U0001f888-\U0001f88f"
    "\U0001f8ae-\U0001f8ff"
    "\U0001f90c-\U0001f93a\U0001f93c-\U0001f945"
    "\U0001f947-\U0001faff"
    "\U0001fc00-\U0001fffd"
    "]"
)

# CJK unified ideographs, Hiragana + Katakana, half/fullwidth forms.
WIDE_SCRIPT = re.compile("[\U00004e00-\U00009fa5\U00003040-\U000030ff\U0000ff00-\U0000ffef]")


@dataclass(frozen=True)
class TextSegment:
    """A maximal run of characters sharing one font class."""

    text: str
    font_class: FontClass


def classify_char(char: str) -> FontClass:
    """Return the font class for a single character.

    Emoji wins over wide script, which wins over the default font.
    """
    if EXTENDED_PICTOGRAPHIC.match(char):
        return FontClass.EMOJI
    if WIDE_SCRIPT.match(char):
        return FontClass.WIDE
    return FontClass.DEFAULT


def segment_text(text: str) -> Iterator[TextSegment]:
    """Yield consecutive same-class runs of *text*, in order.

    Concatenating the yielded segment texts reproduces *text* exactly.
    An empty string yields nothing.
    """
    run = []
    run_class = None
    for char in text:
        char_class = classify_char(char)
        if run and char_class != run_class:
            yield TextSegment("".join(run), run_class)
            run = []
        run.append(char)
        run_class = char_class
    if run:
        yield TextSegment("".join(run), run_class)
