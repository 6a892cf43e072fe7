"""Emoji bitmaps fetched from a remote PNG set, with a shared cache.

Each emoji character maps to a deterministic URL built from its code
points (Twemoji naming: lowercase hex joined by '-'). Bitmaps are cached
per URL for the whole process; the orchestrator clears the cache when a
job ends. Concurrent renders may fetch the same URL twice; the entries
are identical so the last write wins harmlessly.
"""

import io
import os
import threading

import requests
from PIL import Image


DEFAULT_EMOJI_BASE_URL = "https://cdn.jsdelivr.net/gh/jdecked/twemoji@15.0.3/assets/72x72"
EMOJI_BASE_URL = os.environ.get("RANKREEL_EMOJI_BASE_URL", DEFAULT_EMOJI_BASE_URL)
FETCH_TIMEOUT_S = 10


class EmojiCache:
    """Thread-safe URL -> RGBA bitmap map."""

    def __init__(self):
        self._lock = threading.Lock()
        self._images: dict[str, Image.Image] = {}

    def get(self, key: str) -> Image.Image | None:
        with self._lock:
            return self._images.get(key)

    def put(self, key: str, image: Image.Image) -> None:
        with self._lock:
            self._images[key] = image

    def clear(self) -> None:
        with self._lock:
            self._images.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._images)


EMOJI_CACHE = EmojiCache()


def emoji_url(emoji: str, base_url: str | None = None) -> str:
    """Remote key for an emoji: its code points in hex, '-'-joined."""
    code_points = "-".join(f"{ord(c):x}" for c in emoji)
    return f"{(base_url or EMOJI_BASE_URL).rstrip('/')}/{code_points}.png"


def fetch_emoji(url: str) -> Image.Image:
    """Download and decode one emoji PNG.

    Raises:
        requests.RequestException: Network or HTTP status failure.
        OSError: Body is not a decodable image.
    """
    response = requests.get(url, timeout=FETCH_TIMEOUT_S)
    response.raise_for_status()
    image = Image.open(io.BytesIO(response.content))
    image.load()
    return image.convert("RGBA")


def get_emoji_bitmap(emoji: str, cache: EmojiCache = EMOJI_CACHE) -> Image.Image | None:
    """Cached bitmap for *emoji*, or None if it could not be fetched.

    A failed fetch is not cached, so a later render retries it.
    """
    url = emoji_url(emoji)
    image = cache.get(url)
    if image is not None:
        return image
    try:
        image = fetch_emoji(url)
    except (requests.RequestException, OSError) as exc:
        print(f"  WARN   emoji {emoji!r} unavailable ({url}): {exc}", flush=True)
        return None
    cache.put(url, image)
    return image


def clear_emoji_cache() -> None:
    EMOJI_CACHE.clear()
