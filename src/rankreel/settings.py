"""Deployment settings read from the environment.

  RANKREEL_STORAGE_ROOT      object-storage root directory (default ./storage)
  RANKREEL_WORK_DIR          parent for per-job scratch dirs (default system temp)
  RANKREEL_LAYOUT            optional layout YAML
  RANKREEL_CALLBACK_URL      webhook base URL (default https://ranktop.net)
  INTERNAL_SECRET            webhook shared secret
  RANKREEL_WORKERS           fan-out width for downloads / per-clip work
  RANKREEL_SOURCE_BUCKET     uploaded clips            (default cache)
  RANKREEL_OUTPUT_BUCKET     videos + status records   (default output)
  RANKREEL_THUMBNAIL_BUCKET  thumbnails                (default thumbnails)
  RANKREEL_EMOJI_BASE_URL    emoji PNG base URL (read by rankreel.emoji)
"""

import os
from dataclasses import dataclass


DEFAULT_CALLBACK_URL = "https://ranktop.net"


@dataclass(frozen=True)
class Settings:
    storage_root: str = "storage"
    work_dir: str | None = None
    layout_path: str | None = None
    callback_url: str | None = DEFAULT_CALLBACK_URL
    internal_secret: str | None = None
    workers: int = 4
    source_bucket: str = "cache"
    output_bucket: str = "output"
    thumbnail_bucket: str = "thumbnails"

    def __post_init__(self) -> None:
        if self.workers < 1:
            raise ValueError(f"workers must be >= 1, got {self.workers}")


def load_settings(environ=None) -> Settings:
    env = os.environ if environ is None else environ
    workers = env.get("RANKREEL_WORKERS", "4")
    try:
        workers = int(workers)
    except ValueError:
        raise ValueError(f"RANKREEL_WORKERS must be an integer, got {workers!r}") from None
    return Settings(
        storage_root=env.get("RANKREEL_STORAGE_ROOT", "storage"),
        work_dir=env.get("RANKREEL_WORK_DIR") or None,
        layout_path=env.get("RANKREEL_LAYOUT") or None,
        callback_url=env.get("RANKREEL_CALLBACK_URL", DEFAULT_CALLBACK_URL) or None,
        internal_secret=env.get("INTERNAL_SECRET") or None,
        workers=workers,
        source_bucket=env.get("RANKREEL_SOURCE_BUCKET", "cache"),
        output_bucket=env.get("RANKREEL_OUTPUT_BUCKET", "output"),
        thumbnail_bucket=env.get("RANKREEL_THUMBNAIL_BUCKET", "thumbnails"),
    )
