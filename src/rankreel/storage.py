"""Object storage backed by a local directory tree.

Each bucket is a directory under the storage root and each key a path
inside it, so a deployment can point the root at a mounted bucket
(gcsfuse, NFS, ...) or a plain disk. Writes go through a temp file and
os.replace so readers never see a half-written object.
"""

import os
import shutil
from pathlib import Path


class LocalObjectStorage:
    """download / upload / write / read / exists / delete over directories."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def _path(self, bucket: str, key: str) -> Path:
        bucket_dir = (self.root / bucket).resolve()
        path = (bucket_dir / key).resolve()
        if path != bucket_dir and bucket_dir not in path.parents:
            raise ValueError(f"Key '{key}' escapes bucket '{bucket}'")
        return path

    def exists(self, bucket: str, key: str) -> bool:
        return self._path(bucket, key).is_file()

    def read(self, bucket: str, key: str) -> bytes:
        """Object contents. Raises FileNotFoundError for a missing key."""
        return self._path(bucket, key).read_bytes()

    def download(self, bucket: str, key: str, destination: str | Path) -> Path:
        """Copy an object to a local path. Raises FileNotFoundError."""
        src = self._path(bucket, key)
        if not src.is_file():
            raise FileNotFoundError(f"No object '{key}' in bucket '{bucket}'")
        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(src, destination)
        return destination

    def write(self, bucket: str, key: str, data: bytes, content_type: str | None = None) -> None:
        """Store *data* under *key*.

        content_type is accepted for interface parity with cloud stores;
        a directory tree has nowhere to keep it.
        """
        dest = self._path(bucket, key)
        dest.parent.mkdir(parents=True, exist_ok=True)
        tmp = dest.with_name(dest.name + ".tmp")
        tmp.write_bytes(data)
        os.replace(tmp, dest)

    def upload(
        self, bucket: str, local_path: str | Path, key: str, content_type: str | None = None,
    ) -> None:
        dest = self._path(bucket, key)
        dest.parent.mkdir(parents=True, exist_ok=True)
        tmp = dest.with_name(dest.name + ".tmp")
        shutil.copyfile(local_path, tmp)
        os.replace(tmp, dest)

    def delete(self, bucket: str, prefix: str) -> int:
        """Delete every object whose key starts with *prefix*. Returns count."""
        bucket_dir = self.root / bucket
        if not bucket_dir.is_dir():
            return 0
        removed = 0
        for path in sorted(bucket_dir.rglob("*")):
            if not path.is_file():
                continue
            key = path.relative_to(bucket_dir).as_posix()
            if key.startswith(prefix):
                path.unlink()
                removed += 1
        return removed
