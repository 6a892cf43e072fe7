"""CLI for polling a job's status record.

Usage:
    rankreel status post-123
    rankreel status post-123 --storage-root /mnt/buckets
"""

import argparse
import json

from .settings import load_settings
from .status import read_status
from .storage import LocalObjectStorage


def main(args=None):
    parser = argparse.ArgumentParser(description="Print a job's status record as JSON.")
    parser.add_argument("job_id", help="Job id (as given in the job manifest)")
    parser.add_argument(
        "--storage-root", default=None,
        help="Object storage root directory (default: RANKREEL_STORAGE_ROOT)",
    )
    parsed = parser.parse_args(args)

    settings = load_settings()
    storage = LocalObjectStorage(parsed.storage_root or settings.storage_root)
    record = read_status(storage, settings.output_bucket, parsed.job_id)
    print(json.dumps(record, indent=2))


if __name__ == "__main__":
    main()
