"""CLI for running one render job.

Reads a job manifest, validates it, and runs the full pipeline against
the configured object storage. Deployment settings come from the
environment (see rankreel.settings); flags override them.

Usage:
    rankreel render --job job.yaml
    rankreel render --job job.yaml --storage-root /mnt/buckets --workers 2
    rankreel render --job job.yaml --validate
"""

import argparse
import dataclasses
import sys

import yaml

from .common import register_fonts
from .errors import JobError, ValidationError
from .job_manifest import load_job_manifest
from .layout_config import load_layout_config
from .pipeline import run_job
from .plan import plan_for_job
from .settings import load_settings
from .storage import LocalObjectStorage


def main(args=None):
    parser = argparse.ArgumentParser(
        description="Render a ranked-list video from a job manifest.",
    )
    parser.add_argument(
        "--job", required=True,
        help="Path to job manifest (YAML or JSON)",
    )
    parser.add_argument(
        "--layout", default=None,
        help="Layout YAML (default: RANKREEL_LAYOUT or built-in layout)",
    )
    parser.add_argument(
        "--storage-root", default=None,
        help="Object storage root directory (default: RANKREEL_STORAGE_ROOT)",
    )
    parser.add_argument(
        "--workers", type=int, default=None,
        help="Parallel downloads / per-clip renders (default: RANKREEL_WORKERS)",
    )
    parser.add_argument(
        "--validate", action="store_true",
        help="Validate the job and layout only (no downloads or rendering)",
    )
    parsed = parser.parse_args(args)

    settings = load_settings()
    overrides = {}
    if parsed.storage_root:
        overrides["storage_root"] = parsed.storage_root
    if parsed.workers is not None:
        overrides["workers"] = parsed.workers
    if overrides:
        settings = dataclasses.replace(settings, **overrides)

    try:
        job = load_job_manifest(parsed.job)
        layout = load_layout_config(parsed.layout or settings.layout_path)
        plan = plan_for_job(job, lead=layout.fade_lead)
    except (ValueError, OSError, yaml.YAMLError) as exc:
        print(f"Invalid job: {exc}", file=sys.stderr)
        sys.exit(1)

    if parsed.validate:
        print(f"Job valid: {job['job_id']} ({job['mode']}), {len(plan.steps)} overlay steps")
        for i, step in enumerate(plan.steps):
            ranks = ", ".join(str(r + 1) for r in step.rank_indices) or "-"
            window = (
                f"{step.window[0]:.2f}s-{step.window[1]:.2f}s" if step.window else "full clip"
            )
            print(f"  {i}: {step.kind} clip={step.clip_index} ranks=[{ranks}] {window}")
        return

    register_fonts()
    storage = LocalObjectStorage(settings.storage_root)
    try:
        result = run_job(job, storage, settings=settings, layout=layout)
    except (JobError, ValidationError) as exc:
        print(f"Job {job['job_id']} failed: {exc}", file=sys.stderr)
        sys.exit(1)
    print(f"\nDone: {result['video']} (thumbnail {result['thumbnail']})")


if __name__ == "__main__":
    main()
