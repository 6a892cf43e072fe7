"""Subcommand dispatcher for rankreel.

Usage:
    rankreel render   --job job.yaml [--layout layout.yaml] [--storage-root DIR]
    rankreel status   JOB_ID [--storage-root DIR]
    rankreel preview  --job job.yaml --output overlay.png [--step N]
"""

import argparse
import sys


def main(args=None):
    parser = argparse.ArgumentParser(
        prog="rankreel",
        description="Ranked-list video rendering.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # Register subcommands. Each delegates to its own module's main().
    subparsers.add_parser("render", help="Run a render job from a job manifest")
    subparsers.add_parser("status", help="Print a job's status record")
    subparsers.add_parser("preview", help="Render one overlay step to PNG")

    # Parse only the subcommand name, pass the rest to the subcommand's parser.
    parsed, remaining = parser.parse_known_args(args)

    if parsed.command is None:
        parser.print_help()
        sys.exit(1)

    if parsed.command == "render":
        from .render_cli import main as render_main
        render_main(remaining)
    elif parsed.command == "status":
        from .status_cli import main as status_main
        status_main(remaining)
    elif parsed.command == "preview":
        from .preview_cli import main as preview_main
        preview_main(remaining)


if __name__ == "__main__":
    main()
