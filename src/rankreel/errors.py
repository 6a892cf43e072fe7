"""Error taxonomy for render jobs.

ValidationError is raised before any work starts. Everything else is a
JobError raised by a pipeline stage and turned into a Failed status by
the orchestrator.
"""


DIAGNOSTIC_TAIL_CHARS = 2000


class ValidationError(ValueError):
    """Missing or malformed job parameters."""


class JobError(RuntimeError):
    """A fatal failure inside a running job."""

    stage = "job"


class FetchError(JobError):
    stage = "download"


class RenderError(JobError):
    stage = "render"


class TranscodeError(JobError):
    """ffmpeg exited non-zero. Keeps the tail of its stderr."""

    stage = "transcode"

    def __init__(self, message: str, returncode: int | None = None, stderr: str = ""):
        self.returncode = returncode
        self.stderr = truncate_diagnostic(stderr)
        detail = message if returncode is None else f"{message} (exit code {returncode})"
        if self.stderr:
            detail += f"\n{self.stderr}"
        super().__init__(detail)


class PublishError(JobError):
    stage = "publish"


def truncate_diagnostic(text: str, limit: int = DIAGNOSTIC_TAIL_CHARS) -> str:
    """Keep the last *limit* characters of a diagnostic stream.

    ffmpeg prints its banner first and the actual error last.
    """
    text = (text or "").strip()
    if len(text) <= limit:
        return text
    return "..." + text[-limit:]
