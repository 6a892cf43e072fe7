"""Job status records and completion webhooks.

Every state change rewrites `<job_id>.json` in the output bucket so
clients can poll it. Intermediate updates are best-effort. The terminal
state (READY or FAILED) is written once, carries `"terminal": true`, and
is also POSTed to the callback URL.
"""

import json
import time

import requests

from .storage import LocalObjectStorage


PENDING = "PENDING"
DOWNLOADING = "DOWNLOADING"
RENDERING = "RENDERING"
COMPOSITING = "COMPOSITING"
CONCATENATING = "CONCATENATING"
PUBLISHING = "PUBLISHING"
READY = "READY"
FAILED = "FAILED"

TERMINAL_STATES = {READY, FAILED}

WEBHOOK_PATH = "/api/internal/update-post"
WEBHOOK_TIMEOUT_S = 10


def status_key(job_id: str) -> str:
    return f"{job_id}.json"


def read_status(storage: LocalObjectStorage, bucket: str, job_id: str) -> dict:
    """Current status record; PENDING when the job has not written one yet."""
    key = status_key(job_id)
    if not storage.exists(bucket, key):
        return {"status": PENDING, "terminal": False}
    return json.loads(storage.read(bucket, key).decode("utf-8"))


class StatusReporter:
    """Writes status records for one job and fires the terminal webhook."""

    def __init__(
        self,
        storage: LocalObjectStorage,
        bucket: str,
        job_id: str,
        callback_url: str | None = None,
        secret: str | None = None,
    ):
        self.storage = storage
        self.bucket = bucket
        self.job_id = job_id
        self.callback_url = callback_url.rstrip("/") if callback_url else None
        self.secret = secret
        self.terminal_status = None

    def _write(self, status: str, payload: dict) -> None:
        record = {
            "status": status,
            "terminal": status in TERMINAL_STATES,
            "updatedAt": int(time.time() * 1000),
            **payload,
        }
        try:
            self.storage.write(
                self.bucket, status_key(self.job_id),
                json.dumps(record).encode("utf-8"), "application/json",
            )
        except OSError as exc:
            print(f"  WARN   status write failed for {self.job_id}: {exc}", flush=True)

    def update(self, status: str, progress: int | None = None) -> None:
        """Best-effort intermediate progress."""
        if status in TERMINAL_STATES:
            raise ValueError(f"{status} is terminal; use succeed() or fail()")
        if self.terminal_status is not None:
            raise RuntimeError(
                f"Job {self.job_id} already reported {self.terminal_status}"
            )
        payload = {} if progress is None else {"progress": progress}
        self._write(status, payload)

    def succeed(self, payload: dict | None = None) -> None:
        self._terminal(READY, {"progress": 100, **(payload or {})}, None)

    def fail(self, error: str) -> None:
        self._terminal(FAILED, {"error": error}, error)

    def _terminal(self, status: str, payload: dict, error: str | None) -> None:
        if self.terminal_status is not None:
            raise RuntimeError(
                f"Job {self.job_id} already reported {self.terminal_status}"
            )
        self.terminal_status = status
        self._write(status, payload)
        self._notify(status, error)

    def _notify(self, status: str, error: str | None) -> None:
        if not self.callback_url:
            return
        url = self.callback_url + WEBHOOK_PATH
        headers = {"Content-Type": "application/json"}
        if self.secret:
            headers["x-internal-secret"] = self.secret
        body = {"postId": self.job_id, "status": status, "errorMessage": error}
        try:
            response = requests.post(url, json=body, headers=headers, timeout=WEBHOOK_TIMEOUT_S)
            if not response.ok:
                print(f"  WARN   webhook rejected ({response.status_code}) for {self.job_id}", flush=True)
        except requests.RequestException as exc:
            print(f"  WARN   webhook failed for {self.job_id}: {exc}", flush=True)
