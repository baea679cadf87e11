"""
Per-run working directory and cancellation.
"""

import logging
import shutil
import threading
import uuid
from pathlib import Path

from .errors import RunCancelled

logger = logging.getLogger("dubtrack")


class CancelToken:
    """Cooperative cancellation flag shared between a run and its caller."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def check(self, stage: str) -> None:
        if self._event.is_set():
            raise RunCancelled(stage)


class RunWorkspace:
    """Owns every intermediate file of one run.

    Stages ask the workspace for paths instead of scanning a shared directory,
    and the whole tree is removed when the run is over.
    """

    def __init__(self, root: str, run_id: str | None = None, *, keep: bool = False) -> None:
        self.run_id = run_id or uuid.uuid4().hex[:12]
        self.path = Path(root) / f"run_{self.run_id}"
        self.keep = keep
        self.path.mkdir(parents=True, exist_ok=True)

    def clip_path(self, index: int) -> str:
        return str(self.path / f"unit_{index:04d}.wav")

    def adjusted_path(self, index: int) -> str:
        return str(self.path / f"unit_{index:04d}_adjusted.wav")

    def scratch_path(self, name: str) -> str:
        return str(self.path / name)

    def discard(self) -> None:
        if self.path.exists():
            shutil.rmtree(self.path, ignore_errors=True)
            logger.debug("Discarded workspace %s", self.path)

    def __enter__(self) -> "RunWorkspace":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None and issubclass(exc_type, (RunCancelled, KeyboardInterrupt)):
            self.discard()
        elif not self.keep:
            self.discard()
        else:
            logger.info("Keeping workspace %s", self.path)
