from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path
from types import TracebackType

logger = logging.getLogger(__name__)


class StagedOutput:
    """Build output written beside ``target`` and swapped in on commit.

    Leaving the context without :meth:`commit` (including on an exception)
    discards the staging directory, so ``target`` keeps the previous build.
    """

    def __init__(self, target: Path) -> None:
        self.target = Path(target)
        self.path: Path | None = None
        self.committed = False

    def __enter__(self) -> StagedOutput:
        parent = self.target.resolve().parent
        parent.mkdir(parents=True, exist_ok=True)
        self.path = Path(
            tempfile.mkdtemp(prefix=f".{self.target.name}.staging-", dir=parent)
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self.path is not None and self.path.exists():
            shutil.rmtree(self.path, ignore_errors=True)

    def commit(self) -> Path:
        if self.path is None:
            raise RuntimeError("StagedOutput.commit() called outside its context")
        target = self.target.resolve()
        backup: Path | None = None
        if target.exists():
            backup = Path(
                tempfile.mkdtemp(prefix=f".{target.name}.previous-", dir=target.parent)
            )
            backup.rmdir()
            target.rename(backup)
        try:
            self.path.rename(target)
        except OSError:
            if backup is not None:
                backup.rename(target)
            raise
        self.path = None
        self.committed = True
        if backup is not None:
            shutil.rmtree(backup, ignore_errors=True)
        logger.debug("Published build output to %s", target)
        return target
