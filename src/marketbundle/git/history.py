from __future__ import annotations

import logging
import subprocess
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterable

from ..concurrency import map_bounded_fail_fast
from ..core.types import Timestamps

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_JOBS = 10

Runner = Callable[..., subprocess.CompletedProcess]


def format_timestamp(value: datetime) -> str:
    """``YYYY-MM-DDTHH:MM:SS.sssZ`` in UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    utc = value.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def now_timestamp() -> str:
    return format_timestamp(datetime.now(timezone.utc))


def parse_log_dates(output: str) -> list[datetime]:
    dates: list[datetime] = []
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            dates.append(datetime.fromisoformat(line.replace("Z", "+00:00")))
        except ValueError:
            logger.debug("Skipping unparseable git date %r", line)
    return dates


class HistoryResolver:
    """Creation and last-modification times of files from ``git log``."""

    def __init__(
        self,
        repo_dir: Path | str = ".",
        *,
        max_workers: int = DEFAULT_HISTORY_JOBS,
        runner: Runner = subprocess.run,
    ) -> None:
        self.repo_dir = Path(repo_dir)
        self.max_workers = max_workers
        self._run = runner

    def resolve(self, path: Path | str) -> Timestamps | None:
        try:
            result = self._run(
                [
                    "git",
                    "-C",
                    str(self.repo_dir),
                    "log",
                    "--format=%aI",
                    "--",
                    str(path),
                ],
                capture_output=True,
                text=True,
                check=True,
            )
        except (subprocess.CalledProcessError, OSError) as exc:
            logger.warning("Could not get git history for %s: %s", path, exc)
            return None

        # git log lists the newest revision first
        dates = parse_log_dates(result.stdout)
        if not dates:
            return None
        return Timestamps(
            created_at=format_timestamp(dates[-1]),
            updated_at=format_timestamp(dates[0]),
        )

    def resolve_many(
        self, paths: Iterable[Path | str]
    ) -> dict[str, Timestamps | None]:
        batch = [str(p) for p in paths]
        if not batch:
            return {}
        logger.info("Fetching git history for %d changed files...", len(batch))
        results = map_bounded_fail_fast(
            self.resolve, batch, max_workers=self.max_workers
        )
        return dict(zip(batch, results))
