"""
运行缓存管理器
Run cache for recovery and debugging.

Snapshots intermediate pipeline structures (articles, embeddings, clusters,
selections, curated output, the digest) as JSON files grouped per run.
The pipeline core never persists anything; the caller decides what to
snapshot and when.
"""

import json
import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class RunCache:
    """
    Per-run JSON snapshot store

    Layout: ``<cache_dir>/<run_id>/<name>.json``.

    Attributes:
        cache_dir: Root directory for all runs
        run_id: Identifier of the current run
        max_age_hours: Runs older than this are removed by ``cleanup_old_runs``
    """

    def __init__(
        self,
        cache_dir: str = "cache",
        run_id: str | None = None,
        max_age_hours: int = 24 * 14,
    ):
        """
        Initialize the cache.

        Args:
            cache_dir: Root directory for all runs
            run_id: Run identifier, defaults to a timestamp
            max_age_hours: Retention for ``cleanup_old_runs``
        """
        self.cache_dir = Path(cache_dir)
        self.run_id = run_id or f"run_{datetime.now().strftime('%Y%m%d_%H%M%S')}"
        self.max_age_hours = max_age_hours

    @property
    def run_dir(self) -> Path:
        return self.cache_dir / self.run_id

    def path_for(self, name: str) -> Path:
        return self.run_dir / f"{name}.json"

    def save(self, name: str, data: Any) -> Path | None:
        """
        Write a snapshot.

        A failed write is logged and ignored; caching never aborts a run.

        Args:
            name: Snapshot name (file stem)
            data: JSON-serialisable data

        Returns:
            Path written, or None on failure
        """
        path = self.path_for(name)
        try:
            self.run_dir.mkdir(parents=True, exist_ok=True)
            with open(path, 'w', encoding='utf-8') as f:
                json.dump(data, f, ensure_ascii=False, indent=2, default=str)
            logger.debug(f"Saved snapshot {name} to {path}")
            return path
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save snapshot {name}: {e}")
            return None

    def load(self, name: str) -> Any | None:
        """Read a snapshot, or None if it is missing or unreadable."""
        path = self.path_for(name)
        if not path.exists():
            return None

        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load snapshot {name}: {e}")
            return None

    def save_error(self, error: BaseException, stats: dict[str, Any] | None = None) -> Path | None:
        """
        Record a failed run.

        Only the message, exception type, counters and a timestamp are kept.
        """
        return self.save("error", {
            "message": str(error),
            "name": type(error).__name__,
            "stats": stats or {},
            "timestamp": datetime.now().isoformat(),
        })

    def cleanup_old_runs(self) -> int:
        """
        Remove run directories older than ``max_age_hours``.

        Returns:
            Number of runs removed
        """
        if not self.cache_dir.exists():
            return 0

        cutoff = datetime.now() - timedelta(hours=self.max_age_hours)
        removed = 0
        for run_dir in self.cache_dir.iterdir():
            if not run_dir.is_dir() or run_dir.name == self.run_id:
                continue
            modified = datetime.fromtimestamp(run_dir.stat().st_mtime)
            if modified >= cutoff:
                continue
            for file in run_dir.glob("*.json"):
                file.unlink()
            try:
                run_dir.rmdir()
                removed += 1
                logger.info(f"Removed expired run cache: {run_dir.name}")
            except OSError as e:
                logger.warning(f"Could not remove {run_dir}: {e}")
        return removed
