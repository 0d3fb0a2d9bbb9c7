"""
Migration statistics and progress tracking.

Progress counters are display-only. They are the only state shared between
concurrently running units of work, so every update goes through a lock.
"""

import logging
import threading
from dataclasses import dataclass, field

from tqdm.asyncio import tqdm

logger = logging.getLogger(__name__)


@dataclass
class MigrationStats:
    """Track write counts and non-fatal anomalies for the summary"""

    written: dict[str, int] = field(default_factory=dict)
    errors: dict[str, list[str]] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def add_written(self, table: str, count: int = 1):
        with self._lock:
            self.written[table] = self.written.get(table, 0) + count

    def add_error(self, category: str, error: str):
        with self._lock:
            self.errors.setdefault(category, []).append(error)

    def log_summary(self):
        logger.info("\n" + "=" * 60)
        logger.info("📊 MIGRATION SUMMARY")
        logger.info("=" * 60)
        for table, count in sorted(self.written.items()):
            logger.info(f"  {table:<20} {count:,} rows written")

        if self.errors:
            logger.info("\n📋 Skipped by Category:")
            for category, errors in self.errors.items():
                logger.info(f"  {category}: {len(errors):,} records")
                for error in errors[:5]:
                    logger.info(f"    - {error}")
                if len(errors) > 5:
                    logger.info(f"    ... and {len(errors) - 5} more")

        logger.info("=" * 60 + "\n")


@dataclass
class ProgressCounter:
    name: str
    total: int
    done: int = 0

    @property
    def progress_pct(self) -> float:
        if self.total == 0:
            return 100.0
        return (self.done / self.total) * 100


class ProgressTracker:
    """Per-target counters against totals fetched once at the start of the run."""

    def __init__(self, show_progress: bool = True):
        self.show_progress = show_progress
        self.counters: dict[str, ProgressCounter] = {}
        self._bars: dict[str, tqdm] = {}
        self._lock = threading.Lock()

    def start(self, name: str, total: int):
        with self._lock:
            self.counters[name] = ProgressCounter(name, total)
            if self.show_progress:
                self._bars[name] = tqdm(total=total, desc=f"Migrating {name}", unit="rows")

    def advance(self, name: str, count: int = 1):
        with self._lock:
            self.counters[name].done += count
            bar = self._bars.get(name)
            if bar is not None:
                bar.update(count)

    def done(self, name: str) -> int:
        return self.counters[name].done

    def close(self):
        with self._lock:
            for bar in self._bars.values():
                bar.close()
            self._bars.clear()

    def log_status(self):
        logger.info(f"{'Target':<20} {'Done':<12} {'Total':<12} {'Progress':<10}")
        logger.info("-" * 56)
        for counter in self.counters.values():
            logger.info(
                f"{counter.name:<20} {counter.done:<12} {counter.total:<12} {counter.progress_pct:.1f}%"
            )
