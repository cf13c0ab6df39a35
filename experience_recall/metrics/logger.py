"""
Structured metrics logger for searches.

Logs metrics in JSONL format for easy analysis and aggregation.
"""

import json
import logging
import threading
from pathlib import Path
from typing import Optional

from experience_recall.utils.dates import utc_now

from .models import SearchMetrics

logger = logging.getLogger(__name__)


class MetricsLogger:
    """
    Structured logger for search metrics.

    Writes one JSON line per search to a file rotated daily.
    """

    def __init__(
        self,
        log_dir: Path = Path("data/metrics"),
        engine_version: str = "1.0.0",
        enabled: bool = True
    ):
        """
        Initialize metrics logger.

        Args:
            log_dir: Directory for metric log files
            engine_version: Version string stamped on every entry
            enabled: Whether logging is enabled
        """
        self.log_dir = Path(log_dir)
        self.engine_version = engine_version
        self.enabled = enabled
        self._current_date: Optional[str] = None
        self._log_file: Optional[Path] = None
        self._lock = threading.Lock()
        if self.enabled:
            self.log_dir.mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_config(cls, config) -> 'MetricsLogger':
        metrics = config.metrics
        return cls(
            log_dir=Path(metrics.get('log_dir', 'data/metrics')),
            enabled=bool(metrics.get('enabled', False)),
        )

    def _get_log_file(self) -> Path:
        today = utc_now().date().isoformat()
        if today != self._current_date:
            self._current_date = today
            self._log_file = self.log_dir / f"search_metrics_{today}.jsonl"
        return self._log_file

    def log(self, metrics: SearchMetrics) -> None:
        """
        Append one metrics entry.

        Failures are logged and never reach the search caller.
        """
        if not self.enabled:
            return

        if not metrics.engine_version:
            metrics.engine_version = self.engine_version

        try:
            with self._lock:
                log_file = self._get_log_file()
                with open(log_file, 'a', encoding='utf-8') as f:
                    f.write(json.dumps(metrics.to_dict(), ensure_ascii=False) + '\n')
        except OSError as e:
            logger.error(f"Failed to log metrics: {e}", exc_info=True)
