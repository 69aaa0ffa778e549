# backend/services/run_logger.py
"""
Discovery run logging and metrics.

Provides run-scoped logging, per-candidate stage timing, and process-wide
logging configuration.
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from functools import wraps
from typing import Any, Dict, Generator, List, Optional

logger = logging.getLogger("cameravault.discovery")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class StageMetrics:
    """Metrics for a single stage of a run"""
    stage: str
    started_at: datetime
    ended_at: Optional[datetime] = None
    duration_ms: Optional[float] = None
    success: bool = True
    error: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def complete(self, success: bool = True, error: Optional[str] = None) -> None:
        """Mark stage as complete"""
        self.ended_at = datetime.utcnow()
        self.duration_ms = (self.ended_at - self.started_at).total_seconds() * 1000
        self.success = success
        self.error = error

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stage": self.stage,
            "startedAt": self.started_at.isoformat() + "Z",
            "endedAt": self.ended_at.isoformat() + "Z" if self.ended_at else None,
            "durationMs": self.duration_ms,
            "success": self.success,
            "error": self.error,
            "metadata": self.metadata,
        }


@dataclass
class RunMetrics:
    """Aggregated stage timings for a discovery run"""
    run_id: str
    started_at: datetime = field(default_factory=datetime.utcnow)
    ended_at: Optional[datetime] = None
    total_duration_ms: Optional[float] = None
    stages: List[StageMetrics] = field(default_factory=list)

    def add_stage(self, stage: StageMetrics) -> None:
        self.stages.append(stage)

    def complete(self) -> None:
        self.ended_at = datetime.utcnow()
        self.total_duration_ms = (self.ended_at - self.started_at).total_seconds() * 1000

    def stage_totals(self) -> Dict[str, float]:
        """Total milliseconds spent per stage name"""
        totals: Dict[str, float] = {}
        for stage in self.stages:
            totals[stage.stage] = totals.get(stage.stage, 0.0) + (stage.duration_ms or 0.0)
        return totals

    def to_dict(self) -> Dict[str, Any]:
        return {
            "runId": self.run_id,
            "startedAt": self.started_at.isoformat() + "Z",
            "endedAt": self.ended_at.isoformat() + "Z" if self.ended_at else None,
            "totalDurationMs": self.total_duration_ms,
            "stageTotalsMs": self.stage_totals(),
            "failedStages": sum(1 for s in self.stages if not s.success),
        }

    def summary(self) -> str:
        """Generate human-readable summary"""
        lines = [
            f"Run {self.run_id}",
            f"  Total time: {self.total_duration_ms:.1f}ms" if self.total_duration_ms else "  Total time: in progress",
        ]
        totals = self.stage_totals()
        if totals:
            lines.append("  Stages:")
            for name, total in totals.items():
                count = sum(1 for s in self.stages if s.stage == name)
                lines.append(f"    - {name}: {count}x, {total:.1f}ms")
        return "\n".join(lines)


class RunLogger:
    """
    Logger bound to one discovery run.

    Every message is prefixed with a short run id so interleaved scheduler
    and API logs stay attributable.
    """

    def __init__(self, run_id: str):
        self.run_id = run_id
        self.short_id = run_id[:8]
        self.metrics = RunMetrics(run_id=run_id)

    def _log(self, level: int, message: str, **kwargs: Any) -> None:
        extra = {"run_id": self.run_id, **kwargs}
        logger.log(level, f"[{self.short_id}] {message}", extra=extra)

    def info(self, message: str, **kwargs: Any) -> None:
        self._log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._log(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self._log(logging.ERROR, message, **kwargs)

    def debug(self, message: str, **kwargs: Any) -> None:
        self._log(logging.DEBUG, message, **kwargs)

    @contextmanager
    def stage(self, name: str, **metadata: Any) -> Generator[StageMetrics, None, None]:
        """
        Context manager for timing a stage.

        Usage:
            with run_logger.stage("acquire", camera="Canon EOS R5") as stage:
                ...
                stage.metadata["source"] = "wikimedia"
        """
        stage_metrics = StageMetrics(
            stage=name,
            started_at=datetime.utcnow(),
            metadata=metadata,
        )
        self.debug(f"Stage '{name}' started")

        try:
            yield stage_metrics
            stage_metrics.complete(success=True)
            self.debug(f"Stage '{name}' completed in {stage_metrics.duration_ms:.1f}ms")
        except Exception as e:
            stage_metrics.complete(success=False, error=str(e))
            self.warning(f"Stage '{name}' failed: {e}")
            raise
        finally:
            self.metrics.add_stage(stage_metrics)

    def complete(self) -> RunMetrics:
        """Close the run metrics and log the summary"""
        self.metrics.complete()
        self.debug(self.metrics.summary())
        return self.metrics


def timed(operation: str):
    """
    Decorator for timing async functions.

    Usage:
        @timed("backup")
        async def snapshot(self):
            ...
    """
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
                duration_ms = (time.perf_counter() - start) * 1000
                logger.debug(f"'{operation}' completed in {duration_ms:.1f}ms")
                return result
            except Exception as e:
                duration_ms = (time.perf_counter() - start) * 1000
                logger.error(f"'{operation}' failed after {duration_ms:.1f}ms: {e}")
                raise
        return wrapper
    return decorator


def configure_logging(level: str = "INFO", format_string: Optional[str] = None) -> None:
    """
    Configure process-wide logging once.

    Args:
        level: Logging level name
        format_string: Optional custom format string
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=format_string or LOG_FORMAT,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
