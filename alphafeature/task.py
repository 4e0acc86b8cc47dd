"""Units of work: cooperative cancellation, progress and status reporting.

Every top-level operation (chromatogram building, peak picking, alignment,
filtering, normalization) runs as one independent unit of work. It receives an
optional :class:`CancellationToken`, polls it once per scan or row, and reports
progress through an optional :class:`ProgressTracker`. :func:`run_task` wraps a
unit of work so that errors and cancellation come back as a status and message
instead of an exception, and only finished results reach the output sink.

Examples
--------
>>> token = CancellationToken()
>>> progress = ProgressTracker()
>>> result = run_task(
...     "Join alignment", aligner.align, peak_lists,
...     token=token, progress=progress, sink=project_peak_lists.append,
... )
>>> result.status
<TaskStatus.FINISHED: 'finished'>
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from .exceptions import ConfigurationError, DataAccessError, TaskCancelled

logger = logging.getLogger(__name__)


class TaskStatus(Enum):
    """Lifecycle state of a unit of work."""
    WAITING = "waiting"
    PROCESSING = "processing"
    FINISHED = "finished"
    CANCELED = "canceled"
    ERROR = "error"


class CancellationToken:
    """Cooperative cancellation flag shared between a caller and one task."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise TaskCancelled if cancellation was requested."""
        if self._event.is_set():
            raise TaskCancelled()


def check_cancelled(token: Optional[CancellationToken]) -> None:
    """Poll an optional token."""
    if token is not None:
        token.raise_if_cancelled()


class ProgressTracker:
    """Monotonic fraction of processed work units.

    The tracker is written by the task thread and may be read from any
    other thread.
    """

    def __init__(self, total: int = 0):
        self._lock = threading.Lock()
        self._total = total
        self._processed = 0

    @property
    def total(self) -> int:
        return self._total

    @property
    def processed(self) -> int:
        return self._processed

    def start(self, total: int) -> None:
        """Set the amount of work; the processed count never goes backwards."""
        with self._lock:
            self._total = max(total, self._processed)

    def advance(self, n: int = 1) -> None:
        with self._lock:
            self._processed += n

    @property
    def fraction(self) -> float:
        with self._lock:
            if self._total <= 0:
                return 0.0
            return min(1.0, self._processed / self._total)


def advance(progress: Optional[ProgressTracker], n: int = 1) -> None:
    """Advance an optional tracker."""
    if progress is not None:
        progress.advance(n)


@dataclass
class TaskResult:
    """Outcome of one unit of work.

    ``result`` is only set when ``status`` is FINISHED.
    """

    status: TaskStatus
    message: str = ""
    result: Any = None


def run_task(
    description: str,
    func: Callable[..., Any],
    *args,
    token: Optional[CancellationToken] = None,
    progress: Optional[ProgressTracker] = None,
    sink: Optional[Callable[[Any], None]] = None,
    **kwargs,
) -> TaskResult:
    """Run ``func`` as a unit of work and report its outcome.

    Parameters
    ----------
    description : str
        Human readable task name used in log messages
    func : Callable
        Operation to run; it must accept ``token`` and ``progress`` keywords
    token : CancellationToken, optional
        Cancellation flag polled by the operation
    progress : ProgressTracker, optional
        Progress tracker updated by the operation
    sink : Callable, optional
        Receives the result, only if the task finished

    Returns
    -------
    TaskResult
        FINISHED with the result, CANCELED, or ERROR with the error message.
        Configuration and data access errors never propagate to the caller.
    """
    logger.info(f"Started: {description}")
    try:
        result = func(*args, token=token, progress=progress, **kwargs)
    except TaskCancelled:
        logger.info(f"Cancelled: {description}")
        return TaskResult(TaskStatus.CANCELED, "Task was cancelled")
    except (ConfigurationError, DataAccessError) as e:
        logger.error(f"Error in {description}: {e}")
        return TaskResult(TaskStatus.ERROR, str(e))

    if sink is not None:
        sink(result)
    logger.info(f"✓ Finished: {description}")
    return TaskResult(TaskStatus.FINISHED, result=result)
