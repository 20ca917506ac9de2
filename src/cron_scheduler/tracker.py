import logging
import time
import tracemalloc
from typing import Dict

from cron_scheduler.domain.task import Task

logger = logging.getLogger(__name__)


class TaskExecutionTracker:
    """
    Measures the duration and the peak memory allocation of task executions.

    Only tasks with ``tracked`` set are measured. Memory is measured with tracemalloc,
    started on the first tracked execution when it is not already running.
    """

    def __init__(self) -> None:
        self._starts: Dict[str, float] = {}
        self._owns_tracing = False

    def start_tracking(self, task: Task) -> None:
        if not task.tracked:
            return
        if not tracemalloc.is_tracing():
            tracemalloc.start()
            self._owns_tracing = True
        tracemalloc.reset_peak()
        self._starts[task.name] = time.perf_counter()

    def end_tracking(self, task: Task) -> None:
        start = self._starts.pop(task.name, None)
        if start is None:
            return
        task.execution_computation_time = round((time.perf_counter() - start) * 1000, 3)
        _, peak = tracemalloc.get_traced_memory()
        task.execution_memory_usage = peak
        logger.debug(
            "Task '%s' took %.3f ms, peak memory %d bytes",
            task.name, task.execution_computation_time, task.execution_memory_usage,
        )
        self._stop_tracing()

    def abort_tracking(self, task: Task) -> None:
        """
        Drop the measurement of a failed execution without recording anything.
        """
        if self._starts.pop(task.name, None) is not None:
            self._stop_tracing()

    def _stop_tracing(self) -> None:
        if self._owns_tracing and not self._starts:
            tracemalloc.stop()
            self._owns_tracing = False
