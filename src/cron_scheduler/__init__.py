"""
Cron Task Scheduler

Core Concepts:

Task:
    A unit of work (shell command, HTTP request, Python callback, module command,
    chain of tasks) with a five-field cron expression and execution constraints.

Transport:
    Where the tasks are stored. Composite transports (failover, round robin,
    long tail) spread the tasks over several backing transports.

Scheduler:
    Schedules, updates, pauses and unschedules tasks through a transport, and
    computes the tasks due at a given minute, sorted by a schedule policy.

Worker:
    Runs the due tasks cycle after cycle with the first runner supporting them,
    recording failures without stopping the cycle.
"""
from .domain import (
    CallbackTask,
    ChainedTask,
    CommandTask,
    ExecutionState,
    FailedTask,
    HttpTask,
    NullTask,
    Output,
    OutputType,
    ShellTask,
    Task,
    TaskList,
    TaskState,
)
from .scheduler import Scheduler
from .worker import Worker, WorkerOptions

__all__ = [
    "Task", "ShellTask", "HttpTask", "CallbackTask", "CommandTask", "NullTask", "ChainedTask",
    "TaskState", "ExecutionState", "TaskList", "Output", "OutputType", "FailedTask",
    "Scheduler", "Worker", "WorkerOptions",
]
