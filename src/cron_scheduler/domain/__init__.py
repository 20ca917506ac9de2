from .task import (
    AnyTask,
    CallbackTask,
    ChainedTask,
    CommandTask,
    ExecutionState,
    HttpTask,
    NullTask,
    ShellTask,
    Task,
    TaskKind,
    TaskState,
)
from .task_list import TaskList
from .output import FailedTask, Output, OutputType
from .serialization import deserialize_task, denormalize_task, normalize_task, serialize_task

__all__ = [
    "Task", "AnyTask", "TaskKind", "TaskState", "ExecutionState",
    "ShellTask", "HttpTask", "CallbackTask", "CommandTask", "NullTask", "ChainedTask",
    "TaskList", "Output", "OutputType", "FailedTask",
    "serialize_task", "deserialize_task", "normalize_task", "denormalize_task",
]
