"""
JSON representation of tasks, shared by every persistent transport and by the
async dispatch layer. The ``kind`` field selects the task class on the way back.
"""
from typing import Any, Dict

from pydantic import TypeAdapter

from .task import AnyTask, Task

_task_adapter: TypeAdapter[Task] = TypeAdapter(AnyTask)

# Stored tasks may carry dates that are now in the past and run tracking data.
_STORAGE_CONTEXT = {"from_storage": True}


def serialize_task(task: Task) -> str:
    return task.model_dump_json()


def deserialize_task(body: str) -> Task:
    return _task_adapter.validate_json(body, context=_STORAGE_CONTEXT)


def normalize_task(task: Task) -> Dict[str, Any]:
    return task.model_dump(mode="json")


def denormalize_task(data: Dict[str, Any]) -> Task:
    return _task_adapter.validate_python(data, context=_STORAGE_CONTEXT)
