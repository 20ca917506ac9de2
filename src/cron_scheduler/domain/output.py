from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .task import Task


class OutputType(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


class Output(BaseModel):
    """
    Result of a single runner invocation.
    """
    model_config = ConfigDict(frozen=True)

    task: Task
    output: Optional[str] = None
    type: OutputType = OutputType.SUCCESS

    @property
    def is_success(self) -> bool:
        return self.type == OutputType.SUCCESS


class FailedTask(BaseModel):
    """
    A task whose execution failed, stored by the worker under ``<name>.failed``.
    """
    task: Task
    reason: str
    failed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def name(self) -> str:
        return f"{self.task.name}.failed"
