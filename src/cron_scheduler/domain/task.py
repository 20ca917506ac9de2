import importlib
from datetime import datetime, timedelta
from enum import Enum
from typing import Annotated, Any, Callable, Dict, List, Literal, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from croniter import croniter
from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_serializer, field_validator, model_validator

from cron_scheduler.exceptions import ConflictError


class TaskState(str, Enum):
    ENABLED = "enabled"
    PAUSED = "paused"


class ExecutionState(str, Enum):
    RUNNING = "running"
    SUCCEED = "succeed"
    ERRORED = "errored"
    INCOMPLETE = "incomplete"
    # Reserved for backends implementing their own retry policy.
    TO_RETRY = "to_retry"


class TaskKind(str, Enum):
    SHELL = "shell"
    HTTP = "http"
    CALLBACK = "callback"
    COMMAND = "command"
    NULL = "null"
    CHAINED = "chained"


def _zone(name: Optional[str]) -> ZoneInfo:
    return ZoneInfo(name) if name else ZoneInfo("UTC")


class Task(BaseModel):
    """
    A schedulable unit of work. Concrete tasks are the subclasses below, told apart
    by their ``kind`` discriminator.

    Every assignment is validated, so an invalid expression, date, priority or state
    is rejected when it is set and never reaches a transport.
    """
    model_config = ConfigDict(validate_assignment=True)

    kind: TaskKind
    name: str = Field(..., min_length=1, description="Task name, unique within a transport")
    expression: str = Field(default="* * * * *", description="Five-field cron expression")
    description: Optional[str] = Field(None, description="Free text description of the task")
    timezone: Optional[str] = Field(None, description="IANA timezone, set by the scheduler when missing")
    execution_start_date: Optional[datetime] = Field(None, description="The task is not due before this date")
    execution_end_date: Optional[datetime] = Field(None, description="The task is not due after this date")
    priority: int = Field(default=0, ge=-1000, le=1000)
    nice: Optional[int] = Field(None, ge=-20, le=19, description="Lower values are executed sooner by the nice policy")
    state: TaskState = TaskState.ENABLED
    execution_state: Optional[ExecutionState] = None

    # Written by the scheduler, the worker and the execution tracker.
    scheduled_at: Optional[datetime] = None
    arrival_time: Optional[datetime] = None
    execution_start_time: Optional[datetime] = None
    execution_end_time: Optional[datetime] = None
    last_execution: Optional[datetime] = None
    execution_computation_time: Optional[float] = Field(None, description="Duration of the last execution in milliseconds")
    execution_memory_usage: Optional[int] = Field(None, description="Peak memory of the last execution in bytes")
    execution_period: Optional[float] = None
    execution_delay: Optional[int] = Field(None, ge=0, description="Microseconds to wait before the execution")
    max_duration: Optional[float] = Field(None, ge=0, description="Expected maximum duration in seconds")
    execution_relative_deadline: Optional[timedelta] = None
    execution_absolute_deadline: Optional[datetime] = None

    single_run: bool = Field(default=False, description="Unschedule the task after one successful execution")
    queued: bool = Field(default=False, description="Dispatch the task to the async queue instead of storing it")
    background: bool = Field(default=False, description="Do not wait for the process, shell tasks only")
    output: bool = Field(default=False, description="Keep the output captured by the runner")
    tracked: bool = Field(default=True, description="Measure duration and memory usage during execution")
    tags: List[str] = Field(default_factory=list)

    @field_validator("expression")
    def check_expression(cls, v: str) -> str:
        if len(v.split()) != 5 or not croniter.is_valid(v):
            raise ValueError(f"The expression '{v}' is not a valid five-field cron expression")
        return v

    @field_validator("timezone", mode="before")
    def check_timezone(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        if isinstance(v, ZoneInfo):
            return v.key
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError, TypeError) as e:
            raise ValueError(f"Unknown timezone '{v}'") from e
        return v

    @field_validator("execution_start_date", "execution_end_date")
    def check_date(cls, v: Optional[datetime], info: ValidationInfo) -> Optional[datetime]:
        if v is None:
            return v
        name = info.data.get("timezone")
        # Without a timezone, a naive date waits for the one the scheduler assigns.
        if v.tzinfo is None and name:
            v = v.replace(tzinfo=_zone(name))
        if info.context and info.context.get("from_storage"):
            return v
        if (v if v.tzinfo else v.replace(tzinfo=_zone(None))) < datetime.now(_zone(name)):
            raise ValueError("The date cannot be previous to the current date")
        return v

    @field_validator("tags")
    def check_tags(cls, v: List[str]) -> List[str]:
        return list(dict.fromkeys(v))

    @model_validator(mode="after")
    def check_background(self) -> "Task":
        if self.background and self.kind != TaskKind.SHELL:
            raise ValueError(f"The background option is available only for tasks of kind '{TaskKind.SHELL.value}'")
        return self

    @property
    def is_enabled(self) -> bool:
        return self.state == TaskState.ENABLED

    def get_timezone(self) -> Optional[ZoneInfo]:
        return ZoneInfo(self.timezone) if self.timezone else None

    def localize(self, timezone: str) -> None:
        """
        Set the timezone when the task has none, and read the naive execution
        dates in it.
        """
        if self.timezone is None:
            self.timezone = timezone
        zone = ZoneInfo(self.timezone)
        for field in ("execution_start_date", "execution_end_date"):
            date = getattr(self, field)
            if date is not None and date.tzinfo is None:
                setattr(self, field, date.replace(tzinfo=zone))

    def add_tag(self, tag: str) -> None:
        self.tags = [*self.tags, tag]

    def pause(self) -> None:
        if self.state == TaskState.PAUSED:
            raise ConflictError(f"The task '{self.name}' is already paused")
        self.state = TaskState.PAUSED

    def resume(self) -> None:
        if self.state == TaskState.ENABLED:
            raise ConflictError(f"The task '{self.name}' is already enabled")
        self.state = TaskState.ENABLED


class ShellTask(Task):
    """
    Runs a command in a subprocess.
    """
    kind: Literal[TaskKind.SHELL] = TaskKind.SHELL
    command: List[str] = Field(..., min_length=1, description="Program and its arguments")
    cwd: Optional[str] = None
    environment_variables: Dict[str, str] = Field(default_factory=dict)
    timeout: float = Field(default=60, gt=0, description="Seconds before the process is killed")


HTTP_CLIENT_OPTIONS = frozenset({
    "headers", "params", "json", "data", "timeout", "auth", "allow_redirects", "ssl", "cookies", "proxy",
})


class HttpTask(Task):
    """
    Sends an HTTP request, see HttpTaskRunner.
    """
    kind: Literal[TaskKind.HTTP] = TaskKind.HTTP
    url: str
    method: str = "GET"
    client_options: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("method")
    def check_method(cls, v: str) -> str:
        return v.upper()

    @field_validator("client_options")
    def check_client_options(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        for key in v:
            if key not in HTTP_CLIENT_OPTIONS:
                raise ValueError(f"The following option: '{key}' is not supported")
        return v


def callback_path(func: Callable[..., Any]) -> str:
    return f"{func.__module__}:{func.__qualname__}"


class CallbackTask(Task):
    """
    Calls a Python function, either given directly or as a ``"package.module:function"`` path.

    Only importable callbacks survive serialization; lambdas and closures are fine
    with the in-memory transport.
    """
    kind: Literal[TaskKind.CALLBACK] = TaskKind.CALLBACK
    callback: Union[str, Callable[..., Any]]
    arguments: List[Any] = Field(default_factory=list)

    @field_validator("callback")
    def check_callback(cls, v: Union[str, Callable[..., Any]]) -> Union[str, Callable[..., Any]]:
        if isinstance(v, str) and ":" not in v:
            raise ValueError(f"The callback '{v}' must be formatted as 'package.module:function'")
        return v

    @field_serializer("callback")
    def serialize_callback(self, v: Union[str, Callable[..., Any]]) -> str:
        return v if isinstance(v, str) else callback_path(v)

    def resolve_callback(self) -> Callable[..., Any]:
        if callable(self.callback):
            return self.callback
        module_name, _, qualname = self.callback.partition(":")
        target: Any = importlib.import_module(module_name)
        for attr in qualname.split("."):
            target = getattr(target, attr)
        return target


class CommandTask(Task):
    """
    Runs a Python module as a command (``python -m <command> <arguments> <options>``).
    """
    kind: Literal[TaskKind.COMMAND] = TaskKind.COMMAND
    command: str = Field(..., min_length=1)
    arguments: List[str] = Field(default_factory=list)
    options: Dict[str, Optional[str]] = Field(default_factory=dict)

    def build_arguments(self) -> List[str]:
        args = list(self.arguments)
        for key, value in self.options.items():
            flag = key if key.startswith("-") else f"--{key}"
            args.append(flag)
            if value is not None:
                args.append(value)
        return args


class NullTask(Task):
    kind: Literal[TaskKind.NULL] = TaskKind.NULL


class ChainedTask(Task):
    """
    Runs its tasks one after the other.
    """
    kind: Literal[TaskKind.CHAINED] = TaskKind.CHAINED
    tasks: List["AnyTask"] = Field(default_factory=list)

    @field_validator("tasks")
    def check_unique_names(cls, v: List[Task]) -> List[Task]:
        names = [task.name for task in v]
        if len(names) != len(set(names)):
            raise ValueError("The chained tasks must have unique names")
        return v


AnyTask = Annotated[
    Union[ShellTask, HttpTask, CallbackTask, CommandTask, NullTask, ChainedTask],
    Field(discriminator="kind"),
]

ChainedTask.model_rebuild()
