from pydantic import ValidationError


class SchedulerError(Exception):
    """
    Base class for every error raised by cron_scheduler.
    """


class NotFoundError(SchedulerError, LookupError):
    """
    Raised when a task name is unknown to a transport.
    """


class ConflictError(SchedulerError):
    """
    Raised on duplicate task names or when a task is already in the requested state.
    """


class TransportError(SchedulerError):
    """
    Raised when a transport backend fails, or when a composite transport runs
    out of candidates. The backend exception, if any, is kept as ``__cause__``.
    """


class UndefinedRunnerError(SchedulerError):
    """
    Raised when no runner supports a due task. Fatal to the current worker cycle.
    """


class ExecutionError(SchedulerError):
    """
    Raised by runners when the task payload fails; the worker records it as a FailedTask.
    """


class ConfigurationError(SchedulerError, ValueError):
    """
    Raised for an unknown schedule policy, an unsupported DSN or invalid options.
    """


__all__ = [
    "SchedulerError",
    "NotFoundError",
    "ConflictError",
    "TransportError",
    "UndefinedRunnerError",
    "ExecutionError",
    "ConfigurationError",
    "ValidationError",
]
