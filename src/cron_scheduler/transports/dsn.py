from dataclasses import dataclass, field
from typing import Dict, List, Tuple
from urllib.parse import parse_qsl

from cron_scheduler.exceptions import ConfigurationError


def _split_members(group: str) -> List[str]:
    """
    Split ``A && B && C`` on the separators that are not nested in parentheses.
    """
    members: List[str] = []
    depth = 0
    start = 0
    index = 0
    while index < len(group):
        char = group[index]
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        elif depth == 0 and group.startswith("&&", index):
            members.append(group[start:index].strip())
            start = index + 2
            index += 1
        index += 1
    members.append(group[start:].strip())
    return [member for member in members if member]


def _closing_parenthesis(value: str) -> int:
    depth = 0
    for index, char in enumerate(value):
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                return index
    return -1


@dataclass(frozen=True)
class Dsn:
    """
    A transport connection string.

    Simple form: ``scheme://host/path?option=value``, e.g. ``memory://first_in_first_out``.
    Composite form: ``scheme://(dsn_a && dsn_b)?option=value``, members may be composite too.
    ``rest`` keeps everything after ``scheme://`` untouched, for backends owning their own URL format.
    """
    scheme: str
    rest: str
    host: str = ""
    path: str = ""
    options: Dict[str, str] = field(default_factory=dict)
    members: Tuple[str, ...] = ()

    @property
    def is_composite(self) -> bool:
        return bool(self.members)

    @classmethod
    def from_string(cls, dsn: str) -> "Dsn":
        scheme, separator, rest = dsn.strip().partition("://")
        if not separator or not scheme:
            raise ConfigurationError(f"The DSN '{dsn}' is invalid")

        if rest.startswith("("):
            close = _closing_parenthesis(rest)
            if close == -1:
                raise ConfigurationError(f"The DSN '{dsn}' has an unbalanced group")
            members = _split_members(rest[1:close])
            if not members:
                raise ConfigurationError(f"The DSN '{dsn}' does not define any transport")
            tail = rest[close + 1:]
            if tail and not tail.startswith("?"):
                raise ConfigurationError(f"The DSN '{dsn}' is invalid")
            return cls(
                scheme=scheme,
                rest=rest,
                options=dict(parse_qsl(tail[1:])),
                members=tuple(members),
            )

        location, _, query = rest.partition("?")
        host, _, path = location.partition("/")
        return cls(scheme=scheme, rest=rest, host=host, path=path, options=dict(parse_qsl(query)))
