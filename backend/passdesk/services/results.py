"""
Tagged operation results.

Write services never raise for expected outcomes; they return one of these
values and the API layer translates them into HTTP responses. Anything that
is not a failure is wrapped in ``Ok``.
"""

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Failure:
    reason: str

    @property
    def tag(self) -> str:
        return type(self).__name__.lower()


class Invalid(Failure):
    """Malformed slot number or identifiers."""


class NotFound(Failure):
    """Pass, event or slot absent."""


class Forbidden(Failure):
    """Role or department-scope violation."""


class Conflict(Failure):
    """Duplicate event, slot taken, attended-slot deletion, lost race."""


class UpstreamFailure(Failure):
    """External verification or catalog call failed or timed out."""


class InternalError(Failure):
    """Unexpected storage fault."""


Result = Union[Ok[T], Failure]


def result_tag(result: "Result") -> str:
    return "ok" if isinstance(result, Ok) else result.tag
