"""Tagged success/failure variant.

``Ok(value) | Err(error)`` is returned instead of raising where a failure is
an expected outcome (bad credentials, a failed run).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E", bound=BaseException)


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def is_ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err(Generic[E]):
    error: E

    @property
    def is_ok(self) -> bool:
        return False


Outcome = Union[Ok[T], Err[E]]
