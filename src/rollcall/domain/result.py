"""Explicit success/failure values returned by the public engine surface.

Callers decide their own retry policy by inspecting the variant instead of
catching exceptions raised deep inside the engine.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Never


@dataclass(frozen=True, slots=True)
class Ok[T]:
    value: T

    @property
    def ok(self) -> Literal[True]:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True, slots=True)
class Err[E]:
    error: E

    @property
    def ok(self) -> Literal[False]:
        return False

    def unwrap(self) -> Never:
        if isinstance(self.error, BaseException):
            raise self.error
        raise ValueError(f"Called unwrap on an error result: {self.error!r}")


type Result[T, E] = Ok[T] | Err[E]
