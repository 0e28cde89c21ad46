"""
Tagged results for remote workflow steps
"""
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, TypeVar, Union

from cafevision.core.exceptions import GenerationError

T = TypeVar("T")


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T


@dataclass(frozen=True)
class Failure:
    error: GenerationError
    step: str


StepResult = Union[Success[T], Failure]


async def attempt(step: str, call: Callable[..., Awaitable[T]], *args: Any) -> "StepResult[T]":
    """Await one generation call, turning a GenerationError into a Failure."""
    try:
        return Success(await call(*args))
    except GenerationError as e:
        return Failure(error=e, step=step)
