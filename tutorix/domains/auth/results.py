# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Typed results returned by the AuthService boundary.

Example:
    >>> result = await auth_service.login(LoginIdentifier.email("a@b.co"), "pw")
    >>> match result:
    ...     case Ok(value=response):
    ...         send_tokens(response.tokens)
    ...     case Err(kind=ErrorKind.AUTHENTICATION, message=message):
    ...         reject(message)
"""

import functools
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, NoReturn, ParamSpec, TypeVar, Union

from tutorix.domains.auth.errors import AuthFlowError, ErrorKind, error_for_kind

T = TypeVar("T")
P = ParamSpec("P")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome."""

    value: T

    @property
    def ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        """Return the value."""
        return self.value


@dataclass(frozen=True)
class Err:
    """Failed outcome.

    Attributes:
        kind: Error kind.
        message: Human-readable error description.
        details: Structured context safe to return to the caller.
    """

    kind: ErrorKind
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return False

    def unwrap(self) -> NoReturn:
        """Raise the exception matching this error."""
        raise error_for_kind(self.kind)(self.message, self.details)

    @classmethod
    def from_error(cls, error: AuthFlowError) -> "Err":
        """Build an Err from a raised auth flow error."""
        return cls(kind=error.kind, message=error.message, details=dict(error.details))


Result = Union[Ok[T], Err]


def as_result(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[Result[T]]]:
    """Wrap an async operation so auth flow errors come back as Err values.

    Any other exception (infrastructure failures) propagates unchanged.
    """

    @functools.wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> Result[T]:
        try:
            return Ok(await func(*args, **kwargs))
        except AuthFlowError as e:
            return Err.from_error(e)

    return wrapper
