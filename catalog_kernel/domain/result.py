"""
Result -- the error channel exposed to UI and reporting collaborators.

Every fallible public catalog operation returns ``Ok(value)`` or
``Err(error, kind)`` instead of raising for expected business-rule
violations (duplicate code, immutable version, missing parent, unapproved
component).  Internal layers raise typed ``CatalogKernelError`` subclasses;
the service boundary turns them into ``Err`` via ``Err.from_exception``.

Programmer errors (bad types, attribute errors) are not converted and still
propagate.
"""

from dataclasses import dataclass
from typing import Generic, NoReturn, TypeVar

from catalog_kernel.exceptions import CatalogKernelError, ErrorKind

T = TypeVar("T")


class ResultUnwrapError(RuntimeError):
    """Raised when ``unwrap()`` is called on an ``Err``."""


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome carrying a value."""

    value: T

    @property
    def is_ok(self) -> bool:
        return True

    @property
    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value

    def unwrap_or(self, default: T) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    """
    Failed outcome.

    Attributes:
        error: Human-readable message.
        kind: Closed-set failure kind.
        code: Machine-readable code of the originating exception.
    """

    error: str
    kind: ErrorKind
    code: str | None = None

    @classmethod
    def from_exception(cls, exc: CatalogKernelError) -> "Err":
        return cls(error=str(exc), kind=exc.kind, code=exc.code)

    @property
    def is_ok(self) -> bool:
        return False

    @property
    def is_err(self) -> bool:
        return True

    def unwrap(self) -> NoReturn:
        raise ResultUnwrapError(f"{self.kind.value}: {self.error}")

    def unwrap_or(self, default: T) -> T:
        return default


Result = Ok[T] | Err
