"""
BaseService -- abstract base for all catalog services.

Responsibility:
    Provides the common constructor (storage adapter, clock, audit trail)
    and the boundary that turns raised catalog errors into ``Result`` values.

Architecture position:
    Kernel > Services -- imperative shell.  Services read and write through
    a ``StorageAdapter`` and never commit: the caller owns the outer
    transaction (``session_scope()`` for SQL).

Error boundary:
    Internal helpers raise typed ``CatalogKernelError`` subclasses.  Public
    methods decorated with ``@result_boundary`` return ``Ok(value)`` on
    success and ``Err(error, kind)`` for any ``CatalogKernelError``, after
    logging a structured warning.  Anything else (programmer error)
    propagates unchanged.
"""

import functools
from abc import ABC
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING, Concatenate, ParamSpec, TypeVar

from catalog_kernel.db.adapter import StorageAdapter
from catalog_kernel.domain.clock import Clock, SystemClock
from catalog_kernel.domain.result import Err, Ok, Result
from catalog_kernel.exceptions import CatalogKernelError
from catalog_kernel.logging_config import get_logger

if TYPE_CHECKING:
    from catalog_kernel.services.audit_service import AuditService

logger = get_logger("services.base")

P = ParamSpec("P")
T = TypeVar("T")
S = TypeVar("S", bound="BaseService")


class Namespace:
    """Storage namespaces used by the catalog."""

    CATEGORIES = "library_categories"
    SUBCATEGORIES = "library_subcategories"
    ARTICLES = "library_articles"
    ARTICLE_VERSIONS = "library_article_versions"
    KITS = "library_kits"
    KIT_VERSIONS = "library_kit_versions"
    BOAT_MODELS = "library_boat_models"
    BOAT_MODEL_VERSIONS = "library_boat_model_versions"
    BOM_SNAPSHOTS = "bom_snapshots"
    AUDIT_LOG = "audit_log"


def result_boundary(
    operation: str,
) -> Callable[
    [Callable[Concatenate[S, P], T]],
    Callable[Concatenate[S, P], Result[T]],
]:
    """Convert ``CatalogKernelError`` raised by ``fn`` into ``Err``."""

    def decorator(
        fn: Callable[Concatenate[S, P], T],
    ) -> Callable[Concatenate[S, P], Result[T]]:
        @functools.wraps(fn)
        def wrapper(self: S, *args: P.args, **kwargs: P.kwargs) -> Result[T]:
            try:
                return Ok(fn(self, *args, **kwargs))
            except CatalogKernelError as exc:
                logger.warning(
                    "catalog_operation_rejected",
                    extra={
                        "operation": operation,
                        "error_code": exc.code,
                        "error_kind": exc.kind.value,
                        "reason": str(exc),
                    },
                )
                return Err.from_exception(exc)

        return wrapper

    return decorator


class BaseService(ABC):
    """
    Abstract base class for catalog services.

    Args:
        adapter: Storage adapter shared by every service of one unit of work.
        clock: Time source; defaults to the system clock.
        audit: Audit trail; defaults to one over the same adapter.
    """

    def __init__(
        self,
        adapter: StorageAdapter,
        clock: Clock | None = None,
        audit: "AuditService | None" = None,
    ):
        from catalog_kernel.services.audit_service import AuditService

        self._adapter = adapter
        self._clock = clock or SystemClock()
        self._audit = audit or AuditService(adapter, self._clock)

    @property
    def adapter(self) -> StorageAdapter:
        return self._adapter

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def audit(self) -> "AuditService":
        return self._audit

    def _now(self) -> datetime:
        return self._clock.now()
