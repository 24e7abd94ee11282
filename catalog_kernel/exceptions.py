"""
Typed Exception Hierarchy for the Catalog Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

The catalog is the commercial source of truth: prices, costs and the parts
list that production buys against.  Callers must be able to tell "this code
already exists" from "this version is frozen" without parsing messages.

Every error therefore has:
  1. A TYPED exception class (catch by type, not message)
  2. A CODE class attribute (machine-readable, API-safe)
  3. A KIND -- one of the closed set of ``ErrorKind`` values surfaced on the
     ``Result`` error channel
  4. Structured DATA as attributes (not just a message string)

Internally, services raise these exceptions.  The public service boundary
converts them into ``Err`` results (see ``catalog_kernel.domain.result``),
so UI and reporting callers never see a raised business-rule violation.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    CatalogKernelError (base)
    |
    +-- RecordNotFoundError                          NOT_FOUND
    |   +-- CategoryNotFoundError
    |   +-- SubcategoryNotFoundError
    |   +-- ArticleNotFoundError
    |   +-- KitNotFoundError
    |   +-- BoatModelNotFoundError
    |   +-- VersionNotFoundError
    |   +-- AttachmentNotFoundError
    |   +-- SnapshotNotFoundError
    |
    +-- DuplicateCodeError                           DUPLICATE_CODE
    |
    +-- InvalidStateError                            INVALID_STATE
    |   +-- VersionNotDraftError
    |   +-- CategoryInUseError
    |   +-- ImmutableVersionError                    IMMUTABLE
    |
    +-- ComponentNotApprovedError                    COMPONENT_NOT_APPROVED
    |
    +-- CatalogValidationError                       VALIDATION_ERROR
    |
    +-- ConcurrencyConflictError                     CONCURRENCY_CONFLICT
    |
    +-- AuditChainBrokenError                        INVALID_STATE

===============================================================================
DESIGN DECISIONS
===============================================================================

1. ImmutableVersionError IS-A InvalidStateError.
   Mutating a frozen version is a state violation; callers that only care
   about "wrong state" can catch the parent, while the Result channel still
   reports the more precise IMMUTABLE kind.

2. Nothing here is fatal at the process level.  Every failure is local to one
   operation and recoverable by retrying with corrected input.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Closed set of failure kinds reported on the Result error channel."""

    NOT_FOUND = "not_found"
    DUPLICATE_CODE = "duplicate_code"
    INVALID_STATE = "invalid_state"
    IMMUTABLE = "immutable"
    COMPONENT_NOT_APPROVED = "component_not_approved"
    VALIDATION_ERROR = "validation_error"
    CONCURRENCY_CONFLICT = "concurrency_conflict"


class CatalogKernelError(Exception):
    """
    Base exception for all catalog kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification and a `kind` that maps onto ErrorKind.
    """

    code: str = "CATALOG_KERNEL_ERROR"
    kind: ErrorKind = ErrorKind.INVALID_STATE


# Lookup failures


class RecordNotFoundError(CatalogKernelError):
    """A record id did not resolve in its namespace."""

    code: str = "RECORD_NOT_FOUND"
    kind: ErrorKind = ErrorKind.NOT_FOUND
    entity_label: str = "Record"

    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(f"{self.entity_label} not found: {record_id}")


class CategoryNotFoundError(RecordNotFoundError):
    code: str = "CATEGORY_NOT_FOUND"
    entity_label = "Category"


class SubcategoryNotFoundError(RecordNotFoundError):
    code: str = "SUBCATEGORY_NOT_FOUND"
    entity_label = "Subcategory"


class ArticleNotFoundError(RecordNotFoundError):
    code: str = "ARTICLE_NOT_FOUND"
    entity_label = "Article"


class KitNotFoundError(RecordNotFoundError):
    code: str = "KIT_NOT_FOUND"
    entity_label = "Kit"


class BoatModelNotFoundError(RecordNotFoundError):
    code: str = "BOAT_MODEL_NOT_FOUND"
    entity_label = "Boat model"


class VersionNotFoundError(RecordNotFoundError):
    code: str = "VERSION_NOT_FOUND"
    entity_label = "Version"


class AttachmentNotFoundError(RecordNotFoundError):
    code: str = "ATTACHMENT_NOT_FOUND"
    entity_label = "Attachment"


class SnapshotNotFoundError(RecordNotFoundError):
    code: str = "BOM_SNAPSHOT_NOT_FOUND"
    entity_label = "BOM snapshot"


# Uniqueness


class DuplicateCodeError(CatalogKernelError):
    """An article or kit code is already taken."""

    code: str = "DUPLICATE_CODE"
    kind: ErrorKind = ErrorKind.DUPLICATE_CODE

    def __init__(self, entity_type: str, entity_code: str):
        self.entity_type = entity_type
        self.entity_code = entity_code
        super().__init__(f"{entity_type} with code {entity_code} already exists")


# State violations


class InvalidStateError(CatalogKernelError):
    """Operation is not allowed in the record's current state."""

    code: str = "INVALID_STATE"
    kind: ErrorKind = ErrorKind.INVALID_STATE

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(f"Invalid state for {entity_type} {entity_id}: {reason}")


class VersionNotDraftError(InvalidStateError):
    """Only DRAFT versions can be approved."""

    code: str = "VERSION_NOT_DRAFT"

    def __init__(self, entity_type: str, entity_id: str, status: str):
        self.status = status
        super().__init__(
            entity_type,
            entity_id,
            f"only draft versions can be approved (status is {status})",
        )


class CategoryInUseError(InvalidStateError):
    """A taxonomy node still has children and cannot be deleted."""

    code: str = "CATEGORY_IN_USE"


class ImmutableVersionError(InvalidStateError):
    """
    Attempted to mutate an APPROVED or DEPRECATED version.

    Approved versions are pinned by kits, quotations and BOM snapshots; once
    frozen they must never change.
    """

    code: str = "IMMUTABLE_VERSION"
    kind: ErrorKind = ErrorKind.IMMUTABLE

    def __init__(self, entity_type: str, entity_id: str, status: str):
        self.status = status
        super().__init__(
            entity_type,
            entity_id,
            f"version is {status} and can no longer be modified",
        )


# Kit composition


class ComponentNotApprovedError(CatalogKernelError):
    """A kit component references an ArticleVersion that is not APPROVED."""

    code: str = "COMPONENT_NOT_APPROVED"
    kind: ErrorKind = ErrorKind.COMPONENT_NOT_APPROVED

    def __init__(self, article_version_id: str, status: str):
        self.article_version_id = article_version_id
        self.status = status
        super().__init__(
            f"Article version {article_version_id} is not approved (status is {status})"
        )


# Input validation


class CatalogValidationError(CatalogKernelError):
    """Input failed validation (negative price, missing required field, ...)."""

    code: str = "VALIDATION_ERROR"
    kind: ErrorKind = ErrorKind.VALIDATION_ERROR

    def __init__(self, field_name: str, reason: str):
        self.field_name = field_name
        self.reason = reason
        super().__init__(f"Invalid {field_name}: {reason}")


# Concurrency


class ConcurrencyConflictError(CatalogKernelError):
    """Compare-and-swap write rejected: the stored version moved on."""

    code: str = "CONCURRENCY_CONFLICT"
    kind: ErrorKind = ErrorKind.CONCURRENCY_CONFLICT

    def __init__(
        self,
        namespace: str,
        record_id: str,
        expected_version: int | None,
        actual_version: int | None,
    ):
        self.namespace = namespace
        self.record_id = record_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Record {record_id} in {namespace} was modified concurrently: "
            f"expected version {expected_version}, stored version {actual_version}"
        )


# Audit


class AuditChainBrokenError(CatalogKernelError):
    """Audit hash chain validation failed."""

    code: str = "AUDIT_CHAIN_BROKEN"

    def __init__(self, entry_id: str, expected_hash: str, actual_hash: str):
        self.entry_id = entry_id
        self.expected_hash = expected_hash
        self.actual_hash = actual_hash
        super().__init__(
            f"Audit chain broken at entry {entry_id}: "
            f"expected {expected_hash}, got {actual_hash}"
        )
