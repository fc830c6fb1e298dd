"""Domain exceptions for identity resolution and customer merges.

Single-record operations raise these directly. Batch operations catch them
per item and report them as strings instead of aborting the batch.
"""

from uuid import UUID

from brokerdesk.utils.exceptions import BrokerdeskError


class InvalidArgumentError(BrokerdeskError):
    """Raised when the caller supplied unusable input.

    Examples are an assignment with neither a national ID nor a tax ID, or a
    merge whose primary and secondary customer are the same.
    """

    code = "invalid_argument"

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class NotFoundError(BrokerdeskError):
    """Raised when a customer or record does not exist within the tenant.

    Attributes:
        resource: Kind of resource that was looked up (e.g., "customer")
        resource_id: Identifier that was not found
    """

    code = "not_found"

    def __init__(self, resource: str, resource_id: UUID | str):
        super().__init__(f"{resource} {resource_id} not found")
        self.resource = resource
        self.resource_id = resource_id


class ForbiddenError(BrokerdeskError):
    """Raised when an operation reaches across a tenant boundary.

    Attributes:
        tenant_id: Tenant the caller acts for
        resource: Kind of resource that belongs to another tenant
        resource_id: Identifier of that resource
    """

    code = "forbidden"

    def __init__(
        self,
        message: str,
        tenant_id: UUID,
        resource: str,
        resource_id: UUID | str,
    ):
        super().__init__(message)
        self.tenant_id = tenant_id
        self.resource = resource
        self.resource_id = resource_id

    def __str__(self) -> str:
        return f"{self.args[0]} ({self.resource}={self.resource_id})"


class ConflictError(BrokerdeskError):
    """Raised when a write would violate a tenant uniqueness invariant.

    Attributes:
        field: Identifier field that collided (e.g., "national_id")
        value: The colliding value, if known
    """

    code = "conflict"

    def __init__(self, message: str, field: str | None = None, value: str | None = None):
        super().__init__(message)
        self.field = field
        self.value = value


class StorageFailureError(BrokerdeskError):
    """Raised when the persistence layer fails inside a unit of work.

    The originating database exception is chained as ``__cause__``.
    """

    code = "storage_failure"

    def __init__(self, message: str, operation: str | None = None):
        super().__init__(message)
        self.operation = operation
