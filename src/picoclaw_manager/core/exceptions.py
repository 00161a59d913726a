"""Tenant lifecycle exceptions returned to API callers."""

from picoclaw_manager.utils.exceptions import PicoclawError


class ValidationError(PicoclawError):
    """Raised when a lifecycle request is malformed or missing required input.

    Attributes:
        field: The request field that failed validation (e.g., "tenant_id")
    """

    def __init__(self, message: str, field: str):
        super().__init__(message)
        self.field = field

    def __str__(self) -> str:
        return f"ValidationError({self.field}): {self.args[0]}"


class ConflictError(PicoclawError):
    """Raised when creating a tenant whose ID is already recorded.

    Attributes:
        tenant_id: The conflicting tenant identifier
    """

    def __init__(self, tenant_id: str):
        super().__init__(f"Tenant already exists: {tenant_id}")
        self.tenant_id = tenant_id

    def __str__(self) -> str:
        return f"ConflictError: {self.args[0]}"


class NotFoundError(PicoclawError):
    """Raised when a tenant does not exist.

    Attributes:
        tenant_id: The identifier of the tenant that was not found
    """

    def __init__(self, tenant_id: str):
        super().__init__(f"Tenant not found: {tenant_id}")
        self.tenant_id = tenant_id

    def __str__(self) -> str:
        return f"NotFoundError: {self.args[0]}"


class RemoteError(PicoclawError):
    """Raised when a cluster API call (discovery, apply, patch, delete) fails.

    Attributes:
        operation: What was attempted (e.g., "apply", "delete_namespace")
        kind: Resource kind involved
        name: Resource name involved
        namespace: Namespace involved, if any
        status_code: HTTP status returned by the API server, if one was received
    """

    def __init__(
        self,
        message: str,
        operation: str,
        kind: str,
        name: str = "",
        namespace: str | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.operation = operation
        self.kind = kind
        self.name = name
        self.namespace = namespace
        self.status_code = status_code

    @property
    def resource(self) -> str:
        """Human-readable resource reference, e.g. ``Deployment ns/name``."""
        if self.namespace:
            return f"{self.kind} {self.namespace}/{self.name}"
        if self.name:
            return f"{self.kind} {self.name}"
        return self.kind

    def __str__(self) -> str:
        return f"RemoteError({self.operation} {self.resource}): {self.args[0]}"


class PersistenceError(PicoclawError):
    """Raised when the tenant store fails a CRUD operation.

    Attributes:
        tenant_id: The tenant whose record was being read or written
        operation: The store operation (get, list, create, update, delete)
    """

    def __init__(self, message: str, tenant_id: str, operation: str):
        super().__init__(message)
        self.tenant_id = tenant_id
        self.operation = operation

    def __str__(self) -> str:
        return f"PersistenceError({self.operation} {self.tenant_id}): {self.args[0]}"


class RenderError(PicoclawError):
    """Raised when tenant manifests cannot be rendered.

    Attributes:
        template: The template that failed, if known
    """

    def __init__(self, message: str, template: str | None = None):
        super().__init__(message)
        self.template = template

    def __str__(self) -> str:
        return f"RenderError({self.template or '*'}): {self.args[0]}"
