"""
Typed errors raised by the work order lifecycle.

    WorkOrderError (base)
    +-- NotFoundError        order id absent from the store
    +-- InvalidStateError    transition not allowed from the current state
    +-- ConflictError        order already archived
    +-- PreconditionError    archive without invoice or reason

Every error carries a machine-readable ``code`` and the HTTP ``status_code``
the API layer maps it to. All of them are raised before any store write.
"""


class WorkOrderError(Exception):
    code = "work_order_error"
    status_code = 400

    def __init__(self, message: str, **data):
        super().__init__(message)
        self.message = message
        self.data = data


class NotFoundError(WorkOrderError):
    code = "not_found"
    status_code = 404

    def __init__(self, entity_id: str, entity_kind: str = "work order"):
        super().__init__(f"{entity_kind.capitalize()} '{entity_id}' not found", entity_id=entity_id)
        self.entity_id = entity_id
        self.entity_kind = entity_kind


class InvalidStateError(WorkOrderError):
    code = "invalid_state"
    status_code = 409


class ConflictError(WorkOrderError):
    code = "conflict"
    status_code = 409


class PreconditionError(WorkOrderError):
    code = "precondition_failed"
    status_code = 422

    def __init__(self, message: str, missing: str | None = None):
        super().__init__(message, missing=missing)
        self.missing = missing
