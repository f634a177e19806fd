"""ORDERFLOW — Error taxonomy shared by services and the HTTP layer."""
from collections.abc import Iterable
from typing import Any


class OrderflowError(Exception):
    """Base class for every business error raised by the orchestration core.

    ``effects`` holds audit records that must survive the rollback of the
    failed operation (e.g. a collaborator outage that caused the failure).
    """

    code = "ORDERFLOW_ERROR"
    effects: list = []

    def with_effects(self, effects: list) -> "OrderflowError":
        self.effects = list(effects)
        return self

    def to_meta(self) -> dict[str, Any]:
        return {}


class NotFound(OrderflowError):
    """Referenced order (or other record) does not exist."""

    code = "NOT_FOUND"

    def __init__(self, entity: str, identifier: Any):
        self.entity = entity
        self.identifier = identifier
        super().__init__(f"{entity} not found: {identifier}")

    def to_meta(self) -> dict[str, Any]:
        return {"entity": self.entity, "id": str(self.identifier)}


class InvalidStateTransition(OrderflowError):
    """Operation attempted from a status that does not permit it."""

    code = "INVALID_STATE_TRANSITION"

    def __init__(
        self,
        entity: str,
        current: str,
        operation: str,
        allowed_from: Iterable[str] = (),
        requested: str | None = None,
    ):
        self.entity = entity
        self.current = str(current)
        self.operation = operation
        self.allowed_from = sorted(str(s) for s in allowed_from)
        self.requested = str(requested) if requested is not None else None
        required = ", ".join(self.allowed_from) or "none"
        super().__init__(
            f"Cannot {operation} {entity} in status {self.current} (requires one of: {required})"
        )

    def to_meta(self) -> dict[str, Any]:
        return {
            "entity": self.entity,
            "operation": self.operation,
            "current_status": self.current,
            "required_status": self.allowed_from,
            "requested_status": self.requested,
        }


class ValidationFailure(OrderflowError):
    """Malformed input. Always carries every violation that was found."""

    code = "VALIDATION_FAILED"

    def __init__(self, errors: Iterable[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Validation failed")

    def to_meta(self) -> dict[str, Any]:
        return {"errors": self.errors}


class CollaboratorFailure(OrderflowError):
    """A remote collaborator call failed, timed out or answered with an error."""

    code = "COLLABORATOR_FAILURE"

    def __init__(self, collaborator: str, operation: str, detail: str):
        self.collaborator = collaborator
        self.operation = operation
        self.detail = detail
        super().__init__(f"{collaborator}.{operation} failed: {detail}")

    def to_meta(self) -> dict[str, Any]:
        return {"collaborator": self.collaborator, "operation": self.operation}


class ValidationCollector:
    """Accumulates violations so callers can report all of them at once."""

    def __init__(self) -> None:
        self.errors: list[str] = []

    def add(self, message: str) -> None:
        self.errors.append(message)

    def check(self, condition: bool, message: str) -> None:
        if not condition:
            self.errors.append(message)

    def raise_if_any(self) -> None:
        if self.errors:
            raise ValidationFailure(self.errors)
