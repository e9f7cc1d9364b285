"""Typed failures raised by the scheduling engine.

Every error carries a stable ``code`` and ``message`` that API clients branch
on. Details (offending index, states, ids) travel separately in ``detail`` so
the message text never changes between versions.
"""

from typing import Any, Optional


class SchedulingError(Exception):
    """Base class for all scheduling failures."""

    code = "scheduling_error"
    message = "Scheduling request failed"
    status_code = 400

    def __init__(self, detail: Optional[dict[str, Any]] = None):
        self.detail = detail or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message, "code": self.code, "detail": self.detail}


class InvalidRecurrenceError(SchedulingError):
    """Unknown frequency, or an occurrence count that is out of range."""

    code = "invalid_recurrence"
    message = "Invalid recurrence pattern"
    status_code = 422


class SchedulingConflictError(SchedulingError):
    """Interval overlap, or the provider lock could not be acquired in time."""

    code = "scheduling_conflict"
    message = "Time slot conflicts with an existing appointment"
    status_code = 409

    def __init__(
        self,
        candidate_index: Optional[int] = None,
        conflicting_appointment_id: Optional[str] = None,
        reason: str = "overlap",
    ):
        super().__init__(
            {
                "reason": reason,
                "candidate_index": candidate_index,
                "conflicting_appointment_id": conflicting_appointment_id,
            }
        )
        self.candidate_index = candidate_index
        self.conflicting_appointment_id = conflicting_appointment_id
        self.reason = reason


class InvalidTransitionError(SchedulingError):
    """Requested status change is not an edge of the lifecycle."""

    code = "invalid_transition"
    message = "Invalid appointment status transition"
    status_code = 409

    def __init__(self, current: str, requested: str):
        super().__init__({"current": current, "requested": requested})
        self.current = current
        self.requested = requested

    def __str__(self) -> str:
        return f"{self.message}: {self.current} -> {self.requested}"


class PermissionDeniedError(SchedulingError):
    """Actor is not allowed to perform the operation."""

    code = "permission_denied"
    message = "Not permitted to perform this action"
    status_code = 403

    def __init__(self, role: str, action: str):
        super().__init__({"role": role, "action": action})
        self.role = role
        self.action = action


class NotFoundError(SchedulingError):
    """Referenced service, provider, customer or appointment is absent."""

    code = "not_found"
    message = "Resource not found"
    status_code = 404

    def __init__(self, resource: str, resource_id: str):
        super().__init__({"resource": resource, "id": resource_id})
        self.resource = resource
        self.resource_id = resource_id

    def __str__(self) -> str:
        return f"{self.resource} not found: {self.resource_id}"
