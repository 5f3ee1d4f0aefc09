"""
API exceptions

Every error leaves the API as {"error_code", "message", "details"}.
"""
from typing import Any, Optional

from fastapi import HTTPException


class AppException(HTTPException):
    def __init__(
        self,
        status_code: int,
        error_code: str,
        message: str,
        details: Optional[Any] = None,
    ):
        super().__init__(status_code=status_code, detail={
            "error_code": error_code,
            "message": message,
            "details": details,
        })
        self.error_code = error_code
        self.message = message


class NotFoundError(AppException):
    def __init__(self, resource: str, resource_id: Any):
        super().__init__(
            status_code=404,
            error_code=f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found: {resource_id}",
        )


class ConflictError(AppException):
    def __init__(self, error_code: str, message: str):
        super().__init__(
            status_code=409,
            error_code=error_code,
            message=message,
        )


class IncidentNotFoundError(NotFoundError):
    def __init__(self, incident_id: str):
        super().__init__("Incident", incident_id)
        self.incident_id = incident_id


class LifecycleNotFoundError(NotFoundError):
    """No lifecycle is running for the incident (never started, finished or cancelled)"""
    def __init__(self, incident_id: str):
        super().__init__("Lifecycle", incident_id)
        self.incident_id = incident_id


class IncidentClosedError(ConflictError):
    """Dispatch requested for an incident that is already COMPLETED or CANCELLED"""
    def __init__(self, incident_id: str, status: str):
        super().__init__(
            error_code="INCIDENT_CLOSED",
            message=f"Incident {incident_id} is already {status}",
        )
        self.incident_id = incident_id
