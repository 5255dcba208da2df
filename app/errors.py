"""Uniform error currency for the user service.

Every failed provisioning call, and every read that cannot find its
target, surfaces as exactly one ``ProvisioningError``.  The exception
handler registered in ``main.py`` renders it as::

    {"severity": "conflict", "code": 409, "message": "...", "path": "/usuarios"}
"""
from enum import Enum


class Severity(str, Enum):
    VALIDATION = "validation"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    INTERNAL = "internal"


_STATUS_CODES: dict[Severity, int] = {
    Severity.VALIDATION: 400,
    Severity.CONFLICT: 409,
    Severity.NOT_FOUND: 404,
    Severity.INTERNAL: 500,
}


class ProvisioningError(Exception):
    """Tagged error carrying a severity, a human message and the operation path."""

    def __init__(self, severity: Severity, message: str, path: str) -> None:
        self.severity = severity
        self.message = message
        self.path = path
        super().__init__(message)

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self.severity]

    def to_dict(self) -> dict:
        return {
            "severity": self.severity.value,
            "code": self.status_code,
            "message": self.message,
            "path": self.path,
        }

    def __repr__(self) -> str:
        return f"ProvisioningError({self.severity.value!r}, {self.message!r}, path={self.path!r})"


def validation(message: str, path: str) -> ProvisioningError:
    return ProvisioningError(Severity.VALIDATION, message, path)


def conflict(message: str, path: str) -> ProvisioningError:
    return ProvisioningError(Severity.CONFLICT, message, path)


def not_found(message: str, path: str) -> ProvisioningError:
    return ProvisioningError(Severity.NOT_FOUND, message, path)


def internal(message: str, path: str) -> ProvisioningError:
    return ProvisioningError(Severity.INTERNAL, message, path)
