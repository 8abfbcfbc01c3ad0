"""Error kinds raised by the bookkeeping core.

Every error carries a machine-readable ``kind`` and a human ``message``. The HTTP
layer maps ``status_code`` onto the response; services never catch these.
"""
from dataclasses import dataclass
from typing import Iterable


@dataclass(frozen=True)
class FieldError:
    path: str
    message: str

    def as_dict(self) -> dict:
        return {"path": self.path, "message": self.message}


class LedgerError(Exception):
    kind = "ledger_error"
    status_code = 400
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        payload = {"detail": self.message, "kind": self.kind}
        if self.retryable:
            payload["retryable"] = True
        return payload


class ValidationError(LedgerError):
    kind = "validation_error"

    def __init__(self, message: str = "Validation failed.", errors: Iterable[FieldError] = ()):
        super().__init__(message)
        self.errors = list(errors)

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["errors"] = [error.as_dict() for error in self.errors]
        return payload

    def __str__(self) -> str:
        if not self.errors:
            return self.message
        details = "; ".join(f"{error.path}: {error.message}" for error in self.errors)
        return f"{self.message} ({details})"


class NotFoundError(LedgerError):
    kind = "not_found"
    status_code = 404


class InvalidStateError(LedgerError):
    kind = "invalid_state"
    status_code = 409


class AccountConstraintError(LedgerError):
    kind = "account_constraint"


class ConcurrencyError(LedgerError):
    kind = "concurrency_conflict"
    status_code = 409
    retryable = True
