# contractdesk/errors.py
"""Domain error taxonomy.

Services raise these; the ``errors`` blueprint turns them into JSON responses.
"""


class ContractDeskError(Exception):
    status_code = 500
    message = "Server error"

    def __init__(self, message: str | None = None, details=None):
        super().__init__(message or self.message)
        self.message = message or self.message
        self.details = details

    def to_dict(self) -> dict:
        payload = {"error": self.message}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class ValidationError(ContractDeskError):
    """Bad input shape or values. Nothing was persisted."""
    status_code = 400
    message = "Invalid input"


class NotFoundError(ContractDeskError):
    """Referenced document is absent or outside the actor's scope."""
    status_code = 404
    message = "Not found"


class ConflictError(ContractDeskError):
    """Stale write, duplicate unique key or a lost materialization race.

    The caller should refetch and retry.
    """
    status_code = 409
    message = "Conflicting update, please reload and retry"


class TransientStorageError(ContractDeskError):
    """Infrastructure failure. Safe to retry the whole operation."""
    status_code = 503
    message = "Storage temporarily unavailable"
