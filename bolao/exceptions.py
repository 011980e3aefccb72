from typing import Optional


class BolaoException(Exception):
    """Base exception for the pool engine.

    ``field`` names the offending input (if any) and ``rule`` is a short
    machine-readable identifier of the broken rule, so the API layer can
    build a precise message without parsing text.
    """

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None, rule: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field
        self.rule = rule

    def to_dict(self) -> dict:
        return {
            "error": type(self).__name__,
            "message": self.message,
            "field": self.field,
            "rule": self.rule,
        }


class ValidationFailure(BolaoException):
    """Malformed or missing fields for a requested operation"""
    status_code = 400


class InvalidTransition(BolaoException):
    """Match status transition outside the allowed set"""
    status_code = 400

    def __init__(self, current, target):
        super().__init__(
            f"Transition from {current} to {target} is not allowed",
            field="status",
            rule="invalid_transition",
        )
        self.current = current
        self.target = target


class DeadlineViolation(BolaoException):
    """Non-admin write outside the allowed window"""
    status_code = 400


class DuplicateEntity(BolaoException):
    """Second prediction/pick for the same owner and target"""
    status_code = 409


class NotFound(BolaoException):
    status_code = 404

    def __init__(self, entity: str, entity_id=None):
        super().__init__(f"{entity} not found", field=f"{entity.lower()}_id", rule="not_found")
        self.entity = entity
        self.entity_id = entity_id


class PermissionDenied(BolaoException):
    status_code = 403
