"""Domain exceptions for RevSnap."""

from __future__ import annotations


class RevSnapError(Exception):
    """Base exception carrying the HTTP status it maps to."""

    title = "Bad Request"

    def __init__(self, message: str, status_code: int = 400) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class ValidationError(RevSnapError):
    """Raised when request or input data is invalid."""

    title = "Bad Request"

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=400)


class PricingInputError(ValidationError):
    """Raised when a product cannot be priced."""


class DataQualityInputError(ValidationError):
    """Raised when a price observation is malformed."""


class NotFoundError(RevSnapError):
    """Raised when a requested record does not exist."""

    title = "Not Found"

    def __init__(self, resource: str, identifier: object) -> None:
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} {identifier} not found", status_code=404)


class PlanLimitError(RevSnapError):
    """Raised when an action exceeds the organization's plan."""

    title = "Plan Limit Exceeded"

    def __init__(self, message: str, plan: str) -> None:
        self.plan = plan
        super().__init__(message, status_code=403)
