"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidParameter(DomainException):
    """Malformed numeric input (rejected, never coerced)"""

    pass


class InvalidScenarioInput(DomainException):
    """Scenario assumptions, overrides or enum values are invalid"""

    pass


class NoRateAvailable(DomainException):
    """No catalog offer matched the request and no default rate applies"""

    pass


class PerItemError(DomainException):
    """One recurring definition failed during a batch run"""

    def __init__(self, definition_id: str, cause: Exception):
        super().__init__(f"Recurring definition {definition_id} failed: {cause}")
        self.definition_id = definition_id
        self.cause = cause
