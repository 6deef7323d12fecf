"""Domain error types shared by services, background runs and the API layer"""


class DomainError(Exception):
    """Base class for errors raised by the core services"""


class ValidationError(DomainError, ValueError):
    """Input rejected at the write boundary, before any state change"""


class NotFoundError(DomainError):
    """Entity does not exist for this tenant"""


class TemplateNotFoundError(NotFoundError):
    """No active template and no usable system default for a family/purpose"""

    def __init__(self, family: str, purpose: str):
        self.family = family
        self.purpose = purpose
        super().__init__(f"No template available for {family}/{purpose}")


class ConflictError(DomainError):
    """A concurrent writer won a uniqueness race"""
