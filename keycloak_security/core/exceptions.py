"""Security-extension specific exceptions for error handling."""


class SecurityError(Exception):
    """Base exception for all security extension operations."""
    pass


class MarkerError(SecurityError, TypeError):
    """Invalid argument given to a security or routing marker.

    Raised at decoration time, so misconfigured resources fail on import.
    """
    pass


class SecurityConfigurationError(SecurityError):
    """Security configuration cannot be assembled.

    Attributes:
        reference: Application reference or setting that failed
        message: Error message
    """

    def __init__(self, reference: str, message: str):
        self.reference = reference
        self.message = message
        super().__init__(f"{reference}: {message}")
