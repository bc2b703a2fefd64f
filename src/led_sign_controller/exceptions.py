"""Custom exception hierarchy for the LED sign controller."""


class SignControllerError(Exception):
    """Base exception for all sign controller errors."""


class ConfigurationError(SignControllerError):
    """Raised when configuration is invalid or missing."""


class CommunicationError(SignControllerError):
    """Raised when a remote call to the sign fails."""


class SerializationError(SignControllerError):
    """Raised when an outgoing payload cannot be built."""


class PayloadError(SignControllerError):
    """Raised when a payload returned by the sign cannot be parsed."""
