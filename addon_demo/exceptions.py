"""Domain-specific exceptions for the add-on demo app."""


class DemoAppError(Exception):
    """Base exception for all demo app errors."""


class ConfigurationError(DemoAppError):
    """Error related to configuration issues."""


class SimulatedCrash(DemoAppError):
    """Raised on purpose to take the process down."""
