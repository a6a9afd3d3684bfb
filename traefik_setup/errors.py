"""Exception hierarchy for the Traefik setup tool."""


class SetupError(Exception):
    """Base exception for setup errors."""

    pass


class PrivilegeError(SetupError):
    """Raised when the tool is not running with root privileges."""

    pass


class DependencyError(SetupError):
    """Raised when a required dependency is missing and cannot be installed."""

    pass


class ConfigurationError(SetupError):
    """Raised when configuration changes fail."""

    pass


class ExecutionError(SetupError):
    """Raised when command execution fails."""

    pass


class NetworkError(SetupError):
    """Raised when network operations fail."""

    pass


class ValidationError(SetupError):
    """Raised when validation checks or user input fail."""

    pass


class UnsupportedSystemError(ValidationError):
    """Raised when the host is not a supported Debian/Ubuntu release."""

    pass
