"""Error types raised by the compatibility engine."""

from typing import Any, Dict, Optional


class CompatError(Exception):
    """Base error with a stable code and structured details."""

    code = "COMPAT_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details or {}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(CompatError):
    """Packaging defect detected while declaring or planning. Always fatal."""

    code = "CONFIGURATION_ERROR"


class FormatError(CompatError, ValueError):
    """A version identifier could not be parsed."""

    code = "FORMAT_ERROR"


class CallbackError(CompatError):
    """A deferred installation callback raised."""

    code = "CALLBACK_ERROR"

    def __init__(
        self,
        message: str,
        unit: str,
        cause: BaseException,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.unit = unit
        self.cause = cause
        self.__cause__ = cause

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["unit"] = self.unit
        data["cause"] = repr(self.cause)
        return data


class UnboundNameError(CompatError, KeyError):
    """A name is not bound in the registry."""

    code = "UNBOUND_NAME"

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class ReadOnlyBindingError(CompatError, AttributeError):
    """Attempt to reassign a constant binding."""

    code = "READ_ONLY_BINDING"
