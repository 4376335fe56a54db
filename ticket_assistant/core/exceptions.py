"""
Core Exceptions
================

Error hierarchy for the ticket assistant.

Request handlers raise the ``ApplicationException`` subclasses and the API
layer turns them into HTTP responses (see ``shared.api.middleware``). The
triage errors stay inside the pipeline: provider failures are collected by
the classifier adapter and notification failures end up in the outcome.
"""

from typing import Any, Dict, List, Optional


class ApplicationException(Exception):
    """Root of every error the service raises on purpose."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": type(self).__name__, "detail": self.message}
        if self.details:
            body["details"] = self.details
        return body


# ========== Request errors ==========

class DomainException(ApplicationException):
    """A request that is well-formed but breaks a ticket or account rule."""


class ValidationException(ApplicationException):
    """Input rejected after schema validation (duplicate email, empty id list)."""


class PermissionDenied(ApplicationException):
    """The caller's role does not allow the operation."""

    def __init__(self, message: str = "Forbidden", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)


class ResourceNotFoundException(ApplicationException):
    """
    A ticket or user does not exist, or is not visible to the caller.

    Users asking for someone else's ticket get this too, so ticket ids
    cannot be discovered by guessing.
    """

    def __init__(self, resource_type: str, resource_id: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.resource_type = resource_type
        self.resource_id = resource_id
        if resource_id:
            message = f"{resource_type} with id '{resource_id}' not found"
        else:
            message = f"{resource_type} not found"
        super().__init__(message, details)


# ========== Infrastructure errors ==========

class RepositoryException(ApplicationException):
    """Persistence failure or an id the store cannot represent."""


class ConfigurationException(ApplicationException):
    """Settings that cannot produce a working component."""


class ExternalServiceException(ApplicationException):
    """A call to an LLM provider or the mail API went wrong."""

    def __init__(self, service_name: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.service_name = service_name
        super().__init__(f"{service_name}: {message}", details)


# ========== Triage errors ==========

class ProviderError(ExternalServiceException):
    """One failed classification attempt (network, auth, timeout, bad payload)."""

    def __init__(self, provider: str, status: Optional[str], message: str):
        self.provider = provider
        self.status = status
        self.reason = message
        super().__init__(
            provider,
            f"[{status or 'error'}] {message}",
            {"provider": provider, "status": status, "message": message}
        )

    def summary(self) -> Dict[str, Any]:
        return {"provider": self.provider, "status": self.status, "message": self.reason}


class ParseError(ProviderError):
    """The provider answered but no candidate payload decoded to a complete classification object."""

    def __init__(self, provider: str, message: str):
        super().__init__(provider, "parse_error", message)


class ClassificationFailed(DomainException):
    """Every configured provider was attempted and failed (strict policy)."""

    def __init__(self, attempts: List[ProviderError]):
        self.attempts = list(attempts)
        summaries = "; ".join(str(a) for a in self.attempts) or "no providers attempted"
        super().__init__(
            f"Classification failed: {summaries}",
            {"attempts": [a.summary() for a in self.attempts]}
        )


class NoProviderConfigured(ConfigurationException):
    """Strict policy with no provider API key set."""

    def __init__(self, message: str = "No classification provider configured"):
        super().__init__(message)


class NotificationError(ExternalServiceException):
    """The assignment email could not be delivered."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("Notifier", message, details)
