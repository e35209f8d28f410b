"""Domain exceptions raised by portal services.

Routers translate these into HTTP responses; services never build
HTTP errors themselves.
"""

from __future__ import annotations


class PortalError(Exception):
    """Base class for all portal domain errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationFailed(PortalError):
    """Input rejected before any state change (missing comment, bad phone, ...)."""


class NotAuthorized(PortalError):
    """The acting profile's role or scope does not permit the action."""


class NotFound(PortalError):
    """A referenced entity does not exist."""


class TransitionRejected(PortalError):
    """The assessment's current status does not allow the requested transition."""


class ConcurrentModification(PortalError):
    """An atomic conditional update lost against a concurrent writer."""
