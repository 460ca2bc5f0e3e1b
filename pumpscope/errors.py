"""
Error taxonomy

Every failure in the resolution and data-query path is raised as one of these
and propagated to the caller of the dispatcher or aggregation. Outer surfaces
(HTTP API, CLI) translate them into user-visible messages.
"""

from typing import Any, Dict, Optional


class PumpscopeError(Exception):
    """Base class for all resolution and data-query errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class TransportError(PumpscopeError):
    """Network failure or unexpected status from an upstream collaborator. Not retried."""

    def __init__(
        self,
        message: str,
        upstream: str = "",
        status_code: Optional[int] = None,
    ):
        super().__init__(message, {"upstream": upstream, "status_code": status_code})
        self.upstream = upstream
        self.status_code = status_code


class MalformedArguments(PumpscopeError):
    """A function-call payload (or resolved result) failed schema validation."""

    def __init__(self, message: str, function: str = "", field: Optional[str] = None):
        super().__init__(message, {"function": function, "field": field})
        self.function = function
        self.field = field


class UnknownFunction(PumpscopeError):
    """Dispatch target is absent from the function registry."""

    def __init__(self, name: str):
        super().__init__(f"unknown function: {name}", {"function": name})
        self.name = name


class IncompleteAggregate(PumpscopeError):
    """All aggregation branches succeeded but the composite failed its consistency check."""

    def __init__(self, address: str, reason: str = "trader info not found"):
        super().__init__(reason, {"address": address})
        self.address = address


class AuthExpired(PumpscopeError):
    """The upstream rejected the session credential (401/403)."""

    def __init__(self, upstream: str, principal: str = ""):
        super().__init__(f"{upstream} session rejected", {"upstream": upstream, "principal": principal})
        self.upstream = upstream
        self.principal = principal


__all__ = [
    "PumpscopeError",
    "TransportError",
    "MalformedArguments",
    "UnknownFunction",
    "IncompleteAggregate",
    "AuthExpired",
]
