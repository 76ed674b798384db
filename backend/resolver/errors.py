"""Exception taxonomy for the resolver core."""
from __future__ import annotations

from typing import Any


class ResolverError(RuntimeError):
    """Base class for every failure raised by the resolver core.

    ``status_code`` is the HTTP status the API boundary reports for the error.
    """

    status_code = 500

    def __init__(self, message: str, *, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ManifestUnavailable(ResolverError):
    """Raised when neither the remote manifest nor the local fallback can be read."""

    status_code = 503


class ProviderNotFound(ResolverError):
    """Raised when no compiled module exists for a provider identifier."""

    status_code = 404


class CapabilityNotFound(ProviderNotFound):
    """Raised when a provider does not ship the requested capability."""


class ProviderLoadError(ResolverError):
    """Raised when a provider module exists but fails to initialise."""

    status_code = 500


class UpstreamMalformed(ResolverError):
    """Raised when a provider returns a shape the pipeline cannot normalise."""

    status_code = 502


class ProviderOperationFailed(ResolverError):
    """Raised when provider code raises while serving an operation."""

    status_code = 502


class ProviderTimeout(ProviderOperationFailed):
    """Raised when a provider operation exceeds the pipeline timeout."""

    status_code = 504


class OperationCancelled(ResolverError):
    """Raised when the caller cancels an in-flight operation."""

    status_code = 499


class ExtractionFailed(ResolverError):
    """Raised when an extractor cannot turn a hosting page into a media URL."""

    status_code = 404


class UnknownExtractionService(ResolverError):
    """Raised when no extractor is registered under the requested key."""

    status_code = 502


class RelayUpstreamError(ResolverError):
    """Raised when the relay cannot open the upstream media resource."""

    status_code = 502

    def __init__(self, message: str, *, upstream_status: int | None = None, details: Any = None) -> None:
        super().__init__(message, details=details)
        self.upstream_status = upstream_status


class InvalidRelayRequest(ResolverError):
    """Raised when a relay URL or header cannot be encoded into a request."""

    status_code = 400
