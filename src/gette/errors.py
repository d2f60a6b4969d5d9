#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

"""Failure kinds and the exceptions getters raise to report them.

Getters classify their own failures: raising `NotFoundError` means "do not retry",
raising `TransientTransportError` means "worth another attempt". The builder only
reads `retryable`, it never reclassifies.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    UNSUPPORTED_SOURCE = "unsupported_source"
    INVALID_SOURCE = "invalid_source"
    INVALID_CONFIGURATION = "invalid_configuration"
    NOT_FOUND = "not_found"
    AUTHENTICATION_FAILURE = "authentication_failure"
    TIMEOUT = "timeout"
    TRANSIENT_TRANSPORT_ERROR = "transient_transport_error"
    TRANSPORT_ERROR = "transport_error"
    DESTINATION_EXISTS = "destination_exists"
    COMMIT_ERROR = "commit_error"
    CHECKSUM_MISMATCH = "checksum_mismatch"
    CANCELLED = "cancelled"

    @property
    def retryable(self) -> bool:
        return self in RETRYABLE_KINDS

    def describe(self) -> str:
        return {
            self.UNSUPPORTED_SOURCE: "No registered getter recognizes the source",
            self.INVALID_SOURCE: "The source was recognized but is malformed",
            self.INVALID_CONFIGURATION: "The configured download defaults are invalid",
            self.NOT_FOUND: "The backend reports that the object does not exist",
            self.AUTHENTICATION_FAILURE: "The backend rejected the credentials",
            self.TIMEOUT: "An attempt exceeded the configured timeout",
            self.TRANSIENT_TRANSPORT_ERROR: "A temporary network or service failure",
            self.TRANSPORT_ERROR: "A permanent transport failure",
            self.DESTINATION_EXISTS: "The destination exists and overwrite is disabled",
            self.COMMIT_ERROR: "The staged content could not be moved into place",
            self.CHECKSUM_MISMATCH: "The downloaded content does not match the expected SHA-256",
            self.CANCELLED: "The caller cancelled the download",
        }[self]


RETRYABLE_KINDS = frozenset({ErrorKind.TIMEOUT, ErrorKind.TRANSIENT_TRANSPORT_ERROR})


class GetterError(Exception):
    """Base class for classified download failures."""

    kind: ErrorKind = ErrorKind.TRANSPORT_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def retryable(self) -> bool:
        return self.kind.retryable

    @classmethod
    def for_kind(cls, kind: ErrorKind, message: str) -> GetterError:
        """Instantiate the exception class registered for `kind`."""
        return _ERRORS_BY_KIND.get(kind, cls)(message)


class UnsupportedSourceError(GetterError):
    kind = ErrorKind.UNSUPPORTED_SOURCE


class InvalidSourceError(GetterError):
    kind = ErrorKind.INVALID_SOURCE


class InvalidConfigurationError(GetterError):
    kind = ErrorKind.INVALID_CONFIGURATION


class NotFoundError(GetterError):
    kind = ErrorKind.NOT_FOUND


class AuthenticationError(GetterError):
    kind = ErrorKind.AUTHENTICATION_FAILURE


class FetchTimeoutError(GetterError):
    kind = ErrorKind.TIMEOUT


class TransientTransportError(GetterError):
    kind = ErrorKind.TRANSIENT_TRANSPORT_ERROR


class TransportError(GetterError):
    kind = ErrorKind.TRANSPORT_ERROR


class DestinationExistsError(GetterError):
    kind = ErrorKind.DESTINATION_EXISTS


class CommitError(GetterError):
    kind = ErrorKind.COMMIT_ERROR


class ChecksumMismatchError(GetterError):
    kind = ErrorKind.CHECKSUM_MISMATCH


class FetchCancelledError(GetterError):
    kind = ErrorKind.CANCELLED


_ERRORS_BY_KIND: dict[ErrorKind, type[GetterError]] = {
    error_cls.kind: error_cls
    for error_cls in (
        UnsupportedSourceError,
        InvalidSourceError,
        InvalidConfigurationError,
        NotFoundError,
        AuthenticationError,
        FetchTimeoutError,
        TransientTransportError,
        TransportError,
        DestinationExistsError,
        CommitError,
        ChecksumMismatchError,
        FetchCancelledError,
    )
}
