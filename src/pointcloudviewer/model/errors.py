"""
Error Types
===========
Named failures raised while loading and processing a point cloud.

Every exception carries an ``ErrorKind`` so the GUI can route it: decode-time
errors are shown inline, contract violations abort the render loudly.
An empty point set is not an error; it is reported through ``Metadata.status``.
"""
from enum import StrEnum


class ErrorKind(StrEnum):
    UNSUPPORTED_FORMAT = "UnsupportedFormat"
    DECODE_FAILURE = "DecodeFailure"
    CONTRACT_VIOLATION = "ContractViolation"


class PointCloudError(Exception):
    """Base class for all point cloud loading/processing failures."""
    kind: ErrorKind = ErrorKind.DECODE_FAILURE


class UnsupportedFormatError(PointCloudError):
    """File extension does not match any supported point cloud format."""
    kind = ErrorKind.UNSUPPORTED_FORMAT


class DecodeFailureError(PointCloudError):
    """The loader could not turn the file into coordinate triples."""
    kind = ErrorKind.DECODE_FAILURE


class ContractViolationError(PointCloudError):
    """An internal invariant was broken. This is a bug, not bad user input."""
    kind = ErrorKind.CONTRACT_VIOLATION
