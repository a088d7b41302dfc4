"""Scan-session error taxonomy.

Every failure the scanner, lookup or cover stages can hit is one of these.
They are caught where they originate and turned into user-facing messages;
none of them is fatal to the process.
"""


class ScanError(Exception):
    """Base class; ``str(err)`` is the user-facing message."""


class CapabilityUnavailable(ScanError):
    """No barcode detector (or no supported symbology) on this host."""


class DeviceError(ScanError):
    """Camera permission, enumeration, capture or track release failure."""


class LookupFailure(ScanError):
    """Transport error, HTTP error, empty or unreadable catalog payload."""


class RecordNotFound(LookupFailure):
    """The catalog answered but holds no record for the barcode."""


class CoverResolutionFailure(ScanError):
    """Cover page could not be fetched, had no cover, or the upload failed."""


__all__ = [
    "ScanError",
    "CapabilityUnavailable",
    "DeviceError",
    "LookupFailure",
    "RecordNotFound",
    "CoverResolutionFailure",
]
