"""IoCShield exception hierarchy.

The version and range engine never raises; failures there are values. These
exceptions cover the collaborators around it: fetching the IoC list, reading
manifests and lockfiles, and bulk runs.
"""


class IoCShieldError(Exception):
    """Base exception for all IoCShield errors."""


class IoCSourceError(IoCShieldError):
    """The IoC CSV could not be fetched or read."""


class ManifestParseError(IoCShieldError):
    """A manifest or lockfile could not be decoded."""


class BulkScanError(IoCShieldError):
    """A bulk run could not start (unreadable or empty paths file)."""
