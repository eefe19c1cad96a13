"""
Exception types raised by the sync and atlas pipeline.
"""


class VusterError(Exception):
    """Base class for all vuster errors."""


class ConfigurationError(VusterError, ValueError):
    """Required configuration is missing or invalid."""

    def __init__(self, errors):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class UnprocessableImageError(VusterError):
    """Downloaded bytes could not be decoded as an image."""


class AtlasPublishError(VusterError):
    """Uploading the atlas to object storage failed."""


class IndexRewriteError(VusterError):
    """Committing slot indices to the document store failed."""

    def __init__(self, message: str, committed: int = 0):
        super().__init__(message)
        self.committed = committed
