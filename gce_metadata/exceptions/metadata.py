from .base import MetadataStatusError


class NotDefinedError(MetadataStatusError):
    """Exception raised when a metadata value is not defined (404)."""

    def __init__(self, url: str, body: str = "") -> None:
        super().__init__(url, 404, body)
