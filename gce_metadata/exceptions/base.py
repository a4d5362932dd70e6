class MetadataError(Exception):
    """Base class for gce_metadata exceptions."""


class MetadataStatusError(MetadataError):
    """Raised when the metadata server answers with a non-2xx status."""

    status_code: int
    body: str
    url: str

    def __init__(self, url: str, status_code: int, body: str = "") -> None:
        self.url = url
        self.status_code = status_code
        self.body = body
        super().__init__(f"metadata: GET {url} returned {status_code}: {body}")
