"""Client for the Google Compute Engine metadata server."""

from .aio import AsyncClient
from .client import (
    Client,
    default_client,
    email,
    external_ip,
    get,
    get_with_etag,
    hostname,
    instance_attribute_value,
    instance_attributes,
    instance_id,
    instance_name,
    instance_tags,
    internal_ip,
    new_client,
    numeric_project_id,
    project_attribute_value,
    project_attributes,
    project_id,
    reset_to_default_http_client,
    scopes,
    set_http_client,
    subscribe,
    zone,
)
from .config import MetadataSettings
from .detection import DetectionState, detect, on_gce
from .exceptions import MetadataError, MetadataStatusError, NotDefinedError
from .transport import (
    AsyncUserAgentTransport,
    HTTPClient,
    UserAgentTransport,
    default_http_client,
)

__all__ = [
    "AsyncClient",
    "AsyncUserAgentTransport",
    "Client",
    "DetectionState",
    "HTTPClient",
    "MetadataError",
    "MetadataSettings",
    "MetadataStatusError",
    "NotDefinedError",
    "UserAgentTransport",
    "default_client",
    "default_http_client",
    "detect",
    "email",
    "external_ip",
    "get",
    "get_with_etag",
    "hostname",
    "instance_attribute_value",
    "instance_attributes",
    "instance_id",
    "instance_name",
    "instance_tags",
    "internal_ip",
    "new_client",
    "numeric_project_id",
    "on_gce",
    "project_attribute_value",
    "project_attributes",
    "project_id",
    "reset_to_default_http_client",
    "scopes",
    "set_http_client",
    "subscribe",
    "zone",
]
