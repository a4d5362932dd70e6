"""Synchronous access to the Compute Engine metadata server.

See https://cloud.google.com/compute/docs/metadata for the available keys.
"""

import json
from typing import Any, Iterator, Optional
from urllib.parse import quote

import httpx
from loguru import logger

from .config import METADATA_FLAVOR_HEADER, METADATA_FLAVOR_VALUE, get_host_settings
from .exceptions import MetadataStatusError, NotDefinedError
from .transport import HTTPClient, UserAgentTransport, default_http_client

METADATA_PATH = "/computeMetadata/v1/"


def metadata_url(suffix: str) -> httpx.URL:
    """Builds the URL for ``suffix``, resolving the host from the environment.

    ``"a/b"`` and ``"/a/b"`` produce the same URL.
    """
    host = get_host_settings().host
    url = httpx.URL(f"http://{host}{METADATA_PATH}{suffix.lstrip('/')}")
    if url.port is not None and not 0 < url.port < 65536:
        raise httpx.InvalidURL(f"Invalid port: {url.port}")
    return url


def build_request(suffix: str, http_client: Any = None) -> httpx.Request:
    url = metadata_url(suffix)
    headers = {METADATA_FLAVOR_HEADER: METADATA_FLAVOR_VALUE}
    if isinstance(http_client, (httpx.Client, httpx.AsyncClient)):
        # Picks up the client's timeouts and default headers
        return http_client.build_request("GET", url, headers=headers)
    return httpx.Request("GET", url, headers=headers)


def check_response(response: httpx.Response, url: httpx.URL) -> str:
    """Returns the trimmed body of a successful response, raises otherwise."""
    body = response.text
    if response.status_code == 404:
        raise NotDefinedError(str(url), body)
    if not 200 <= response.status_code < 300:
        raise MetadataStatusError(str(url), response.status_code, body)
    return body.strip()


def _split_lines(value: str) -> list[str]:
    return [line for line in value.splitlines() if line]


class Client:
    """Client for the metadata server.

    Every call is a single GET through ``http_client``. Nothing is retried or cached.
    """

    def __init__(self, http_client: Optional[HTTPClient] = None) -> None:
        self.http_client = http_client or default_http_client()

    def _send(self, suffix: str) -> tuple[httpx.URL, httpx.Response]:
        request = build_request(suffix, self.http_client)
        logger.debug(f"metadata: GET {request.url}")
        # Transport errors propagate untouched
        response = self.http_client.send(request)
        response.read()
        return request.url, response

    def get(self, suffix: str) -> str:
        """Returns the value of the metadata key ``suffix``.

        Raises:
            NotDefinedError: the key does not exist.
            MetadataStatusError: the server returned another non-2xx status.
        """
        value, _ = self.get_with_etag(suffix)
        return value

    def get_with_etag(self, suffix: str) -> tuple[str, str]:
        """Like get(), but also returns the ETag of the value."""
        url, response = self._send(suffix)
        value = check_response(response, url)
        return value, response.headers.get("ETag", "")

    def subscribe(self, suffix: str) -> Iterator[Optional[str]]:
        """Yields the current value of ``suffix``, then every change to it.

        Changes are detected by long-polling the server. ``None`` is yielded when
        the value gets deleted. Break out of the loop to stop watching.
        """
        value, last_etag = self.get_with_etag(suffix)
        yield value

        sep = "&" if "?" in suffix else "?"
        watch = f"{suffix}{sep}wait_for_change=true&last_etag="
        while True:
            try:
                value, last_etag = self.get_with_etag(watch + quote(last_etag, safe=""))
            except NotDefinedError:
                logger.debug(f"metadata: {suffix} is no longer defined")
                value, last_etag = None, ""
            yield value

    # Convenience accessors

    def project_id(self) -> str:
        return self.get("project/project-id")

    def numeric_project_id(self) -> str:
        return self.get("project/numeric-project-id")

    def instance_id(self) -> str:
        return self.get("instance/id")

    def instance_name(self) -> str:
        return self.get("instance/name")

    def hostname(self) -> str:
        return self.get("instance/hostname")

    def zone(self) -> str:
        """Returns the zone name, e.g. ``us-central1-b``."""
        # The server returns projects/<numeric-project-id>/zones/<zone>
        return self.get("instance/zone").rsplit("/", 1)[-1]

    def internal_ip(self) -> str:
        return self.get("instance/network-interfaces/0/ip")

    def external_ip(self) -> str:
        return self.get("instance/network-interfaces/0/access-configs/0/external-ip")

    def email(self, service_account: str = "default") -> str:
        return self.get(f"instance/service-accounts/{service_account}/email")

    def scopes(self, service_account: str = "default") -> list[str]:
        return _split_lines(
            self.get(f"instance/service-accounts/{service_account}/scopes")
        )

    def instance_tags(self) -> list[str]:
        return json.loads(self.get("instance/tags"))

    def instance_attributes(self) -> list[str]:
        return _split_lines(self.get("instance/attributes/"))

    def project_attributes(self) -> list[str]:
        return _split_lines(self.get("project/attributes/"))

    def instance_attribute_value(self, attr: str) -> str:
        return self.get(f"instance/attributes/{attr}")

    def project_attribute_value(self, attr: str) -> str:
        return self.get(f"project/attributes/{attr}")


def new_client(user_agent: Optional[str] = None) -> Client:
    """Returns a Client on the default HTTP client, optionally overriding User-Agent."""
    if user_agent is None:
        return Client(default_http_client())
    return Client(
        default_http_client(UserAgentTransport(user_agent, httpx.HTTPTransport()))
    )


# Process-wide default client used by the module-level functions.
# Swapping it is meant for tests and is not synchronized with in-flight requests.
_original_client = Client()
_default_client = _original_client


def default_client() -> Client:
    return _default_client


def set_http_client(http_client: HTTPClient) -> None:
    """Routes every subsequent module-level call through ``http_client``."""
    global _default_client
    _default_client = Client(http_client)


def reset_to_default_http_client() -> None:
    global _default_client
    _default_client = _original_client


def get(suffix: str) -> str:
    return _default_client.get(suffix)


def get_with_etag(suffix: str) -> tuple[str, str]:
    return _default_client.get_with_etag(suffix)


def subscribe(suffix: str) -> Iterator[Optional[str]]:
    return _default_client.subscribe(suffix)


def project_id() -> str:
    return _default_client.project_id()


def numeric_project_id() -> str:
    return _default_client.numeric_project_id()


def instance_id() -> str:
    return _default_client.instance_id()


def instance_name() -> str:
    return _default_client.instance_name()


def hostname() -> str:
    return _default_client.hostname()


def zone() -> str:
    return _default_client.zone()


def internal_ip() -> str:
    return _default_client.internal_ip()


def external_ip() -> str:
    return _default_client.external_ip()


def email(service_account: str = "default") -> str:
    return _default_client.email(service_account)


def scopes(service_account: str = "default") -> list[str]:
    return _default_client.scopes(service_account)


def instance_tags() -> list[str]:
    return _default_client.instance_tags()


def instance_attributes() -> list[str]:
    return _default_client.instance_attributes()


def project_attributes() -> list[str]:
    return _default_client.project_attributes()


def instance_attribute_value(attr: str) -> str:
    return _default_client.instance_attribute_value(attr)


def project_attribute_value(attr: str) -> str:
    return _default_client.project_attribute_value(attr)
