from typing import Protocol

import httpx

# Connecting to the metadata server should be near-instant on GCE.
# Reads get no timeout: subscribe() long-polls.
DEFAULT_CONNECT_TIMEOUT = 2.0


class HTTPClient(Protocol):
    """Anything that can send a single request. ``httpx.Client`` satisfies this."""

    def send(self, request: httpx.Request) -> httpx.Response:
        ...


class AsyncHTTPClient(Protocol):
    """Async counterpart of HTTPClient. ``httpx.AsyncClient`` satisfies this."""

    async def send(self, request: httpx.Request) -> httpx.Response:
        ...


def default_timeout() -> httpx.Timeout:
    return httpx.Timeout(None, connect=DEFAULT_CONNECT_TIMEOUT)


def default_http_client(transport: httpx.BaseTransport | None = None) -> httpx.Client:
    """Returns the HTTP client used when the caller does not supply one.

    Proxy environment variables are ignored: the metadata server is only
    reachable directly.
    """
    return httpx.Client(transport=transport, timeout=default_timeout(), trust_env=False)


class UserAgentTransport(httpx.BaseTransport):
    """Transport that overwrites the User-Agent header of every request.

    Example:
        >>> client = httpx.Client(
        ...     transport=UserAgentTransport("my-agent", httpx.HTTPTransport())
        ... )
    """

    def __init__(self, user_agent: str, transport: httpx.BaseTransport) -> None:
        self.user_agent = user_agent
        self.transport = transport

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        request.headers["User-Agent"] = self.user_agent
        return self.transport.handle_request(request)

    def close(self) -> None:
        self.transport.close()


class AsyncUserAgentTransport(httpx.AsyncBaseTransport):
    """Async version of UserAgentTransport."""

    def __init__(self, user_agent: str, transport: httpx.AsyncBaseTransport) -> None:
        self.user_agent = user_agent
        self.transport = transport

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        request.headers["User-Agent"] = self.user_agent
        return await self.transport.handle_async_request(request)

    async def aclose(self) -> None:
        await self.transport.aclose()
