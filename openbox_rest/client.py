"""Sync and async REST clients over an injected ``httpx`` transport.

This module provides two client implementations sharing one request pipeline:

- :class:`RestApiClient` -- blocking client driving an ``httpx.Client``
- :class:`AsyncRestApiClient` -- asynchronous client driving an ``httpx.AsyncClient``

Both clients share a common base (:class:`BaseRestApiClient`) that handles
URI resolution, JSON payloads, default headers, response validation and
error mapping. Every call goes through the same steps::

    build request -> default headers -> request interceptor -> dispatch
        -> response interceptor or validation -> decode result

Failures surface as a single :class:`~openbox_rest.exceptions.RestApiError`
carrying the status code and a :class:`~openbox_rest.models.Problem`, except
cancellation which raises
:class:`~openbox_rest.exceptions.OperationCancelledError`.

The transport is borrowed: the client never closes an ``httpx`` client it
was given. Default headers, interceptors and the codec may be changed between
calls but must not be changed while calls are in flight.

Quick start (synchronous)::

    import httpx
    from openbox_rest import RestApiClient

    with httpx.Client() as http_client:
        client = RestApiClient(http_client, "https://api.example.com/v1/")
        order = client.get("orders/42", Order)
        status = client.delete_status("orders/42")

Quick start (asynchronous)::

    import asyncio
    import httpx
    from openbox_rest import AsyncRestApiClient

    async def main():
        async with httpx.AsyncClient() as http_client:
            client = AsyncRestApiClient(http_client, "https://api.example.com/v1/")
            order = await client.post("orders", Order, OrderCreate(sku="A-1"))

    asyncio.run(main())
"""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Callable, TypeVar

import httpx

from .cancellation import CancellationToken
from .codec import JsonCodec
from .config import RestClientSettings, get_settings
from .exceptions import (
    ClientConfigurationError,
    OperationCancelledError,
    RestApiError,
)
from .log import get_logger
from .models import Problem
from .problem import get_problem

logger = get_logger(__name__)

T = TypeVar("T")

REQUEST_FAILED = "RESTful api request failed."
DEFAULT_ACCEPT = "application/json, application/problem+json"
JSON_CONTENT_TYPE = "application/json; charset=utf-8"

# Request extension naming the headers the request set itself.
REQUEST_HEADERS_EXTENSION = "openbox_rest.request_headers"

RequestInterceptor = Callable[[httpx.Request, CancellationToken], Any]
"""Called with the built request before dispatch. May mutate it."""

ResponseInterceptor = Callable[[httpx.Response, CancellationToken], Any]
"""Called with the response instead of status-code validation."""


def _make_base_uri(base_uri: str | None) -> httpx.URL:
    url = httpx.URL(base_uri or "")
    if url.is_absolute_url and url.path == "/":
        # An absolute base always carries at least the root path.
        url = url.copy_with(path="/")
    return url


def _transport_options(settings: RestClientSettings) -> dict[str, Any]:
    return {
        "timeout": settings.timeout_seconds,
        "follow_redirects": settings.follow_redirects,
        "verify": settings.verify_ssl,
    }


def _read_status(response: httpx.Response) -> int:
    return response.status_code


class BaseRestApiClient:
    """Base class with the request pipeline shared by both clients.

    This class is not intended to be instantiated directly. Use
    :class:`RestApiClient` for blocking calls or :class:`AsyncRestApiClient`
    for ``async``/``await`` workflows.

    Subclasses may override :meth:`_create_request`,
    :meth:`_add_request_headers` and :meth:`_validate_response` to change how
    requests are built or responses are judged.

    Attributes:
        base_uri: URI every relative call URI is resolved against. Empty when
            the client was created without one.
        default_headers: Headers added to every request. Starts with
            ``Accept: application/json, application/problem+json``.
        request_interceptor: Optional hook invoked with each request right
            before dispatch.
        response_interceptor: Optional hook invoked with each response. When
            set it replaces status-code validation entirely: the call succeeds
            unless the hook raises.
        json_codec: Codec used for request bodies and typed results.
    """

    def __init__(self, http_client: Any, base_uri: str | None = None) -> None:
        """Initialise the pipeline around *http_client*.

        Args:
            http_client: The ``httpx`` client used for dispatch. Required.
            base_uri: Base URI for all endpoints. ``None`` or a relative value
                disables resolution against an absolute base.

        Raises:
            ClientConfigurationError: *http_client* is ``None``.
        """
        if http_client is None:
            raise ClientConfigurationError("http_client must not be None", param_name="http_client")

        self._http_client = http_client
        self._owns_http_client = False
        self.base_uri = _make_base_uri(base_uri)
        self.default_headers: dict[str, str] = {"Accept": DEFAULT_ACCEPT}
        self.request_interceptor: RequestInterceptor | None = None
        self.response_interceptor: ResponseInterceptor | None = None
        self.json_codec = JsonCodec()
        self._logger = logger.bind(component="rest_api_client")

    @property
    def http_client(self) -> Any:
        """The underlying ``httpx`` client."""
        return self._http_client

    def _create_request(
        self,
        method: str,
        uri: str,
        content: Any,
        cancellation: CancellationToken,
    ) -> httpx.Request:
        """Build the request for *method* and *uri*, with a JSON body if given."""
        url = self.base_uri.join(uri)
        if content is None:
            return self.http_client.build_request(method, url)

        body = self.json_codec.serialize(content).encode("utf-8")
        cancellation.raise_if_cancellation_requested()
        headers = {"Content-Type": JSON_CONTENT_TYPE}
        request = self.http_client.build_request(method, url, content=body, headers=headers)
        request.extensions[REQUEST_HEADERS_EXTENSION] = frozenset(name.lower() for name in headers)
        return request

    def _add_request_headers(self, request: httpx.Request, cancellation: CancellationToken) -> None:
        """Apply :attr:`default_headers` to *request*.

        Headers set on the request itself are kept, even when the transport
        has a default with the same value. Headers that only came from the
        transport's own defaults (``Accept: */*`` for instance) are replaced.
        Values are passed to the transport as given, without checking them
        against the HTTP header grammar.
        """
        explicit = request.extensions.get(REQUEST_HEADERS_EXTENSION, frozenset())
        transport_headers = self.http_client.headers
        for name, value in self.default_headers.items():
            if name.lower() in explicit:
                continue
            if name in request.headers and name not in transport_headers:
                continue
            request.headers[name] = value

    def _validate_response(
        self,
        request: httpx.Request,
        response: httpx.Response,
        cancellation: CancellationToken,
    ) -> None:
        """Raise :class:`RestApiError` unless *response* has a 2xx status code."""
        if response.is_success:
            return

        self._logger.warning(
            "Response rejected",
            method=request.method,
            url=str(request.url),
            status_code=response.status_code,
        )
        raise RestApiError.from_status(response.status_code, get_problem(response))

    def _decoder(self, result_type: type[T]) -> Callable[[httpx.Response], T]:
        return lambda response: self.json_codec.deserialize(response.text, result_type)

    def _wrap_error(
        self,
        method: str,
        uri: str,
        status_code: int | None,
        error: Exception,
    ) -> RestApiError:
        self._logger.debug(
            "Request failed",
            method=method,
            uri=uri,
            status_code=status_code,
            error=str(error),
        )
        problem = Problem(
            status_code=status_code,
            title=REQUEST_FAILED,
            details=str(error),
            type=method,
            instance=uri,
        )
        return RestApiError.from_problem(problem, error)


class RestApiClient(BaseRestApiClient):
    """Blocking REST client.

    Runs the whole pipeline on the calling thread over an ``httpx.Client``;
    no event loop is involved, so it is safe to call from any thread, including
    one that is itself running an event loop's callbacks.

    Each verb has two entry points: ``<verb>_status`` returns the HTTP status
    code without reading the body, and ``<verb>`` decodes the body into the
    requested type::

        client = RestApiClient(http_client, "https://api.example.com/")
        client.put_status("items/1", ItemUpdate(name="new"))   # -> 204
        item = client.get("items/1", Item)

    Interceptors are plain callables.
    """

    def __init__(self, http_client: httpx.Client, base_uri: str | None = None) -> None:
        super().__init__(http_client, base_uri)

    @classmethod
    def from_settings(cls, settings: RestClientSettings | None = None) -> "RestApiClient":
        """Create a client owning an ``httpx.Client`` built from *settings*.

        Uses :func:`~openbox_rest.config.get_settings` when *settings* is
        omitted. The transport is closed by :meth:`close`.
        """
        settings = settings or get_settings()
        client = cls(httpx.Client(**_transport_options(settings)), settings.base_uri)
        client.default_headers.update(settings.default_headers)
        client._owns_http_client = True
        return client

    def __enter__(self) -> "RestApiClient":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def close(self) -> None:
        """Close the transport if this client created it."""
        if self._owns_http_client:
            self.http_client.close()

    def send(self, request: httpx.Request, cancellation: CancellationToken | None = None) -> httpx.Response:
        """Dispatch an already built request and return the raw response.

        The response is not validated. Cancellation is checked before and
        after the transport call; a blocking transport call in progress
        cannot be interrupted.

        Raises:
            OperationCancelledError: *cancellation* was cancelled.
        """
        cancellation = cancellation or CancellationToken()
        cancellation.raise_if_cancellation_requested()
        self._logger.debug("Sending request", method=request.method, url=str(request.url))
        response = self.http_client.send(request)
        self._logger.debug("Received response", method=request.method, status_code=response.status_code)
        cancellation.raise_if_cancellation_requested()
        return response

    def _send(
        self,
        method: str,
        uri: str,
        content: Any,
        validate_response: bool,
        cancellation: CancellationToken | None,
        read: Callable[[httpx.Response], T],
    ) -> T:
        cancellation = cancellation or CancellationToken()
        status_code: int | None = None
        try:
            request = self._create_request(method, uri, content, cancellation)
            cancellation.raise_if_cancellation_requested()
            self._add_request_headers(request, cancellation)

            if self.request_interceptor is not None:
                cancellation.raise_if_cancellation_requested()
                self.request_interceptor(request, cancellation)

            response = self.send(request, cancellation)
            status_code = response.status_code

            if self.response_interceptor is None:
                if validate_response:
                    self._validate_response(request, response, cancellation)
                    cancellation.raise_if_cancellation_requested()
            else:
                self.response_interceptor(response, cancellation)
                cancellation.raise_if_cancellation_requested()

            return read(response)
        except (RestApiError, OperationCancelledError):
            raise
        except Exception as e:
            raise self._wrap_error(method, uri, status_code, e) from e

    # -------------------------------------------------------------------------
    # GET
    # -------------------------------------------------------------------------

    def get_status(
        self,
        uri: str,
        *,
        validate_response: bool = True,
        cancellation: CancellationToken | None = None,
    ) -> int:
        """Send a GET request and return its status code.

        Args:
            uri: Absolute URI, or a URI relative to :attr:`base_uri`.
            validate_response: Raise for non-2xx responses. Ignored when a
                response interceptor is registered.
            cancellation: Token aborting the call.

        Returns:
            The HTTP status code. The body is not decoded.

        Raises:
            RestApiError: The request failed or the response was rejected.
            OperationCancelledError: The call was cancelled.
        """
        return self._send("GET", uri, None, validate_response, cancellation, _read_status)

    def get(self, uri: str, result_type: type[T], *, cancellation: CancellationToken | None = None) -> T:
        """Send a GET request and decode the response body.

        Args:
            uri: Absolute URI, or a URI relative to :attr:`base_uri`.
            result_type: Type the JSON body is decoded into. An empty body
                decodes to the type's default value.
            cancellation: Token aborting the call.

        Returns:
            The decoded body.

        Raises:
            RestApiError: The request failed, the response was rejected or
                the body could not be decoded.
            OperationCancelledError: The call was cancelled.
        """
        return self._send("GET", uri, None, True, cancellation, self._decoder(result_type))

    # -------------------------------------------------------------------------
    # POST
    # -------------------------------------------------------------------------

    def post_status(
        self,
        uri: str,
        content: Any = None,
        *,
        validate_response: bool = True,
        cancellation: CancellationToken | None = None,
    ) -> int:
        """Send a POST request with *content* as JSON body and return its status code."""
        return self._send("POST", uri, content, validate_response, cancellation, _read_status)

    def post(
        self,
        uri: str,
        result_type: type[T],
        content: Any = None,
        *,
        cancellation: CancellationToken | None = None,
    ) -> T:
        """Send a POST request with *content* as JSON body and decode the response body."""
        return self._send("POST", uri, content, True, cancellation, self._decoder(result_type))

    # -------------------------------------------------------------------------
    # PUT
    # -------------------------------------------------------------------------

    def put_status(
        self,
        uri: str,
        content: Any = None,
        *,
        validate_response: bool = True,
        cancellation: CancellationToken | None = None,
    ) -> int:
        return self._send("PUT", uri, content, validate_response, cancellation, _read_status)

    def put(
        self,
        uri: str,
        result_type: type[T],
        content: Any = None,
        *,
        cancellation: CancellationToken | None = None,
    ) -> T:
        return self._send("PUT", uri, content, True, cancellation, self._decoder(result_type))

    # -------------------------------------------------------------------------
    # DELETE
    # -------------------------------------------------------------------------

    def delete_status(
        self,
        uri: str,
        content: Any = None,
        *,
        validate_response: bool = True,
        cancellation: CancellationToken | None = None,
    ) -> int:
        return self._send("DELETE", uri, content, validate_response, cancellation, _read_status)

    def delete(
        self,
        uri: str,
        result_type: type[T],
        content: Any = None,
        *,
        cancellation: CancellationToken | None = None,
    ) -> T:
        return self._send("DELETE", uri, content, True, cancellation, self._decoder(result_type))


class AsyncRestApiClient(BaseRestApiClient):
    """Asynchronous REST client.

    Mirrors the :class:`RestApiClient` interface using ``async``/``await``
    over an ``httpx.AsyncClient``::

        async with httpx.AsyncClient() as http_client:
            client = AsyncRestApiClient(http_client, "https://api.example.com/")
            item = await client.get("items/1", Item)

    Interceptors may be plain callables or coroutine functions. Cancelling
    the token while the transport is in flight aborts the transport call.
    """

    def __init__(self, http_client: httpx.AsyncClient, base_uri: str | None = None) -> None:
        super().__init__(http_client, base_uri)

    @classmethod
    def from_settings(cls, settings: RestClientSettings | None = None) -> "AsyncRestApiClient":
        """Create a client owning an ``httpx.AsyncClient`` built from *settings*."""
        settings = settings or get_settings()
        client = cls(httpx.AsyncClient(**_transport_options(settings)), settings.base_uri)
        client.default_headers.update(settings.default_headers)
        client._owns_http_client = True
        return client

    async def __aenter__(self) -> "AsyncRestApiClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the transport if this client created it."""
        if self._owns_http_client:
            await self.http_client.aclose()

    async def send(
        self,
        request: httpx.Request,
        cancellation: CancellationToken | None = None,
    ) -> httpx.Response:
        """Dispatch an already built request and return the raw response.

        The response is not validated.

        Raises:
            OperationCancelledError: *cancellation* was cancelled before,
                during or right after the transport call.
        """
        cancellation = cancellation or CancellationToken()
        cancellation.raise_if_cancellation_requested()
        self._logger.debug("Sending request", method=request.method, url=str(request.url))

        loop = asyncio.get_running_loop()
        dispatch = asyncio.ensure_future(self.http_client.send(request))

        def cancel_dispatch() -> None:
            if not dispatch.done():
                loop.call_soon_threadsafe(dispatch.cancel)

        unregister = cancellation.register(cancel_dispatch)
        try:
            response = await dispatch
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if cancellation.is_cancellation_requested and not (current and current.cancelling()):
                raise OperationCancelledError() from None
            raise
        finally:
            unregister()

        self._logger.debug("Received response", method=request.method, status_code=response.status_code)
        cancellation.raise_if_cancellation_requested()
        return response

    @staticmethod
    async def _invoke(interceptor: Callable[..., Any], target: Any, cancellation: CancellationToken) -> None:
        result = interceptor(target, cancellation)
        if inspect.isawaitable(result):
            await result

    async def _send(
        self,
        method: str,
        uri: str,
        content: Any,
        validate_response: bool,
        cancellation: CancellationToken | None,
        read: Callable[[httpx.Response], T],
    ) -> T:
        cancellation = cancellation or CancellationToken()
        status_code: int | None = None
        try:
            request = self._create_request(method, uri, content, cancellation)
            cancellation.raise_if_cancellation_requested()
            self._add_request_headers(request, cancellation)

            if self.request_interceptor is not None:
                cancellation.raise_if_cancellation_requested()
                await self._invoke(self.request_interceptor, request, cancellation)

            response = await self.send(request, cancellation)
            status_code = response.status_code

            if self.response_interceptor is None:
                if validate_response:
                    self._validate_response(request, response, cancellation)
                    cancellation.raise_if_cancellation_requested()
            else:
                await self._invoke(self.response_interceptor, response, cancellation)
                cancellation.raise_if_cancellation_requested()

            return read(response)
        except (RestApiError, OperationCancelledError):
            raise
        except Exception as e:
            raise self._wrap_error(method, uri, status_code, e) from e

    # -------------------------------------------------------------------------
    # GET
    # -------------------------------------------------------------------------

    async def get_status(
        self,
        uri: str,
        *,
        validate_response: bool = True,
        cancellation: CancellationToken | None = None,
    ) -> int:
        """Send a GET request and return its status code. See :meth:`RestApiClient.get_status`."""
        return await self._send("GET", uri, None, validate_response, cancellation, _read_status)

    async def get(
        self,
        uri: str,
        result_type: type[T],
        *,
        cancellation: CancellationToken | None = None,
    ) -> T:
        """Send a GET request and decode the response body. See :meth:`RestApiClient.get`."""
        return await self._send("GET", uri, None, True, cancellation, self._decoder(result_type))

    # -------------------------------------------------------------------------
    # POST
    # -------------------------------------------------------------------------

    async def post_status(
        self,
        uri: str,
        content: Any = None,
        *,
        validate_response: bool = True,
        cancellation: CancellationToken | None = None,
    ) -> int:
        return await self._send("POST", uri, content, validate_response, cancellation, _read_status)

    async def post(
        self,
        uri: str,
        result_type: type[T],
        content: Any = None,
        *,
        cancellation: CancellationToken | None = None,
    ) -> T:
        return await self._send("POST", uri, content, True, cancellation, self._decoder(result_type))

    # -------------------------------------------------------------------------
    # PUT
    # -------------------------------------------------------------------------

    async def put_status(
        self,
        uri: str,
        content: Any = None,
        *,
        validate_response: bool = True,
        cancellation: CancellationToken | None = None,
    ) -> int:
        return await self._send("PUT", uri, content, validate_response, cancellation, _read_status)

    async def put(
        self,
        uri: str,
        result_type: type[T],
        content: Any = None,
        *,
        cancellation: CancellationToken | None = None,
    ) -> T:
        return await self._send("PUT", uri, content, True, cancellation, self._decoder(result_type))

    # -------------------------------------------------------------------------
    # DELETE
    # -------------------------------------------------------------------------

    async def delete_status(
        self,
        uri: str,
        content: Any = None,
        *,
        validate_response: bool = True,
        cancellation: CancellationToken | None = None,
    ) -> int:
        return await self._send("DELETE", uri, content, validate_response, cancellation, _read_status)

    async def delete(
        self,
        uri: str,
        result_type: type[T],
        content: Any = None,
        *,
        cancellation: CancellationToken | None = None,
    ) -> T:
        return await self._send("DELETE", uri, content, True, cancellation, self._decoder(result_type))
