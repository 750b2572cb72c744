"""Shared pytest fixtures for openbox-rest tests."""

from typing import Any, Callable

import httpx
import pytest
import pytest_asyncio

from openbox_rest import AsyncRestApiClient, RestApiClient
from payloads import Address, Order


class RecordingHandler:
    """Mock transport handler recording requests and answering with a canned response."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._respond: Callable[[httpx.Request], Any] = lambda request: httpx.Response(200, json={})

    def respond(self, status_code: int, **kwargs: Any) -> None:
        """Answer every request with a fresh ``httpx.Response(status_code, **kwargs)``."""
        self._respond = lambda request: httpx.Response(status_code, **kwargs)

    def respond_with(self, respond: Callable[[httpx.Request], Any]) -> None:
        """Answer with whatever *respond* returns (or raises) for the request."""
        self._respond = respond

    def __call__(self, request: httpx.Request) -> Any:
        self.requests.append(request)
        return self._respond(request)

    @property
    def last_request(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def base_uri():
    return "https://api.example.com/v1/"


@pytest.fixture
def handler():
    return RecordingHandler()


@pytest.fixture
def http_client(handler):
    with httpx.Client(transport=httpx.MockTransport(handler)) as client:
        yield client


@pytest.fixture
def client(http_client, base_uri):
    return RestApiClient(http_client, base_uri)


@pytest_asyncio.fixture
async def async_http_client(handler):
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        yield client


@pytest.fixture
def async_client(async_http_client, base_uri):
    return AsyncRestApiClient(async_http_client, base_uri)


@pytest.fixture
def order():
    return Order(
        order_id=42,
        customer_name="Ada Lovelace",
        shipping_address=Address(street="12 St James's Square", city="London"),
        tags=["priority"],
    )


@pytest.fixture
def problem_body():
    return {
        "statusCode": 404,
        "title": "Order not found",
        "details": "Order 42 does not exist",
        "type": "https://api.example.com/problems/not-found",
    }
