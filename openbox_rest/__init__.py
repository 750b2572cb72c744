"""
openbox-rest - typed REST client over an httpx transport.

This package provides blocking and asynchronous clients sharing one request
pipeline, plus problem-detail extraction for failed responses.

Example usage:

    # Blocking client
    import httpx
    from openbox_rest import RestApiClient, RestApiError

    with httpx.Client() as http_client:
        client = RestApiClient(http_client, "https://api.example.com/")
        try:
            order = client.get("orders/42", Order)
        except RestApiError as e:
            print(e.status_code, e.problem.details if e.problem else None)

    # Asynchronous client
    from openbox_rest import AsyncRestApiClient

    async with httpx.AsyncClient() as http_client:
        client = AsyncRestApiClient(http_client, "https://api.example.com/")
        status = await client.post_status("orders", OrderCreate(sku="A-1"))
"""

from .cancellation import CancellationToken
from .client import (
    AsyncRestApiClient,
    BaseRestApiClient,
    RestApiClient,
    RequestInterceptor,
    ResponseInterceptor,
)
from .codec import JsonCodec
from .config import RestClientSettings, get_settings, reload_settings
from .exceptions import (
    ClientConfigurationError,
    OperationCancelledError,
    RestApiError,
    RestError,
)
from .models import Problem, RestModel
from .problem import get_problem

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Clients
    "RestApiClient",
    "AsyncRestApiClient",
    "BaseRestApiClient",
    "RequestInterceptor",
    "ResponseInterceptor",
    "CancellationToken",
    # Exceptions
    "RestError",
    "RestApiError",
    "OperationCancelledError",
    "ClientConfigurationError",
    # Models
    "Problem",
    "RestModel",
    "get_problem",
    # Codec
    "JsonCodec",
    # Configuration
    "RestClientSettings",
    "get_settings",
    "reload_settings",
]
