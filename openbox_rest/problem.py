"""Problem detail extraction from HTTP responses.

Servers report failures in different shapes. :func:`get_problem` inspects the
response content type and body and normalizes whatever it finds into a
:class:`~openbox_rest.models.Problem`:

====================================  ==========================================
Content type                          Result
====================================  ==========================================
``application/problem+json``          Always a problem, even for ``{}``
``application/json``                  A problem when any known field is present
``text/plain``                        Default title, body text as details
anything else                         ``None``
====================================  ==========================================
"""

from __future__ import annotations

import httpx
from pydantic_core import from_json

from .exceptions import DEFAULT_PROBLEM_TITLE
from .log import get_logger
from .models import Problem

logger = get_logger(__name__)

PROBLEM_JSON = "application/problem+json"
JSON = "application/json"
TEXT_PLAIN = "text/plain"


def media_type(response: httpx.Response) -> str | None:
    """Return the lower-cased media type of the response, without parameters."""
    content_type = response.headers.get("content-type")
    if not content_type:
        return None
    return content_type.split(";", 1)[0].strip().lower() or None


def request_uri(response: httpx.Response) -> str | None:
    """Return the URI of the request that produced *response*, if known."""
    try:
        return str(response.request.url)
    except RuntimeError:
        # httpx raises when the response was built without a request.
        return None


def get_problem(response: httpx.Response | None) -> Problem | None:
    """Build a :class:`Problem` describing *response*.

    Args:
        response: A response whose body has already been read, or ``None``.

    Returns:
        The extracted problem, or ``None`` when the response should not be
        treated as one (unknown content type, plain JSON that carries none of
        the problem fields, or a JSON ``null`` body).
    """
    if response is None:
        return None

    status_code = response.status_code
    problem_type = media_type(response)
    instance = request_uri(response)

    try:
        if problem_type in (PROBLEM_JSON, JSON):
            data = from_json(response.text)
            if data is None:
                return None
            body = Problem.model_validate(data)
            if problem_type != PROBLEM_JSON and body.is_empty():
                return None
            if body.status_code is not None:
                status_code = body.status_code
            title = body.title
            details = body.details
            if body.type is not None:
                problem_type = body.type
        elif problem_type == TEXT_PLAIN:
            title = DEFAULT_PROBLEM_TITLE.format(status_code=status_code)
            details = response.text
        else:
            return None
    except Exception as e:
        logger.debug("Problem body could not be parsed", content_type=problem_type, error=str(e))
        title = DEFAULT_PROBLEM_TITLE.format(status_code=status_code)
        details = str(e)

    return Problem(
        status_code=status_code,
        title=title,
        details=details,
        type=problem_type,
        instance=instance,
    )
