"""Custom exception classes for the openbox REST client."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .models import Problem

DEFAULT_PROBLEM_TITLE = "Request completed with status code {status_code}"


class RestError(Exception):
    """Base exception for all openbox REST client errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class RestApiError(RestError):
    """Exception raised when a REST call fails.

    Carries the HTTP status code observed (``None`` when the request never
    got a response) and, when available, the :class:`~openbox_rest.models.Problem`
    describing the failure. The underlying exception is chained as
    ``__cause__``.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        problem: Problem | None = None,
    ) -> None:
        super().__init__(
            message,
            details={
                "status_code": status_code,
                "problem": problem.model_dump() if problem is not None else None,
            },
        )
        self.status_code = status_code
        self.problem = problem

    @property
    def error(self) -> Problem | None:
        """Structured error detail, same object as :attr:`problem`."""
        return self.problem

    @classmethod
    def from_problem(cls, problem: Problem, cause: BaseException | None = None) -> "RestApiError":
        """Build an error whose message is the problem title."""
        error = cls(_problem_message(problem, problem.status_code), problem.status_code, problem)
        error.__cause__ = cause
        return error

    @classmethod
    def from_status(cls, status_code: int, problem: Problem | None = None) -> "RestApiError":
        """Build an error for a response rejected by validation."""
        return cls(_problem_message(problem, status_code), status_code, problem)


class OperationCancelledError(RestError):
    """Exception raised when a call is cancelled through its cancellation token."""

    def __init__(self, message: str = "The operation was cancelled.") -> None:
        super().__init__(message)


class ClientConfigurationError(RestError, ValueError):
    """Exception raised when a client is constructed with invalid arguments."""

    def __init__(self, message: str, param_name: str | None = None) -> None:
        super().__init__(message, details={"param_name": param_name})
        self.param_name = param_name


def _problem_message(problem: Problem | None, status_code: int | None) -> str:
    if problem is not None and problem.title:
        return problem.title
    return DEFAULT_PROBLEM_TITLE.format(status_code=status_code)
