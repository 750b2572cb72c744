"""Pydantic models for the openbox REST client."""

from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel


# Base Models


class RestModel(BaseModel):
    """Base model for request and response payloads.

    Fields are written with camelCase names and read back case-insensitively,
    so ``statusCode``, ``StatusCode`` and ``status_code`` all populate
    ``status_code``. Unknown fields are ignored.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    @model_validator(mode="before")
    @classmethod
    def _match_field_names(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data

        names: dict[str, str] = {}
        for name, field in cls.model_fields.items():
            names[name.lower()] = name
            if field.alias:
                names[field.alias.lower()] = name

        matched: dict[Any, Any] = {}
        for key, value in data.items():
            if isinstance(key, str):
                key = names.get(key.lower(), key)
            matched.setdefault(key, value)
        return matched


# Problem Models


class Problem(RestModel):
    """Normalized description of a failed REST call.

    Built from the response by :func:`openbox_rest.problem.get_problem`, or by
    the client itself when the request failed before any response existed.
    """

    model_config = ConfigDict(frozen=True)

    status_code: int | None = None
    title: str | None = None
    details: str | None = None
    type: str | None = None
    instance: str | None = None

    def is_empty(self) -> bool:
        """Tell whether every field is absent."""
        return not self.model_dump(exclude_none=True)
