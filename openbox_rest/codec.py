"""JSON serialization for request and response payloads."""

from __future__ import annotations

import dataclasses
import types
from collections.abc import Mapping, Sequence
from collections.abc import Set as AbstractSet
from typing import Annotated, Any, TypeVar, Union, get_args, get_origin, get_type_hints

from pydantic import BaseModel, TypeAdapter
from pydantic.alias_generators import to_camel
from pydantic_core import from_json, to_json
from typing_extensions import is_typeddict

T = TypeVar("T")

# Value types decode an empty body to their zero value instead of None.
_ZERO_VALUES: tuple[tuple[type, Any], ...] = ((bool, False), (int, 0), (float, 0.0))

# Maps a wire name to the key the validator expects and that key's annotation.
FieldNames = dict[str, tuple[str, Any]]


def _type_hints(tp: Any) -> dict[str, Any]:
    try:
        return get_type_hints(tp)
    except (NameError, TypeError):
        # Unresolvable forward references; names still match, nesting does not.
        return {}


class JsonCodec:
    """Serialize payloads to JSON and decode responses into typed values.

    Decoding goes through a pydantic ``TypeAdapter`` so any type pydantic
    understands can be requested: models, dataclasses, ``TypedDict``,
    ``list[Model]``, plain ``dict`` and scalars.

    Naming rules apply to every structured payload, not only
    :class:`~openbox_rest.models.RestModel` subclasses. Model and dataclass
    fields are written in camelCase and read back regardless of case, so
    ``orderId``, ``OrderId`` and ``order_id`` all populate ``order_id``.
    Mapping keys are written as given.

    Args:
        by_alias: Write model fields under their declared aliases.
        exclude_none: Drop fields whose value is ``None`` when writing.
        camel_case: Write fields without an alias in camelCase.
        case_insensitive: Match incoming names to fields regardless of case.
    """

    def __init__(
        self,
        by_alias: bool = True,
        exclude_none: bool = False,
        camel_case: bool = True,
        case_insensitive: bool = True,
    ) -> None:
        self.by_alias = by_alias
        self.exclude_none = exclude_none
        self.camel_case = camel_case
        self.case_insensitive = case_insensitive
        self._adapters: dict[Any, TypeAdapter[Any]] = {}
        self._field_names: dict[Any, FieldNames | None] = {}

    def _adapter(self, tp: Any) -> TypeAdapter[Any]:
        try:
            return self._adapters[tp]
        except KeyError:
            adapter = self._adapters[tp] = TypeAdapter(tp)
            return adapter
        except TypeError:
            # Unhashable annotations are not cached.
            return TypeAdapter(tp)

    # -------------------------------------------------------------------------
    # Writing
    # -------------------------------------------------------------------------

    def serialize(self, value: Any) -> str:
        """Encode *value* as a JSON document."""
        if not self.camel_case:
            return self._adapter(type(value)).dump_json(
                value,
                by_alias=self.by_alias,
                exclude_none=self.exclude_none,
            ).decode("utf-8")
        return to_json(self._to_wire(value)).decode("utf-8")

    def _wire_name(self, name: str, alias: str | None) -> str:
        if self.by_alias and alias:
            return alias
        return to_camel(name) if self.camel_case else name

    def _to_wire(self, value: Any) -> Any:
        """Turn structured payloads into plain data keyed by wire names."""
        if isinstance(value, BaseModel):
            fields = type(value).model_fields
            items = [
                (self._wire_name(name, field.serialization_alias or field.alias), getattr(value, name))
                for name, field in fields.items()
            ]
            items.extend((value.model_extra or {}).items())
        elif dataclasses.is_dataclass(value) and not isinstance(value, type):
            items = [(self._wire_name(f.name, None), getattr(value, f.name)) for f in dataclasses.fields(value)]
        elif isinstance(value, Mapping):
            return {key: self._to_wire(item) for key, item in value.items()}
        elif isinstance(value, (list, tuple, set, frozenset)):
            return [self._to_wire(item) for item in value]
        else:
            return value

        return {key: self._to_wire(item) for key, item in items if not (self.exclude_none and item is None)}

    # -------------------------------------------------------------------------
    # Reading
    # -------------------------------------------------------------------------

    def deserialize(self, text: str | None, result_type: type[T]) -> T:
        """Decode *text* into *result_type*.

        An empty or whitespace-only body yields the type's default value:
        ``0``, ``0.0`` or ``False`` for numbers and booleans, ``None`` for
        everything else.

        Raises:
            ValueError: *text* is not valid JSON or does not fit
                *result_type* (``pydantic.ValidationError`` is a subclass).
        """
        if text is None or not text.strip():
            for zero_type, zero in _ZERO_VALUES:
                if result_type is zero_type:
                    return zero
            return None  # type: ignore[return-value]

        adapter = self._adapter(result_type)
        if not (self.camel_case or self.case_insensitive):
            return adapter.validate_json(text)
        return adapter.validate_python(self._match_names(from_json(text), result_type))

    def _fold(self, name: str) -> str:
        return name.lower() if self.case_insensitive else name

    def _names_for(self, tp: Any) -> FieldNames | None:
        """Wire names accepted for each field of *tp*, or ``None`` if it has no fields."""
        key = (tp, self.camel_case, self.case_insensitive)
        try:
            return self._field_names[key]
        except KeyError:
            names = self._field_names[key] = self._collect_names(tp)
            return names
        except TypeError:
            return self._collect_names(tp)

    def _collect_names(self, tp: Any) -> FieldNames | None:
        if isinstance(tp, type) and issubclass(tp, BaseModel):
            by_name = tp.model_config.get("populate_by_name", False)
            fields = [
                (name, field.alias, field.alias if field.alias and not by_name else name, field.annotation)
                for name, field in tp.model_fields.items()
            ]
        elif isinstance(tp, type) and dataclasses.is_dataclass(tp):
            hints = _type_hints(tp)
            fields = [(f.name, None, f.name, hints.get(f.name, Any)) for f in dataclasses.fields(tp)]
        elif is_typeddict(tp):
            fields = [(name, None, name, hint) for name, hint in _type_hints(tp).items()]
        else:
            return None

        names: FieldNames = {}
        for name, alias, target, annotation in fields:
            candidates = [name, alias, to_camel(name) if self.camel_case else None]
            for candidate in candidates:
                if candidate:
                    names.setdefault(self._fold(candidate), (target, annotation))
        return names

    def _match_names(self, data: Any, tp: Any) -> Any:
        """Rename keys of decoded JSON *data* to the field names *tp* expects."""
        origin = get_origin(tp)
        args = get_args(tp)

        if origin is Annotated:
            return self._match_names(data, args[0])
        if origin is Union or origin is types.UnionType:
            members = [arg for arg in args if arg is not type(None)]
            return self._match_names(data, members[0]) if len(members) == 1 else data

        if isinstance(data, list) and isinstance(origin, type) and args:
            if origin is tuple and not (len(args) == 2 and args[1] is Ellipsis):
                return [self._match_names(item, arg) for item, arg in zip(data, args)] + data[len(args):]
            if issubclass(origin, (Sequence, AbstractSet)):
                return [self._match_names(item, args[0]) for item in data]
            return data

        if not isinstance(data, dict):
            return data
        if isinstance(origin, type) and issubclass(origin, Mapping):
            return {key: self._match_names(item, args[-1]) for key, item in data.items()} if args else data

        names = self._names_for(tp)
        if names is None:
            return data

        matched: dict[Any, Any] = {}
        for key, item in data.items():
            field = names.get(self._fold(key)) if isinstance(key, str) else None
            if field is None:
                matched.setdefault(key, item)
                continue
            target, annotation = field
            matched.setdefault(target, self._match_names(item, annotation))
        return matched
