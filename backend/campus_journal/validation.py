# central validation — runs a pydantic schema and reports every failing field
# used by the services and by the request validation handler in main.py

from typing import Any, Iterable, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from campus_journal.errors import ValidationError

M = TypeVar("M", bound=BaseModel)

# location prefixes added by fastapi that mean nothing to the caller
_LOCATION_PREFIXES = {"body", "query", "path", "header"}


def _field_name(loc: Iterable[Any]) -> str:
    parts = [str(p) for p in loc]
    if parts and parts[0] in _LOCATION_PREFIXES:
        parts = parts[1:]
    return ".".join(parts) or "body"


def field_errors(errors: Iterable[dict]) -> list[dict[str, str]]:
    """flatten pydantic/fastapi error dicts into [{field, message}], one per failure"""
    return [{"field": _field_name(err.get("loc", ())), "message": err.get("msg", "Invalid value")} for err in errors]


def validate_payload(model: Type[M], data: Any) -> M:
    """validate raw data against a schema, raising ValidationError naming every bad field"""
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(field_errors(e.errors())) from e
