"""
DevConnect Backend: Schema Registry & Request Validation
==========================================================

What:  Holds named JSON-Schema documents, compiles one Draft 7 validator per
       name, and exposes FastAPI dependencies that validate the body, query
       string or path parameters of a request.
How:   `SchemaRegistry` is built once by the app factory, frozen, and stored
       on `app.state.schema_registry`. `validate_body(name)` and friends
       return dependencies that look the registry up from the request.
Who:   Route handlers declare `Depends(validate_body("ProjectCreate"))`.

Failure shape (HTTP 400):
    {
        "success": false,
        "error": "Invalid request body",
        "details": {
            "code": "VALIDATION_ERROR",
            "validation_errors": {"password": "must NOT have fewer than 8 characters"}
        },
        "timestamp": "..."
    }

Query coercion:
    Every query value that parses fully as a finite number is turned into a
    number before validation, so `type: integer` constraints apply to
    `?page=2`. Known limitation: numeric-looking strings (zip codes, a
    search for "2024") become numbers too and fail `type: string`.
"""

import copy
import json
import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from fastapi import Request
from jsonschema import Draft7Validator, FormatChecker
from jsonschema.exceptions import ValidationError as SchemaViolation

from devconnect.exceptions import RequestError, ValidationError

logger = logging.getLogger(__name__)

# Plain decimal numbers only: no whitespace, digit separators, inf or nan
NUMERIC_QUERY_VALUE = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")
INTEGER_QUERY_VALUE = re.compile(r"[+-]?[0-9]+")


class SchemaRegistrationError(ValueError):
    """A schema name was registered twice with different documents, or after freeze()."""


class UnknownSchemaError(KeyError):
    """validate() was asked for a name that was never registered."""


@dataclass(frozen=True)
class FieldError:
    path: str
    message: str


@dataclass(frozen=True)
class ValidationOutcome:
    is_valid: bool
    errors: Tuple[FieldError, ...] = field(default_factory=tuple)
    data: Optional[Any] = None

    def error_map(self) -> Dict[str, str]:
        """Field path -> message; the first message wins for a repeated path."""
        mapped: Dict[str, str] = {}
        for err in self.errors:
            mapped.setdefault(err.path, err.message)
        return mapped


# ══════════════════════════════════════════════════════════════════════════
# Error Description
# ══════════════════════════════════════════════════════════════════════════

def _describe(error: SchemaViolation) -> str:
    """
    Human message for one violation.

    jsonschema's own messages embed the offending value (a rejected password
    would be echoed back), so the common keywords get value-free wording.
    """
    keyword, expected = error.validator, error.validator_value
    messages: Dict[str, Callable[[], str]] = {
        "minLength": lambda: f"must NOT have fewer than {expected} characters",
        "maxLength": lambda: f"must NOT have more than {expected} characters",
        "minimum": lambda: f"must be >= {expected}",
        "maximum": lambda: f"must be <= {expected}",
        "minItems": lambda: f"must NOT have fewer than {expected} items",
        "maxItems": lambda: f"must NOT have more than {expected} items",
        "minProperties": lambda: f"must NOT have fewer than {expected} properties",
        "type": lambda: "must be " + (" or ".join(expected) if isinstance(expected, list) else str(expected)),
        "format": lambda: f'must match format "{expected}"',
        "pattern": lambda: f'must match pattern "{expected}"',
        "enum": lambda: "must be equal to one of the allowed values: " + ", ".join(map(str, expected)),
        "additionalProperties": lambda: "must NOT have additional properties",
    }
    builder = messages.get(keyword)
    return builder() if builder else error.message


def _field_errors(error: SchemaViolation) -> Iterable[FieldError]:
    prefix = ".".join(str(part) for part in error.absolute_path)

    if error.validator == "required" and isinstance(error.instance, Mapping):
        for name in error.validator_value:
            if name not in error.instance:
                path = f"{prefix}.{name}" if prefix else name
                yield FieldError(path, f"must have required property '{name}'")
        return

    if error.validator == "additionalProperties" and isinstance(error.instance, Mapping):
        allowed = set(error.schema.get("properties", {}))
        extras = [key for key in error.instance if key not in allowed]
        for name in extras:
            path = f"{prefix}.{name}" if prefix else name
            yield FieldError(path, _describe(error))
        if extras:
            return

    yield FieldError(prefix or str(error.validator), _describe(error))


# ══════════════════════════════════════════════════════════════════════════
# Registry
# ══════════════════════════════════════════════════════════════════════════

class SchemaRegistry:
    """
    Named JSON-Schema documents and their compiled validators.

    Lifecycle:
        1. register_schema() for every document (startup)
        2. freeze(): no further registrations
        3. validate() for the rest of the process lifetime (read-only)

    Registering a name twice is allowed only with an identical document.
    """

    def __init__(self, schemas: Optional[Mapping[str, Mapping[str, Any]]] = None):
        self._schemas: Dict[str, Dict[str, Any]] = {}
        self._validators: Dict[str, Draft7Validator] = {}
        self._frozen = False
        self._format_checker = FormatChecker()
        for name, schema in (schemas or {}).items():
            self.register_schema(name, schema)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def names(self) -> List[str]:
        return sorted(self._schemas)

    def __contains__(self, name: object) -> bool:
        return name in self._schemas

    def get_schema(self, name: str) -> Dict[str, Any]:
        if name not in self._schemas:
            raise UnknownSchemaError(name)
        return copy.deepcopy(self._schemas[name])

    def register_schema(self, name: str, schema: Mapping[str, Any]) -> None:
        if self._frozen:
            raise SchemaRegistrationError(f"Registry is frozen; cannot register '{name}'")

        document = copy.deepcopy(dict(schema))
        existing = self._schemas.get(name)
        if existing is not None:
            if existing == document:
                return
            raise SchemaRegistrationError(
                f"Schema '{name}' is already registered with a different document"
            )

        # Raises jsonschema.SchemaError on a malformed document (fail fast at startup)
        Draft7Validator.check_schema(document)
        self._schemas[name] = document
        self._validators[name] = Draft7Validator(document, format_checker=self._format_checker)
        logger.debug("Registered schema %s", name)

    def freeze(self) -> "SchemaRegistry":
        self._frozen = True
        return self

    def validate(self, name: str, data: Any) -> ValidationOutcome:
        validator = self._validators.get(name)
        if validator is None:
            raise UnknownSchemaError(name)

        errors: List[FieldError] = []
        seen = set()
        violations = sorted(
            validator.iter_errors(data),
            key=lambda e: [str(part) for part in e.absolute_path],
        )
        for violation in violations:
            for field_error in _field_errors(violation):
                if field_error not in seen:
                    seen.add(field_error)
                    errors.append(field_error)

        if errors:
            return ValidationOutcome(is_valid=False, errors=tuple(errors), data=None)
        return ValidationOutcome(
            is_valid=True,
            data=_apply_defaults(self._schemas[name], data),
        )


def _apply_defaults(schema: Mapping[str, Any], data: Any) -> Any:
    """Fill top-level properties that declare a `default` and are absent."""
    if not isinstance(data, dict):
        return data
    filled = dict(data)
    for name, prop in schema.get("properties", {}).items():
        if name not in filled and isinstance(prop, Mapping) and "default" in prop:
            filled[name] = copy.deepcopy(prop["default"])
    return filled


def build_default_registry() -> SchemaRegistry:
    from devconnect.schemas.json_schemas import DEFAULT_SCHEMAS

    return SchemaRegistry(DEFAULT_SCHEMAS).freeze()


# ══════════════════════════════════════════════════════════════════════════
# Query Coercion
# ══════════════════════════════════════════════════════════════════════════

def coerce_query_value(value: Any) -> Any:
    """'2' -> 2, '2.5' -> 2.5, 'abc' -> 'abc', '' -> '', '1_0' -> '1_0'."""
    if not isinstance(value, str) or not NUMERIC_QUERY_VALUE.fullmatch(value):
        return value
    try:
        if INTEGER_QUERY_VALUE.fullmatch(value):
            return int(value)
        number = float(value)
    except ValueError:
        # Past the interpreter's int digit limit
        return value
    return number if math.isfinite(number) else value


def coerce_query(params: Mapping[str, Any]) -> Dict[str, Any]:
    return {key: coerce_query_value(value) for key, value in params.items()}


# ══════════════════════════════════════════════════════════════════════════
# FastAPI Dependencies
# ══════════════════════════════════════════════════════════════════════════

def get_registry(request: Request) -> SchemaRegistry:
    return request.app.state.schema_registry


def _enforce(registry: SchemaRegistry, name: str, data: Any, message: str) -> Any:
    outcome = registry.validate(name, data)
    if not outcome.is_valid:
        raise ValidationError(message, outcome.error_map())
    return outcome.data


def validate_body(schema_name: str):
    """Dependency: parsed JSON body validated against `schema_name`."""

    async def dependency(request: Request) -> Dict[str, Any]:
        raw = await request.body()
        if not raw.strip():
            payload: Any = {}
        else:
            try:
                payload = json.loads(raw)
            except (json.JSONDecodeError, UnicodeDecodeError):
                raise RequestError("Invalid JSON in request body")
        return _enforce(get_registry(request), schema_name, payload, "Invalid request body")

    dependency.__name__ = f"validate_body_{schema_name}"
    return dependency


def validate_query(schema_name: str):
    """Dependency: coerced query parameters validated against `schema_name`."""

    async def dependency(request: Request) -> Dict[str, Any]:
        params = coerce_query(request.query_params)
        return _enforce(get_registry(request), schema_name, params, "Invalid query parameters")

    dependency.__name__ = f"validate_query_{schema_name}"
    return dependency


def validate_params(schema_name: str):
    """Dependency: path parameters validated against `schema_name`."""

    async def dependency(request: Request) -> Dict[str, Any]:
        params = dict(request.path_params)
        return _enforce(get_registry(request), schema_name, params, "Invalid path parameters")

    dependency.__name__ = f"validate_params_{schema_name}"
    return dependency
