"""JSON-schema validation of raw GBFS feed bytes."""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Protocol

from jsonschema import Draft7Validator

ENVELOPE_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["last_updated", "ttl", "data"],
    "properties": {
        "last_updated": {"type": ["integer", "string"]},
        "ttl": {"type": "integer", "minimum": 0},
        "version": {"type": "string"},
        "data": {"type": "object"},
    },
}


class FeedValidator(Protocol):
    """Anything that checks a feed-name to raw-bytes mapping."""

    def validate(self, feeds: Mapping[str, bytes]) -> Any:
        ...


@dataclass(frozen=True)
class FileValidationResult:
    feed_name: str
    schema_name: str
    errors: List[str] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.errors)


@dataclass(frozen=True)
class ValidationSummary:
    version: Optional[str]
    files: int
    errors_count: int


@dataclass(frozen=True)
class ValidationResult:
    summary: ValidationSummary
    files: Dict[str, FileValidationResult]

    @property
    def is_valid(self) -> bool:
        return self.summary.errors_count == 0


class JsonSchemaFeedValidator:
    """Validate each feed against the schema registered for its name.

    Feeds without a dedicated schema are checked against ``default_schema``
    (the common GBFS envelope unless overridden).
    """

    def __init__(
        self,
        schemas: Optional[Mapping[str, Dict[str, Any]]] = None,
        default_schema: Optional[Dict[str, Any]] = ENVELOPE_SCHEMA,
    ) -> None:
        self._schemas = dict(schemas or {})
        self._default_schema = default_schema

    def validate(self, feeds: Mapping[str, bytes]) -> ValidationResult:
        results: Dict[str, FileValidationResult] = {}
        version: Optional[str] = None
        for name, raw in feeds.items():
            schema, schema_name = self._schema_for(name)
            try:
                document = json.loads(raw)
            except ValueError as err:
                results[name] = FileValidationResult(name, schema_name, [f"invalid JSON: {err}"])
                continue
            if version is None and isinstance(document, dict) and isinstance(document.get("version"), str):
                version = document["version"]
            if schema is None:
                results[name] = FileValidationResult(name, schema_name)
                continue
            errors = sorted(Draft7Validator(schema).iter_errors(document), key=lambda e: list(e.path))
            results[name] = FileValidationResult(name, schema_name, [_describe(error) for error in errors])
        summary = ValidationSummary(
            version=version,
            files=len(results),
            errors_count=sum(result.error_count for result in results.values()),
        )
        return ValidationResult(summary=summary, files=results)

    def _schema_for(self, name: str):
        if name in self._schemas:
            return self._schemas[name], name
        if self._default_schema is not None:
            return self._default_schema, "envelope"
        return None, "none"


def _describe(error: Any) -> str:
    location = "/".join(str(part) for part in error.absolute_path)
    return f"{location or '<root>'}: {error.message}"
