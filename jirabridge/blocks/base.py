"""Base block interface and the helpers shared by every block."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from jirabridge.core.client import JiraClient
from jirabridge.core.errors import JiraBridgeError, OperationError, ValidationError

# JSON Schema type names keyed by the shorthand used in InputField.type
_SCHEMA_TYPES = {
    "string": {"type": "string"},
    "number": {"type": "number"},
    "boolean": {"type": "boolean"},
    "object": {"type": "object"},
    "string[]": {"type": "array", "items": {"type": "string"}},
    "object[]": {"type": "array", "items": {"type": "object"}},
}


@dataclass(frozen=True)
class InputField:
    name: str
    label: str
    type: str = "string"
    required: bool = False
    description: str = ""

    def to_schema(self) -> dict[str, Any]:
        schema = dict(_SCHEMA_TYPES[self.type])
        schema["title"] = self.label
        if self.description:
            schema["description"] = self.description
        return schema


def object_schema(properties: dict[str, Any], required: list[str] | None = None) -> dict[str, Any]:
    """Build an object schema; string values are shorthand type names."""
    return {
        "type": "object",
        "properties": {
            key: dict(_SCHEMA_TYPES[value]) if isinstance(value, str) else value
            for key, value in properties.items()
        },
        "required": list(required or []),
    }


def text_to_adf(text: str) -> dict[str, Any]:
    """Wrap plain text in a single-paragraph Atlassian Document Format doc."""
    return {
        "type": "doc",
        "version": 1,
        "content": [
            {
                "type": "paragraph",
                "content": [{"type": "text", "text": text}],
            }
        ],
    }


def merge_fields(base: dict[str, Any], extra: dict[str, Any] | None) -> dict[str, Any]:
    """Return ``base`` updated with ``extra``; keys in ``extra`` win."""
    merged = dict(base)
    if extra:
        merged.update(extra)
    return merged


class BaseBlock(ABC):
    @property
    @abstractmethod
    def name(self) -> str: ...

    @property
    @abstractmethod
    def title(self) -> str: ...

    @property
    @abstractmethod
    def description(self) -> str: ...

    @property
    @abstractmethod
    def category(self) -> str: ...

    @property
    @abstractmethod
    def inputs(self) -> list[InputField]: ...

    @property
    @abstractmethod
    def output(self) -> dict[str, Any]:
        """JSON Schema of the emitted output event."""
        ...

    @property
    @abstractmethod
    def error_prefix(self) -> str: ...

    @abstractmethod
    async def execute(self, config: dict[str, Any], client: JiraClient) -> dict[str, Any]: ...

    def validate(self, config: dict[str, Any]) -> None:
        """Check cross-field preconditions before any request is made."""

    def missing_inputs(self, config: dict[str, Any]) -> list[str]:
        return [
            f.name for f in self.inputs
            if f.required and config.get(f.name) in (None, "", [])
        ]

    async def run(self, config: dict[str, Any], client: JiraClient) -> dict[str, Any]:
        """Validate and execute, prefixing any failure with the block's error prefix."""
        self.validate(config)
        try:
            return await self.execute(config, client)
        except JiraBridgeError as e:
            raise e.with_prefix(self.error_prefix) from e
        except Exception as e:
            raise OperationError(f"{self.error_prefix}: {e}") from e

    def to_schema(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "title": self.title,
            "category": self.category,
            "description": self.description,
            "input_schema": {
                "type": "object",
                "properties": {f.name: f.to_schema() for f in self.inputs},
                "required": [f.name for f in self.inputs if f.required],
            },
            "output_schema": self.output,
        }


def require_inputs(block: BaseBlock, config: dict[str, Any]) -> None:
    """Host-side check that every required input is present."""
    missing = block.missing_inputs(config)
    if missing:
        raise ValidationError(
            f"Missing required input(s) for {block.name}: {', '.join(missing)}"
        )
