"""Base tool class for the computer use agent.

Every tool declares a pydantic ``args_schema``. The registry parses the
model's JSON arguments into that schema before calling ``execute``, so
handlers receive typed arguments. Tools report recoverable problems as
``{"success": false, "error": ...}`` JSON rather than raising, so the model
can read the error and try something else.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Type

from pydantic import BaseModel

from .context import ToolContext

logger = logging.getLogger(__name__)


def success_response(**data: Any) -> str:
    """Standard success payload."""
    data["success"] = True
    return json.dumps(data)


def error_response(message: str, suggestion: str = "", **data: Any) -> str:
    """Standard error payload, returned to the model as an observation."""
    payload: Dict[str, Any] = {"success": False, "error": message}
    if suggestion:
        payload["suggestion"] = suggestion
    payload.update(data)
    return json.dumps(payload)


def _inline_refs(node: Any, defs: Dict[str, Any]) -> Any:
    if isinstance(node, dict):
        ref = node.get("$ref")
        if isinstance(ref, str) and ref.startswith("#/$defs/"):
            return _inline_refs(defs[ref.split("/")[-1]], defs)
        # A "title" key holding a dict is a property named title, not metadata.
        return {
            k: _inline_refs(v, defs)
            for k, v in node.items()
            if k != "$defs" and not (k == "title" and isinstance(v, str))
        }
    if isinstance(node, list):
        return [_inline_refs(v, defs) for v in node]
    return node


def clean_schema(model: Type[BaseModel]) -> Dict[str, Any]:
    """
    JSON schema for a pydantic model with ``$defs`` inlined and titles removed.

    Function-calling providers (Gemini in particular) reject ``$ref``.
    """
    schema = model.model_json_schema()
    defs = schema.get("$defs", {})
    cleaned = _inline_refs(schema, defs)
    cleaned.setdefault("properties", {})
    cleaned.setdefault("required", [])
    return cleaned


class EmptyArgs(BaseModel):
    """Arguments for tools that take none."""


class CUATool(ABC):
    """
    Abstract base class for agent tools.

    Subclasses set ``args_schema`` and implement ``execute``.
    """

    args_schema: Type[BaseModel] = EmptyArgs

    def __init__(self, name: str, description: str):
        """
        Initialize the tool.

        Args:
            name: Unique name the model calls the tool by
            description: What the tool does, shown to the model
        """
        self._name = name
        self._description = description

    @property
    def name(self) -> str:
        """Get the tool name."""
        return self._name

    @property
    def description(self) -> str:
        """Get the tool description."""
        return self._description

    def get_parameters_schema(self) -> Dict[str, Any]:
        """Get the parameters schema for this tool."""
        return clean_schema(self.args_schema)

    def to_function_schema(self) -> Dict[str, Any]:
        """Tool definition in the OpenAI function-calling format used by litellm."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.get_parameters_schema(),
            },
        }

    def parse_args(self, raw: Optional[Any]) -> BaseModel:
        """
        Parse raw arguments (JSON text or dict) into the tool's schema.

        Raises:
            ValueError: If the text is not a JSON object
            pydantic.ValidationError: If the arguments do not fit the schema
        """
        if raw is None or raw == "":
            raw = {}
        if isinstance(raw, str):
            raw = json.loads(raw)
        if not isinstance(raw, dict):
            raise ValueError("arguments must be a JSON object")
        return self.args_schema.model_validate(raw)

    @abstractmethod
    async def execute(self, ctx: ToolContext, args: Any) -> str:
        """
        Execute the tool.

        Args:
            ctx: Per-agent state and backends
            args: Parsed instance of ``args_schema``

        Returns:
            JSON result string with at least a ``success`` field
        """
