from typing import Any, Dict, Set

from ...exceptions import ToolValidationError
from ...logger import get_logger

logger = get_logger(__name__)

_METADATA_KEYS = ("$defs", "definitions", "$schema", "$id", "title")


class SchemaValidator:
    """
    Checks and cleans the JSON schemas generated for tool arguments.
    """

    @staticmethod
    def assert_no_recursive_refs(schema: Dict[str, Any]) -> None:
        """
        Walks local ``$ref`` pointers and fails on the first cycle.

        Args:
            schema: The JSON schema generated by pydantic.

        Raises:
            ToolValidationError: If a model refers back to itself.
        """
        defs = schema.get("$defs") or schema.get("definitions") or {}

        def visit(node: Any, seen: Set[str]) -> None:
            if isinstance(node, list):
                for item in node:
                    visit(item, seen)
                return
            if not isinstance(node, dict):
                return

            ref = node.get("$ref")
            if ref is None:
                for value in node.values():
                    visit(value, seen)
                return

            if ref in seen:
                msg = f"Recursive structure detected: {ref}. Tool arguments must be finite trees."
                logger.error(msg)
                raise ToolValidationError(msg)

            target = ref.rsplit("/", 1)[-1] if ref.startswith("#") else None
            if target in defs:
                visit(defs[target], seen | {ref})

        visit(schema, set())

    @staticmethod
    def sanitize_schema(schema: Any) -> Any:
        """
        Strips pydantic metadata from a resolved schema so chat-completion endpoints accept it.

        Removes ``$defs``, ``$schema``, ``$id`` and ``title``, collapses ``Optional[X]``
        (``anyOf`` with a null branch) into ``X``, and closes objects with
        ``additionalProperties: false``.

        Args:
            schema: The schema with all references already resolved.

        Returns:
            The cleaned schema.
        """
        if not isinstance(schema, dict):
            return schema

        cleaned = {k: v for k, v in schema.items() if k not in _METADATA_KEYS}

        branches = cleaned.get("anyOf")
        if isinstance(branches, list):
            concrete = [b for b in branches if not (isinstance(b, dict) and b.get("type") == "null")]
            if len(concrete) == 1 and isinstance(concrete[0], dict):
                merged = {k: v for k, v in cleaned.items() if k != "anyOf"}
                merged.update({k: v for k, v in concrete[0].items() if k not in merged})
                return SchemaValidator.sanitize_schema(merged)

        if cleaned.get("type") == "object":
            cleaned.setdefault("additionalProperties", False)

        for key, value in cleaned.items():
            if key == "properties" and isinstance(value, dict):
                # keys here are argument names, not schema keywords
                cleaned[key] = {name: SchemaValidator.sanitize_schema(sub) for name, sub in value.items()}
            elif isinstance(value, dict):
                cleaned[key] = SchemaValidator.sanitize_schema(value)
            elif isinstance(value, list):
                cleaned[key] = [SchemaValidator.sanitize_schema(item) for item in value]

        return cleaned
