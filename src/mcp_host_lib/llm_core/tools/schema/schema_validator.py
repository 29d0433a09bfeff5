"""Validation and normalisation of JSON schemas attached to tool descriptors."""

from typing import Any, Dict, Set

import jsonref  # type: ignore

from ...exceptions import ProtocolError
from ...logger import get_logger

logger = get_logger(__name__)


class SchemaValidator:
    """
    Helper class for validating and sanitizing JSON schemas of remote tools
    before they are shown to a language model.
    """

    @staticmethod
    def assert_no_recursive_refs(schema: Dict[str, Any]) -> None:
        """
        Checks if the schema contains recursive references by traversing the graph.

        Args:
            schema: The JSON schema to check.

        Raises:
            ProtocolError: If a recursive reference is found.
        """
        defs = schema.get("$defs", {}) or schema.get("definitions", {})

        def check(node: Any, path: Set[str]) -> None:
            if isinstance(node, dict):
                if "$ref" in node:
                    ref = node["$ref"]
                    if ref in path:
                        msg = f"Recursive structure detected: {ref}."
                        logger.error(msg)
                        raise ProtocolError(msg)

                    # Only local refs (e.g. #/$defs/MyModel) are followed
                    if isinstance(ref, str) and ref.startswith("#"):
                        parts = ref.split("/")
                        if len(parts) >= 3:
                            def_name = parts[-1]
                            if def_name in defs:
                                check(defs[def_name], path | {ref})
                    return

                for v in node.values():
                    check(v, path)
            elif isinstance(node, list):
                for item in node:
                    check(item, path)

        check(schema, set())

    @staticmethod
    def sanitize_schema(schema: Any, keep_definitions: bool = False) -> Any:
        """
        Cleans up the schema for better compatibility with LLM providers.
        Removes $schema, $id, title and, unless kept, $defs.
        Simplifies Optional fields (anyOf with null).

        Args:
            schema: The JSON schema to sanitize.
            keep_definitions: Keep ``$defs``/``definitions`` for schemas whose ``$ref`` pointers stay in place.

        Returns:
            The sanitized schema.
        """
        if not isinstance(schema, dict):
            return schema

        new_schema = schema.copy()

        stripped = ["$schema", "$id", "title"]
        if not keep_definitions:
            stripped += ["$defs", "definitions"]
        for key in stripped:
            new_schema.pop(key, None)

        # Optional[X] shows up as anyOf [X, null]
        if "anyOf" in new_schema:
            any_of = new_schema["anyOf"]
            non_null = [x for x in any_of if not (isinstance(x, dict) and x.get("type") == "null")]

            if len(non_null) == 1 and isinstance(non_null[0], dict):
                merged = non_null[0].copy()
                if "description" in new_schema:
                    merged["description"] = new_schema["description"]
                return SchemaValidator.sanitize_schema(merged, keep_definitions)

        for key, value in new_schema.items():
            if key in ("properties", "$defs", "definitions") and isinstance(value, dict):
                # Property and definition names are data, not schema keywords
                new_schema[key] = {
                    name: SchemaValidator.sanitize_schema(prop, keep_definitions) for name, prop in value.items()
                }
            elif isinstance(value, dict):
                new_schema[key] = SchemaValidator.sanitize_schema(value, keep_definitions)
            elif isinstance(value, list):
                new_schema[key] = [
                    SchemaValidator.sanitize_schema(item, keep_definitions) if isinstance(item, dict) else item
                    for item in value
                ]

        return new_schema

    @classmethod
    def normalize(cls, schema: Any) -> Dict[str, Any]:
        """Resolve local ``$ref`` pointers and sanitize a tool input schema.

        Recursive schemas cannot be inlined; they are sanitized with their
        definitions kept. References that cannot be resolved locally leave the
        schema unresolved as well.

        Args:
            schema: The raw ``inputSchema`` reported by a server.

        Returns:
            A sanitized schema dictionary (empty object schema if none was given).
        """
        if not isinstance(schema, dict) or not schema:
            return {"type": "object", "properties": {}}

        try:
            cls.assert_no_recursive_refs(schema)
        except ProtocolError:
            logger.warning("Keeping recursive tool schema unresolved.")
            return cls.sanitize_schema(schema, keep_definitions=True)

        try:
            # proxies=False ensures we get a plain dict back, not JsonRef objects
            resolved = jsonref.replace_refs(schema, proxies=False, loader=_refuse_remote_refs)
        except jsonref.JsonRefError as e:
            logger.warning(f"Keeping tool schema unresolved: {e}")
            return cls.sanitize_schema(schema, keep_definitions=True)
        return cls.sanitize_schema(resolved)


def _refuse_remote_refs(uri: str) -> Any:
    raise ProtocolError(f"Remote schema reference not allowed: {uri}")
