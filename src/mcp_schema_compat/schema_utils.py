"""Utility functions for MCP tool schema manipulation."""

import copy
import logging
from collections.abc import Mapping
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 4

# Local reference prefixes stripped from "$ref" values
REF_PREFIXES = ("#/$defs/", "#/definitions/")

# Keys that must never appear in a simplified schema
FORBIDDEN_KEYS = ("$ref", "anyOf", "oneOf", "allOf", "$defs", "definitions")

UNION_KEYS = ("anyOf", "oneOf", "allOf")


def opaque_object_schema() -> dict:
    """Return the permissive placeholder used when a construct can't be represented."""
    return {"type": "object", "additionalProperties": True}


def normalize_type(schema_type: str | list[str] | None) -> str | None:
    """
    Collapse a JSON-Schema type union to a single type.

    Some MCP clients cannot deserialize `"type": ["number", "string", "null"]`,
    so the first non-null type is kept. A union made only of "null" stays "null".

    Examples:
        >>> normalize_type(["number", "string", "null"])
        'number'
        >>> normalize_type(["null"])
        'null'
        >>> normalize_type("string")
        'string'
    """
    if not isinstance(schema_type, (list, tuple)):
        return schema_type

    non_null_types = [t for t in schema_type if t != "null"]
    if non_null_types:
        return non_null_types[0]
    return "null"


def collect_definitions(schema: Any) -> dict[str, Any]:
    """Collect the local reference table from the root `definitions` and `$defs`."""
    definitions: dict[str, Any] = {}
    if not isinstance(schema, Mapping):
        return definitions

    for key in ("definitions", "$defs"):
        table = schema.get(key)
        if isinstance(table, Mapping):
            definitions.update(table)
    return definitions


def simplify_schema(
    schema: Any,
    max_depth: int = DEFAULT_MAX_DEPTH,
    depth: int = 0,
    refs: Mapping[str, Any] | None = None,
) -> dict:
    """
    Simplify a JSON schema for clients that only understand a restricted dialect.

    Transformations:
    1. Convert type arrays to a single type (first non-null)
    2. Inline local $ref references
    3. Flatten anyOf/oneOf/allOf into a single object with optional properties
    4. Drop $defs/definitions
    5. Limit nesting depth, replacing anything deeper with a permissive object

    The input is never mutated and a fresh structure is returned on every call.
    Nothing in here raises: constructs that can't be represented degrade to
    `{"type": "object", "additionalProperties": True}`.

    Example:
        Before simplification:
        {
            "type": "object",
            "properties": {
                "point": {"$ref": "#/$defs/Point"},
                "label": {"anyOf": [{"type": "string"}, {"type": "null"}]}
            },
            "$defs": {
                "Point": {
                    "type": "object",
                    "properties": {"x": {"type": "number"}, "y": {"type": "number"}}
                }
            }
        }
        After simplification:
        {
            "type": "object",
            "properties": {
                "point": {
                    "type": "object",
                    "properties": {"x": {"type": "number"}, "y": {"type": "number"}}
                },
                "label": {"type": "string"}
            }
        }

    Args:
        schema: The JSON schema to simplify
        max_depth: Deepest nesting level kept before falling back to a permissive object
        depth: Nesting level of `schema` relative to the simplification root
        refs: Reference table; collected from the schema's own $defs/definitions when omitted

    Returns:
        The simplified schema
    """
    if refs is None:
        refs = collect_definitions(schema)
    return _simplify(schema, max_depth, depth, refs, frozenset())


def _simplify(
    schema: Any,
    max_depth: int,
    depth: int,
    refs: Mapping[str, Any],
    resolving: frozenset[str],
) -> dict:
    # `resolving` holds the reference names entered without descending into
    # properties/items, so a $ref cycle at a single depth ends here.
    if depth > max_depth:
        return opaque_object_schema()

    if not isinstance(schema, Mapping):
        schema = {}

    schema_type = normalize_type(schema.get("type"))

    ref = schema.get("$ref")
    if ref:
        return _resolve_ref(ref, max_depth, depth, refs, resolving)

    for key in UNION_KEYS:
        if schema.get(key) is not None:
            merged = _merge_options(schema[key], max_depth, depth, refs, resolving)
            if schema.get("description") and "description" not in merged:
                merged["description"] = schema["description"]
            return merged

    properties = schema.get("properties")
    if schema_type == "object" and isinstance(properties, Mapping):
        simplified = {
            "type": "object",
            "properties": {
                key: _simplify(prop_schema, max_depth, depth + 1, refs, frozenset())
                for key, prop_schema in properties.items()
            },
        }
        required = schema.get("required")
        if isinstance(required, (list, tuple)):
            # Only property names are kept from a malformed list
            simplified["required"] = [name for name in required if isinstance(name, str)]
        if schema.get("description"):
            simplified["description"] = schema["description"]
        _copy_additional_properties(schema, simplified, max_depth, depth, refs)
        return simplified

    items = schema.get("items")
    if schema_type == "array" and isinstance(items, (Mapping, list, tuple)):
        if isinstance(items, (list, tuple)):
            # Tuple validation: keep the shape of the first position
            items = items[0] if items else {}
        simplified = {
            "type": "array",
            "items": _simplify(items, max_depth, depth + 1, refs, frozenset()),
        }
        if schema.get("description"):
            simplified["description"] = schema["description"]
        return simplified

    return _simplify_primitive(schema, schema_type, max_depth, depth, refs)


def _resolve_ref(
    ref: Any,
    max_depth: int,
    depth: int,
    refs: Mapping[str, Any],
    resolving: frozenset[str],
) -> dict:
    if not isinstance(ref, str):
        return opaque_object_schema()

    name = ref
    for prefix in REF_PREFIXES:
        if ref.startswith(prefix):
            name = ref[len(prefix) :]
            break

    if name in resolving:
        logger.debug(f"Reference cycle on '{ref}' at depth {depth}, using permissive object")
        return opaque_object_schema()

    if name not in refs:
        logger.debug(f"Unresolvable reference '{ref}', using permissive object")
        return opaque_object_schema()

    # Reference indirection does not consume a depth level
    return _simplify(refs[name], max_depth, depth, refs, resolving | {name})


def _copy_additional_properties(
    schema: Mapping[str, Any],
    simplified: dict,
    max_depth: int,
    depth: int,
    refs: Mapping[str, Any],
) -> None:
    additional = schema.get("additionalProperties")
    if isinstance(additional, bool):
        simplified["additionalProperties"] = additional
    elif isinstance(additional, Mapping):
        simplified["additionalProperties"] = _simplify(additional, max_depth, depth + 1, refs, frozenset())


def _simplify_primitive(
    schema: Mapping[str, Any],
    schema_type: str | None,
    max_depth: int,
    depth: int,
    refs: Mapping[str, Any],
) -> dict:
    simplified: dict[str, Any] = {}

    if schema_type:
        simplified["type"] = schema_type
    if isinstance(schema.get("enum"), (list, tuple)):
        simplified["enum"] = copy.deepcopy(list(schema["enum"]))
    if "const" in schema:
        simplified["const"] = copy.deepcopy(schema["const"])
    if schema.get("description"):
        simplified["description"] = schema["description"]
    if "default" in schema:
        simplified["default"] = copy.deepcopy(schema["default"])
    if schema_type == "object":
        _copy_additional_properties(schema, simplified, max_depth, depth, refs)

    # No type but an enum: infer the type from the first value
    if "type" not in simplified and simplified.get("enum"):
        inferred = _infer_literal_type(simplified["enum"][0])
        if inferred:
            simplified["type"] = inferred

    return simplified or {"type": "object"}


def _infer_literal_type(value: Any) -> str | None:
    # bool is a subclass of int, check it first
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (int, float)):
        return "number"
    return None


def merge_schema_options(
    options: list[Any],
    max_depth: int = DEFAULT_MAX_DEPTH,
    depth: int = 0,
    refs: Mapping[str, Any] | None = None,
) -> dict:
    """
    Merge the alternatives of an anyOf/oneOf/allOf into a single flat schema.

    Object alternatives are merged into one object holding every property seen;
    a property stays required only if every object alternative requires it.
    When there is no object alternative, the first non-null typed alternative
    is used instead.

    Args:
        options: The alternative schemas
        max_depth: Deepest nesting level kept
        depth: Nesting level of the union node
        refs: Reference table used to resolve $ref inside the alternatives

    Returns:
        The merged schema
    """
    return _merge_options(options, max_depth, depth, refs or {}, frozenset())


def _merge_options(
    options: Any,
    max_depth: int,
    depth: int,
    refs: Mapping[str, Any],
    resolving: frozenset[str],
) -> dict:
    if not isinstance(options, (list, tuple)):
        options = []

    simplified_options = [_simplify(option, max_depth, depth, refs, resolving) for option in options]

    # Classify first so the result doesn't depend on where primitives sit in the list
    object_options = [option for option in simplified_options if _is_object_with_properties(option)]
    if not object_options:
        return _pick_non_object_option(simplified_options)

    merged_properties: dict[str, Any] = {}
    required_lists: list[list[str]] = []

    for option in object_options:
        required_lists.append([name for name in option.get("required") or [] if isinstance(name, str)])

        for key, prop_schema in option["properties"].items():
            if key in merged_properties:
                merged_properties[key] = merge_property_schemas(merged_properties[key], prop_schema)
            else:
                merged_properties[key] = prop_schema

    # Required only when required by every object option
    final_required = [
        name
        for name in dict.fromkeys(required_lists[0])
        if all(name in required for required in required_lists[1:])
    ]

    merged: dict[str, Any] = {"type": "object", "properties": merged_properties}
    if final_required:
        merged["required"] = final_required
    return merged


def _is_object_with_properties(schema: Mapping[str, Any]) -> bool:
    return schema.get("type") == "object" and isinstance(schema.get("properties"), Mapping)


def _pick_non_object_option(options: list[dict]) -> dict:
    typed_options = [option for option in options if option.get("type")]
    for option in typed_options:
        if option["type"] != "null":
            return option
    if typed_options:
        return typed_options[0]
    return opaque_object_schema()


def merge_property_schemas(schema1: dict, schema2: dict) -> dict:
    """Merge two schemas competing for the same property across union options."""
    type1 = schema1.get("type")
    type2 = schema2.get("type")

    if type1 == type2:
        return schema1

    if type1 and not type2:
        return schema1
    if type2 and not type1:
        return schema2

    # Different types: fall back to string, the most permissive serializable type
    merged: dict[str, Any] = {"type": "string"}
    descriptions = [d for d in (schema1.get("description"), schema2.get("description")) if d]
    if descriptions:
        merged["description"] = " OR ".join(descriptions)
    return merged


def simplify_tool_input_schema(input_schema: Any, max_depth: int = DEFAULT_MAX_DEPTH) -> dict:
    """Simplify a tool's inputSchema; a missing schema becomes an empty object schema."""
    if input_schema is None:
        return {"type": "object", "properties": {}}

    return simplify_schema(input_schema, max_depth, 0)


def find_forbidden_constructs(schema: Any, max_depth: int | None = None) -> list[str]:
    """
    Report every construct a restricted client would reject.

    Walks the schema structure (properties, items, additionalProperties, union
    options and definition tables) and returns one entry per finding, formatted
    as `"<path>: <problem>"` where the path is JSON-pointer-like. When
    `max_depth` is given, nodes nested deeper than allowed must be the
    permissive object placeholder.

    Args:
        schema: The schema to audit
        max_depth: Optional nesting limit to check

    Returns:
        A list of findings; empty when the schema is clean
    """
    findings: list[str] = []
    _audit(schema, "", 0, max_depth, findings)
    return findings


def _audit(schema: Any, path: str, depth: int, max_depth: int | None, findings: list[str]) -> None:
    if not isinstance(schema, Mapping):
        return

    location = path or "/"

    if isinstance(schema.get("type"), (list, tuple)):
        findings.append(f"{location}: type union {list(schema['type'])}")
    for key in FORBIDDEN_KEYS:
        if key in schema:
            findings.append(f"{location}: {key}")
    if max_depth is not None and depth > max_depth and dict(schema) != opaque_object_schema():
        findings.append(f"{location}: nested deeper than {max_depth}")

    properties = schema.get("properties")
    if isinstance(properties, Mapping):
        for key, prop_schema in properties.items():
            _audit(prop_schema, f"{path}/properties/{key}", depth + 1, max_depth, findings)

    items = schema.get("items")
    if isinstance(items, (list, tuple)):
        for index, item in enumerate(items):
            _audit(item, f"{path}/items/{index}", depth + 1, max_depth, findings)
    else:
        _audit(items, f"{path}/items", depth + 1, max_depth, findings)

    _audit(schema.get("additionalProperties"), f"{path}/additionalProperties", depth + 1, max_depth, findings)

    for key in UNION_KEYS:
        options = schema.get(key)
        if isinstance(options, (list, tuple)):
            for index, option in enumerate(options):
                _audit(option, f"{path}/{key}/{index}", depth, max_depth, findings)

    for key in ("$defs", "definitions"):
        table = schema.get(key)
        if isinstance(table, Mapping):
            for name, definition in table.items():
                _audit(definition, f"{path}/{key}/{name}", depth, max_depth, findings)
