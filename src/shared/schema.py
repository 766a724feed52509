"""JSON Schema helpers for tool input definitions and validation."""

from typing import Any, Optional

from jsonschema import Draft7Validator

# Every tool accepts the calling agent and an optional end-user reference.
AGENT_CONTEXT_PROPERTIES: dict[str, dict[str, Any]] = {
    "agent_id": {
        "type": "string",
        "description": "AI Agent ID for permission checking",
    },
    "phone_number": {
        "type": "string",
        "description": "User phone number for logging",
    },
}


def validate_schema(data: Any, schema: dict[str, Any]) -> tuple[bool, list[str]]:
    """
    Validate data against a JSON Schema.

    Args:
        data: The data to validate
        schema: JSON Schema to validate against

    Returns:
        Tuple of (is_valid, list of error messages)
    """
    if not schema:
        return True, []

    validator = Draft7Validator(schema)
    errors = sorted(validator.iter_errors(data), key=lambda e: list(e.path))

    if not errors:
        return True, []

    error_messages = [
        f"{'.'.join(str(p) for p in e.path)}: {e.message}" if e.path else e.message
        for e in errors
    ]

    return False, error_messages


def tool_input_schema(
    properties: dict[str, dict[str, Any]],
    required: Optional[list[str]] = None
) -> dict[str, Any]:
    """
    Build a tool ``inputSchema`` with the agent context properties first.

    Args:
        properties: Business parameters of the tool
        required: Names of required business parameters

    Returns:
        JSON Schema dictionary
    """
    schema: dict[str, Any] = {
        "type": "object",
        "properties": {**AGENT_CONTEXT_PROPERTIES, **properties},
    }
    if required:
        schema["required"] = list(required)
    return schema
