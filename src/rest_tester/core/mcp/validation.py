"""Validation utilities for MCP tool parameters.

Agents often send nested objects as JSON strings, or make several mistakes in
one call. These helpers accept the string form and report every problem at
once so the agent can fix its call in a single retry.
"""

import json
from typing import Any

from pydantic import ValidationError


def format_validation_errors(
    error: ValidationError, context: str = "parameters"
) -> str:
    """Format all Pydantic validation errors into a clear message for LLMs.

    Args:
        error: The Pydantic ValidationError containing all validation failures
        context: Description of what was being validated (e.g., "test request")

    Returns:
        Formatted error message showing all validation errors at once

    Example:
        >>> try:
        >>>     RequestParams(method="FETCH", endpoint=42)
        >>> except ValidationError as e:
        >>>     msg = format_validation_errors(e, "test request")
        >>>     # Returns: "Invalid test request - 2 errors:\n  • method: ..."
    """
    errors = error.errors()

    if len(errors) == 1:
        err = errors[0]
        field = ".".join(str(x) for x in err["loc"]) or "arguments"
        input_val = err.get("input", "N/A")
        return (
            f"Invalid {context}: {field} - {err['msg']} (received: {repr(input_val)})"
        )

    msg_lines = [f"Invalid {context} - {len(errors)} errors:"]
    for err in errors:
        field = ".".join(str(x) for x in err["loc"]) or "arguments"
        input_val = err.get("input", "N/A")
        input_type = type(input_val).__name__ if input_val != "N/A" else "unknown"

        msg_lines.append(
            f"  • {field}: {err['msg']} (received {input_type}: {repr(input_val)})"
        )

    msg_lines.append("\nPlease fix all errors and retry with correct types.")
    return "\n".join(msg_lines)


def parse_json_object(v: Any) -> Any:
    """Decode a JSON string into a dict; leave any other value untouched.

    Raises:
        ValueError: If the string is not valid JSON or not a JSON object
    """
    if not isinstance(v, str):
        return v
    try:
        parsed = json.loads(v)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON: {e}") from e
    if not isinstance(parsed, dict):
        raise ValueError("Must be a JSON object")
    return parsed
