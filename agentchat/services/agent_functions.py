"""Functions offered to the model on every completion.

Each definition includes name, description, parameters (JSON schema) and
an async handler. Handlers return a JSON-serialisable result dict.
"""

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

from agentchat.services.store_models import FunctionCall, FunctionDefinition

logger = logging.getLogger(__name__)

FunctionHandler = Callable[[dict[str, Any]], Awaitable[dict[str, Any]]]


async def get_current_time_tool(args: dict[str, Any]) -> dict[str, Any]:
    """Return the current wall-clock time as an ISO-8601 UTC string."""
    now = datetime.now(timezone.utc)
    return {"time": now.isoformat(timespec="milliseconds").replace("+00:00", "Z")}


def get_all_function_definitions() -> list[dict[str, Any]]:
    """Return all function definitions offered to the model.

    Returns:
        List of definition dicts with name, description, parameters, handler.
    """
    return [
        {
            "name": "getCurrentTime",
            "description": "Gets the current date and time",
            "parameters": {},
            "handler": get_current_time_tool,
        },
    ]


def completion_functions() -> list[FunctionDefinition]:
    """Definitions in the form sent with a completion request (no handlers)."""
    return [
        FunctionDefinition(
            name=d["name"],
            description=d["description"],
            parameters=d["parameters"],
        )
        for d in get_all_function_definitions()
    ]


async def invoke_function(call: FunctionCall) -> dict[str, Any]:
    """Run the local handler for a model-requested function call.

    Args:
        call: Function name and arguments requested by the model.

    Returns:
        Handler result, or an {"error": ...} dict for unknown functions.
    """
    handlers: dict[str, FunctionHandler] = {
        d["name"]: d["handler"] for d in get_all_function_definitions()
    }
    handler = handlers.get(call.name)
    if handler is None:
        logger.warning("Model requested unknown function %s", call.name)
        return {"error": f"Unknown function: {call.name}"}
    result = await handler(call.arguments)
    logger.debug("Function %s returned %s", call.name, result)
    return result
