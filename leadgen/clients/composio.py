"""Shared Composio tool execution for Gmail and Google Calendar."""

import asyncio
from typing import Any, Optional

import structlog
from composio import Composio

from leadgen.core.errors import ProviderError

log = structlog.get_logger()

# Cache for user_id lookups
_user_id_cache: dict[str, str] = {}


def _get_client() -> Composio:
    """Get Composio client (uses COMPOSIO_API_KEY env var)."""
    return Composio()


def _get_user_id_for_account(client: Composio, connected_account_id: str) -> Optional[str]:
    """Look up user_id for a connected account."""
    if connected_account_id in _user_id_cache:
        return _user_id_cache[connected_account_id]

    try:
        accounts = client.connected_accounts.list()
        for item in accounts.items:
            if item.id == connected_account_id:
                _user_id_cache[connected_account_id] = item.user_id
                return item.user_id
    except Exception as e:
        log.warning("failed_to_get_user_id", error=str(e))

    return None


def _unpack(result: Any) -> tuple[bool, Any, Optional[str]]:
    # Handle both object and dict responses
    if isinstance(result, dict):
        return result.get("successful", False), result.get("data", {}), result.get("error")
    return result.successful, result.data, result.error


async def execute_tool(
    slug: str,
    arguments: dict,
    connected_account_id: Optional[str] = None,
) -> Any:
    """Run a Composio tool in a worker thread and return its data payload.

    Raises ProviderError when the tool reports failure.
    """
    client = _get_client()

    execute_kwargs = {
        "slug": slug,
        "arguments": arguments,
        "dangerously_skip_version_check": True,
    }
    if connected_account_id:
        execute_kwargs["connected_account_id"] = connected_account_id
        user_id = _get_user_id_for_account(client, connected_account_id)
        if user_id:
            execute_kwargs["user_id"] = user_id

    loop = asyncio.get_running_loop()
    result = await loop.run_in_executor(
        None,
        lambda: client.tools.execute(**execute_kwargs)
    )

    successful, data, error = _unpack(result)
    if not successful:
        error_msg = error or "Unknown error"
        log.error("composio_tool_failed", slug=slug, error=error_msg)
        raise ProviderError(slug, error_msg)

    return data or {}
