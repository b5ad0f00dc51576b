"""
Tool: Presence Dispatcher
Purpose: Force a user's Teams presence to DoNotDisturb / Presenting

Usage:
    from presence_sync.graph.presence import apply_presence

    result = apply_presence(client, user_id, 30, session_id=app_id)

One POST per call, no retry. A rejected request raises DispatchError; the
pass records it and continues with the next event.
"""

import logging
from typing import Any

from presence_sync.errors import DispatchError, TransportError
from presence_sync.graph.client import GraphClient, graph_error_message
from presence_sync.models import PresenceCommand

logger = logging.getLogger(__name__)


def set_presence_path(user_id: str) -> str:
    return f"/users/{user_id}/presence/setPresence"


def apply_presence(
    client: GraphClient,
    user_id: str,
    expiration_minutes: int,
    session_id: str,
    dry_run: bool = False,
) -> dict[str, Any]:
    """
    Issue a single setPresence call for the user.

    Args:
        client: Authenticated Graph client
        user_id: Graph user id
        expiration_minutes: Override length, already bounded by the decision engine
        session_id: Application (client) id owning the presence session
        dry_run: Build and log the command without sending it

    Returns:
        dict with success flag and the command that was (or would be) sent

    Raises:
        DispatchError: If the request fails or Graph rejects it
    """
    command = PresenceCommand(user_id=user_id, expiration_minutes=expiration_minutes)
    body = command.to_request_body(session_id)

    if dry_run:
        logger.info(
            f"[dry-run] Would set {user_id} to {command.availability}/{command.activity} "
            f"for {command.expiration_duration} ({command.correlation_id})"
        )
        return {"success": True, "dry_run": True, "command": command.to_dict()}

    try:
        resp = client.request("POST", set_presence_path(user_id), json_body=body)
    except TransportError as e:
        raise DispatchError(str(e), user_id=user_id) from e

    if not 200 <= resp.status_code < 300:
        raise DispatchError(
            f"setPresence rejected for {user_id}: {graph_error_message(resp)}",
            user_id=user_id,
            status_code=resp.status_code,
        )

    logger.info(
        f"Set {user_id} to {command.availability}/{command.activity} "
        f"for {command.expiration_duration} ({command.correlation_id})"
    )
    return {"success": True, "dry_run": False, "command": command.to_dict()}
