"""Directory enumeration: every user in the tenant, all pages flattened."""

import logging

from presence_sync.graph.client import GraphClient
from presence_sync.models import Principal

logger = logging.getLogger(__name__)


USERS_PATH = "/users"
USER_SELECT = "id,displayName,userPrincipalName"


def list_principals(client: GraphClient) -> list[Principal]:
    """
    List all users in the organization.

    No filtering or deduplication; Graph is authoritative for uniqueness.

    Raises:
        TransportError: If any page fails
    """
    records = client.fetch_all(USERS_PATH, params={"$select": USER_SELECT})
    principals = [Principal.from_graph(r) for r in records]
    logger.info(f"Enumerated {len(principals)} principals")
    return principals
