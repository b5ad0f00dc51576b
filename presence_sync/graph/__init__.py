"""
Microsoft Graph calls used by a presence sync pass.

Components:
    client.py: Authenticated GraphClient with nextLink pagination
    directory.py: Tenant user enumeration
    calendar.py: Marker event queries per user
    presence.py: setPresence dispatch
"""

from presence_sync.graph.client import GraphClient

__all__ = ["GraphClient"]
