"""
Session handling for the todo client.

Modules:
- manager: login / registration / logout against the auth endpoints
- context: wiring of store, API client, session and todo synchronizer
"""

__all__ = [
    "manager",
    "context",
]
