"""
Common utilities for the todo client.

Modules:
- api: async HTTP client for the backend REST API
- config: settings from environment variables / SSM
- results: typed operation results and error kinds
"""

__all__ = [
    "api",
    "config",
    "results",
]
