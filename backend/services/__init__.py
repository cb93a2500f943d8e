"""
Chat Services - Shared infrastructure services.

- database: PostgreSQL connection manager with health checks
- chat_store: Persistence contract and its PostgreSQL implementation
- connection_registry: identity -> active connection handle
- completion_client: Outbound completion provider calls
- providers: Supported provider/model catalogue
- auth: Token verification
"""

from .database import DatabaseManager, get_database

__all__ = ["DatabaseManager", "get_database"]
