"""Persistence module plugin registration."""

import logging
from core.registry.plugin_registry import PluginRegistry
from modules.persistence.providers.sqlite_gateway import SQLiteGateway

logger = logging.getLogger(__name__)


def register():
    """Register all persistence gateways with the plugin registry."""
    registry = PluginRegistry()

    registry.register_persistence_gateway("sqlite", SQLiteGateway)

    # Hosted backend, only when the client library is installed
    try:
        from modules.persistence.providers.supabase_gateway import SupabaseGateway
        registry.register_persistence_gateway("supabase", SupabaseGateway)
        logger.debug("Supabase gateway registered")
    except ImportError as e:
        logger.debug(f"Supabase gateway not available: {e}")

    logger.debug("Persistence gateways registered")


# Auto-register on import
register()
