"""Select and construct the persistence backend from configuration."""

import logging

from app.core.config import REST_DB_TYPES, SQL_DB_TYPES, Settings
from app.persistence.base import PersistenceAdapter
from app.persistence.rest import RestPersistence
from app.persistence.sql import SqlPersistence

logger = logging.getLogger(__name__)


def create_persistence(config: Settings) -> PersistenceAdapter:
    """Build the adapter named by ``config.db_type``.

    Raises:
        ValueError: unknown backend type or missing backend credentials.
    """
    db_type = (config.db_type or "").lower()

    if db_type in SQL_DB_TYPES:
        if not config.database_url:
            raise ValueError(f"DATABASE_URL is required for db_type '{db_type}'")
        adapter = SqlPersistence(
            config.database_url,
            pool_size=config.db_pool_size,
            echo=config.debug and not config.is_testing,
            create_schema=not config.is_production,
            default_quota=config.default_storage_quota,
        )
    elif db_type in REST_DB_TYPES:
        adapter = RestPersistence(
            config.supabase_url,
            config.supabase_service_role_key,
            timeout=config.supabase_timeout,
            default_quota=config.default_storage_quota,
        )
    else:
        raise ValueError(f"Unsupported database type: {config.db_type}")

    logger.info("Using %s persistence backend (db_type=%s)", adapter.type, db_type)
    return adapter
