"""
Storage module for the quote voting system.
Provides the quote store interface with JSON and SQLite backends.
"""

from utils import StoreConfig, ConfigurationError, ErrorCodes, resolve_path, store_logger

from .models import Quote
from .quote_store import QuoteStore, JsonQuoteStore, read_quote_file
from .sqlite_store import SqliteQuoteStore


def create_quote_store(config: StoreConfig, initialize: bool = True) -> QuoteStore:
    """根据配置创建引用存储"""
    template_file = resolve_path(config.template_file) if config.template_file else None

    if config.backend == "json":
        store = JsonQuoteStore(resolve_path(config.quotes_file), template_file)
    elif config.backend == "sqlite":
        store = SqliteQuoteStore(resolve_path(config.db_path), template_file)
    else:
        raise ConfigurationError(
            f"Unknown store backend: {config.backend!r}",
            ErrorCodes.CONFIG_INVALID_VALUE
        )

    store_logger.info(f"[Store] Using {config.backend} backend")
    if initialize:
        store.initialize()
    return store


__all__ = [
    'Quote',
    'QuoteStore',
    'JsonQuoteStore',
    'SqliteQuoteStore',
    'read_quote_file',
    'create_quote_store',
]
