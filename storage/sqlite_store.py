"""
SQLite quote store.
Drop-in alternative to the JSON backend, using a SQLAlchemy engine.
"""

import threading
from pathlib import Path
from typing import List, Optional, Union

from sqlalchemy import create_engine, select, update, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from utils import store_logger, log_execution
from utils.exceptions import (
    StorageError,
    StorageIOError,
    QuoteNotFoundError,
    ErrorCodes
)
from .models import Base, Quote, QuoteDB
from .quote_store import QuoteStore, read_quote_file

# SQLite INTEGER 为 64 位有符号整数
SQLITE_INT_MIN = -2 ** 63
SQLITE_INT_MAX = 2 ** 63 - 1


def _not_found(quote_id: int) -> QuoteNotFoundError:
    return QuoteNotFoundError(
        "Quote not found", ErrorCodes.QUOTE_NOT_FOUND, {"quote_id": quote_id}
    )


class SqliteQuoteStore(QuoteStore):
    """SQLite 存储"""

    def __init__(self, db_path: Union[str, Path],
                 template_file: Optional[Union[str, Path]] = None):
        self.db_path = Path(db_path)
        self.template_file = Path(template_file) if template_file else None
        self.engine = None
        self.SessionLocal = None
        self._lock = threading.Lock()

    @log_execution("Store", "initialize")
    def initialize(self) -> int:
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self.engine = create_engine(
                f"sqlite:///{self.db_path}",
                poolclass=StaticPool,
                connect_args={"check_same_thread": False}
            )
            self.SessionLocal = sessionmaker(autoflush=False, bind=self.engine)
            Base.metadata.create_all(bind=self.engine)
        except (OSError, SQLAlchemyError) as e:
            raise StorageError(
                f"Failed to open quote database {self.db_path}: {e}",
                ErrorCodes.STORE_LOAD_FAILED
            ) from e

        with self._lock, self.SessionLocal() as session:
            existing = session.scalar(select(func.count()).select_from(QuoteDB))
            if existing == 0:
                self._seed_from_template(session)
            total = session.scalar(select(func.count()).select_from(QuoteDB))

        store_logger.info(f"[Store] Loaded {total} quotes from {self.db_path}")
        return total

    def _seed_from_template(self, session) -> None:
        """空库时从模板导入引用"""
        if self.template_file is None or not self.template_file.exists():
            store_logger.warning(f"[Store] {self.db_path} is empty and no template is available")
            return

        quotes = read_quote_file(self.template_file)
        try:
            session.add_all([
                QuoteDB(id=quote.id, text=quote.text, votes=quote.votes, position=index)
                for index, quote in enumerate(quotes)
            ])
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise StorageIOError(
                f"Failed to seed {self.db_path} from template: {e}",
                ErrorCodes.STORE_WRITE_FAILED
            ) from e

        store_logger.info(f"[Store] Seeded {len(quotes)} quotes from {self.template_file.name}")

    def _session(self):
        if self.SessionLocal is None:
            raise StorageError("Quote store is not initialized", ErrorCodes.STORE_LOAD_FAILED)
        return self.SessionLocal()

    def list_all(self) -> List[Quote]:
        with self._lock, self._session() as session:
            rows = session.scalars(select(QuoteDB).order_by(QuoteDB.position)).all()
            return [row.to_quote() for row in rows]

    def find_by_id(self, quote_id: int) -> Quote:
        # 超出 INTEGER 范围的ID不可能存在，sqlite3 会抛出 OverflowError
        if not SQLITE_INT_MIN <= quote_id <= SQLITE_INT_MAX:
            raise _not_found(quote_id)
        with self._lock, self._session() as session:
            row = session.get(QuoteDB, quote_id)
            if row is None:
                raise _not_found(quote_id)
            return row.to_quote()

    def increment_votes(self, quote_id: int) -> int:
        if not SQLITE_INT_MIN <= quote_id <= SQLITE_INT_MAX:
            raise _not_found(quote_id)
        with self._lock, self._session() as session:
            try:
                result = session.execute(
                    update(QuoteDB)
                    .where(QuoteDB.id == quote_id)
                    .values(votes=QuoteDB.votes + 1)
                )
                if result.rowcount == 0:
                    session.rollback()
                    raise _not_found(quote_id)
                votes = session.scalar(select(QuoteDB.votes).where(QuoteDB.id == quote_id))
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                raise StorageIOError(
                    f"Failed to record vote for quote {quote_id}: {e}",
                    ErrorCodes.STORE_WRITE_FAILED
                ) from e

        store_logger.debug(f"[Store] Quote {quote_id} now has {votes} votes")
        return votes

    def close(self) -> None:
        if self.engine is not None:
            self.engine.dispose()
            store_logger.info("[Store] Database connection closed")
