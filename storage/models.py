"""
Storage models for the quote voting system.
Plain quote records plus the SQLAlchemy table used by the SQLite backend.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict

from sqlalchemy import Column, Integer, Text
from sqlalchemy.orm import declarative_base

from utils.exceptions import StorageError, ErrorCodes

Base = declarative_base()


@dataclass(frozen=True)
class Quote:
    """引用记录，id 与 text 不可变，votes 只能由存储层更新"""
    id: int
    text: str
    votes: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Quote":
        """从持久化记录构建，校验字段类型"""
        if not isinstance(data, dict):
            raise StorageError(
                f"Quote record must be an object, got {type(data).__name__}",
                ErrorCodes.STORE_INVALID_DATA
            )

        quote_id = data.get('id')
        text = data.get('text')
        votes = data.get('votes', 0)

        if not isinstance(quote_id, int) or isinstance(quote_id, bool):
            raise StorageError(
                f"Quote id must be an integer: {quote_id!r}",
                ErrorCodes.STORE_INVALID_DATA
            )
        if not isinstance(text, str):
            raise StorageError(
                f"Quote {quote_id} text must be a string",
                ErrorCodes.STORE_INVALID_DATA
            )
        if not isinstance(votes, int) or isinstance(votes, bool) or votes < 0:
            raise StorageError(
                f"Quote {quote_id} votes must be a non-negative integer: {votes!r}",
                ErrorCodes.STORE_INVALID_DATA
            )

        return cls(id=quote_id, text=text, votes=votes)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class QuoteDB(Base):
    """SQLite backend table"""
    __tablename__ = 'quotes'

    id = Column(Integer, primary_key=True, autoincrement=False)
    text = Column(Text, nullable=False)
    votes = Column(Integer, nullable=False, default=0)
    # 保持种子数据的插入顺序，用于同票数时的稳定排序
    position = Column(Integer, nullable=False, index=True)

    def to_quote(self) -> Quote:
        return Quote(id=self.id, text=self.text, votes=self.votes)
