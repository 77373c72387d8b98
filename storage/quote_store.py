"""
Quote store interface and the JSON file backend.
The JSON backend keeps the whole collection in memory and rewrites the file on
every increment.
"""

import json
import os
import shutil
import tempfile
import threading
from abc import ABC, abstractmethod
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Optional, Union

from utils import store_logger, log_execution
from utils.exceptions import (
    StorageError,
    StorageIOError,
    QuoteNotFoundError,
    ErrorCodes
)
from .models import Quote


def read_quote_file(path: Union[str, Path]) -> List[Quote]:
    """读取并校验引用 JSON 文件"""
    path = Path(path)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            records = json.load(f)
    except json.JSONDecodeError as e:
        raise StorageError(
            f"Invalid JSON in quote file {path}: {e}",
            ErrorCodes.STORE_INVALID_DATA
        ) from e
    except OSError as e:
        raise StorageError(
            f"Failed to read quote file {path}: {e}",
            ErrorCodes.STORE_LOAD_FAILED
        ) from e

    if not isinstance(records, list):
        raise StorageError(
            f"Quote file {path} must contain a JSON array",
            ErrorCodes.STORE_INVALID_DATA
        )

    quotes = [Quote.from_dict(record) for record in records]
    check_unique_ids(quotes, path)
    return quotes


def check_unique_ids(quotes: List[Quote], source: Union[str, Path]) -> None:
    seen = set()
    for quote in quotes:
        if quote.id in seen:
            raise StorageError(
                f"Duplicate quote id {quote.id} in {source}",
                ErrorCodes.STORE_INVALID_DATA
            )
        seen.add(quote.id)


class QuoteStore(ABC):
    """引用存储接口"""

    @abstractmethod
    def initialize(self) -> int:
        """加载持久化数据（必要时从模板初始化），返回引用数量"""

    @abstractmethod
    def list_all(self) -> List[Quote]:
        """返回所有引用的快照，按插入顺序"""

    @abstractmethod
    def find_by_id(self, quote_id: int) -> Quote:
        """根据ID获取引用，不存在时抛出 QuoteNotFoundError"""

    @abstractmethod
    def increment_votes(self, quote_id: int) -> int:
        """原子地为引用加一票并持久化，返回新的票数"""

    def count(self) -> int:
        return len(self.list_all())

    def close(self) -> None:
        """释放存储资源"""


class JsonQuoteStore(QuoteStore):
    """JSON 文件存储"""

    def __init__(self, quotes_file: Union[str, Path],
                 template_file: Optional[Union[str, Path]] = None):
        self.quotes_file = Path(quotes_file)
        self.template_file = Path(template_file) if template_file else None
        self._quotes: List[Quote] = []
        self._positions: Dict[int, int] = {}
        self._lock = threading.Lock()
        self._initialized = False

    @log_execution("Store", "initialize")
    def initialize(self) -> int:
        with self._lock:
            if self.quotes_file.exists():
                quotes = read_quote_file(self.quotes_file)
            elif self._seed_from_template():
                quotes = read_quote_file(self.quotes_file)
            else:
                quotes = []

            self._quotes = quotes
            self._positions = {quote.id: index for index, quote in enumerate(quotes)}
            self._initialized = True

        store_logger.info(f"[Store] Loaded {len(quotes)} quotes from {self.quotes_file}")
        return len(quotes)

    def _seed_from_template(self) -> bool:
        """首次运行时从模板复制引用文件"""
        if self.template_file is None or not self.template_file.exists():
            store_logger.warning(
                f"[Store] {self.quotes_file} is missing and no template is available, starting empty"
            )
            return False

        try:
            self.quotes_file.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(self.template_file, self.quotes_file)
        except OSError as e:
            raise StorageIOError(
                f"Failed to initialize {self.quotes_file} from template: {e}",
                ErrorCodes.STORE_WRITE_FAILED
            ) from e

        store_logger.info(f"[Store] Initialized {self.quotes_file} from {self.template_file.name}")
        return True

    def _check_initialized(self) -> None:
        if not self._initialized:
            raise StorageError("Quote store is not initialized", ErrorCodes.STORE_LOAD_FAILED)

    def _persist(self) -> None:
        """写入临时文件后原子替换，失败时原文件保持不变"""
        payload = [quote.to_dict() for quote in self._quotes]
        tmp_path = None
        try:
            self.quotes_file.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                'w', encoding='utf-8', dir=self.quotes_file.parent,
                prefix=f".{self.quotes_file.name}.", suffix='.tmp', delete=False
            ) as tmp:
                tmp_path = tmp.name
                json.dump(payload, tmp, indent=2, ensure_ascii=False)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_path, self.quotes_file)
        except OSError as e:
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise StorageIOError(
                f"Failed to write quotes to {self.quotes_file}: {e}",
                ErrorCodes.STORE_WRITE_FAILED
            ) from e

    def list_all(self) -> List[Quote]:
        with self._lock:
            self._check_initialized()
            return list(self._quotes)

    def find_by_id(self, quote_id: int) -> Quote:
        with self._lock:
            self._check_initialized()
            position = self._positions.get(quote_id)
            if position is None:
                raise QuoteNotFoundError(
                    "Quote not found", ErrorCodes.QUOTE_NOT_FOUND, {"quote_id": quote_id}
                )
            return self._quotes[position]

    def increment_votes(self, quote_id: int) -> int:
        with self._lock:
            self._check_initialized()
            position = self._positions.get(quote_id)
            if position is None:
                raise QuoteNotFoundError(
                    "Quote not found", ErrorCodes.QUOTE_NOT_FOUND, {"quote_id": quote_id}
                )

            previous = self._quotes[position]
            updated = replace(previous, votes=previous.votes + 1)
            self._quotes[position] = updated
            try:
                self._persist()
            except StorageIOError:
                # 回滚内存中的增量
                self._quotes[position] = previous
                store_logger.error(f"[Store] Rolled back vote for quote {quote_id}: write failed")
                raise

            store_logger.debug(f"[Store] Quote {quote_id} now has {updated.votes} votes")
            return updated.votes
