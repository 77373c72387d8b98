"""
Session vote ledger.
Tracks, per anonymous session, which quotes it voted for and how many votes it
has left. Entries expire after a period of inactivity.
"""

import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, FrozenSet, Optional, Set

from utils import ledger_logger
from utils.exceptions import (
    AlreadyVotedError,
    ConfigurationError,
    LedgerError,
    LimitReachedError,
    ErrorCodes
)


@dataclass
class LedgerEntry:
    """单个会话的投票记录"""
    session_id: str
    remaining_votes: int
    voted_quote_ids: Set[int] = field(default_factory=set)
    last_seen: float = 0.0


@dataclass(frozen=True)
class LedgerState:
    """账本状态快照"""
    remaining_votes: int
    voted_quote_ids: FrozenSet[int]

    @property
    def used_votes(self) -> int:
        return len(self.voted_quote_ids)


def short_session(session_id: str) -> str:
    """日志中只显示会话ID前缀"""
    return f"{session_id[:8]}..." if len(session_id) > 8 else session_id


class SessionLedger:
    """会话投票账本

    所有读改写操作都在同一把锁内完成，同一会话的并发投票不会同时通过上限检查。
    """

    def __init__(self, max_votes: int, ttl_seconds: Optional[float] = None,
                 clock: Callable[[], float] = time.monotonic):
        if not isinstance(max_votes, int) or isinstance(max_votes, bool) or max_votes <= 0:
            raise ConfigurationError(
                f"max_votes must be a positive integer, got {max_votes!r}",
                ErrorCodes.CONFIG_INVALID_VALUE
            )
        if ttl_seconds is not None and ttl_seconds <= 0:
            raise ConfigurationError(
                f"ttl_seconds must be positive, got {ttl_seconds!r}",
                ErrorCodes.CONFIG_INVALID_VALUE
            )

        self.max_votes = max_votes
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, LedgerEntry] = {}
        self._lock = threading.Lock()
        self._last_prune = clock()
        # 全量清理的最小间隔
        self._prune_interval = min(ttl_seconds, 60.0) if ttl_seconds else None

    def _is_expired(self, entry: LedgerEntry, now: float) -> bool:
        return self.ttl_seconds is not None and now - entry.last_seen > self.ttl_seconds

    def _prune_locked(self, now: float) -> int:
        expired = [sid for sid, entry in self._entries.items() if self._is_expired(entry, now)]
        for sid in expired:
            del self._entries[sid]
        self._last_prune = now
        if expired:
            ledger_logger.debug(f"[Ledger] Pruned {len(expired)} expired sessions")
        return len(expired)

    def _entry_locked(self, session_id: str, now: float) -> LedgerEntry:
        """获取会话记录，不存在或已过期时创建新记录"""
        if self._prune_interval is not None and now - self._last_prune >= self._prune_interval:
            self._prune_locked(now)

        entry = self._entries.get(session_id)
        if entry is None or self._is_expired(entry, now):
            entry = LedgerEntry(session_id=session_id, remaining_votes=self.max_votes)
            self._entries[session_id] = entry
            ledger_logger.debug(f"[Ledger] New session {short_session(session_id)}")

        entry.last_seen = now
        return entry

    @staticmethod
    def _snapshot(entry: LedgerEntry) -> LedgerState:
        return LedgerState(
            remaining_votes=entry.remaining_votes,
            voted_quote_ids=frozenset(entry.voted_quote_ids)
        )

    def get_state(self, session_id: str) -> LedgerState:
        """获取会话状态"""
        with self._lock:
            return self._snapshot(self._entry_locked(session_id, self._clock()))

    def record_vote(self, session_id: str, quote_id: int) -> int:
        """记录一次投票，返回剩余票数"""
        with self._lock:
            entry = self._entry_locked(session_id, self._clock())

            if quote_id in entry.voted_quote_ids:
                raise AlreadyVotedError(
                    "You have already voted for this quote",
                    ErrorCodes.ALREADY_VOTED,
                    {"quote_id": quote_id, "votes_left": entry.remaining_votes}
                )
            if entry.remaining_votes <= 0:
                raise LimitReachedError(
                    "No votes left",
                    ErrorCodes.LIMIT_REACHED,
                    {"quote_id": quote_id, "votes_left": 0}
                )

            entry.voted_quote_ids.add(quote_id)
            entry.remaining_votes -= 1
            return entry.remaining_votes

    def revoke_vote(self, session_id: str, quote_id: int) -> int:
        """撤销一次已记录的投票并退还票数，返回剩余票数"""
        with self._lock:
            entry = self._entries.get(session_id)
            if entry is None:
                raise LedgerError(
                    f"No ledger entry for session {short_session(session_id)}",
                    ErrorCodes.LEDGER_ENTRY_MISSING
                )
            if quote_id not in entry.voted_quote_ids:
                raise LedgerError(
                    f"Session {short_session(session_id)} has no vote for quote {quote_id}",
                    ErrorCodes.LEDGER_VOTE_MISSING
                )

            entry.voted_quote_ids.discard(quote_id)
            entry.remaining_votes += 1
            entry.last_seen = self._clock()
            return entry.remaining_votes

    def prune_expired(self) -> int:
        """清理过期会话，返回清理数量"""
        with self._lock:
            return self._prune_locked(self._clock())

    def active_sessions(self) -> int:
        with self._lock:
            now = self._clock()
            return sum(1 for entry in self._entries.values() if not self._is_expired(entry, now))
