"""
Vote coordinator.
Single entry point for casting a vote: admission control, ledger rules, the
store increment, and compensation when the store fails after the ledger
accepted the vote.
"""

from dataclasses import dataclass
from typing import List, Optional

from storage import QuoteStore
from utils import voting_logger, voting_metrics, RateLimiter
from utils.exceptions import (
    AlreadyVotedError,
    LedgerError,
    LimitReachedError,
    QuoteNotFoundError,
    RateLimitedError,
    StorageIOError,
    VoteConsistencyError,
    ErrorCodes
)
from .ledger import SessionLedger, short_session


@dataclass(frozen=True)
class VoteResult:
    """投票结果"""
    quote_id: int
    votes: int
    votes_left: int
    total_votes: int


@dataclass(frozen=True)
class SessionSummary:
    """会话投票概况"""
    votes_left: int
    total_votes: int
    voted_quotes: List[int]


class VoteCoordinator:
    """投票协调器"""

    def __init__(self, store: QuoteStore, ledger: SessionLedger,
                 rate_limiter: Optional[RateLimiter] = None):
        self.store = store
        self.ledger = ledger
        self.rate_limiter = rate_limiter

    @property
    def max_votes(self) -> int:
        return self.ledger.max_votes

    def vote(self, session_id: str, quote_id: int, client_key: Optional[str] = None) -> VoteResult:
        """为引用投票"""
        self._admit(session_id, client_key)

        try:
            self.store.find_by_id(quote_id)
            votes_left = self.ledger.record_vote(session_id, quote_id)
        except (QuoteNotFoundError, AlreadyVotedError, LimitReachedError) as e:
            # 业务结果，不记为系统错误
            voting_logger.info(
                f"[Voting] Vote rejected for quote {quote_id} "
                f"(session {short_session(session_id)}): {e.error_code}"
            )
            voting_metrics.increment("rejected")
            raise

        try:
            votes = self.store.increment_votes(quote_id)
        except (StorageIOError, QuoteNotFoundError) as e:
            voting_logger.error(
                f"[Voting] Failed to persist vote for quote {quote_id}, re-crediting session "
                f"{short_session(session_id)}: {e}"
            )
            voting_metrics.increment("failed")
            self._compensate(session_id, quote_id, e)
            raise

        voting_metrics.increment("recorded")
        voting_logger.info(
            f"[Voting] Session {short_session(session_id)} voted for quote {quote_id} "
            f"({votes} votes, {votes_left} left)"
        )
        return VoteResult(
            quote_id=quote_id,
            votes=votes,
            votes_left=votes_left,
            total_votes=self.max_votes
        )

    def _admit(self, session_id: str, client_key: Optional[str]) -> None:
        """限流检查，在读取任何状态之前执行"""
        if self.rate_limiter is None:
            return

        key = client_key or session_id
        if not self.rate_limiter.is_allowed(key):
            voting_logger.warning(f"[Voting] Rate limit exceeded for {short_session(key)}")
            voting_metrics.increment("rate_limited")
            raise RateLimitedError(
                "Too many vote attempts, please try again later",
                ErrorCodes.RATE_LIMITED,
                {
                    "limit": self.rate_limiter.max_requests,
                    "window_seconds": self.rate_limiter.window_seconds
                }
            )

    def _compensate(self, session_id: str, quote_id: int, cause: Exception) -> None:
        try:
            self.ledger.revoke_vote(session_id, quote_id)
        except LedgerError as e:
            voting_logger.critical(
                f"[Voting] Ledger compensation failed for quote {quote_id} "
                f"(session {short_session(session_id)}): {e}; original error: {cause}"
            )
            raise VoteConsistencyError(
                "Vote state is inconsistent after a failed write",
                ErrorCodes.INCONSISTENT_STATE,
                {"quote_id": quote_id}
            ) from e

    def session_summary(self, session_id: str) -> SessionSummary:
        """获取会话的投票概况"""
        state = self.ledger.get_state(session_id)
        return SessionSummary(
            votes_left=state.remaining_votes,
            total_votes=self.max_votes,
            voted_quotes=sorted(state.voted_quote_ids)
        )
