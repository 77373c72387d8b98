"""
Unit tests for the vote coordinator
"""

from concurrent.futures import ThreadPoolExecutor
from unittest.mock import Mock, patch

import pytest

from utils import RateLimiter
from utils.exceptions import (
    AlreadyVotedError,
    LedgerError,
    LimitReachedError,
    QuoteNotFoundError,
    RateLimitedError,
    StorageIOError,
    VoteConsistencyError
)
from voting import SessionLedger, VoteCoordinator, VoteResult

from tests.factories import QuoteRecordFactory


@pytest.mark.unit
class TestVoteCoordinator:
    """Test cases for VoteCoordinator"""

    def test_vote_success(self, coordinator, store):
        """Test the basic voting scenario"""
        result = coordinator.vote("session-a", 1)

        assert result == VoteResult(quote_id=1, votes=1, votes_left=4, total_votes=5)
        assert store.find_by_id(1).votes == 1

    def test_second_vote_for_same_quote(self, coordinator, store, ledger):
        """Test AlreadyVoted leaves counts and budget unchanged"""
        coordinator.vote("session-a", 1)

        with pytest.raises(AlreadyVotedError):
            coordinator.vote("session-a", 1)

        assert store.find_by_id(1).votes == 1
        assert ledger.get_state("session-a").remaining_votes == 4

    def test_unknown_quote(self, coordinator, ledger):
        """Test QuoteNotFound does not touch the ledger"""
        with pytest.raises(QuoteNotFoundError):
            coordinator.vote("session-a", 99)

        assert ledger.get_state("session-a").remaining_votes == 5

    def test_limit_reached(self, temp_dir):
        """Test MAX_VOTES distinct votes then one more"""
        from storage import JsonQuoteStore
        from tests.conftest import write_quotes

        store = JsonQuoteStore(write_quotes(temp_dir / "many.json",
                                            QuoteRecordFactory.create_records(8)))
        store.initialize()
        coordinator = VoteCoordinator(store, SessionLedger(max_votes=5))

        for quote_id in range(1, 6):
            coordinator.vote("session-a", quote_id)

        with pytest.raises(LimitReachedError):
            coordinator.vote("session-a", 6)

        assert store.find_by_id(6).votes == 0
        assert coordinator.session_summary("session-a").votes_left == 0

    def test_store_failure_recredits_ledger(self, coordinator, store, ledger):
        """Test a failed write re-credits the session's vote"""
        with patch.object(store, "increment_votes", side_effect=StorageIOError("disk full")):
            with pytest.raises(StorageIOError):
                coordinator.vote("session-a", 1)

        state = ledger.get_state("session-a")
        assert state.remaining_votes == 5
        assert 1 not in state.voted_quote_ids
        assert store.find_by_id(1).votes == 0

        # 恢复后同一会话可以正常投票
        assert coordinator.vote("session-a", 1).votes == 1

    def test_failed_compensation_is_fatal(self, coordinator, store, ledger):
        """Test a compensation failure surfaces as VoteConsistencyError"""
        with patch.object(store, "increment_votes", side_effect=StorageIOError("disk full")), \
                patch.object(ledger, "revoke_vote", side_effect=LedgerError("entry missing")):
            with pytest.raises(VoteConsistencyError) as exc_info:
                coordinator.vote("session-a", 1)

        assert isinstance(exc_info.value.__cause__, LedgerError)

    def test_rate_limited_before_any_state_check(self, store, ledger):
        """Test RateLimited is raised without touching store or ledger"""
        limiter = RateLimiter(max_requests=1, window_seconds=60)
        coordinator = VoteCoordinator(store, ledger, limiter)
        coordinator.vote("session-a", 1, client_key="10.0.0.1")

        spy_store = Mock(wraps=store)
        spy_ledger = Mock(wraps=ledger)
        spy_ledger.max_votes = ledger.max_votes
        limited = VoteCoordinator(spy_store, spy_ledger, limiter)

        with pytest.raises(RateLimitedError) as exc_info:
            limited.vote("session-b", 99, client_key="10.0.0.1")

        assert exc_info.value.context["window_seconds"] == 60
        spy_store.find_by_id.assert_not_called()
        spy_ledger.record_vote.assert_not_called()

    def test_rate_limit_defaults_to_session_key(self, store, ledger):
        coordinator = VoteCoordinator(store, ledger, RateLimiter(max_requests=1, window_seconds=60))
        coordinator.vote("session-a", 1)

        with pytest.raises(RateLimitedError):
            coordinator.vote("session-a", 2)

        # 其他会话不受影响
        assert coordinator.vote("session-b", 2).votes == 1

    def test_session_summary(self, coordinator):
        coordinator.vote("session-a", 2)
        coordinator.vote("session-a", 1)

        summary = coordinator.session_summary("session-a")
        assert summary.votes_left == 3
        assert summary.total_votes == 5
        assert summary.voted_quotes == [1, 2]

    def test_concurrent_votes_from_distinct_sessions(self, coordinator, store):
        """Test N sessions voting concurrently for one quote yield exactly N votes"""
        sessions = [f"session-{i}" for i in range(60)]

        with ThreadPoolExecutor(max_workers=12) as executor:
            results = list(executor.map(lambda sid: coordinator.vote(sid, 2), sessions))

        assert all(result.votes_left == 4 for result in results)
        assert sorted(result.votes for result in results) == list(range(1, 61))
        assert store.find_by_id(2).votes == 60
