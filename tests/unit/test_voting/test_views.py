"""
Unit tests for the ranking, quiz and search views
"""

import random

import pytest

from storage import Quote
from utils.exceptions import QuoteNotFoundError
from voting import QuoteViews


@pytest.fixture
def views(sample_store):
    return QuoteViews(sample_store, rng=random.Random(7))


@pytest.mark.unit
class TestRanking:
    """Test cases for ranked()"""

    def test_sorted_by_votes_descending(self, views):
        ranked = views.ranked()
        votes = [quote.votes for quote in ranked]
        assert votes == sorted(votes, reverse=True)

    def test_ties_keep_insertion_order(self, views):
        """Test equal-vote quotes keep their store order"""
        assert [quote.id for quote in views.ranked()] == [2, 5, 1, 3, 4]

    def test_ranking_is_idempotent(self, views):
        once = views.ranked()
        assert views.ranked(once) == once
        assert views.ranked() == once

    def test_ranking_explicit_sequence(self, views):
        quotes = [Quote(1, "x", 0), Quote(2, "y", 2), Quote(3, "z", 0)]
        assert [quote.id for quote in views.ranked(quotes)] == [2, 1, 3]

    def test_ranking_reflects_new_votes(self, views, sample_store):
        sample_store.increment_votes(4)
        sample_store.increment_votes(4)
        sample_store.increment_votes(4)
        # 与 1、3 同票，排在它们后面
        assert [quote.id for quote in views.ranked()] == [2, 5, 1, 3, 4]
        sample_store.increment_votes(4)
        assert [quote.id for quote in views.ranked()] == [2, 5, 4, 1, 3]


@pytest.mark.unit
class TestQuiz:
    """Test cases for quiz() and random_quote()"""

    def test_quiz_returns_two_distinct_quotes(self, views, sample_store):
        ids = {quote.id for quote in sample_store.list_all()}
        for _ in range(20):
            pair = views.quiz()
            assert len(pair) == 2
            assert pair[0].id != pair[1].id
            assert {quote.id for quote in pair} <= ids

    def test_quiz_with_small_store(self, store):
        views = QuoteViews(store)
        assert len(views.quiz(size=5)) == 2

    def test_quiz_covers_all_quotes(self, views):
        seen = set()
        for _ in range(200):
            seen.update(quote.id for quote in views.quiz())
        assert seen == {1, 2, 3, 4, 5}

    def test_random_quote(self, views, sample_store):
        assert views.random_quote() in sample_store.list_all()

    def test_random_quote_empty_store(self, temp_dir):
        from storage import JsonQuoteStore

        empty = JsonQuoteStore(temp_dir / "none.json")
        empty.initialize()
        with pytest.raises(QuoteNotFoundError):
            QuoteViews(empty).random_quote()
        assert QuoteViews(empty).quiz() == []


@pytest.mark.unit
class TestSearch:
    """Test cases for search()"""

    @pytest.mark.parametrize("query", ["", None, "   "])
    def test_empty_query_returns_nothing(self, views, query):
        assert views.search(query) == []

    def test_case_insensitive_match(self, views):
        assert [quote.id for quote in views.search("code")] == [2, 4, 5]
        assert [quote.id for quote in views.search("CODE")] == [2, 4, 5]

    def test_single_letter(self, store):
        views = QuoteViews(store)
        assert [quote.id for quote in views.search("a")] == [1]
        assert [quote.id for quote in views.search("B")] == [2]

    def test_no_match(self, views):
        assert views.search("zebra") == []
