"""
Unit tests for the JSON quote store
"""

import json
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import patch

import pytest

from storage import JsonQuoteStore, Quote, create_quote_store
from utils import StoreConfig
from utils.exceptions import (
    ConfigurationError,
    QuoteNotFoundError,
    StorageError,
    StorageIOError
)


def read_json(path):
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


@pytest.mark.unit
class TestJsonQuoteStore:
    """Test cases for JsonQuoteStore"""

    def test_initialize_loads_quotes(self, quotes_file):
        """Test loading an existing quote file"""
        store = JsonQuoteStore(quotes_file)
        assert store.initialize() == 2
        assert store.list_all() == [Quote(1, "A", 0), Quote(2, "B", 0)]

    def test_initialize_seeds_from_template(self, temp_dir, seed_quotes):
        """Test first run copies the bundled template"""
        template = temp_dir / "quotes.json.example"
        template.write_text(json.dumps(seed_quotes), encoding='utf-8')
        target = temp_dir / "nested" / "quotes.json"

        store = JsonQuoteStore(target, template)
        assert store.initialize() == 2
        assert target.exists()
        assert read_json(target) == seed_quotes

    def test_initialize_without_template_starts_empty(self, temp_dir):
        """Test a missing file and missing template gives an empty store"""
        store = JsonQuoteStore(temp_dir / "quotes.json", temp_dir / "missing.example")
        assert store.initialize() == 0
        assert store.list_all() == []

    def test_initialize_rejects_invalid_json(self, temp_dir):
        """Test malformed quote file"""
        path = temp_dir / "quotes.json"
        path.write_text("{not json", encoding='utf-8')

        with pytest.raises(StorageError):
            JsonQuoteStore(path).initialize()

    @pytest.mark.parametrize("records", [
        {"id": 1, "text": "not a list"},
        [{"id": "1", "text": "string id", "votes": 0}],
        [{"id": 1, "text": "negative", "votes": -1}],
        [{"id": 1, "text": "dup", "votes": 0}, {"id": 1, "text": "dup", "votes": 0}],
    ])
    def test_initialize_rejects_invalid_records(self, temp_dir, records):
        """Test invalid persisted records are refused"""
        path = temp_dir / "quotes.json"
        path.write_text(json.dumps(records), encoding='utf-8')

        with pytest.raises(StorageError):
            JsonQuoteStore(path).initialize()

    def test_uninitialized_store_raises(self, quotes_file):
        """Test access before initialize"""
        with pytest.raises(StorageError):
            JsonQuoteStore(quotes_file).list_all()

    def test_find_by_id(self, store):
        """Test finding quotes by id"""
        assert store.find_by_id(2) == Quote(2, "B", 0)

        with pytest.raises(QuoteNotFoundError):
            store.find_by_id(99)

    def test_list_all_returns_snapshot(self, store):
        """Test the returned list is a copy"""
        snapshot = store.list_all()
        snapshot.clear()
        assert len(store.list_all()) == 2

    def test_increment_votes_persists(self, store, quotes_file):
        """Test increments are written to disk before returning"""
        assert store.increment_votes(1) == 1
        assert store.increment_votes(1) == 2

        assert store.find_by_id(1).votes == 2
        assert read_json(quotes_file)[0] == {"id": 1, "text": "A", "votes": 2}

        reloaded = JsonQuoteStore(quotes_file)
        reloaded.initialize()
        assert reloaded.find_by_id(1).votes == 2

    def test_increment_unknown_quote(self, store, quotes_file):
        """Test incrementing a missing quote does not touch the file"""
        before = read_json(quotes_file)
        with pytest.raises(QuoteNotFoundError):
            store.increment_votes(42)
        assert read_json(quotes_file) == before

    def test_increment_rolls_back_on_write_failure(self, store, quotes_file):
        """Test a failed write rolls back the in-memory increment"""
        with patch("storage.quote_store.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(StorageIOError):
                store.increment_votes(1)

        assert store.find_by_id(1).votes == 0
        assert read_json(quotes_file)[0]["votes"] == 0
        # 临时文件已清理
        assert [p.name for p in quotes_file.parent.iterdir()] == ["quotes.json"]

        # 锁已释放，后续写入正常
        assert store.increment_votes(1) == 1

    def test_concurrent_increments_are_not_lost(self, store, quotes_file):
        """Test concurrent increments on the same and different ids"""
        targets = [1] * 40 + [2] * 25

        with ThreadPoolExecutor(max_workers=8) as executor:
            list(executor.map(store.increment_votes, targets))

        assert store.find_by_id(1).votes == 40
        assert store.find_by_id(2).votes == 25
        assert [record["votes"] for record in read_json(quotes_file)] == [40, 25]


@pytest.mark.unit
class TestCreateQuoteStore:
    """Test cases for the store factory"""

    def test_creates_json_store(self, quotes_file):
        store = create_quote_store(StoreConfig(backend="json", quotes_file=str(quotes_file),
                                               template_file=""))
        assert isinstance(store, JsonQuoteStore)
        assert store.count() == 2

    def test_unknown_backend(self, temp_dir):
        with pytest.raises(ConfigurationError):
            create_quote_store(StoreConfig(backend="redis"))
