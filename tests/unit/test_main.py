"""
Unit tests for the command-line interface
"""

from unittest.mock import patch

import pytest

from main import QuoteVoteSystem, create_parser, main


@pytest.fixture
def system(sample_store):
    vote_system = QuoteVoteSystem()
    vote_system._store = sample_store
    return vote_system


@pytest.mark.unit
class TestCommandLine:
    """Test cases for the CLI"""

    def test_parser_commands(self):
        parser = create_parser()
        args = parser.parse_args(["serve", "--port", "3100"])
        assert args.command == "serve"
        assert args.port == 3100
        assert args.host is None

        assert parser.parse_args(["ranking", "--limit", "3"]).limit == 3
        assert parser.parse_args(["search", "code"]).query == "code"

    def test_show_ranking(self, system, capsys):
        system.show_ranking(limit=2)
        lines = capsys.readouterr().out.strip().splitlines()
        assert len(lines) == 2
        assert lines[0].startswith("#1") and "[2]" in lines[0]
        assert "[5]" in lines[1]

    def test_search(self, system, capsys):
        system.search("CODE")
        output = capsys.readouterr().out
        assert "[2]" in output and "[4]" in output and "[5]" in output
        assert "[1]" not in output

    def test_search_no_match(self, system, capsys):
        system.search("zebra")
        assert "No quotes found" in capsys.readouterr().out

    def test_init_store(self, system, capsys):
        assert system.init_store() == 5
        assert "5 quotes" in capsys.readouterr().out

    def test_main_without_command(self, capsys):
        assert main([]) == 0
        assert "usage" in capsys.readouterr().out.lower()

    def test_main_reports_system_error(self):
        from utils.exceptions import StorageError

        with patch("main.initialize_logging"), \
                patch.object(QuoteVoteSystem, "init_store", side_effect=StorageError("broken")):
            assert main(["init-store"]) == 1
