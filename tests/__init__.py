"""
Quote Voting System Test Suite
==============================

This package contains tests for the Quote Voting System including:
- Unit tests for the store, ledger, coordinator, views and utilities
- Integration tests for the HTTP voting flow and concurrent voting
"""
