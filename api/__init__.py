"""
API module for the quote voting system.
Provides the FastAPI-based REST API for browsing and voting on quotes.
"""

__all__ = ['app', 'routes', 'models', 'dependencies', 'middleware']
