"""Configuration for the code librarian."""

from .librarian_config import LibrarianConfig, get_config

__all__ = ["LibrarianConfig", "get_config"]
