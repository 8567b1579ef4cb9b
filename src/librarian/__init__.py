"""Code librarian: hybrid retrieval and response verification."""

from .main import Librarian, configure_logging

__version__ = "0.1.0"

__all__ = ["Librarian", "configure_logging"]
