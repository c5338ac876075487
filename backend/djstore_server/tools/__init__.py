"""
CLI tools for DJStore administration.

Invariants:
    - Tools work offline against the store database file
    - Read commands never create or modify the store database
"""

from .store_cli import StoreCLI, main

__all__ = ["StoreCLI", "main"]
