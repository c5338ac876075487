"""
DJStore Test Suite.

This package contains:
- unit/: Unit tests (storage primitives, config, errors)
- integration/: Integration tests (store operations, persistence, CLI)
"""
