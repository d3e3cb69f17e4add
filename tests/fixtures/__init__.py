"""Test fixtures for interpkit tests.

This package provides reusable pytest fixtures and builders:

- toolchains: Fake interpreters, interpreter archives and catalog payloads
- directories: Isolated interpkit home directories and registries

Import fixtures in your tests using:
    from tests.fixtures.toolchains import fake_interpreter
    from tests.fixtures.directories import home
"""

__all__ = [
    "toolchains",
    "directories",
]
