"""Test helper utilities for the monitor test suite."""

from tests.helpers.fakes import DOWN, UP, FakeLocator, FakeProbe, wait_until

__all__ = [
    "UP",
    "DOWN",
    "FakeProbe",
    "FakeLocator",
    "wait_until",
]
