# Fake implementations for testing

from .fake_registry import FakeRegistry

__all__ = ["FakeRegistry"]
