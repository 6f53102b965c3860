"""Mock implementations for testing."""

from tests.mocks.storage import MockStorage

__all__ = ["MockStorage"]
