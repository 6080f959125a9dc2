"""In-memory stubs for development and testing.

NOT suitable for production use.
"""

from equiduty.infrastructure.stubs.in_memory_selection_backend import (
    BackendOperation,
    InMemorySelectionBackend,
)

__all__: list[str] = [
    "BackendOperation",
    "InMemorySelectionBackend",
]
