"""Domain services: pure computations over domain models."""
