"""Utility functions for speck.

This package provides utility modules:
- batching: bounded-concurrency execution of per-item work
"""

from .batching import run_in_batches, BatchFailure

__all__ = [
    "run_in_batches",
    "BatchFailure",
]
