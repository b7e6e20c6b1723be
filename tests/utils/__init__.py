"""
Test utilities for elankit testing.

This package provides helpers for building fake release archives and the
URLs the test tool configuration points at.
"""

from .helpers import (
    FEED_URL,
    GITHUB_URL,
    RAW_URL,
    build_tarball,
)

__all__ = [
    "FEED_URL",
    "GITHUB_URL",
    "RAW_URL",
    "build_tarball",
]
