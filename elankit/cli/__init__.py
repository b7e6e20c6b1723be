"""
elankit CLI module.

This module provides the command-line interface for elankit.
"""

from .parser import CLI, main

__all__ = ["CLI", "main"]
