"""
ChromiumKit CLI module.

This module provides the command-line interface for ChromiumKit.
"""

from .parser import CLI, main

__all__ = ["CLI", "main"]
