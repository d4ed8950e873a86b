"""
Shared Kernel Module
====================

This module contains shared infrastructure used by the alerting bounded
context: structured logging and other generic plumbing.

DO NOT add alerting business logic to the shared kernel.
"""

__version__ = "1.0.0"
