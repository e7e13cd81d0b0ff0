"""
Utility modules for the practice scheduling application.

This package contains shared utility functions and helpers used across
the application: datetime/timezone conversion and interval arithmetic.
"""
