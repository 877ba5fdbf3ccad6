"""
Utility modules for the clinic scheduler application.

This package contains shared utility functions and helpers used across
the application: clock and datetime helpers, interval arithmetic and
query helpers.
"""
