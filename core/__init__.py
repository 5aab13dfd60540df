"""
Core utilities and shared components for the Chronos backend.

This package provides the components shared across the project: the
scheduling exception hierarchy, the DRF exception handler and display
formatters.
"""

__version__ = "1.0.0"
