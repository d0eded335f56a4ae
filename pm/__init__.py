"""
pm - command-line interface for pam.
"""

__all__ = []
