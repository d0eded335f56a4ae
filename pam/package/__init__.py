"""
pam Package Engine - reconciliation of declared packages against disk.

This module handles:
- Package specification validation
- Name and install path resolution
- Tree walking over nested dependencies
- Git and local-directory fetching
- Lifecycle hooks and help tag re-indexing
- Install / upgrade / clean reconciliation and status reporting
"""

__all__ = []
