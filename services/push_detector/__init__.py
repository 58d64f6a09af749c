"""
Push Detector Service for Post-Push Party.

This service is responsible for:
- Reading the tracked branch refs of a git repository
- Telling pushes apart from fetches and no-op ref updates
- Deduplicating rebased or cherry-picked commits by patch-id
"""

__version__ = "1.0.0"
__description__ = "Git push detection service"
