"""
Push Tracker Service for Post-Push Party.

This service is responsible for:
- Running detection and scoring when the git hook fires
- Crediting points and saving the local state
- Installing and removing the git hook
- The ``party`` command line
"""

__version__ = "1.0.0"
__description__ = "Push tracking, hook management and CLI"
