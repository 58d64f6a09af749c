"""
Bonus Scoring Service for Post-Push Party.

This service is responsible for:
- The catalogue of bonus tracks and their upgrade tiers
- Deciding which unlocked bonuses apply to a push
- Turning a push into a points breakdown
"""

__version__ = "1.0.0"
__description__ = "Push scoring and bonus track service"
