"""
One-time password challenges.
"""

from .manager import OtpChallengeManager
from .policy import ChallengePolicy

__all__ = [
    "OtpChallengeManager",
    "ChallengePolicy",
]
