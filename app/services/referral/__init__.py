"""
Referral services package.

- referral_bonus: direct sponsor bonus on package purchases
"""

from app.services.referral.referral_bonus import ReferralBonusEngine


__all__ = [
    "ReferralBonusEngine",
]
