"""
Standard type definitions for database models.

Provides consistent types for monetary and volume fields across all models.
"""

from sqlalchemy import DECIMAL

# Standard money type for token amounts, balances, bonuses and volume
# Precision: 38 digits total, 8 after decimal point
# Range: up to 10^30 - 10^-8 (tiny token prices give huge token amounts)
MoneyType = DECIMAL(38, 8)

# USD prices of packages
# Precision: 12 digits total, 2 after decimal point
UsdType = DECIMAL(12, 2)

# Token price quoted in USD (oracle prices may be tiny)
# Precision: 24 digits total, 12 after decimal point
PriceType = DECIMAL(24, 12)

# Percentage type for package yield rates
# Precision: 5 digits total, 2 after decimal point
# Range: 0.00 to 999.99
PercentType = DECIMAL(5, 2)
