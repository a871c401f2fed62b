"""
Validators package.

Provides common validation functions for user input.
"""

from app.validators.unified import (
    normalize_wallet_address,
    validate_amount,
    validate_name,
    validate_side,
    validate_tx_hash,
    validate_wallet_address,
)


__all__ = [
    "normalize_wallet_address",
    "validate_amount",
    "validate_name",
    "validate_side",
    "validate_tx_hash",
    "validate_wallet_address",
]
