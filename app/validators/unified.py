"""Унифицированные валидаторы для всего проекта."""
import re
from decimal import Decimal, InvalidOperation

from eth_utils import is_address
from loguru import logger

from app.models.enums import MemberSide


TX_HASH_PATTERN = re.compile(r"^0x[a-fA-F0-9]{64}$")
NAME_MAX_LENGTH = 100


def validate_wallet_address(address: str) -> tuple[bool, str | None]:
    """
    Единственный валидатор адреса кошелька.

    Args:
        address: Wallet address to validate

    Returns:
        Tuple of (is_valid, error_message)

    Examples:
        >>> validate_wallet_address("0x1234567890123456789012345678901234567890")
        (True, None)
        >>> validate_wallet_address("invalid")
        (False, 'Address must start with 0x')
    """
    if not address or not isinstance(address, str):
        return False, "Address is empty"

    address = address.strip()

    if not address:
        return False, "Address is empty"

    if not address.startswith("0x"):
        return False, "Address must start with 0x"

    if len(address) != 42:
        return False, "Address must be 42 characters"

    try:
        if not is_address(address):
            return False, "Invalid address format"
    except (ValueError, TypeError) as e:
        logger.debug(f"Address validation failed for {address}: {e}")
        return False, "Invalid address format"

    return True, None


def normalize_wallet_address(address: str) -> str:
    """
    Normalize wallet address for storage and lookups (lower case).

    Raises:
        ValueError: If address is invalid
    """
    is_valid, error = validate_wallet_address(address)
    if not is_valid:
        raise ValueError(error)

    return address.strip().lower()


def validate_tx_hash(tx_hash: str) -> tuple[bool, str | None]:
    """
    Validate BSC transaction hash (0x + 64 hex chars).

    Args:
        tx_hash: Transaction hash

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not tx_hash or not isinstance(tx_hash, str):
        return False, "Transaction hash is empty"

    if not TX_HASH_PATTERN.match(tx_hash.strip()):
        return False, "Invalid transaction hash format"

    return True, None


def validate_amount(
    amount: str | int | float | Decimal | None,
    min_val: Decimal = Decimal("0"),
    max_val: Decimal | None = None,
) -> tuple[bool, Decimal | None, str | None]:
    """
    Единственный валидатор суммы.

    Amounts must be strictly greater than min_val.

    Args:
        amount: Amount (string or number)
        min_val: Exclusive lower bound
        max_val: Inclusive upper bound (optional)

    Returns:
        Tuple of (is_valid, parsed_value, error_message)

    Examples:
        >>> validate_amount("100.50")
        (True, Decimal('100.50'), None)
        >>> validate_amount("-10")
        (False, None, 'Amount must be a positive number')
    """
    if amount is None or isinstance(amount, bool):
        return False, None, "Amount is empty"

    raw = str(amount).strip().replace(",", ".")
    if not raw:
        return False, None, "Amount is empty"

    try:
        value = Decimal(raw)
    except InvalidOperation:
        return False, None, "Invalid amount format"

    if not value.is_finite():
        return False, None, "Amount must be a finite number"

    if value <= min_val:
        return False, None, "Amount must be a positive number"

    if max_val is not None and value > max_val:
        return False, None, f"Amount must be <= {max_val}"

    # Check precision (8 decimal places max)
    if value.as_tuple().exponent < -8:
        return False, None, "Amount has too many decimal places (maximum 8)"

    return True, value, None


def validate_side(
    side: str | None,
) -> tuple[bool, MemberSide | None, str | None]:
    """
    Validate requested placement side.

    Absent side defaults to LEFT.

    Returns:
        Tuple of (is_valid, side, error_message)
    """
    if side is None or (isinstance(side, str) and not side.strip()):
        return True, MemberSide.LEFT, None

    normalized = str(side).strip().lower()
    if normalized == MemberSide.LEFT:
        return True, MemberSide.LEFT, None
    if normalized == MemberSide.RIGHT:
        return True, MemberSide.RIGHT, None

    return False, None, 'side must be "left" or "right"'


def validate_name(value: str | None, field: str) -> tuple[bool, str | None]:
    """
    Validate first/last name.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not value or not isinstance(value, str) or not value.strip():
        return False, f"{field} is required"

    if len(value.strip()) > NAME_MAX_LENGTH:
        return False, f"{field} is too long (maximum {NAME_MAX_LENGTH})"

    return True, None
