"""
Business logic constants for the binary plan.

Central location for the rates and limits used by the placement,
volume, settlement, referral and earnings cap engines. Engines receive a
BinaryPlanConfig instance instead of reading module-level literals, so
alternate rates can be injected in tests or per deployment.
"""

from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal

from app.config.settings import Settings, settings


# Direct referral bonus: only the direct sponsor is paid
REFERRAL_LEVEL_DIRECT = 1

# Referral code alphabet and length
REFERRAL_CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
REFERRAL_CODE_LENGTH = 8

# Profile id format: D00001, D00002, ...
PROFILE_ID_PREFIX = "D"
PROFILE_ID_WIDTH = 5

# Account attributed to ledger rows written by the engines
SYSTEM_ACTOR = "System"

# Largest single ledger amount accepted (deposits, withdrawals, transfers,
# purchase token amounts). Leaves room below MoneyType for running volume
# totals.
MAX_LEDGER_AMOUNT = Decimal("1000000000000000000")

# Smallest token price PriceType can store
MIN_TOKEN_PRICE_USD = Decimal("0.000000000001")


@dataclass(frozen=True)
class BinaryPlanConfig:
    """Rates and limits of the compensation plan."""

    referral_rate: Decimal = Decimal("0.10")
    pairing_rate: Decimal = Decimal("0.08")
    earnings_cap_multiplier: Decimal = Decimal("3")
    cap_usd_to_token_multiplier: Decimal = Decimal("33")
    withdrawal_cap_amount: Decimal = Decimal("10000")
    withdrawal_cap_window: timedelta = timedelta(hours=24)
    max_tree_depth: int = 10_000
    team_view_max_depth: int = 10
    yield_delay: timedelta = timedelta(hours=24)
    token_decimals: int = 6
    report_utc_offset: timedelta = timedelta(hours=7)
    daily_invest_report_days: int = 10

    @property
    def token_quantum(self) -> Decimal:
        """Smallest representable token amount (e.g. 0.000001)."""
        return Decimal(1).scaleb(-self.token_decimals)

    @classmethod
    def from_settings(cls, source: Settings | None = None) -> "BinaryPlanConfig":
        """
        Build plan configuration from application settings.

        Args:
            source: Settings instance (defaults to global settings)

        Returns:
            BinaryPlanConfig
        """
        source = source or settings
        return cls(
            referral_rate=source.referral_rate,
            pairing_rate=source.pairing_rate,
            earnings_cap_multiplier=source.earnings_cap_multiplier,
            cap_usd_to_token_multiplier=source.cap_usd_to_token_multiplier,
            withdrawal_cap_amount=source.withdrawal_cap_amount,
            withdrawal_cap_window=timedelta(
                hours=source.withdrawal_cap_window_hours
            ),
            max_tree_depth=source.max_tree_depth,
            team_view_max_depth=source.team_view_max_depth,
            yield_delay=timedelta(hours=source.yield_delay_hours),
            token_decimals=source.token_decimals,
            report_utc_offset=timedelta(hours=source.report_utc_offset_hours),
            daily_invest_report_days=source.daily_invest_report_days,
        )


def default_plan_config() -> BinaryPlanConfig:
    """Get plan configuration derived from the global settings."""
    return BinaryPlanConfig.from_settings(settings)
