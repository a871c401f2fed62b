"""
Services.

Business logic layer.
"""

# Base Service Infrastructure
from app.services.base_service import (
    BaseService,
    ServiceResult,
    log_operation,
    transaction,
)

# Binary Plan Engines
from app.services.binary import (
    PairingSettlementEngine,
    PlacementEngine,
    PvPropagationEngine,
)
from app.services.binary_service import BinaryService
from app.services.earnings_cap_service import EarningsCapService, SweepReport
from app.services.investment_service import InvestmentService, PurchaseResult
from app.services.member_service import MemberService
from app.services.package_service import PackageService
from app.services.price_oracle import (
    FixedPriceOracle,
    GeckoTerminalPriceOracle,
    PriceOracle,
    create_price_oracle,
)
from app.services.referral import ReferralBonusEngine
from app.services.wallet_service import WalletService


__all__ = [
    # Base
    "BaseService",
    "ServiceResult",
    "log_operation",
    "transaction",
    # Engines
    "PairingSettlementEngine",
    "PlacementEngine",
    "PvPropagationEngine",
    "ReferralBonusEngine",
    # Services
    "BinaryService",
    "EarningsCapService",
    "InvestmentService",
    "MemberService",
    "PackageService",
    "WalletService",
    # Results
    "PurchaseResult",
    "SweepReport",
    # Price
    "FixedPriceOracle",
    "GeckoTerminalPriceOracle",
    "PriceOracle",
    "create_price_oracle",
]
