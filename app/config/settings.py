"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

from decimal import Decimal

from loguru import logger
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str
    database_echo: bool = False

    # Redis (dramatiq broker)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str | None = None
    redis_db: int = 0

    # Application
    environment: str = "production"
    debug: bool = False
    log_level: str = "INFO"
    log_file: str | None = "logs/app.log"

    # HTTP boundary
    api_host: str = "0.0.0.0"
    api_port: int = Field(default=8080, ge=1, le=65535)
    admin_api_token: str | None = None
    health_check_port: int = Field(
        default=8081, ge=1, le=65535, description="Scheduler health check port"
    )

    # Binary plan rates
    referral_rate: Decimal = Field(
        default=Decimal("0.10"), ge=0, le=1,
        description="Direct sponsor bonus as a fraction of the invested tokens"
    )
    pairing_rate: Decimal = Field(
        default=Decimal("0.08"), ge=0, le=1,
        description="Pairing bonus as a fraction of matched volume"
    )
    earnings_cap_multiplier: Decimal = Field(
        default=Decimal("3"), gt=0,
        description="Balance may not exceed investment base times this value"
    )
    cap_usd_to_token_multiplier: Decimal = Field(
        default=Decimal("33"), gt=0,
        description="Fixed USD -> ledger unit multiplier used by the earnings cap sweep"
    )
    withdrawal_cap_amount: Decimal = Field(
        default=Decimal("10000"), gt=0,
        description="Maximum withdrawn tokens inside the rolling window"
    )
    withdrawal_cap_window_hours: int = Field(default=24, gt=0)
    max_tree_depth: int = Field(
        default=10_000, gt=0,
        description="Hop-count ceiling for tree walks; exceeding it means a corrupt tree"
    )
    team_view_max_depth: int = Field(default=10, ge=0)
    yield_delay_hours: int = Field(default=24, gt=0)
    token_decimals: int = Field(default=6, ge=0, le=8)
    report_utc_offset_hours: int = Field(
        default=7, ge=-12, le=14,
        description="UTC offset of the calendar days in admin reports"
    )
    daily_invest_report_days: int = Field(default=10, gt=0, le=366)

    # Price oracle
    price_oracle_url: str = (
        "https://api.geckoterminal.com/api/v2/networks/bsc/pools/"
        "0x5cd8cd9ef2f3f1771082ecd36e0c2b00deb284de"
    )
    price_oracle_timeout_seconds: float = Field(default=10.0, gt=0)
    fixed_token_price_usd: Decimal | None = Field(
        default=None, gt=0,
        description="Static token price; bypasses the HTTP oracle when set"
    )

    # Scheduler
    earnings_cap_cron: str = "0 0 * * *"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode='after')
    def validate_production(self) -> 'Settings':
        """Validate production-specific requirements."""
        if self.environment == 'production':
            if self.debug:
                raise ValueError(
                    'DEBUG must be False in production environment. '
                    'Set DEBUG=false in your .env file.'
                )

            if not self.admin_api_token or len(self.admin_api_token) < 32:
                raise ValueError(
                    'ADMIN_API_TOKEN must be at least 32 characters in '
                    'production. Generate one with: openssl rand -hex 32'
                )

            if self.fixed_token_price_usd is not None:
                logger.warning(
                    'FIXED_TOKEN_PRICE_USD is set in production; '
                    'the live price oracle will not be used.'
                )

        return self

    @field_validator('database_url')
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL."""
        if not v.startswith(
            ('postgresql://', 'postgresql+asyncpg://', 'sqlite+aiosqlite://')
        ):
            raise ValueError(
                'DATABASE_URL must start with postgresql://, '
                'postgresql+asyncpg:// or sqlite+aiosqlite://'
            )
        if v.startswith('postgresql://'):
            return v.replace('postgresql://', 'postgresql+asyncpg://', 1)
        return v

    @field_validator('earnings_cap_cron')
    @classmethod
    def validate_cron(cls, v: str) -> str:
        """Validate crontab expression has five fields."""
        if len(v.split()) != 5:
            raise ValueError(
                f'Invalid EARNINGS_CAP_CRON: {v!r}. '
                'Expected five crontab fields, e.g. "0 0 * * *"'
            )
        return v


# Global settings instance
settings = Settings()
