"""
配置文件 - 计费引擎配置管理

Environment variables map onto the nested groups with a double underscore,
e.g. ``BILLING__RETRY__RETRY_INTERVALS=1,3,5,7`` or
``BILLING__INVOICE_NUMBER__PREFIX=ACME``.
"""
import json
from typing import Annotated, Any, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from domain.checkout import CheckoutMode, CheckoutOptions
from domain.invoice import InvoiceNumberConfig
from domain.marketplace import MarketplaceOptions
from domain.payment import PaymentRetryConfig


def _parse_list(v: Any) -> Any:
    """允许 JSON 字符串或逗号分隔字符串两种格式。"""
    if isinstance(v, (list, tuple)):
        return list(v)
    if isinstance(v, int):
        return [v]
    if isinstance(v, str):
        s = v.strip()
        if not s:
            return []
        if s.startswith("[") and s.endswith("]"):
            try:
                arr = json.loads(s)
            except json.JSONDecodeError as exc:
                raise ValueError(f"invalid JSON list: {s}") from exc
            if isinstance(arr, list):
                return arr
        return [item.strip() for item in s.split(",") if item.strip()]
    return v


class RetrySettings(BaseModel):
    retry_intervals: Annotated[list[int], NoDecode] = Field(default_factory=lambda: [1, 3, 5, 7])
    max_attempts: int = 4
    grace_period_days: int = 7
    notify_on_each_failure: bool = True
    notify_before_grace_expires: bool = True
    grace_expiration_warning_days: Annotated[list[int], NoDecode] = Field(default_factory=lambda: [2, 1])

    @field_validator("retry_intervals", "grace_expiration_warning_days", mode="before")
    @classmethod
    def _parse_days(cls, v):
        return _parse_list(v)

    @field_validator("retry_intervals")
    @classmethod
    def _validate_intervals(cls, v: list[int]) -> list[int]:
        if not v:
            raise ValueError("retry_intervals must not be empty")
        if any(days < 0 for days in v):
            raise ValueError("retry_intervals must be non-negative")
        return v

    @field_validator("max_attempts", "grace_period_days")
    @classmethod
    def _validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be non-negative")
        return v

    def to_domain(self) -> PaymentRetryConfig:
        return PaymentRetryConfig(
            retry_intervals=tuple(self.retry_intervals),
            max_attempts=self.max_attempts,
            grace_period_days=self.grace_period_days,
            notify_on_each_failure=self.notify_on_each_failure,
            notify_before_grace_expires=self.notify_before_grace_expires,
            grace_expiration_warning_days=tuple(self.grace_expiration_warning_days),
        )


class InvoiceNumberSettings(BaseModel):
    prefix: str = "INV"
    include_year: bool = True
    reset_annually: bool = True
    sequence_digits: int = 6
    separator: str = "-"
    include_tenant_prefix: bool = False

    @field_validator("sequence_digits")
    @classmethod
    def _validate_digits(cls, v: int) -> int:
        if v < 1:
            raise ValueError("sequence_digits must be at least 1")
        return v

    def to_domain(self) -> InvoiceNumberConfig:
        return InvoiceNumberConfig(
            prefix=self.prefix,
            include_year=self.include_year,
            reset_annually=self.reset_annually,
            sequence_digits=self.sequence_digits,
            separator=self.separator,
            include_tenant_prefix=self.include_tenant_prefix,
        )


class CheckoutSettings(BaseModel):
    default_expiration_minutes: int = 30
    require_customer: bool = False
    # None means every mode is allowed
    allowed_modes: Annotated[Optional[list[CheckoutMode]], NoDecode] = None
    default_currency: str = "USD"

    @field_validator("allowed_modes", mode="before")
    @classmethod
    def _parse_modes(cls, v):
        if v is None:
            return v
        return _parse_list(v)

    @field_validator("default_expiration_minutes")
    @classmethod
    def _validate_expiration(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("default_expiration_minutes must be positive")
        return v

    @field_validator("default_currency")
    @classmethod
    def _normalize_currency(cls, v: str) -> str:
        if len(v) != 3:
            raise ValueError("currency must be a 3-letter code")
        return v.upper()

    def to_domain(self) -> CheckoutOptions:
        return CheckoutOptions(
            default_expiration_minutes=self.default_expiration_minutes,
            require_customer=self.require_customer,
            allowed_modes=frozenset(self.allowed_modes) if self.allowed_modes is not None else None,
        )


class MarketplaceSettings(BaseModel):
    default_commission_rate: float = 10.0
    min_commission: Optional[int] = None
    max_commission: Optional[int] = None
    default_minimum_payout_amount: int = 0

    @field_validator("default_commission_rate")
    @classmethod
    def _validate_rate(cls, v: float) -> float:
        if not 0 <= v <= 100:
            raise ValueError("default_commission_rate must be between 0 and 100")
        return v

    @field_validator("min_commission", "max_commission", "default_minimum_payout_amount")
    @classmethod
    def _validate_amount(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 0:
            raise ValueError("must be non-negative")
        return v

    def to_domain(self) -> MarketplaceOptions:
        return MarketplaceOptions(
            default_commission_rate=self.default_commission_rate,
            min_commission=self.min_commission,
            max_commission=self.max_commission,
            default_minimum_payout_amount=self.default_minimum_payout_amount,
        )


class BillingSettings(BaseModel):
    retry: RetrySettings = Field(default_factory=RetrySettings)
    invoice_number: InvoiceNumberSettings = Field(default_factory=InvoiceNumberSettings)
    checkout: CheckoutSettings = Field(default_factory=CheckoutSettings)
    marketplace: MarketplaceSettings = Field(default_factory=MarketplaceSettings)


class Settings(BaseSettings):
    """项目配置"""

    # 基础配置
    PROJECT_NAME: str = "Billing Engine"
    VERSION: str = "1.0.0"
    DEBUG: bool = True
    ENVIRONMENT: str = "development"

    # 日志配置
    LOG_LEVEL: Optional[str] = None  # defaults to DEBUG when DEBUG is on, INFO otherwise
    LOG_JSON: Optional[bool] = None  # defaults to the inverse of DEBUG

    # 分组配置：计费相关参数采用嵌套模型
    billing: BillingSettings = Field(default_factory=BillingSettings)

    # pydantic-settings v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__",
    )


settings = Settings()
