from dataclasses import dataclass


@dataclass
class AppConfig:
    name: str
    secret_key: str
    base_currency: str


@dataclass
class EmailConfig:
    enabled: bool
    smtp_host: str
    smtp_port: int
    smtp_user: str
    smtp_password: str
    sender: str
    frontend_url: str


@dataclass
class StripeConfig:
    secret_key: str
    webhook_secret: str
    currency: str


@dataclass
class PricingConfig:
    platform_fee_rate: str
    default_vat_rate: str


@dataclass
class NotificationConfig:
    realtime_gateway_url: str
    realtime_timeout: int
