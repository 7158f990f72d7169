"""
Application configuration module using Pydantic BaseSettings v2.

This module provides centralized configuration management for the BillNotify
service, loading settings from environment variables and .env files.
Provider credentials live here and are injected into each provider client
at construction time.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be configured via environment variables or a .env file.
    Environment variable names are case-insensitive.
    """

    # WhatsApp Business API Configuration (via Zoko)
    # Zoko authenticates with an "apikey" header and exposes the same
    # message endpoint for free text and registered templates
    zoko_api_key: str = ""
    zoko_text_url: str = "https://chat.zoko.io/v2/message"
    zoko_template_url: str = "https://chat.zoko.io/v2/message"
    zoko_invoice_template_id: str = "invoice_generated"
    zoko_template_language: str = "en"
    use_invoice_template: bool = True  # False sends invoices as WhatsApp text

    # SMS Provider Configuration (Fast2SMS bulk API)
    fast2sms_api_key: str = ""
    fast2sms_url: str = "https://www.fast2sms.com/dev/bulkV2"
    fast2sms_route: str = "q"  # Quick route, no DLT template required

    # Applied to every outbound provider call
    provider_timeout_seconds: float = 20.0

    # Invoice link configuration
    public_base_url: str | None = None
    fallback_link_host: str = "invoice.mittiarts.com"
    allowed_link_hosts: list[str] = []

    # Application Configuration
    app_name: str = "BillNotify"
    debug: bool = False
    environment: str = "development"
    rate_limit: str = "30/minute"

    # Pydantic v2 configuration using model_config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


# Create singleton settings instance
# Settings will be loaded from environment variables or .env file
settings = Settings()
