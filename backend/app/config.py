"""
Application configuration loaded from environment variables.
"""
from functools import lru_cache
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings from environment variables."""
    
    # BTCPay Greenfield API
    btcpay_base_url: str = "http://localhost:23001"
    btcpay_api_key: str = ""
    btcpay_user_store_id: Optional[str] = None
    btcpay_session_store_id: Optional[str] = None
    btcpay_verification_token_store_id: Optional[str] = None
    btcpay_timeout_seconds: float = 30.0
    
    # Auth handler
    nextauth_secret: str = "CHANGE_ME_IN_PRODUCTION_USE_STRONG_SECRET"
    auth_origin: str = "http://localhost:8000"
    auth_base_path: str = "/api/auth"
    sign_in_page: str = "/auth/login"
    verify_request_page: str = "/auth/verify"
    magic_link_max_age_seconds: int = 60 * 60
    session_max_age_seconds: int = 30 * 24 * 60 * 60
    session_update_age_seconds: int = 24 * 60 * 60
    session_cookie_name: str = "next-auth.session-token"
    
    # Magic link email transport (SMTP)
    # MARANGADU_* are the names the deployed relay is configured with
    smtp_host: Optional[str] = Field(None, validation_alias=AliasChoices("SMTP_HOST", "MARANGADU_HOST"))
    smtp_port: int = Field(587, validation_alias=AliasChoices("SMTP_PORT", "MARANGADU_PORT"))
    smtp_user: Optional[str] = Field(None, validation_alias=AliasChoices("SMTP_USER", "MARANGADU_USER"))
    smtp_password: Optional[str] = Field(
        None, validation_alias=AliasChoices("SMTP_PASSWORD", "MARANGADU_PASSWORD")
    )
    smtp_from: str = Field(
        "no-reply@localhost", validation_alias=AliasChoices("SMTP_FROM", "MARANGADU_FROM")
    )
    smtp_use_tls: bool = True
    
    # Logging
    log_level: str = "INFO"
    
    class Config:
        env_file = ".env"
        extra = "ignore"
        populate_by_name = True
    
    @property
    def store_ids(self) -> dict[str, Optional[str]]:
        """Store identifiers keyed by collection name, as the adapter expects them."""
        return {
            "Users": self.btcpay_user_store_id,
            "Sessions": self.btcpay_session_store_id,
            "VerificationTokens": self.btcpay_verification_token_store_id,
        }
    
    @property
    def secure_cookies(self) -> bool:
        """Only mark cookies Secure when served over https."""
        return self.auth_origin.startswith("https://")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
