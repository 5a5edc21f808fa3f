"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from BB_* environment variables"""

    model_config = SettingsConfigDict(
        env_prefix="BB_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # OAuth client credentials
    client_id: str = ""
    client_secret: str = ""
    dev_app_key: str = ""
    oauth_scope: str = "extrato-info"

    # External Services
    oauth_url: str = "https://oauth.bb.com.br"
    api_url: str = "https://api-extratos.bb.com.br"

    # mTLS
    use_mtls: bool = False
    cert_path: str = "./certificados/client.p12"
    cert_password: str = ""
    verify_ssl: bool = True

    # Token cache
    token_renew_before_expiry_seconds: int = 300

    # Service
    service_name: str = "bb-gateway"
    environment: str = "development"
    log_level: str = "INFO"

    # HTTP Client
    http_timeout_seconds: float = 30.0


settings = Settings()
