from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    service_name: str = "fastpay"
    database_url: str = "sqlite:///./fastpay.db"
    store_timeout_seconds: float = 5.0

    jwt_issuer: str = "fastpay"
    jwt_secret: str = "dev-secret-change"
    jwt_ttl_seconds: int = 3600
    bcrypt_rounds: int = 10

    starting_balance: int = 1000
    payment_id_domain: str = "fastpay"
    payment_id_max_attempts: int = 5

    port: int = 5000
    cors_origins: List[str] = ["*"]
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

def get_settings() -> Settings:
    return Settings()
