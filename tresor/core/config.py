from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # API Settings
    PROJECT_NAME: str = "Tresor API"
    API_V1_STR: str = "/api/v1"
    PROJECT_VERSION: str = "0.1.0"
    DESCRIPTION: str = "Obligation ledger and tontine reconciliation engine"

    # Storage
    STORE_BACKEND: str = "mongo"  # mongo | memory
    MONGODB_URI: str = "mongodb://localhost:27017"
    MONGODB_DB: str = "tresor"
    # Multi-document transactions need a replica set
    MONGODB_USE_TRANSACTIONS: bool = False

    # JWT
    JWT_SECRET: str = "change-this-in-production"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRATION_MINUTES: int = 30

    # Reconciliation categories
    CATEGORY_SETTLEMENT_RECEIVED: str = "Remboursement reçu"
    CATEGORY_SETTLEMENT_PAID: str = "Remboursement dette"
    CATEGORY_TONTINE: str = "Tontine"

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env",
        extra="ignore"
    )

settings = Settings()
