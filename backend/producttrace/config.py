from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # App
    environment: str = "development"
    debug: bool = False
    allowed_origins: str = "http://localhost:3000,http://localhost:5173"
    log_level: str = "INFO"

    # Database
    database_url: str = "sqlite+aiosqlite:///./producttrace.db"

    # Auth / JWT
    secret_key: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    # Ledger
    # Identity recorded as administrator on first start; ignored once set.
    administrator_identity: str = ""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
