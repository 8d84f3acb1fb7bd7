from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env")

    APP_NAME: str = "RMS-ORDERS"
    SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"
    DATABASE_URL: str = "sqlite+pysqlite:///./rms.db"
    BUSINESS_TIMEZONE: str = "UTC"
    ORDER_NUMBER_MAX_RETRIES: int = 5
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100
    METRICS_ENABLED: bool = True


settings = Settings()
