from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    ENV: str = "dev"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    DATABASE_URL: str = "sqlite:///./treasury.db"
    AUTO_CREATE_TABLES: bool = False

    DEFAULT_CURRENCY: str = "EUR"
    SUPPORTED_CURRENCIES: list[str] = ["EUR", "MAD", "USD"]

    # Treasury forecast / BFR
    FORECAST_DEFAULT_MONTHS: int = 6
    FORECAST_ALLOWED_MONTHS: list[int] = [3, 6, 12]
    UPCOMING_WINDOW_DAYS: int = 30

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
