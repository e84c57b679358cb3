from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    API_BASE_URL: str = "http://localhost:5000/api"
    API_TOKEN: str | None = None
    REQUEST_TIMEOUT_SECONDS: float = 10.0

    AUTHORITY_PROVIDER: str = "mock"
    MOCK_LATENCY_SECONDS: float = 0.0

    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"


settings = Settings()
