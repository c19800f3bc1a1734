from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    DATA_DIR: str = "./content"
    DEFAULT_SITE_ID: str = "default"
    ADMIN_TOKEN: str | None = None

    LOOKUP_WINDOW_MONTHS: int = 6
    NOTIFICATIONS_ENABLED: bool = True

    RESEND_API_KEY: str | None = None
    RESEND_FROM: str | None = None
    RESEND_BASE_URL: str = "https://api.resend.com"

    TWILIO_ACCOUNT_SID: str | None = None
    TWILIO_AUTH_TOKEN: str | None = None
    TWILIO_FROM: str | None = None
    TWILIO_BASE_URL: str = "https://api.twilio.com/2010-04-01"


settings = Settings()
