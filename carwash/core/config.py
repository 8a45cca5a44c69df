from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    PROJECT_NAME: str = "Car Wash Booking"

    # Server
    PORT: int = 8000
    ENVIRONMENT: str = "development"

    # Security
    SECRET_KEY: str = ""

    # Supabase (empty -> in-memory store)
    SUPABASE_URL: str = ""
    SUPABASE_KEY: str = ""

    # Shops
    SHOP_CATALOG_PATH: str = ""
    TIMEZONE: str = "Asia/Kuala_Lumpur"

    # Booking rules (minutes)
    CANCEL_LEAD_MINUTES: int = 120
    AUTO_CONFIRM_LEAD_MINUTES: int = 30
    SAME_DAY_LEAD_MINUTES: int = 120

    # Background auto-confirm sweep, 0 disables it
    AUTO_CONFIRM_INTERVAL_SECONDS: int = 0

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
