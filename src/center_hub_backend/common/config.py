'''
Holds all the configurations
'''
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    """
    Manages application configuration using environment variables.
    """
    # Application Metadata
    APP_NAME: str = "CenterHub Backend"
    APP_VERSION: str = "0.1.0"
    APP_DESCRIPTION: str = "The backend API for the CenterHub school-management platform."
    TEST_MODE: bool = False
    LOG_LEVEL: str = "INFO"

    # Database URL
    DATABASE_URL_PROD: str
    DATABASE_URL_TEST: str = "sqlite+aiosqlite:///:memory:"
    @property
    def database_url(self) -> str:
        """
        Dynamically returns the correct database URL based on the test_mode flag.
        """
        if self.TEST_MODE:
            return self.DATABASE_URL_TEST
        return self.DATABASE_URL_PROD

    # JWT Settings
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # CORS origins on top of the defaults in main.py
    BACKEND_CORS_ORIGINS: list[str] = []

    # Finance settings
    INVOICE_DUE_DAY: int = 10  # day of the month following the invoice month
    INVOICE_NUMBER_PREFIX: str = "INV"

    class Config:
        env_file = ".env" # automatically loads the .env

# Create a single, importable instance of the settings
settings = Settings()
