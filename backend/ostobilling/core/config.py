"""Configuration settings for the Ostobilling backend.

Wraps environment variables and provides defaults.
"""

from typing import Optional

from pydantic import Field, PostgresDsn, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Pydantic settings class.

    Attributes:
    ----------
        PROJECT_NAME (str): The name of the project.
        ENVIRONMENT (str): The deployment environment (local, dev, test, prd).
        LOCAL_DEVELOPMENT (bool): Whether the application is running locally.
        DEBUG (bool): Whether debug mode is enabled.
        LOG_LEVEL (str): The logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        POSTGRES_HOST (str): The PostgreSQL server hostname.
        POSTGRES_PORT (int): The PostgreSQL server port.
        POSTGRES_DB (str): The PostgreSQL database name.
        POSTGRES_USER (str): The PostgreSQL username.
        POSTGRES_PASSWORD (str): The PostgreSQL password.
        SQLALCHEMY_ASYNC_DATABASE_URI (Optional[str]): The SQLAlchemy async database URI.
        RUN_DB_CREATE_ALL (bool): Whether to create missing tables on startup.
        SEED_DEFAULT_PLANS (bool): Whether to seed the default plan catalog when it is empty.
        DEFAULT_CURRENCY (str): Currency used when a plan does not name one.
        INVOICE_NUMBER_PREFIX (str): Prefix of generated invoice numbers.
        DEFAULT_PAGE_SIZE (int): Page size used when a list request omits it.
        MAX_PAGE_SIZE (int): Upper bound for a requested page size.
        SWEEPER_ENABLED (bool): Whether the expiry sweeper runs inside the API process.
        SWEEPER_CRON (str): Cron expression of the expiry sweep schedule.
        SWEEPER_MAX_CATCH_UP_PERIODS (int): Renewals a single sweep may apply to one
            subscription that fell several periods behind.
        ADDITIONAL_CORS_ORIGINS (Optional[list[str]]): Additional CORS origins separated by
            commas or semicolons.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    PROJECT_NAME: str = "Ostobilling"
    ENVIRONMENT: str = "local"
    LOCAL_DEVELOPMENT: bool = False

    # Debug configuration
    DEBUG: bool = False

    # Logging configuration
    LOG_LEVEL: str = "INFO"

    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "ostobilling"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    SQLALCHEMY_ASYNC_DATABASE_URI: Optional[str] = Field(default=None, validate_default=True)

    RUN_DB_CREATE_ALL: bool = False
    SEED_DEFAULT_PLANS: bool = False

    # Billing configuration
    DEFAULT_CURRENCY: str = "USD"
    INVOICE_NUMBER_PREFIX: str = "INV"

    # Pagination
    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 100

    # Expiry sweeper
    SWEEPER_ENABLED: bool = False
    SWEEPER_CRON: str = "*/5 * * * *"
    SWEEPER_MAX_CATCH_UP_PERIODS: int = 24

    ADDITIONAL_CORS_ORIGINS: Optional[str] = None  # Separated by commas or semicolons

    @field_validator("ADDITIONAL_CORS_ORIGINS", mode="before")
    def parse_cors_origins(cls, v: Optional[str]) -> Optional[str]:
        """Normalize semicolon separated CORS origins to comma separated ones.

        Args:
            v: The CORS origins string.

        Returns:
            Optional[str]: The comma separated origins or None.
        """
        if v is None:
            return v
        if isinstance(v, list):
            return ",".join(v)
        origins = [origin.strip() for origin in v.replace(";", ",").split(",")]
        return ",".join(origin for origin in origins if origin)

    @field_validator("SQLALCHEMY_ASYNC_DATABASE_URI", mode="before")
    def assemble_db_connection(cls, v: Optional[str], info: ValidationInfo) -> str:
        """Build the SQLAlchemy database URI.

        Args:
        ----
            v (Optional[str]): The value of the SQLALCHEMY_ASYNC_DATABASE_URI setting.
            info (ValidationInfo): The validation context containing all field values.

        Returns:
        -------
            str: The assembled SQLAlchemy async database URI.

        """
        if isinstance(v, str):
            return v

        return str(
            PostgresDsn.build(
                scheme="postgresql+asyncpg",
                username=info.data.get("POSTGRES_USER"),
                password=info.data.get("POSTGRES_PASSWORD"),
                host=info.data.get("POSTGRES_HOST", "localhost"),
                port=info.data.get("POSTGRES_PORT"),
                path=f"{info.data.get('POSTGRES_DB') or ''}",
            )
        )

    @property
    def cors_origins(self) -> list[str]:
        """The additional CORS origins as a list.

        Returns:
            list[str]: The configured origins.
        """
        if not self.ADDITIONAL_CORS_ORIGINS:
            return []
        return self.ADDITIONAL_CORS_ORIGINS.split(",")


settings = Settings()
