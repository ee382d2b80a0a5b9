"""
Engine Settings and Configuration Management

Uses pydantic-settings for type-safe configuration from environment variables.
"""

from typing import Annotated, List, Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Forecast engine settings loaded from environment variables"""

    # Application
    app_name: str = "SaaS Forecast Engine"
    app_version: str = "0.1.0"
    environment: str = Field(default="development", validation_alias="ENVIRONMENT")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    # Ensemble
    weights_path: Optional[str] = Field(default=None, validation_alias="ENSEMBLE_WEIGHTS_PATH")
    weight_learning_rate: float = Field(default=0.1, validation_alias="WEIGHT_LEARNING_RATE")
    activation_function: str = Field(default="relu", validation_alias="NONLINEAR_ACTIVATION")
    hidden_layers: Annotated[List[int], NoDecode] = Field(default=[64, 32], validation_alias="NONLINEAR_HIDDEN_LAYERS")

    # Monte Carlo
    default_simulations: int = Field(default=1000, validation_alias="MONTE_CARLO_SIMULATIONS")
    max_simulations: int = Field(default=10000, validation_alias="MONTE_CARLO_MAX_SIMULATIONS")
    simulation_workers: int = Field(default=1, validation_alias="MONTE_CARLO_WORKERS")

    # Stress-test fallbacks when a request carries no cash-flow inputs
    default_operating_expenses: float = Field(default=50000.0, validation_alias="DEFAULT_OPERATING_EXPENSES")
    default_expense_growth_rate: float = Field(default=0.05, validation_alias="DEFAULT_EXPENSE_GROWTH_RATE")
    default_gross_margin_rate: float = Field(default=0.7, validation_alias="DEFAULT_GROSS_MARGIN_RATE")

    # External data
    external_data_url: Optional[str] = Field(default=None, validation_alias="EXTERNAL_DATA_URL")
    external_data_api_key: Optional[str] = Field(default=None, validation_alias="EXTERNAL_DATA_API_KEY")
    external_data_timeout: float = Field(default=10.0, validation_alias="EXTERNAL_DATA_TIMEOUT")

    # Prediction tracking
    max_prediction_records: int = Field(default=100, validation_alias="MAX_PREDICTION_RECORDS")
    predictions_file: Optional[str] = Field(default=None, validation_alias="PREDICTIONS_FILE")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is valid"""
        allowed = ["development", "staging", "production", "test"]
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("activation_function")
    @classmethod
    def validate_activation(cls, v: str) -> str:
        allowed = ["relu", "sigmoid", "tanh"]
        if v not in allowed:
            raise ValueError(f"activation_function must be one of {allowed}")
        return v

    @field_validator("hidden_layers", mode="before")
    @classmethod
    def parse_hidden_layers(cls, v):
        """Parse hidden layer sizes from a comma separated string or list"""
        if isinstance(v, str):
            return [int(size.strip()) for size in v.split(",") if size.strip()]
        return v

    @field_validator("weight_learning_rate")
    @classmethod
    def validate_learning_rate(cls, v: float) -> float:
        if not 0 < v <= 1:
            raise ValueError("weight_learning_rate must be in (0, 1]")
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.environment == "production"


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get the global settings instance."""
    return settings
