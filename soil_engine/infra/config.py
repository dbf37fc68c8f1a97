from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    default_crop_type: str = Field(default="Corn", validation_alias="DEFAULT_CROP_TYPE")
    temperature_stress_low: float = Field(
        default=5.0, validation_alias="TEMPERATURE_STRESS_LOW"
    )
    temperature_stress_high: float = Field(
        default=40.0, validation_alias="TEMPERATURE_STRESS_HIGH"
    )
    analysis_store: str = Field(default="memory", validation_alias="ANALYSIS_STORE")
    analysis_store_path: Optional[str] = Field(
        default=None, validation_alias="ANALYSIS_STORE_PATH"
    )
    analysis_store_max_items: int = Field(
        default=500, validation_alias="ANALYSIS_STORE_MAX_ITEMS"
    )
    batch_max_workers: int = Field(default=4, ge=1, validation_alias="BATCH_MAX_WORKERS")
    log_path: Optional[str] = Field(default=None, validation_alias="LOG_PATH")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    api_error_log_path: Optional[str] = Field(
        default=None, validation_alias="API_ERROR_LOG_PATH"
    )
    fastapi_port: int = Field(default=8000, validation_alias="FASTAPI_PORT")

    @field_validator("analysis_store", mode="after")
    @classmethod
    def normalize_analysis_store(cls, value: str) -> str:
        return value.strip().lower() if value else value

    @field_validator("default_crop_type", mode="after")
    @classmethod
    def strip_crop_type(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("DEFAULT_CROP_TYPE must not be blank")
        return value

    @model_validator(mode="after")
    def check_temperature_band(self) -> "AppConfig":
        if self.temperature_stress_low >= self.temperature_stress_high:
            raise ValueError(
                "TEMPERATURE_STRESS_LOW must be below TEMPERATURE_STRESS_HIGH"
            )
        return self


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    return AppConfig()
