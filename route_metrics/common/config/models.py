from typing import Optional, List, Literal
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PERCENTILES = [0.50, 0.70, 0.80, 0.90, 0.95]

# environment variables use this prefix for log processor settings
ENV_PREFIX = "CSI_RM_"

class LoggingConfig(BaseSettings):
    level: str = "INFO"
    format: str = "json"

    model_config = SettingsConfigDict(env_prefix="LOG_")

class LogProcessorConfig(BaseSettings):
    reporter: str = "csv"
    # digits are a file descriptor, anything else a path
    output: str = "1"
    template: Optional[str] = None
    unit: Literal["us", "ms"] = "us"
    percentiles: List[float] = DEFAULT_PERCENTILES
    log_file: str = "route-metrics.log"

    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX)

    @field_validator("percentiles")
    @classmethod
    def _check_percentiles(cls, value: List[float]) -> List[float]:
        if not value:
            raise ValueError("at least one percentile is required")
        for p in value:
            if not 0 <= p <= 1:
                raise ValueError(f"percentile {p} is outside [0, 1]")
        return value

    @property
    def output_fd(self) -> Optional[int]:
        return int(self.output) if self.output.isdigit() else None

class AppConfig(BaseSettings):
    app_name: str = "route-metrics"
    version: str = "1.0.0"

    log_processor: LogProcessorConfig = Field(default_factory=LogProcessorConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(env_nested_delimiter="__")
