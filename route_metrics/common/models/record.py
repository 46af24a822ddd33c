from enum import Enum
from typing import Any, Union
from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, StrictStr, field_validator


class RecordType(str, Enum):
    HEADER = "header"
    METRICS = "metrics"
    PATCH = "patch"
    UNKNOWN = "unknown"

    @classmethod
    def classify(cls, type_name: str) -> "RecordType":
        try:
            return cls(type_name)
        except ValueError:
            return cls.UNKNOWN


class LogRecord(BaseModel):
    """One line of the log: `{"ts": ..., "type": ..., "entry": ...}`."""
    ts: StrictInt
    type: StrictStr
    entry: Any

    @field_validator("entry")
    @classmethod
    def _entry_present(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("entry is required")
        return value

    @property
    def kind(self) -> RecordType:
        return RecordType.classify(self.type)


class MetricsEntry(BaseModel):
    """The entry of a `metrics` record, one timed HTTP request."""
    method: StrictStr
    protocol: StrictStr
    host: StrictStr
    port: Union[StrictInt, StrictStr]
    url: StrictStr
    et: Union[StrictInt, StrictFloat]
    status_code: StrictInt = Field(alias="statusCode")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @property
    def route_signature(self) -> str:
        return f"{self.method} {self.protocol}://{self.host}:{self.port}{self.url}"
