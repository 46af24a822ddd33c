from typing import Dict, List
from pydantic import BaseModel, Field

from .error import RecordError


class RecordErrorStats(BaseModel):
    """Malformed-record tally: message -> line numbers, in file order."""
    total_errors: int = 0
    lines_by_message: Dict[str, List[int]] = Field(default_factory=dict)

    def record(self, error: RecordError) -> None:
        self.total_errors += 1
        self.lines_by_message.setdefault(error.message, []).append(error.line)

    def messages(self) -> List[str]:
        return list(self.lines_by_message.keys())

    def count(self, message: str) -> int:
        return len(self.lines_by_message.get(message, []))

    def __bool__(self) -> bool:
        return self.total_errors > 0
