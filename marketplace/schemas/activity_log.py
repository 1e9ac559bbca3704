from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

LogMethod = Literal["GET", "POST", "PUT", "DELETE", "PATCH", "SEARCH"]


class RequestLogRecord(BaseModel):
    """Activity entry written for every HTTP request"""

    method: str
    route: str
    status_code: int
    latency_ms: int
    user_id: str | None = None
    organization_id: str | None = None
    user_agent: str | None = None
    ip_address: str | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def to_document(self) -> dict[str, Any]:
        return self.model_dump()


class LogStats(BaseModel):
    total_logs: int
    error_logs: int
    success_logs: int
    search_logs: int
    error_rate: float
