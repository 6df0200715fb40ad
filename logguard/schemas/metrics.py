from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel


class ApiCallMetric(BaseModel):
    endpoint: str
    method: str
    status: int
    duration: float
    success: bool
    timestamp: Optional[datetime] = None


class PerformanceSummary(BaseModel):
    api_calls: List[ApiCallMetric]
    total_requests: int
    successful_requests: int
    failed_requests: int
    average_response_time: float
    slowest_endpoint: str
    fastest_endpoint: str
    error_rate: float
