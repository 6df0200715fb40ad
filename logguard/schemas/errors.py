"""
Error response models for the API.
"""

from pydantic import BaseModel, Field
from typing import List, Optional


class ValidationErrorItem(BaseModel):
    field: Optional[str] = Field(None, description="The field path that caused the error")
    message: str = Field(..., description="Human-readable error message")
    type: str = Field(..., description="The error type identifier")


class ErrorDetail(BaseModel):
    errors: List[ValidationErrorItem] = Field(..., description="List of validation errors")


class ErrorResponse(BaseModel):
    """Standard error response format."""
    status: str = Field("error", description="Error status")
    message: str = Field(..., description="General error message")
    detail: Optional[ErrorDetail] = Field(None, description="Detailed error information if available")
