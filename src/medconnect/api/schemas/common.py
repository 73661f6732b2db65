"""
Common schemas shared across routers.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Request model that reads camelCase JSON and exposes snake_case attributes."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class MessageResponse(BaseModel):
    """Envelope returned by doctor endpoints; payload keys vary per operation."""

    model_config = ConfigDict(extra="allow")

    message: str = Field(..., description="Human-readable outcome")


class ApiResponse(BaseModel, Generic[T]):
    success: bool = Field(True, description="Operation success status")
    message: str = Field("", description="Response message")
    timestamp: str = Field(
        default_factory=lambda: datetime.utcnow().isoformat(),
        description="Response timestamp",
    )
    request_id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Request ID for tracking")
    data: Optional[T] = Field(None, description="Response payload")


class ErrorResponse(BaseModel):
    """Standardized error response schema."""

    success: bool = Field(False, description="Operation success status")
    error: str = Field(..., description="Error type/code")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")
    timestamp: str = Field(
        default_factory=lambda: datetime.utcnow().isoformat(),
        description="Error timestamp",
    )
    request_id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Request ID for tracking")
