"""
Pydantic schemas for the JSON endpoints.

All plain JSON replies (hello, 404) share ApiResponse's shape:
{"message": ..., "status": "success" | "error", "timestamp": ISO-8601}.
"""

from typing import Literal

from pydantic import BaseModel


class ApiResponse(BaseModel):
    message: str
    status: Literal["success", "error"]
    timestamp: str


class DatabaseHealthInfo(BaseModel):
    connected: bool
    database_name: str
    dialect: str


class HealthResponse(BaseModel):
    """Response body for GET /health."""
    status: str
    service: str
    version: str
    database: DatabaseHealthInfo | None = None
