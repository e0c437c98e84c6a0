from typing import List

from pydantic import BaseModel, Field


class HandlerInfo(BaseModel):
    """A registered handler module as reported by the HTTP API."""
    id: str = Field(..., description="Handler ID the module is registered under")
    description: str = Field(default="", description="Human readable description")
    methods: List[str] = Field(default_factory=list, description="Method names in declaration order")


class HealthStatus(BaseModel):
    status: str = "ok"
    handlers: int = 0
