"""
Pydantic schemas for audit requests.
"""

from typing import Optional
from pydantic import BaseModel, Field


class AuditRequest(BaseModel):
    """Request to start an audit run."""
    audit: str = Field(..., description="Built-in audit name")
    base_url: Optional[str] = Field(None, description="Target base URL (defaults to AUDIT_BASE_URL)")
    project_root: Optional[str] = Field(None, description="Project tree for file checks")
    concurrency: Optional[int] = Field(None, ge=1, description="Checks in flight")
    
    class Config:
        json_schema_extra = {
            "example": {
                "audit": "endpoint-security",
                "base_url": "http://localhost:5000"
            }
        }


class AuditResponse(BaseModel):
    """Response for a started audit."""
    job_id: str
    status: str
    audit: str
