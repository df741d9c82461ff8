"""
Pydantic schemas for FastAPI endpoints.
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any


class ExtractRequest(BaseModel):
    """Request model for /api/extract endpoint.

    Fields are optional here so that missing ones are reported together by
    the job coordinator as a single client error.
    """

    docsUrl: Optional[str] = Field(default=None, description="Documentation page to extract from")
    extractionType: Optional[str] = Field(default=None, description="What to extract, e.g. 'Quick installation guide'")
    model: Optional[str] = Field(default=None, description="Model override for this job")

    class Config:
        json_schema_extra = {
            "example": {
                "docsUrl": "https://docs.example.com/getting-started",
                "extractionType": "Quick installation guide",
            }
        }


class ExtractResponse(BaseModel):
    """Response model for /api/extract endpoint."""

    jobId: str = Field(..., description="Job ID for polling")
    status: str = Field(default="processing", description="Initial job status")


class JobResponse(BaseModel):
    """Response model for /api/job/{jobId} endpoint."""

    status: str = Field(..., description="Job status: processing, completed, failed")
    result: Optional[Any] = Field(default=None, description="Result payload, present when completed")
    error: Optional[str] = Field(default=None, description="Failure description, present when failed")


class JobSummary(BaseModel):
    """One entry in /api/jobs."""

    id: str = Field(..., description="Job ID")
    status: str = Field(..., description="Job status")
    created_at: str = Field(..., description="ISO timestamp when job was submitted")
    finished_at: Optional[str] = Field(default=None, description="ISO timestamp when job finished")
    error: Optional[str] = Field(default=None, description="Failure description")


class JobListResponse(BaseModel):
    """Response model for /api/jobs endpoint."""

    jobs: List[JobSummary] = Field(..., description="List of jobs, newest first")


class DocEntry(BaseModel):
    """A generated document."""

    name: str = Field(..., description="File name")
    path: str = Field(..., description="Relative path of the file")


class DocListResponse(BaseModel):
    """Response model for /api/docs endpoint."""

    docs: List[DocEntry] = Field(default_factory=list, description="Generated documents")


class HealthResponse(BaseModel):
    """Response model for /health endpoint."""

    status: str = Field(..., description="Service status")
    components: Dict[str, bool] = Field(default_factory=dict, description="Component availability")
    jobs: Dict[str, int] = Field(default_factory=dict, description="Job counts per status")


class ErrorResponse(BaseModel):
    """Error body returned by all client and server errors."""

    error: str = Field(..., description="Error message")
