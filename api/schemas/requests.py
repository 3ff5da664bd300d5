"""
Pydantic schemas for design request endpoints.

Submission fields are accepted leniently here; field rules live in
intake.validation so the submitter gets every reason at once.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from intake.models import DesignRequest, RequestDraft, RequestStatus


class DesignRequestCreate(BaseModel):
    """Request model for submitting a design request."""

    client_name: str = ""
    email: str = ""
    contact_handle: str = Field(default="", description="Discord username, optional")
    service_type: str = ""
    description: str = ""
    budget: str | None = None
    contact_info: str = ""

    def to_draft(self) -> RequestDraft:
        return RequestDraft(
            client_name=self.client_name,
            email=self.email,
            contact_handle=self.contact_handle,
            service_type=self.service_type,
            description=self.description,
            budget=self.budget,
            contact_info=self.contact_info,
        )


class DesignRequestResponse(BaseModel):
    """Response model for design requests."""

    id: str
    client_name: str
    email: str
    contact_handle: str
    service_type: str
    description: str
    budget: str | None = None
    contact_info: str
    status: str
    created_at: datetime
    updated_at: datetime | None = None
    admin_notes: str | None = None

    @classmethod
    def from_domain(cls, request: DesignRequest) -> DesignRequestResponse:
        return cls(
            id=request.id,
            client_name=request.client_name,
            email=request.email,
            contact_handle=request.contact_handle,
            service_type=request.service_type,
            description=request.description,
            budget=request.budget,
            contact_info=request.contact_info,
            status=request.status.value,
            created_at=request.created_at,
            updated_at=request.updated_at,
            admin_notes=request.admin_notes,
        )


class SubmitResponse(BaseModel):
    """Created request plus non-blocking warnings (e.g. notification failures)."""

    request: DesignRequestResponse
    warnings: list[str] = []


class StatusDecision(BaseModel):
    """Admin decision on a request."""

    status: str
    admin_notes: str | None = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        """Validate that status is a valid RequestStatus."""
        valid = [s.value for s in RequestStatus]
        if v not in valid:
            raise ValueError(f"invalid status: {v}. Must be one of {valid}")
        return v


class DecisionResponse(BaseModel):
    """Result of an admin decision."""

    request_id: str
    status: str
    updated: bool
    request: DesignRequestResponse | None = None
    warnings: list[str] = []
