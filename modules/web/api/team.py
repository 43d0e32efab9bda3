"""Team roster and contact form API endpoints."""

import asyncio
import logging
from typing import List, Optional
from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from modules.web.dependencies import get_contact, get_roster

logger = logging.getLogger(__name__)

router = APIRouter()


class TeamMemberResponse(BaseModel):
    """Response model for a team member."""
    id: str
    name: str
    role: str = ""
    specialization: str = ""
    description: str = ""
    image_url: Optional[str] = None
    github_url: Optional[str] = None
    linkedin_url: Optional[str] = None
    email: Optional[str] = None
    display_order: int = 0


class TeamResponse(BaseModel):
    members: List[TeamMemberResponse]
    error: Optional[str] = None


class ContactRequest(BaseModel):
    """Request model for the contact form."""
    name: str = ""
    email: str = ""
    message: str = ""


class ContactResponse(BaseModel):
    success: bool
    message: str


@router.get("/team", response_model=TeamResponse)
async def list_team(request: Request, refresh: bool = False):
    """List active team members ordered by display_order.

    Args:
        refresh: Reload from persistence instead of serving the live copy
    """
    roster = get_roster(request)
    if refresh or not roster.members:
        members = await asyncio.to_thread(roster.fetch)
    else:
        members = roster.members

    return TeamResponse(
        members=[TeamMemberResponse(**m.to_dict()) for m in members],
        error=roster.error,
    )


@router.post("/contact", response_model=ContactResponse, status_code=201)
async def submit_contact(body: ContactRequest, request: Request):
    """Submit the contact form.

    Raises:
        HTTPException: 422 for invalid input, 502 when storage fails
    """
    contact = get_contact(request)
    error = contact.validate(body.name, body.email, body.message)
    if error:
        raise HTTPException(status_code=422, detail=error)

    if not await asyncio.to_thread(contact.submit, body.name, body.email, body.message):
        raise HTTPException(status_code=502, detail=contact.last_error or "Submission failed")

    return ContactResponse(success=True, message="Message sent successfully")
