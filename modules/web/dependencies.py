"""Dependency injection for FastAPI endpoints."""

from fastapi import Request

from modules.analysis.pipeline import AnalysisPipeline
from modules.camera.controller import CameraController
from modules.contact.service import ContactService
from modules.team.roster import TeamRoster
from modules.upload.service import ImageUploadService
from modules.web.state import AppState


def get_app_state(request: Request) -> AppState:
    """Get application state from request."""
    return request.app.state.app_state


def get_camera(request: Request) -> CameraController:
    """Get the camera controller."""
    return get_app_state(request).orchestrator.camera


def get_uploads(request: Request) -> ImageUploadService:
    """Get the image upload service."""
    return get_app_state(request).orchestrator.uploads


def get_pipeline(request: Request) -> AnalysisPipeline:
    """Get the analysis pipeline."""
    return get_app_state(request).orchestrator.pipeline


def get_roster(request: Request) -> TeamRoster:
    """Get the team roster."""
    return get_app_state(request).orchestrator.roster


def get_contact(request: Request) -> ContactService:
    """Get the contact form service."""
    return get_app_state(request).orchestrator.contact
