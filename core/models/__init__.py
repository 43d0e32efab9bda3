"""Data models."""

from .capture import (
    CaptureOutcome,
    CaptureResult,
    CaptureSource,
    CaptureStatus,
    CapturedImage,
    SelectedFile,
    StreamConstraints,
)
from .chat import ChatMessage
from .team import ContactMessage, TeamMember
from .upload import (
    AnalysisReport,
    AnalysisResult,
    AnalysisResults,
    AnalysisStatus,
    UploadRecord,
)

__all__ = [
    'CaptureOutcome',
    'CaptureResult',
    'CaptureSource',
    'CaptureStatus',
    'CapturedImage',
    'SelectedFile',
    'StreamConstraints',
    'ChatMessage',
    'ContactMessage',
    'TeamMember',
    'AnalysisReport',
    'AnalysisResult',
    'AnalysisResults',
    'AnalysisStatus',
    'UploadRecord',
]
