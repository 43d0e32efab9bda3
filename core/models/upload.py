"""Data models for uploaded images and their analysis."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class AnalysisStatus(Enum):
    """Analysis status of an uploaded image.

    Transitions are monotonic: PENDING -> PROCESSING -> {COMPLETED, FAILED}.
    """
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def rank(self) -> int:
        return _STATUS_RANK[self]

    @property
    def is_final(self) -> bool:
        return self in (AnalysisStatus.COMPLETED, AnalysisStatus.FAILED)

    def can_transition_to(self, target: "AnalysisStatus") -> bool:
        """Check whether moving from this status to target is allowed.

        Re-asserting the same non-final status is allowed; final states
        accept nothing.
        """
        if self.is_final:
            return False
        if target == self:
            return True
        return target.rank > self.rank


_STATUS_RANK = {
    AnalysisStatus.PENDING: 0,
    AnalysisStatus.PROCESSING: 1,
    AnalysisStatus.COMPLETED: 2,
    AnalysisStatus.FAILED: 2,
}


@dataclass
class AnalysisResults:
    """Summary results mirrored onto the image record."""
    crop_type: str
    disease: Optional[str]
    confidence: float

    def to_patch(self) -> Dict[str, Any]:
        return {
            "crop_type": self.crop_type,
            "detected_disease": self.disease,
            "confidence_score": self.confidence,
        }


@dataclass
class UploadRecord:
    """Row of the `images` collection.

    Attributes:
        id: Identifier assigned by the persistence gateway
        file_name: Original file name
        file_path: Retrievable URL of the stored object
        file_size: Size in bytes
        mime_type: MIME type of the stored object
        analysis_status: Current analysis status
        crop_type: Detected crop (set on completion)
        detected_disease: Detected disease (set on completion)
        confidence_score: Disease confidence in percent
        user_id: Owner, unused in this system
        created_at: ISO timestamp set by the gateway
        updated_at: ISO timestamp set by the gateway
    """
    id: str
    file_name: str
    file_path: str
    file_size: int
    mime_type: str
    analysis_status: AnalysisStatus = AnalysisStatus.PENDING
    crop_type: Optional[str] = None
    detected_disease: Optional[str] = None
    confidence_score: Optional[float] = None
    user_id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "UploadRecord":
        return cls(
            id=str(row["id"]),
            file_name=row.get("file_name", ""),
            file_path=row.get("file_path", ""),
            file_size=int(row.get("file_size") or 0),
            mime_type=row.get("mime_type", ""),
            analysis_status=AnalysisStatus(row.get("analysis_status", "pending")),
            crop_type=row.get("crop_type"),
            detected_disease=row.get("detected_disease"),
            confidence_score=row.get("confidence_score"),
            user_id=row.get("user_id"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "file_name": self.file_name,
            "file_path": self.file_path,
            "file_size": self.file_size,
            "mime_type": self.mime_type,
            "analysis_status": self.analysis_status.value,
            "crop_type": self.crop_type,
            "detected_disease": self.detected_disease,
            "confidence_score": self.confidence_score,
            "user_id": self.user_id,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass
class AnalysisResult:
    """Row of the `analysis_results` collection."""
    image_id: str
    crop_type: str
    crop_confidence: float
    disease_name: Optional[str] = None
    disease_confidence: Optional[float] = None
    description: Optional[str] = None
    treatment_recommendations: List[str] = field(default_factory=list)
    severity_level: Optional[str] = None  # low, medium, high, critical
    affected_area_percentage: Optional[float] = None
    model_version: str = "mock-0"
    processing_time_ms: int = 0
    id: Optional[str] = None
    created_at: Optional[str] = None

    def to_record(self) -> Dict[str, Any]:
        """Fields written to the gateway (id and created_at are assigned there)."""
        return {
            "image_id": self.image_id,
            "crop_type": self.crop_type,
            "crop_confidence": self.crop_confidence,
            "disease_name": self.disease_name,
            "disease_confidence": self.disease_confidence,
            "description": self.description,
            "treatment_recommendations": list(self.treatment_recommendations),
            "severity_level": self.severity_level,
            "affected_area_percentage": self.affected_area_percentage,
            "model_version": self.model_version,
            "processing_time_ms": self.processing_time_ms,
        }

    def summary(self) -> AnalysisResults:
        return AnalysisResults(
            crop_type=self.crop_type,
            disease=self.disease_name,
            confidence=self.disease_confidence,
        )


@dataclass
class AnalysisReport:
    """Payload handed to the results view."""
    record: UploadRecord
    result: AnalysisResult
    image: Optional[bytes] = None

    def to_dict(self) -> Dict[str, Any]:
        data = self.result.to_record()
        data["id"] = self.result.id
        return {
            "image": self.record.to_dict(),
            "results": data,
        }
