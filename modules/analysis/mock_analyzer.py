"""Placeholder crop-disease analyzer returning a fixed diagnosis.

The real prediction model is not part of this system; this analyzer waits
a fixed delay and reports the demonstration result.
"""

import asyncio
import logging
import time

from core.models.upload import AnalysisResult, UploadRecord

logger = logging.getLogger(__name__)

MOCK_CROP = "Rice (Oryza sativa)"
MOCK_CROP_CONFIDENCE = 94.0
MOCK_DISEASE = "Bacterial Leaf Blight"
MOCK_DISEASE_CONFIDENCE = 87.0
MOCK_DESCRIPTION = (
    "Bacterial Leaf Blight is a serious bacterial disease that affects rice plants. "
    "It causes leaf lesions that start as water-soaked spots and develop into brown "
    "streaks with yellow halos. This disease can significantly reduce yield if left untreated."
)
MOCK_TREATMENTS = [
    "Apply streptomycin spray (200-300 ppm) early morning",
    "Improve field drainage to reduce humidity",
    "Remove infected plant debris",
    "Apply copper-based fungicide as preventive measure",
]


class MockAnalyzer:
    """Fixed-delay stand-in for the disease detection model."""

    def __init__(self, delay_seconds: float = 3.0, model_version: str = "mock-0"):
        self.delay_seconds = delay_seconds
        self.model_version = model_version

    async def analyze(self, record: UploadRecord) -> AnalysisResult:
        """Produce the demonstration diagnosis for an uploaded image."""
        started = time.monotonic()
        logger.info(f"Analyzing image {record.id} (mock, {self.delay_seconds}s)")

        if self.delay_seconds > 0:
            await asyncio.sleep(self.delay_seconds)

        return AnalysisResult(
            image_id=record.id,
            crop_type=MOCK_CROP,
            crop_confidence=MOCK_CROP_CONFIDENCE,
            disease_name=MOCK_DISEASE,
            disease_confidence=MOCK_DISEASE_CONFIDENCE,
            description=MOCK_DESCRIPTION,
            treatment_recommendations=list(MOCK_TREATMENTS),
            severity_level="medium",
            model_version=self.model_version,
            processing_time_ms=int((time.monotonic() - started) * 1000),
        )
