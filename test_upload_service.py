"""Tests for image upload, status mirroring and the analysis pipeline."""

import asyncio
from pathlib import Path
from urllib.parse import unquote, urlparse

import pytest

from core.interfaces.events import EventType
from core.interfaces.persistence import ANALYSIS_RESULTS, IMAGES, StatusUpdateError, StorageError
from core.models.capture import CapturedImage, CaptureSource, SelectedFile
from core.models.upload import AnalysisResults, AnalysisStatus
from modules.analysis.mock_analyzer import MOCK_CROP, MOCK_DISEASE, MOCK_TREATMENTS, MockAnalyzer
from modules.analysis.pipeline import AnalysisConflict, AnalysisPipeline
from modules.camera.file_select import select_from_file
from modules.upload.service import ImageUploadService, object_path_for


@pytest.fixture
def uploads(gateway, event_bus):
    return ImageUploadService(gateway, bucket="crop-images", event_bus=event_bus)


@pytest.fixture
def pipeline(gateway, uploads, event_bus):
    return AnalysisPipeline(gateway, uploads, analyzer=MockAnalyzer(delay_seconds=0), event_bus=event_bus)


@pytest.fixture
def jpeg_image():
    return CapturedImage(data=b"\xff\xd8\xff\xe0jpegdata", width=640, height=480, source=CaptureSource.CAMERA)


class TestAnalysisStatus:

    def test_forward_transitions_allowed(self):
        assert AnalysisStatus.PENDING.can_transition_to(AnalysisStatus.PROCESSING)
        assert AnalysisStatus.PENDING.can_transition_to(AnalysisStatus.FAILED)
        assert AnalysisStatus.PROCESSING.can_transition_to(AnalysisStatus.COMPLETED)
        assert AnalysisStatus.PROCESSING.can_transition_to(AnalysisStatus.PROCESSING)

    def test_backward_and_final_transitions_refused(self):
        assert not AnalysisStatus.PROCESSING.can_transition_to(AnalysisStatus.PENDING)
        assert not AnalysisStatus.COMPLETED.can_transition_to(AnalysisStatus.FAILED)
        assert not AnalysisStatus.FAILED.can_transition_to(AnalysisStatus.COMPLETED)
        assert not AnalysisStatus.COMPLETED.can_transition_to(AnalysisStatus.COMPLETED)


class TestSelectFromFile:

    def test_reads_dimensions(self, png_bytes):
        image = select_from_file(SelectedFile("leaf.png", png_bytes, "image/png"))

        assert image.source == CaptureSource.FILE_SELECT
        assert (image.width, image.height) == (32, 24)
        assert image.file_name == "leaf.png"

    def test_undecodable_content_keeps_zero_dimensions(self):
        image = select_from_file(SelectedFile("notes.jpg", b"not an image", "application/octet-stream"))

        assert (image.width, image.height) == (0, 0)
        assert image.mime_type == "image/jpeg"

    def test_empty_file_rejected(self):
        with pytest.raises(ValueError):
            select_from_file(SelectedFile("empty.png", b"", "image/png"))


class TestImageUploadService:

    def test_object_path_uses_mime_extension(self, jpeg_image):
        path = object_path_for(jpeg_image)

        assert path.endswith(".jpg")
        assert path != object_path_for(jpeg_image)

    def test_upload_creates_pending_record(self, uploads, gateway, jpeg_image, event_bus):
        record = uploads.upload(jpeg_image)

        assert record.analysis_status == AnalysisStatus.PENDING
        assert record.file_name == "camera-capture.jpg"
        assert record.file_size == len(jpeg_image.data)
        assert record.mime_type == "image/jpeg"
        assert Path(unquote(urlparse(record.file_path).path)).read_bytes() == jpeg_image.data
        assert gateway.get(IMAGES, record.id)["analysis_status"] == "pending"
        assert event_bus.get_history(EventType.IMAGE_UPLOADED)[0].data["image_id"] == record.id

    def test_upload_selected_file(self, uploads, png_bytes):
        record = uploads.upload(SelectedFile("leaf.png", png_bytes, "image/png"))

        assert record.file_name == "leaf.png"
        assert record.mime_type == "image/png"
        assert record.file_path.endswith(".png")

    def test_upload_failure_raises_and_records_error(self, uploads, gateway, jpeg_image, mocker, event_bus):
        mocker.patch.object(gateway, "upload_object", side_effect=StorageError("bucket unavailable"))

        with pytest.raises(StorageError):
            uploads.upload(jpeg_image)

        assert uploads.last_error == "bucket unavailable"
        assert not uploads.uploading
        assert gateway.select(IMAGES) == []
        assert event_bus.get_history(EventType.STORAGE_ERROR)

    def test_status_moves_forward(self, uploads, jpeg_image):
        record = uploads.upload(jpeg_image)

        assert uploads.update_status(record.id, AnalysisStatus.PROCESSING)
        assert uploads.update_status(
            record.id,
            AnalysisStatus.COMPLETED,
            AnalysisResults(crop_type="Rice", disease="Blast", confidence=80.0),
        )

        stored = uploads.get_record(record.id)
        assert stored.analysis_status == AnalysisStatus.COMPLETED
        assert stored.crop_type == "Rice"
        assert stored.detected_disease == "Blast"
        assert stored.confidence_score == 80.0

    def test_status_never_moves_backward(self, uploads, gateway, jpeg_image, event_bus):
        record = uploads.upload(jpeg_image)
        uploads.update_status(record.id, AnalysisStatus.FAILED)

        assert not uploads.update_status(record.id, AnalysisStatus.PROCESSING)

        assert "Illegal status transition" in uploads.last_error
        assert gateway.get(IMAGES, record.id)["analysis_status"] == "failed"
        assert event_bus.get_history(EventType.STATUS_UPDATE_ERROR)

    def test_status_update_failure_is_not_raised(self, uploads, gateway, jpeg_image, mocker):
        record = uploads.upload(jpeg_image)
        mocker.patch.object(gateway, "update", side_effect=StorageError("offline"))

        assert not uploads.update_status(record.id, AnalysisStatus.PROCESSING)
        assert uploads.last_error == "offline"
        assert uploads.get_record(record.id).analysis_status == AnalysisStatus.PENDING

    def test_expected_status_guards_transition(self, uploads, gateway, jpeg_image):
        record = uploads.upload(jpeg_image)

        assert uploads.update_status(record.id, AnalysisStatus.PROCESSING, expected=AnalysisStatus.PENDING)
        assert not uploads.update_status(record.id, AnalysisStatus.PROCESSING, expected=AnalysisStatus.PENDING)

        assert "expected pending" in uploads.last_error
        assert gateway.get(IMAGES, record.id)["analysis_status"] == "processing"

    def test_unknown_image(self, uploads):
        assert not uploads.update_status("missing", AnalysisStatus.PROCESSING)
        assert "Unknown image" in uploads.last_error

    def test_get_record_falls_back_to_gateway(self, gateway, uploads, event_bus, jpeg_image):
        record = uploads.upload(jpeg_image)
        fresh = ImageUploadService(gateway, event_bus=event_bus)

        assert fresh.get_record(record.id).id == record.id
        assert fresh.get_record("missing") is None


class TestAnalysisPipeline:

    @pytest.mark.asyncio
    async def test_analyze_completes_record(self, pipeline, gateway, jpeg_image, event_bus):
        report = await pipeline.analyze(jpeg_image)

        assert report.record.analysis_status == AnalysisStatus.COMPLETED
        assert report.record.crop_type == MOCK_CROP
        assert report.record.detected_disease == MOCK_DISEASE
        assert report.record.confidence_score == 87.0
        assert report.image == jpeg_image.data

        results = gateway.select(ANALYSIS_RESULTS, filters={"image_id": report.record.id})
        assert len(results) == 1
        assert results[0]["treatment_recommendations"] == MOCK_TREATMENTS
        assert results[0]["severity_level"] == "medium"
        assert report.result.id == results[0]["id"]

        transitions = [
            (e.data["from"], e.data["to"])
            for e in reversed(event_bus.get_history(EventType.ANALYSIS_STATUS_CHANGED))
        ]
        assert transitions == [("pending", "processing"), ("processing", "completed")]
        assert event_bus.get_history(EventType.ANALYSIS_COMPLETED)

    @pytest.mark.asyncio
    async def test_report_payload(self, pipeline, jpeg_image):
        report = await pipeline.analyze(jpeg_image)

        payload = report.to_dict()
        assert payload["image"]["analysis_status"] == "completed"
        assert payload["results"]["crop_type"] == MOCK_CROP
        assert payload["results"]["id"] == report.result.id

    @pytest.mark.asyncio
    async def test_upload_failure_stops_pipeline(self, pipeline, gateway, jpeg_image, mocker):
        mocker.patch.object(gateway, "upload_object", side_effect=StorageError("denied"))

        with pytest.raises(StorageError):
            await pipeline.analyze(jpeg_image)

        assert gateway.select(IMAGES) == []
        assert gateway.select(ANALYSIS_RESULTS) == []

    @pytest.mark.asyncio
    async def test_result_write_failure_marks_failed(self, pipeline, uploads, gateway, jpeg_image, mocker):
        record = uploads.upload(jpeg_image)
        mocker.patch.object(gateway, "insert", side_effect=StorageError("results table missing"))

        with pytest.raises(StorageError):
            await pipeline.analyze_record(record)

        assert gateway.get(IMAGES, record.id)["analysis_status"] == "failed"

    @pytest.mark.asyncio
    async def test_cancelled_analysis_marks_failed(self, gateway, uploads, event_bus, jpeg_image):
        slow = AnalysisPipeline(gateway, uploads, analyzer=MockAnalyzer(delay_seconds=5), event_bus=event_bus)
        record = uploads.upload(jpeg_image)

        task = asyncio.create_task(slow.analyze_record(record))
        await asyncio.sleep(0.1)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert gateway.get(IMAGES, record.id)["analysis_status"] == "failed"

    @pytest.mark.asyncio
    async def test_concurrent_analyses_of_one_image_run_once(self, pipeline, uploads, gateway, jpeg_image):
        record = uploads.upload(jpeg_image)

        outcomes = await asyncio.gather(
            pipeline.analyze_record(record),
            pipeline.analyze_record(record),
            return_exceptions=True,
        )

        conflicts = [o for o in outcomes if isinstance(o, AnalysisConflict)]
        reports = [o for o in outcomes if not isinstance(o, BaseException)]
        assert len(conflicts) == 1
        assert len(reports) == 1
        assert len(gateway.select(ANALYSIS_RESULTS, filters={"image_id": record.id})) == 1
        assert gateway.get(IMAGES, record.id)["analysis_status"] == "completed"
        assert "expected pending" in uploads.last_error

    @pytest.mark.asyncio
    async def test_finished_image_is_not_analyzed_again(self, pipeline, gateway, jpeg_image):
        report = await pipeline.analyze(jpeg_image)

        with pytest.raises(AnalysisConflict, match="already completed"):
            await pipeline.analyze_record(report.record)

        assert len(gateway.select(ANALYSIS_RESULTS)) == 1

    @pytest.mark.asyncio
    async def test_processing_write_failure_stops_pipeline(self, pipeline, uploads, gateway, jpeg_image, mocker):
        record = uploads.upload(jpeg_image)
        mocker.patch.object(gateway, "update", side_effect=StorageError("offline"))

        with pytest.raises(StatusUpdateError, match="offline"):
            await pipeline.analyze_record(record)

        assert gateway.select(ANALYSIS_RESULTS) == []
