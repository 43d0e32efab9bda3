"""Manual file selection, the alternative to live camera capture."""

import logging
import mimetypes
from pathlib import Path

from core.models.capture import CapturedImage, CaptureSource, SelectedFile
from modules.camera.encoding import image_dimensions

logger = logging.getLogger(__name__)


def load_selected_file(path: str) -> SelectedFile:
    """Read a file from disk as a user selection."""
    file_path = Path(path)
    mime_type, _ = mimetypes.guess_type(file_path.name)
    return SelectedFile(
        name=file_path.name,
        content=file_path.read_bytes(),
        mime_type=mime_type or "application/octet-stream",
    )


def select_from_file(selected: SelectedFile) -> CapturedImage:
    """Wrap a user-chosen file as a CapturedImage.

    No camera, resolution or readiness precondition applies. Dimensions are
    read when the content decodes as an image and left at 0 otherwise.

    Raises:
        ValueError: If the file is empty
    """
    if not selected.content:
        raise ValueError(f"Selected file is empty: {selected.name}")

    width, height = 0, 0
    try:
        width, height = image_dimensions(selected.content)
    except OSError as e:
        logger.debug(f"Could not read dimensions of {selected.name}: {e}")

    mime_type = selected.mime_type
    if not mime_type or mime_type == "application/octet-stream":
        guessed, _ = mimetypes.guess_type(selected.name)
        mime_type = guessed or "application/octet-stream"

    image = CapturedImage(
        data=selected.content,
        width=width,
        height=height,
        source=CaptureSource.FILE_SELECT,
        file_name=selected.name,
        mime_type=mime_type,
    )
    logger.info(f"Selected file {selected.name} ({image.size_bytes} bytes, {mime_type})")
    return image
