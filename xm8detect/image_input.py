"""Upload validation: presence, mime type, size and a decodable image body.

Everything here runs before any upstream call. The image is never
resized, cropped or re-encoded; the original bytes go upstream.
"""

import logging
from dataclasses import dataclass
from io import BytesIO
from typing import Optional, Tuple

from fastapi import UploadFile
from PIL import Image

from xm8detect.errors import InputValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImageUpload:
    filename: Optional[str]
    content_type: str
    data: bytes
    width: int
    height: int

    @property
    def size(self) -> int:
        return len(self.data)


def get_image_resolution(data: bytes) -> Tuple[int, int]:
    """Return (width, height), raising InputValidationError for unreadable images."""
    try:
        with Image.open(BytesIO(data)) as img:
            size = img.size
            img.verify()
    except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as e:
        raise InputValidationError("Uploaded file is not a readable image", str(e)) from e
    return size


async def read_upload(image: Optional[UploadFile], max_bytes: int) -> ImageUpload:
    if image is None:
        raise InputValidationError("No image file provided")

    content_type = image.content_type or ""
    if not content_type.startswith("image/"):
        raise InputValidationError("Only image files are allowed!", f"content_type={content_type!r}")

    max_mb = max_bytes // (1024 * 1024)
    if image.size is not None and image.size > max_bytes:
        raise InputValidationError(f"File too large. Maximum size is {max_mb}MB.")

    # read one byte past the limit so oversize bodies without a size header are caught
    data = await image.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise InputValidationError(f"File too large. Maximum size is {max_mb}MB.")
    if not data:
        raise InputValidationError("Uploaded file is empty")

    width, height = get_image_resolution(data)
    logger.info(
        "Accepted upload %s (%s, %s bytes, %sx%s)",
        image.filename,
        content_type,
        len(data),
        width,
        height,
    )
    return ImageUpload(
        filename=image.filename,
        content_type=content_type,
        data=data,
        width=width,
        height=height,
    )
