"""
CodeSnap Backend — Upload Service
===================================

What:  Validates and decodes CSV/XML file uploads before they become pastes.
How:   Extension check, size check (declared Content-Length, then actual
       bytes), then UTF-8 decoding. The decoded text is stored as the
       paste content; nothing is written to disk.
Who:   Called by PasteService.create_from_upload.

Validation order:
    1. Extension  → ValidationError (400)
    2. Size       → PayloadTooLargeError (413), empty → ValidationError
    3. Encoding   → ValidationError (400)
"""

import logging
from pathlib import Path
from typing import Optional, Tuple

from codesnap.exceptions import PayloadTooLargeError, ValidationError

logger = logging.getLogger(__name__)

# extension → file_type stored on the paste
ALLOWED_EXTENSIONS = {
    ".csv": "csv",
    ".xml": "xml",
}

MEDIA_TYPES = {
    "csv": "text/csv",
    "xml": "application/xml",
}


class UploadService:
    """
    Upload validation bound to a maximum size in bytes.

    Args:
        max_size: Upper bound for uploaded files (settings.max_upload_size)
    """

    def __init__(self, max_size: int):
        self.max_size = max_size

    def validate_extension(self, filename: str) -> str:
        """
        Returns: the file type ("csv" or "xml").
        Raises:  ValidationError if the extension is not allowed.
        """
        ext = Path(filename or "").suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext or 'none'}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="file",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ALLOWED_EXTENSIONS[ext]

    def validate_size(self, content_length: Optional[int], actual_size: int) -> None:
        """
        Checks the declared size first, then the bytes actually received.

        Raises:
            PayloadTooLargeError: either size exceeds max_size
            ValidationError: the file is empty
        """
        if content_length and content_length > self.max_size:
            raise PayloadTooLargeError(self.max_size, content_length)

        if actual_size > self.max_size:
            raise PayloadTooLargeError(self.max_size, actual_size)

        if actual_size == 0:
            raise ValidationError(message="Uploaded file is empty", field="file")

    def decode(self, data: bytes, filename: str) -> str:
        """UTF-8 decode, stripping a leading BOM."""
        try:
            return data.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise ValidationError(
                message="Uploaded file must be UTF-8 encoded text",
                field="file",
                context={"filename": filename, "position": e.start},
            )

    def read_upload(
        self,
        filename: str,
        data: bytes,
        content_length: Optional[int] = None,
    ) -> Tuple[str, str]:
        """
        Full pipeline: extension → size → decode.

        Returns:
            (file_type, text)
        """
        file_type = self.validate_extension(filename)
        self.validate_size(content_length, len(data))
        text = self.decode(data, filename)
        logger.info("Accepted %s upload %s (%d bytes)", file_type, filename, len(data))
        return file_type, text
