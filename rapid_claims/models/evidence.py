"""Evidence upload data models."""

import base64
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..utils.errors import IngestionError


SUPPORTED_MEDIA_FAMILIES = ("image", "video")


@dataclass(frozen=True)
class Evidence:
    """
    A single damage photo or video handed over by the ingestion step.

    Attributes:
        filename: Name of the uploaded file
        media_type: MIME type tag such as "image/jpeg" or "video/mp4"
        data: Raw file bytes
    """
    filename: str
    media_type: str
    data: bytes

    def __post_init__(self):
        object.__setattr__(self, "media_type", (self.media_type or "").strip().lower())
        object.__setattr__(self, "data", bytes(self.data or b""))
        self.validate()

    def validate(self) -> None:
        """
        Check this is a non-empty image or video.

        Raises:
            IngestionError: If the payload is empty or of another media family
        """
        if not self.data:
            raise IngestionError.empty_evidence(self.filename)
        if "/" not in self.media_type or self.media_family not in SUPPORTED_MEDIA_FAMILIES:
            raise IngestionError.unsupported_media(self.filename, self.media_type)

    @property
    def media_family(self) -> str:
        return self.media_type.split("/", 1)[0].lower()

    @property
    def is_video(self) -> bool:
        return self.media_family == "video"

    @property
    def size(self) -> int:
        return len(self.data)

    def encode(self) -> str:
        """Base64 text of the payload, as sent to the vision collaborator."""
        return base64.b64encode(self.data).decode("ascii")

    def data_url(self) -> str:
        """Inline preview URL for presentation layers."""
        return f"data:{self.media_type};base64,{self.encode()}"

    def describe(self) -> Dict[str, Any]:
        return {
            "filename": self.filename,
            "media_type": self.media_type,
            "size": self.size,
        }

    @classmethod
    def from_upload(
        cls,
        filename: Optional[str],
        media_type: Optional[str],
        data: Optional[bytes]
    ) -> "Evidence":
        """
        Validate an upload and wrap it as evidence.

        Args:
            filename: Uploaded filename (may be missing)
            media_type: Reported MIME type
            data: File contents

        Returns:
            Evidence instance

        Raises:
            IngestionError: If nothing was supplied or the file is not an image/video
        """
        if data is None and not filename:
            raise IngestionError.no_evidence()

        return cls(filename=filename or "evidence", media_type=media_type or "", data=data or b"")
