"""
Pydantic Models and Schemas
===========================

Core data models for render requests, pipeline state and API responses.
"""

from typing import Optional, Dict, Any, Union
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, ValidationError


class RequestDecodeError(Exception):
    """Exception raised when an inbound render request cannot be decoded."""

    pass


# Enums
class ImageFormat(str, Enum):
    """Output image formats understood by the encoder."""

    PNG = "png"
    JPEG = "jpeg"
    WEBP = "webp"

    @classmethod
    def parse(cls, name: Optional[str]) -> Optional["ImageFormat"]:
        """
        Resolve a case-insensitive format name.

        Args:
            name: Format name such as "PNG", "jpg" or "WebP"

        Returns:
            Matching format, or None if the name is not recognised
        """
        if not name:
            return None
        normalized = name.lower()
        if normalized == "jpg":
            return cls.JPEG
        try:
            return cls(normalized)
        except ValueError:
            return None


class RenderState(str, Enum):
    """Render session states."""

    CREATED = "created"
    LOADING = "loading"
    DELAYING = "delaying"
    RESIZING = "resizing"
    CAPTURING = "capturing"
    ENCODING = "encoding"
    COMPLETED = "completed"


# Request Models
class Params(BaseModel):
    """Parameters of a single render request. Immutable once decoded."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(..., min_length=1, description="Page URL to render")
    id: str = Field(..., description="Caller-supplied correlation key")
    format: str = Field("png", description="Output format: png, jpeg/jpg, webp")
    quality: int = Field(80, description="Encoder quality, passed through unclamped")
    delay: int = Field(0, ge=0, description="Milliseconds to wait after page load")
    width: int = Field(1024, gt=0, description="Viewport and output width")
    height: int = Field(768, gt=0, description="Output height, replaced when full is set")
    zoom: float = Field(1.0, gt=0, description="Page zoom factor")
    full: bool = Field(False, description="Capture the full content height")

    @property
    def image_format(self) -> Optional[ImageFormat]:
        return ImageFormat.parse(self.format)

    @classmethod
    def decode(cls, raw: Union[str, bytes, bytearray]) -> "Params":
        """
        Decode a serialized JSON request.

        Args:
            raw: JSON object with url, id, format, quality, delay, width,
                height, zoom and full fields

        Returns:
            Decoded parameters

        Raises:
            RequestDecodeError: If the payload is not a valid request
        """
        try:
            return cls.model_validate_json(raw)
        except ValidationError as e:
            raise RequestDecodeError(f"Invalid render request: {e.error_count()} error(s)") from e


# API Response Models
class SubmitResponse(BaseModel):
    """Response for an accepted render submission."""

    status: str = Field("accepted", description="Submission status")


class ResultResponse(BaseModel):
    """Stored render result."""

    id: str = Field(..., description="Request identifier")
    data: str = Field(..., description="Hex encoded image bytes, empty for unsupported formats")
    size: int = Field(..., description="Decoded image size in bytes")


class HealthStatus(BaseModel):
    """Service health status."""

    status: str = Field(..., description="Overall health status")
    version: str = Field(..., description="Application version")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    engine: bool = Field(..., description="Rendering engine available")
    result_store: bool = Field(..., description="Result store reachable")
    stored_results: int = Field(0, description="Number of stored results")
    in_flight: int = Field(0, description="Render sessions in progress")
    memory_usage: Optional[float] = Field(None, description="Resident memory in MB")


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: Any = Field(..., description="Error message")
    error_code: Optional[str] = Field(None, description="Error code")
    details: Optional[Dict[str, Any]] = Field(None, description="Error details")
    request_id: Optional[str] = Field(None, description="Request identifier")
