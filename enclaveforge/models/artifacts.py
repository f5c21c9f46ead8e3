"""Image and measurement artifact models."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


class ImageArtifact(BaseModel):
    """A built image, identified only by its reference string."""

    model_config = ConfigDict(frozen=True)

    reference: str  # "name:tag" or bare name
    platform: str


class EnclaveMeasurement(BaseModel):
    """An MRENCLAVE value copied out of a measurement container.

    ``raw_bytes`` are exactly the bytes written to ``local_path``; ``value``
    is the same text with surrounding whitespace removed.  The encoding is
    opaque: only non-emptiness is checked.
    """

    model_config = ConfigDict(frozen=True)

    raw_bytes: bytes
    value: str
    source_file_path: str
    local_path: str
    digest: str  # "sha256:<hex>" of raw_bytes
    extracted_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
