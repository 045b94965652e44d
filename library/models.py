"""Pydantic models and data schemas for the ID photo service.

This module defines the request entity handed to the generation transport,
the normalised inline image extracted from a model response, and the
response bodies returned by the FastAPI endpoints in ``main.py``.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class TransformRequest(BaseModel):
    """One outbound generation call.

    Attributes:
        model: Identifier of the generative model to call.
        image_data: Base64 encoded source photo.
        mime_type: Media type of the source photo, e.g. ``image/png``.
        instruction: Natural-language instruction sent alongside the image.
        response_modalities: Output modalities the model may answer with.
    """

    model: str
    image_data: str
    mime_type: str
    instruction: str
    response_modalities: List[str] = Field(default_factory=lambda: ["IMAGE", "TEXT"])

    def to_contents(self) -> Dict[str, Any]:
        """Return the request body in the service's wire shape.

        The image part always precedes the text part.
        """
        return {
            "role": "user",
            "parts": [
                {"inlineData": {"data": self.image_data, "mimeType": self.mime_type}},
                {"text": self.instruction},
            ],
        }


class InlineImage(BaseModel):
    """Image payload found in a model response.

    Attributes:
        data: Base64 encoded image bytes.
        mime_type: Media type reported by the service, if any.
    """

    data: str
    mime_type: Optional[str] = None


class IdPhotoResponse(BaseModel):
    """Response returned after a successful ID photo generation.

    Attributes:
        image: Data URL of the generated photo.
        mime_type: Media type of the generated photo.
        aspect_ratio: Aspect ratio requested for the photo.
        filename: Suggested file name for saving the photo.
    """

    image: str
    mime_type: str
    aspect_ratio: str
    filename: str = "id_photo.png"


class AspectRatioPreset(BaseModel):
    value: str
    label: str


class AspectRatioList(BaseModel):
    default: str
    presets: List[AspectRatioPreset]
