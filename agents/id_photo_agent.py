# agents/id_photo_agent.py
import os, sys, base64, re
from typing import Any, Protocol

import vertexai
from vertexai.generative_models import GenerativeModel, Part
from pydantic import BaseModel

from library.models import InlineImage, TransformRequest

DEFAULT_MODEL = "gemini-2.5-flash-image-preview"
DEFAULT_LOCATION = "us-central1"
RESPONSE_MODALITIES = ["IMAGE", "TEXT"]

NO_IMAGE_MESSAGE = "The AI did not return an image. Please try a different photo."
UNKNOWN_ERROR_MESSAGE = "An unknown error occurred while generating the ID photo."

_RATIO_RE = re.compile(r"^\s*(\d+)\s*:\s*(\d+)\s*$")

INSTRUCTION_TEMPLATE = """Transform the person in the image into a standard ID photo.

**CRITICAL INSTRUCTIONS:**
1.  **Final Image Dimensions:** The MOST IMPORTANT requirement is the final image's aspect ratio. It **MUST BE EXACTLY {aspect_ratio} (width to height)**. The entire output image file must have this specific shape. This instruction is more important than all others. Do not fail on this.
2.  **Attire:** Dress the person in a simple, plain white collared shirt.
3.  **Posture:** The person must face forward, looking directly at the camera with their shoulders straight and squared.
4.  **Background:** Replace the entire background with a solid, plain, professional light blue color.
5.  **Composition:** Crop the image to a head-and-shoulders portrait.
6.  **Identity Preservation:** Do not change the person's face, hair, or identity.

Reminder: The final image's aspect ratio **MUST be {aspect_ratio}**. This is a strict requirement."""


class NoImageReturned(RuntimeError):
    pass


class TransformationFailed(RuntimeError):
    pass


class AgentConfig(BaseModel):
    """Credentials and model selection for the ID photo agent."""

    api_key: str | None = None
    project_id: str | None = None
    location: str = DEFAULT_LOCATION
    model_name: str = DEFAULT_MODEL

    @classmethod
    def from_env(cls) -> "AgentConfig":
        return cls(
            api_key=os.getenv("API_KEY") or os.getenv("GEMINI_API_KEY") or None,
            project_id=os.getenv("GOOGLE_CLOUD_PROJECT") or None,
            location=os.getenv("VERTEX_LOCATION", DEFAULT_LOCATION),
            model_name=os.getenv("ID_PHOTO_MODEL", DEFAULT_MODEL),
        )

    @property
    def has_credential(self) -> bool:
        return bool(self.api_key or self.project_id)


class Transport(Protocol):
    def send(self, request: TransformRequest) -> dict: ...


class VertexTransport:
    """Sends a TransformRequest through the Vertex AI SDK and returns the raw response dict."""

    def __init__(self, config: AgentConfig):
        self.config = config
        self._initialized = False

    def _ensure_vertex(self) -> None:
        if self._initialized:
            return
        init_kwargs = {"location": self.config.location}
        if self.config.project_id:
            init_kwargs["project"] = self.config.project_id
        if self.config.api_key:
            init_kwargs["api_key"] = self.config.api_key
        vertexai.init(**init_kwargs)
        self._initialized = True

    def send(self, request: TransformRequest) -> dict:
        self._ensure_vertex()
        model = GenerativeModel(request.model)
        response = model.generate_content(
            [
                Part.from_data(data=base64.b64decode(request.image_data), mime_type=request.mime_type),
                Part.from_text(request.instruction),
            ],
            generation_config={"response_modalities": list(request.response_modalities)},
        )
        return response.to_dict()


def parse_aspect_ratio(value: str) -> tuple[int, int]:
    """Parse a "W:H" token into positive integers, raising ValueError otherwise."""
    m = _RATIO_RE.match(value or "")
    if not m:
        raise ValueError(f"Invalid aspect ratio '{value}'. Expected the form W:H, e.g. 3:4.")
    width, height = int(m.group(1)), int(m.group(2))
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid aspect ratio '{value}'. Width and height must be positive.")
    return width, height


def build_instruction(aspect_ratio: str) -> str:
    return INSTRUCTION_TEMPLATE.format(aspect_ratio=aspect_ratio)


def _get(obj: Any, *keys: str) -> Any:
    # service answers in camelCase, SDK dicts may use snake_case
    if not isinstance(obj, dict):
        return None
    for key in keys:
        if key in obj:
            return obj[key]
    return None


def find_inline_image(response: dict) -> InlineImage | None:
    """
    Returns the first part of the first candidate that carries inline image
    data, or None when the response holds only text (or nothing at all).
    """
    candidates = _get(response, "candidates") or []
    if not candidates:
        return None
    parts = _get(_get(candidates[0], "content"), "parts") or []
    for part in parts:
        inline = _get(part, "inlineData", "inline_data")
        data = _get(inline, "data")
        if data:
            if isinstance(data, bytes):
                data = base64.b64encode(data).decode("utf-8")
            return InlineImage(data=data, mime_type=_get(inline, "mimeType", "mime_type"))
    return None


class IdPhotoAgent:
    """Turns a personal photo into an ID photo with one generation call."""

    def __init__(self, config: AgentConfig, transport: Transport | None = None):
        self.config = config
        self.transport = transport or VertexTransport(config)

    def build_request(self, image_b64: str, mime_type: str, aspect_ratio: str) -> TransformRequest:
        if not image_b64:
            raise ValueError("No image data provided.")
        parse_aspect_ratio(aspect_ratio)
        return TransformRequest(
            model=self.config.model_name,
            image_data=image_b64,
            mime_type=mime_type,
            instruction=build_instruction(aspect_ratio),
            response_modalities=list(RESPONSE_MODALITIES),
        )

    def generate(self, image_b64: str, mime_type: str, aspect_ratio: str) -> InlineImage:
        """
        Same as transform() but keeps the media type reported for the
        generated image. All failures surface as TransformationFailed.
        """
        request = self.build_request(image_b64, mime_type, aspect_ratio)
        print(f"ID Photo Agent: Requesting {aspect_ratio} ID photo from {request.model}...")
        try:
            response = self.transport.send(request)
            image = find_inline_image(response)
            if image is None:
                raise NoImageReturned(NO_IMAGE_MESSAGE)
        except Exception as e:
            print(f"ID Photo Agent: Error calling Gemini API: {e!r}", file=sys.stderr)
            message = str(e)
            if message:
                raise TransformationFailed(f"Failed to generate ID photo: {message}") from e
            raise TransformationFailed(UNKNOWN_ERROR_MESSAGE) from e
        print("ID Photo Agent: Image received.")
        return image

    def transform(self, image_b64: str, mime_type: str, aspect_ratio: str) -> str:
        return self.generate(image_b64, mime_type, aspect_ratio).data


def transform_to_id_photo(
    image_b64: str,
    mime_type: str,
    aspect_ratio: str,
    config: AgentConfig | None = None,
    transport: Transport | None = None,
) -> str:
    agent = IdPhotoAgent(config or AgentConfig.from_env(), transport=transport)
    return agent.transform(image_b64, mime_type, aspect_ratio)
