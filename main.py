print("🔥 Starting main.py")

import sys
from typing import Optional

from fastapi import Depends, FastAPI, File, Form, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from agents.id_photo_agent import AgentConfig, IdPhotoAgent, TransformationFailed
from library import image_ops
from library.models import AspectRatioList, AspectRatioPreset, IdPhotoResponse

# --- Environment & Config ---
CONFIG = AgentConfig.from_env()
DEFAULT_ASPECT_RATIO = "3:4"
ASPECT_RATIO_PRESETS = [
    AspectRatioPreset(value="3:4", label="3x4 cm"),
    AspectRatioPreset(value="4:6", label="4x6 cm"),
]


def _warn_if_no_credential(config: AgentConfig) -> bool:
    """Print a startup warning when no credential is configured; never raises."""
    if config.has_credential:
        print(f"[startup] ID photo model {config.model_name} configured.")
        return True
    print(
        "[startup] API_KEY environment variable not set. Generation requests will fail "
        "until an API key or GOOGLE_CLOUD_PROJECT is configured.",
        file=sys.stderr,
    )
    return False


_warn_if_no_credential(CONFIG)

# --- App Init ---
app = FastAPI(title="ID Photo Generator")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # adjust in prod
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# one agent per process so the Vertex SDK is initialised once
AGENT = IdPhotoAgent(CONFIG)


def get_agent() -> IdPhotoAgent:
    return AGENT

# --- Health ---
@app.get("/health")
def health():
    return {"status": "ok", "credential_configured": CONFIG.has_credential}

# --- ID Photo Endpoints ---
@app.get("/id-photo/aspect-ratios", response_model=AspectRatioList)
def list_aspect_ratios():
    return AspectRatioList(default=DEFAULT_ASPECT_RATIO, presets=ASPECT_RATIO_PRESETS)

@app.post("/id-photo", response_model=IdPhotoResponse)
def generate_id_photo(
    aspect_ratio: str = Form(DEFAULT_ASPECT_RATIO),
    data_url: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    agent: IdPhotoAgent = Depends(get_agent),
):
    """Transform an uploaded photo into an ID photo.

    The photo arrives either as a multipart ``file`` or as a ``data_url``
    form field. The result is returned as a data URL together with the
    file name the client should offer when saving it. Invalid uploads and
    malformed aspect ratios are rejected with a 400; generation failures
    are reported with a 502 carrying the failure message.
    """
    try:
        if file is not None:
            raw_data, declared_type = file.file.read(), file.content_type
        elif data_url:
            raw_data, declared_type = image_ops.decode_data_url(data_url)
        else:
            raw_data, declared_type = None, None
        if not raw_data:
            raise HTTPException(status_code=400, detail="No image data provided.")
        mime_type = image_ops.sniff_image(raw_data, declared_type)
    except image_ops.InvalidImageError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        result = agent.generate(image_ops.to_base64(raw_data), mime_type, aspect_ratio)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except TransformationFailed as e:
        raise HTTPException(status_code=502, detail=str(e))

    result_type = result.mime_type or "image/png"
    return IdPhotoResponse(
        image=image_ops.to_data_url(result.data, result_type),
        mime_type=result_type,
        aspect_ratio=aspect_ratio,
    )
