from fastapi import FastAPI, HTTPException, File, Form, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List
from pathlib import Path
import logging

# Branding module imports
from branding import (
    BlendMode, EncodingFailure, ExportFormat, ImageInput, InvalidInputImage,
    LogoInput, PosterExporter,
)
from branding.api_models import (
    BrandingOptionsResponse, MultiLogoExportOptions, SingleLogoExportOptions,
)
from branding.presets import MAX_LOGOS, PREVIEW_HEIGHT, PREVIEW_WIDTH, get_resolution_options

# Logging setup
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

class Settings(BaseSettings):
    base_poster_path: Optional[str] = None  # Default poster when no base is uploaded
    max_upload_mb: float = 5.0
    export_dpi: int = 300

    model_config = SettingsConfigDict(env_file=".env", env_prefix="POSTER_", extra="ignore")

settings = Settings()
app = FastAPI(title="Poster Branding", version="1.0.0")

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, restrict this
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize services
exporter = PosterExporter(
    max_upload_bytes=int(settings.max_upload_mb * 1024 * 1024),
    dpi=settings.export_dpi,
)

INVALID_IMAGE_STATUS = {
    InvalidInputImage.UNSUPPORTED_TYPE: 415,
    InvalidInputImage.TOO_LARGE: 413,
    InvalidInputImage.DECODE_FAILED: 400,
}

@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": "poster-branding"}

@app.get("/")
async def root():
    return {
        "service": "Poster Branding",
        "version": app.version,
        "description": "Logo placement, compositing and print-DPI export for posters",
        "endpoints": ["/branding/options", "/branding/export", "/branding/export-multi", "/branding/preview", "/health"],
        "config": {
            "export_dpi": exporter.dpi,
            "max_upload_mb": settings.max_upload_mb,
            "base_poster": bool(settings.base_poster_path),
        }
    }


# ==================== HELPERS ====================

async def _read_upload(upload: UploadFile) -> ImageInput:
    """Read an upload, refusing it before reading when it exceeds the ceiling."""
    limit = exporter.max_upload_bytes
    try:
        if limit is not None and upload.size is not None and upload.size > limit:
            raise _invalid_image(InvalidInputImage(
                f"{upload.filename or 'image'} is {upload.size} bytes, limit is {limit}",
                InvalidInputImage.TOO_LARGE,
                upload.filename,
            ))
        # One byte past the limit is enough for decode_image to reject it
        data = await upload.read(-1 if limit is None else limit + 1)
    finally:
        await upload.close()
    return ImageInput(data=data, content_type=upload.content_type, name=upload.filename)


async def _base_input(base: Optional[UploadFile]) -> ImageInput:
    """Uploaded base poster, or the configured default poster."""
    if base is not None:
        return await _read_upload(base)
    if not settings.base_poster_path:
        raise HTTPException(status_code=400, detail="No base poster uploaded and none configured")
    path = Path(settings.base_poster_path)
    try:
        data = path.read_bytes()
    except OSError as e:
        logger.error(f"Configured base poster unreadable: {e}")
        raise HTTPException(status_code=500, detail="Configured base poster is unavailable")
    return ImageInput(data=data, name=path.name)


def _parse_options(model, raw: str):
    try:
        return model.model_validate_json(raw or "{}")
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))


def _download(data: bytes, media_type: str, filename: str) -> Response:
    return Response(
        content=data,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def _invalid_image(e: InvalidInputImage) -> HTTPException:
    logger.warning(f"Rejected upload {e.name or ''}: {e}")
    return HTTPException(status_code=INVALID_IMAGE_STATUS.get(e.reason, 400), detail=str(e))


# ==================== BRANDING ENDPOINTS ====================

@app.get("/branding/options", response_model=BrandingOptionsResponse)
async def get_branding_options():
    """
    Get available options for poster exports.

    Returns resolutions, formats, blend modes and editor defaults.
    """
    return BrandingOptionsResponse(
        resolutions=get_resolution_options(),
        formats=[fmt.value for fmt in ExportFormat],
        blend_modes=[mode.value for mode in BlendMode],
        max_logos=MAX_LOGOS,
        defaults={
            "single": SingleLogoExportOptions().model_dump(mode="json"),
            "multi": MultiLogoExportOptions().model_dump(mode="json"),
            "preview": f"{PREVIEW_WIDTH}x{PREVIEW_HEIGHT}",
        }
    )


@app.post("/branding/export")
async def export_poster(
    logo: UploadFile = File(...),
    base: Optional[UploadFile] = File(None),
    options: str = Form("{}"),
):
    """
    Export the poster with one logo.

    Args:
        logo: Logo image (PNG, JPEG, WEBP or SVG)
        base: Optional base poster; the configured poster is used otherwise
        options: JSON-encoded SingleLogoExportOptions

    Returns:
        DPI-tagged PNG or JPEG as a download
    """
    opts = _parse_options(SingleLogoExportOptions, options)
    base_input = await _base_input(base)
    logo_input = LogoInput(image=await _read_upload(logo), transform=opts.transform.to_transform())

    try:
        logger.info(f"Single-logo export: format={opts.format}, resolution={opts.resolution}, dpi={opts.dpi}")
        result = await exporter.export(
            base_input, logo_input, opts.to_settings(),
            plate=opts.plate.to_plate(), dpi=opts.dpi,
        )
    except InvalidInputImage as e:
        raise _invalid_image(e)
    except EncodingFailure as e:
        logger.error(f"Export encoding failed: {e}")
        raise HTTPException(status_code=500, detail=f"Export failed: {e}")

    return _download(result.data, result.mime_type, result.filename)


@app.post("/branding/export-multi")
async def export_multi_logo_poster(
    logos: List[UploadFile] = File(...),
    base: Optional[UploadFile] = File(None),
    options: str = Form("{}"),
):
    """
    Export the poster with logos laid out side by side.

    Logos fill the slots in upload order; with ``slots`` larger than the
    number of logos, the trailing slots stay empty but keep their width.

    Args:
        logos: 1..6 logo images
        base: Optional base poster; the configured poster is used otherwise
        options: JSON-encoded MultiLogoExportOptions

    Returns:
        DPI-tagged PNG or JPEG as a download
    """
    opts = _parse_options(MultiLogoExportOptions, options)
    slot_count = opts.slots or len(logos)
    if not 1 <= len(logos) <= slot_count <= MAX_LOGOS:
        raise HTTPException(
            status_code=400,
            detail=f"Expected 1..{slot_count} logos for {slot_count} slots (max {MAX_LOGOS}), got {len(logos)}",
        )

    base_input = await _base_input(base)
    entries: List[Optional[LogoInput]] = [None] * slot_count
    for index, upload in enumerate(logos):
        entries[index] = LogoInput(image=await _read_upload(upload), transform=opts.transform_for(index))

    try:
        logger.info(f"Multi-logo export: {len(logos)} logos in {slot_count} slots, format={opts.format}, resolution={opts.resolution}")
        result = await exporter.export_slots(
            base_input, entries, opts.to_settings(),
            plate=opts.plate.to_plate(),
            container_outline=opts.container_outline,
            dpi=opts.dpi,
        )
    except InvalidInputImage as e:
        raise _invalid_image(e)
    except EncodingFailure as e:
        logger.error(f"Export encoding failed: {e}")
        raise HTTPException(status_code=500, detail=f"Export failed: {e}")

    return _download(result.data, result.mime_type, result.filename)


@app.post("/branding/preview")
async def preview_poster(
    logos: List[UploadFile] = File(...),
    base: Optional[UploadFile] = File(None),
    options: str = Form("{}"),
    slotted: bool = Form(False),
):
    """
    Render an on-screen preview (800x450 PNG, no DPI tag).

    Args:
        logos: One logo, or up to six with ``slotted``
        base: Optional base poster
        options: JSON-encoded single- or multi-logo options
        slotted: Use the multi-logo slot layout
    """
    if slotted:
        opts = _parse_options(MultiLogoExportOptions, options)
        transforms = [opts.transform_for(i) for i in range(len(logos))]
        container_outline = opts.container_outline
        slot_count = opts.slots or len(logos)
    else:
        opts = _parse_options(SingleLogoExportOptions, options)
        transforms = [opts.transform.to_transform()]
        container_outline = False
        slot_count = 1
    if not 1 <= len(logos) <= slot_count <= MAX_LOGOS:
        raise HTTPException(
            status_code=400,
            detail=f"Expected 1..{slot_count} logos for {slot_count} slots (max {MAX_LOGOS}), got {len(logos)}",
        )

    base_input = await _base_input(base)
    entries = [
        LogoInput(image=await _read_upload(upload), transform=transform)
        for upload, transform in zip(logos, transforms)
    ]

    try:
        data = await exporter.preview(
            base_input, entries, plate=opts.plate.to_plate(), slotted=slotted,
            container_outline=container_outline, slot_count=slot_count,
        )
    except InvalidInputImage as e:
        raise _invalid_image(e)
    except EncodingFailure as e:
        logger.error(f"Preview encoding failed: {e}")
        raise HTTPException(status_code=500, detail=f"Preview failed: {e}")

    return Response(content=data, media_type="image/png")

