"""
PosterExporter - Main orchestrator for poster branding exports.

Combines:
- imaging: decoding uploads and encoding the surface
- geometry/compositor: placing and drawing logos
- presets: output size and file naming
- dpi: print resolution tagging of the encoded bytes

This is the main entry point for the branding feature.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from PIL import Image

from .compositor import LogoLayer, PosterCompositor
from .dpi import inject_dpi, read_dpi
from .geometry import DEFAULT_CONTAINER_REGION, BackgroundPlate, ContainerRegion, LogoTransform
from .imaging import DEFAULT_MAX_UPLOAD_BYTES, ImageInput, create_surface, decode_image, encode_surface
from .presets import (
    DEFAULT_DPI,
    PREVIEW_HEIGHT,
    PREVIEW_WIDTH,
    ExportFormat,
    ExportSettings,
    build_filename,
    resolve_output_size,
)
from .slots import LogoSlots

logger = logging.getLogger(__name__)

SINGLE_LOGO_TAG = "ssi"
MULTI_LOGO_TAG = "with_logos"


@dataclass
class LogoInput:
    """Uploaded logo bytes plus the adjustments to apply."""
    image: ImageInput
    transform: LogoTransform = field(default_factory=LogoTransform)


@dataclass
class ExportResult:
    """Encoded, DPI-tagged poster ready for download."""
    data: bytes
    mime_type: str
    filename: str
    width: int
    height: int
    dpi: Optional[int]  # as recorded in the bytes, None if untagged


class PosterExporter:
    """
    Runs the export pipeline for single- and multi-logo posters.

    Workflow:
    1. Decode base poster and logos (rejects bad uploads up front)
    2. Resolve output size from the export settings
    3. Composite into a fresh output-sized surface
    4. Encode to PNG/JPEG
    5. Tag the bytes with the print DPI

    Each call allocates its own surface, so concurrent exports do not
    share state. Decoded images are closed on every exit path.
    """

    def __init__(
        self,
        region: ContainerRegion = DEFAULT_CONTAINER_REGION,
        compositor: Optional[PosterCompositor] = None,
        max_upload_bytes: Optional[int] = DEFAULT_MAX_UPLOAD_BYTES,
        dpi: int = DEFAULT_DPI
    ):
        """
        Initialize exporter.

        Args:
            region: Container region for logo placement
            compositor: Compositor to draw with
            max_upload_bytes: Per-file upload ceiling, None for no limit
            dpi: Print resolution written into exports
        """
        self.region = region
        self.compositor = compositor or PosterCompositor()
        self.max_upload_bytes = max_upload_bytes
        self.dpi = dpi

    async def load_image(self, upload: ImageInput) -> Image.Image:
        """Decode an upload off the event loop."""
        return await asyncio.to_thread(decode_image, upload, self.max_upload_bytes)

    async def export(
        self,
        base: ImageInput,
        logo: LogoInput,
        settings: ExportSettings,
        plate: Optional[BackgroundPlate] = None,
        tag: str = SINGLE_LOGO_TAG,
        dpi: Optional[float] = None
    ) -> ExportResult:
        """
        Export a poster with one logo.

        Args:
            base: Base poster bytes
            logo: Logo bytes and transform
            settings: Format, resolution and quality
            plate: Optional background plate
            tag: Filename tag
            dpi: Override for the exporter's DPI

        Returns:
            ExportResult with tagged bytes

        Raises:
            InvalidInputImage: If an upload cannot be used
            EncodingFailure: If the surface cannot be encoded
        """
        base_image = await self.load_image(base)
        try:
            logo_image = await self.load_image(logo.image)
        except Exception:
            base_image.close()
            raise

        try:
            width, height = resolve_output_size(settings, *base_image.size)
            logger.info(f"Exporting single-logo poster at {width}x{height} as {settings.format.value}")

            surface = create_surface(width, height)
            layer = LogoLayer(logo_image, logo.transform)
            self.compositor.composite(surface, base_image, self.region, layer, plate, width, height)
            return self._finish(surface, settings, tag, dpi)
        finally:
            logo_image.close()
            base_image.close()

    async def export_slots(
        self,
        base: ImageInput,
        logos: Sequence[Optional[LogoInput]],
        settings: ExportSettings,
        plate: Optional[BackgroundPlate] = None,
        tag: str = MULTI_LOGO_TAG,
        container_outline: bool = True,
        dpi: Optional[float] = None
    ) -> ExportResult:
        """
        Export a poster with logos laid out in equal slots.

        Args:
            base: Base poster bytes
            logos: One entry per slot, None for an empty slot
            settings: Format, resolution and quality
            plate: Optional background plate around all logos
            tag: Filename tag
            container_outline: Stroke the faint container outline
            dpi: Override for the exporter's DPI

        Returns:
            ExportResult with tagged bytes
        """
        slots = LogoSlots(len(logos))
        base_image = await self.load_image(base)
        try:
            for index, logo in enumerate(logos):
                if logo is not None:
                    slots.assign(index, LogoLayer(await self.load_image(logo.image), logo.transform))
            if not slots.has_logo():
                logger.warning(f"Exporting {len(slots)} empty slots, the poster will carry no logo")

            width, height = resolve_output_size(settings, *base_image.size)
            logger.info(f"Exporting {len(slots)}-slot poster at {width}x{height} as {settings.format.value}")

            surface = create_surface(width, height)
            self.compositor.composite_slots(
                surface, base_image, self.region, slots.layers(), plate, width, height,
                container_outline=container_outline,
            )
            return self._finish(surface, settings, tag, dpi)
        finally:
            slots.reset()
            base_image.close()

    async def preview(
        self,
        base: ImageInput,
        logos: Sequence[Optional[LogoInput]],
        plate: Optional[BackgroundPlate] = None,
        slotted: bool = False,
        container_outline: bool = True,
        slot_count: Optional[int] = None
    ) -> bytes:
        """
        Render an untagged PNG at preview size.

        Args:
            base: Base poster bytes
            logos: Logo entries; at most one unless ``slotted``
            plate: Optional background plate
            slotted: Use the multi-logo slot layout
            container_outline: Stroke the container outline in slot layout
            slot_count: Slots to lay out, defaults to one per logo entry;
                trailing slots stay empty as in ``export_slots``

        Returns:
            PNG bytes
        """
        if not slotted and len(logos) > 1:
            raise ValueError("single-logo preview takes one logo")
        count = slot_count if slotted and slot_count else max(1, len(logos))
        if len(logos) > count:
            raise ValueError(f"{len(logos)} logos do not fit in {count} slots")
        slots = LogoSlots(count)
        base_image = await self.load_image(base)
        try:
            for index, logo in enumerate(logos):
                if logo is not None:
                    slots.assign(index, LogoLayer(await self.load_image(logo.image), logo.transform))

            surface = create_surface(PREVIEW_WIDTH, PREVIEW_HEIGHT)
            if slotted:
                self.compositor.composite_slots(
                    surface, base_image, self.region, slots.layers(), plate,
                    PREVIEW_WIDTH, PREVIEW_HEIGHT, container_outline=container_outline,
                )
            else:
                self.compositor.composite(
                    surface, base_image, self.region, slots[0], plate, PREVIEW_WIDTH, PREVIEW_HEIGHT,
                )
            return encode_surface(surface, ExportFormat.PNG)
        finally:
            slots.reset()
            base_image.close()

    def _finish(self, surface: Image.Image, settings: ExportSettings, tag: str, dpi: Optional[float]) -> ExportResult:
        dpi = dpi or self.dpi
        encoded = encode_surface(surface, settings.format, settings.quality)
        tagged = inject_dpi(encoded, settings.format, dpi)
        recorded = read_dpi(tagged, settings.format)
        filename = build_filename(tag, surface.width, surface.height, settings.format)
        logger.info(f"Export ready: {filename} ({len(tagged)} bytes, {recorded} DPI)")
        return ExportResult(
            data=tagged,
            mime_type=settings.format.mime_type,
            filename=filename,
            width=surface.width,
            height=surface.height,
            dpi=recorded,
        )
