"""Assemble a described texture into geometry plus per-mip uploads.

The assembler is the only component that talks to the payload store and the
rendering collaborator. Layout, geometry, and decoding are pure; their
outputs are zipped by mip index so placement never depends on the order in
which decodes finish.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional, Tuple

from tqdm import tqdm

from .config import ViewerConfig
from .core.errors import (
    DecodeError,
    InvalidDescriptionError,
    PayloadNotFoundError,
    PayloadUnreadableError,
)
from .core.formats import FormatCatalog
from .core.records import MipUpload, NativeUpload, TextureDescription
from .core.store import PayloadStore
from .phases.decode import BlockDecoder
from .phases.geometry import RenderGeometry, emit
from .phases.layout import MipChainLayout, compute_layout
from .phases.preview import RenderTarget

logger = logging.getLogger("mip_viewer.assembly")


class UnavailableMipError(RuntimeError):
    """Raised under the ``fail`` policy when a mip cannot be prepared."""

    def __init__(self, message: str, level: int):
        super().__init__(message)
        self.level = level


@dataclass(frozen=True)
class RenderBundle:
    """Everything a rendering collaborator needs for one texture."""

    texture_id: str
    description: TextureDescription
    layout: MipChainLayout
    geometry: RenderGeometry
    uploads: Tuple[MipUpload, ...]

    @property
    def canvas_size(self) -> Tuple[int, int]:
        return self.layout.canvas_width, self.layout.canvas_height

    @property
    def unavailable_levels(self) -> List[int]:
        return [u.level for u in self.uploads if not u.available]


class TextureAssembler:
    """Load, lay out, decode, and present a texture's mip chain."""

    def __init__(
        self,
        config: ViewerConfig,
        store: PayloadStore,
        decoder: Optional[BlockDecoder] = None,
    ):
        """Initialize the assembler with configuration and collaborators."""
        self.config = config
        self.store = store
        self.decoder = decoder or BlockDecoder(config)

    def load_description(self, texture_id: str) -> TextureDescription:
        description = self.store.load_description(texture_id)
        if self.config.description.require_halving_chain and not description.is_halving_chain():
            raise InvalidDescriptionError(
                f"Texture {texture_id} mip chain "
                f"{[(m.width, m.height) for m in description.mips]} is not a halving chain"
            )
        return description

    def assemble(self, texture_id: str) -> RenderBundle:
        """Build the render bundle for ``texture_id``.

        Raises the store's errors for a missing or malformed description. Per
        mip failures follow ``preview.on_unavailable``; under ``fail`` an
        ``UnavailableMipError`` is raised.
        """
        description = self.load_description(texture_id)
        layout = compute_layout(
            description.mips,
            sum_actual_widths=self.config.layout.sum_actual_widths,
            warn_non_halving=self.config.layout.warn_non_halving,
        )
        geometry = emit(layout.rects)
        uploads = self._prepare_uploads(texture_id, description)

        bundle = RenderBundle(texture_id, description, layout, geometry, tuple(uploads))
        missing = bundle.unavailable_levels
        if missing:
            logger.warning(
                "Texture %s: %d of %d mips unavailable (levels %s)",
                texture_id, len(missing), len(uploads), missing,
            )
        logger.info(
            "Assembled %s: %s, %d mips, canvas %dx%d",
            texture_id, description.format.name, len(uploads),
            layout.canvas_width, layout.canvas_height,
        )
        return bundle

    def _prepare_uploads(self, texture_id: str, description: TextureDescription) -> List[MipUpload]:
        levels = range(len(description.mips))
        uploads: List[Optional[MipUpload]] = [None] * len(description.mips)
        workers = min(self.config.max_workers, len(description.mips))
        desc = f"Decoding {texture_id}"

        with tqdm(total=len(uploads), desc=desc, disable=not self.config.show_progress) as pbar:
            if workers <= 1:
                for level in levels:
                    uploads[level] = self._prepare_mip(texture_id, description, level)
                    pbar.update(1)
            else:
                with ThreadPoolExecutor(max_workers=workers) as executor:
                    futures = {
                        executor.submit(self._prepare_mip, texture_id, description, level): level
                        for level in levels
                    }
                    for future, level in futures.items():
                        uploads[level] = future.result()
                        pbar.update(1)
        return uploads

    def _prepare_mip(self, texture_id: str, description: TextureDescription, level: int) -> MipUpload:
        mip = description.mips[level]
        fmt = description.format
        try:
            with self.store.open_payload(texture_id, level) as payload:
                if len(payload) != mip.payload_size:
                    logger.warning(
                        "Mip %d of %s: payload is %d bytes, description says %d",
                        level, texture_id, len(payload), mip.payload_size,
                    )
                result = self.decoder.decode(fmt, mip.width, mip.height, payload)
                compressed = None
                if isinstance(result, NativeUpload):
                    needed = FormatCatalog.compressed_size(fmt, mip.width, mip.height)
                    compressed = bytes(payload[:needed])
        except (DecodeError, PayloadNotFoundError, PayloadUnreadableError) as exc:
            return self._unavailable(texture_id, level, mip, exc)

        if isinstance(result, NativeUpload):
            return MipUpload(level, mip, native=result, compressed=compressed)
        return MipUpload(level, mip, decoded=result)

    def _unavailable(self, texture_id: str, level: int, mip, exc: Exception) -> MipUpload:
        message = f"{type(exc).__name__}: {exc}"
        if self.config.preview.on_unavailable == "fail":
            raise UnavailableMipError(
                f"Mip {level} of {texture_id} unavailable: {message}", level
            ) from exc
        logger.warning("Mip %d of %s unavailable: %s", level, texture_id, message)
        return MipUpload(level, mip, error=message)

    def present(self, bundle: RenderBundle, target: RenderTarget) -> List[Optional[int]]:
        """Upload every mip to ``target`` and draw the bundle's geometry.

        Returns the handles ``target`` issued, indexed by mip level.
        """
        target.begin(*bundle.canvas_size)
        handles = [target.upload_mip(upload) for upload in bundle.uploads]
        target.draw(bundle.geometry, handles)
        return handles
