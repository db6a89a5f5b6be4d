"""Key-value access to texture descriptions and per-mip payloads."""

import json
import logging
import mmap
import os
from abc import ABC, abstractmethod
from contextlib import contextmanager

from .errors import InvalidDescriptionError, PayloadNotFoundError, PayloadUnreadableError
from .records import TextureDescription

logger = logging.getLogger("mip_viewer.store")


class PayloadStore(ABC):
    """Source of descriptions and compressed payloads keyed by texture id."""

    @abstractmethod
    def load_description(self, texture_id: str) -> TextureDescription:
        """Return the parsed description for ``texture_id``.

        Storage failures raise ``PayloadNotFoundError`` or
        ``PayloadUnreadableError``, never a bare ``OSError``.
        """

    @abstractmethod
    def open_payload(self, texture_id: str, level: int):
        """Return a context manager yielding a read-only view of one mip."""


class DirectoryPayloadStore(PayloadStore):
    """Store backed by a flat directory of description and payload files.

    File names follow ``texture.description.<id>`` and
    ``texture.payload.mip<level>.<id>``.
    """

    def __init__(self, root: str):
        self.root = root

    def description_path(self, texture_id: str) -> str:
        return os.path.join(self.root, f"texture.description.{texture_id}")

    def payload_path(self, texture_id: str, level: int) -> str:
        return os.path.join(self.root, f"texture.payload.mip{level}.{texture_id}")

    def load_description(self, texture_id: str) -> TextureDescription:
        path = self.description_path(texture_id)
        try:
            with open(path, "rb") as f:
                raw = f.read()
        except FileNotFoundError:
            raise PayloadNotFoundError(f"Could not open description: {path}") from None
        except OSError as exc:
            raise PayloadUnreadableError(f"Could not read description {path}: {exc}") from exc
        try:
            description = TextureDescription.from_json(raw)
        except InvalidDescriptionError as exc:
            raise InvalidDescriptionError(f"{path}: {exc}") from exc
        logger.debug(
            "Loaded description %s: format=%s mips=%d",
            texture_id, description.format.value, len(description.mips),
        )
        return description

    @contextmanager
    def open_payload(self, texture_id: str, level: int):
        """Yield a read-only memoryview over a memory-mapped payload file.

        Raises ``PayloadNotFoundError`` for a missing file and
        ``PayloadUnreadableError`` when it cannot be opened or mapped.
        """
        path = self.payload_path(texture_id, level)
        try:
            f = open(path, "rb")
        except FileNotFoundError:
            raise PayloadNotFoundError(f"Could not open payload: {path}") from None
        except OSError as exc:
            raise PayloadUnreadableError(f"Could not read payload {path}: {exc}") from exc
        with f:
            try:
                size = os.fstat(f.fileno()).st_size
                # mmap refuses zero-length files.
                mapped = mmap.mmap(f.fileno(), 0, access=mmap.ACCESS_READ) if size else None
            except (OSError, ValueError) as exc:
                raise PayloadUnreadableError(f"Could not map payload {path}: {exc}") from exc
            if mapped is None:
                yield memoryview(b"")
                return
            with mapped:
                view = memoryview(mapped)
                try:
                    yield view
                finally:
                    view.release()

    def write_texture(self, texture_id: str, description: TextureDescription, payloads) -> None:
        """Write a description document and its payload files.

        ``payloads`` is a sequence of bytes-like objects indexed by mip level.
        """
        if len(payloads) != len(description.mips):
            raise ValueError(
                f"Expected {len(description.mips)} payloads, got {len(payloads)}"
            )
        os.makedirs(self.root, exist_ok=True)
        with open(self.description_path(texture_id), "w", encoding="utf-8") as f:
            json.dump(description.to_dict(), f, indent=2)
        for level, payload in enumerate(payloads):
            with open(self.payload_path(texture_id, level), "wb") as f:
                f.write(payload)
        logger.debug("Wrote texture %s with %d mips to %s", texture_id, len(payloads), self.root)
