"""
Data Types - Containers for image payloads returned by providers.

Vendors hand back images in different shapes: raw binary bodies,
base64 strings inside JSON, or remote URLs. Binary payloads are kept
as an ImageBlob so callers can embed them as a data URI or write them
to disk without caring which vendor produced them.
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from urllib.parse import quote, unquote

from PIL import Image


SVG_MIME_TYPE = "image/svg+xml"


@dataclass(frozen=True)
class ImageBlob:
    """
    Raw image bytes plus their MIME type.

    Attributes:
        data: Encoded image bytes (PNG, JPEG, SVG, ...)
        mime_type: MIME type of the payload, e.g. "image/png"
    """
    data: bytes
    mime_type: str = "image/png"

    def __post_init__(self) -> None:
        if not self.data:
            raise ValueError("ImageBlob requires non-empty image data")

    @classmethod
    def from_base64(cls, b64_data: str, mime_type: str = "image/png") -> ImageBlob:
        """Decode a base64 payload (optionally a full data URI)."""
        if b64_data.startswith("data:"):
            return cls.from_data_uri(b64_data)
        return cls(base64.b64decode(b64_data), mime_type)

    @classmethod
    def from_data_uri(cls, uri: str) -> ImageBlob:
        """Parse a data: URI in either base64 or percent-encoded form."""
        header, _, payload = uri.partition(",")
        if not header.startswith("data:") or not payload:
            raise ValueError("Not a data URI")

        media = header[len("data:"):]
        mime_type = media.split(";", 1)[0] or "application/octet-stream"
        if ";base64" in media:
            return cls(base64.b64decode(payload), mime_type)
        return cls(unquote(payload).encode("utf-8"), mime_type)

    @property
    def is_vector(self) -> bool:
        return self.mime_type == SVG_MIME_TYPE

    def to_data_uri(self) -> str:
        """Embed the payload as a data: URI."""
        if self.is_vector:
            # Percent-encoding keeps SVG text readable and unicode-safe
            text = self.data.decode("utf-8")
            return f"data:{SVG_MIME_TYPE};charset=utf-8,{quote(text, safe='')}"
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"

    def to_pil(self) -> Image.Image:
        """Decode a raster payload with Pillow."""
        if self.is_vector:
            raise ValueError("SVG payloads cannot be decoded as raster images")
        img = Image.open(BytesIO(self.data))
        img.load()
        return img

    @property
    def size(self) -> tuple[int, int] | None:
        """(width, height) for raster payloads, None for vector ones."""
        if self.is_vector:
            return None
        return self.to_pil().size

    def save(self, path: Path) -> Path:
        """
        Write the image to disk.

        Raster payloads are re-encoded by Pillow when the target suffix
        names a different format; SVG payloads are written verbatim.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        if self.is_vector:
            path.write_bytes(self.data)
            return path

        img = self.to_pil()
        suffix = path.suffix.lower()
        if suffix in (".jpg", ".jpeg") and img.mode not in ("RGB", "L"):
            img = img.convert("RGB")
        if suffix:
            img.save(path)
        else:
            path.write_bytes(self.data)
        return path
