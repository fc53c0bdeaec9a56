"""
Image resources: where picture bytes come from.

Obsługuje:
- Obrazy z pamięci (bajty) z formatem wykrywanym przez Pillow
- Pliki lokalne (osadzane albo linkowane przez ścieżkę bezwzględną)
- Obrazy z URL (pobierane przez httpx albo linkowane przez adres)
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Tuple, Union
from urllib.parse import urlparse

import httpx

from ..exceptions import ImageResourceError
from .image_formats import ImageFormat, detect_image_format, format_by_extension, read_pixel_size

logger = logging.getLogger(__name__)

PixelSize = Tuple[int, int, Tuple[float, float]]


class ImageResource:
    """
    Picture held in memory.

    Subclasses describe pictures that live outside the process (a local file
    or a URL); those can be linked instead of embedded.
    """

    is_external = False

    def __init__(self, data: bytes, image_format: Optional[ImageFormat] = None):
        if not data:
            raise ImageResourceError("Image data is empty")
        self._data: Optional[bytes] = bytes(data)
        self._format = image_format or detect_image_format(self._data)
        if self._format is None:
            raise ImageResourceError("Cannot identify image format from data")

    @property
    def image_format(self) -> ImageFormat:
        return self._format

    @property
    def declared_format(self) -> Optional[ImageFormat]:
        """Format known without reading or downloading the picture."""
        return self._format

    def load_data(self, timeout: Optional[float] = None) -> bytes:
        """Return picture bytes, reading or downloading them when needed."""
        return self._data

    def pixel_size(self) -> Optional[PixelSize]:
        """Pixel dimensions and DPI, or None if the picture is not available locally."""
        if self._data is None:
            return None
        return read_pixel_size(self._data)

    def title_hint(self) -> Optional[str]:
        return None

    def description_hint(self) -> Optional[str]:
        return None

    def link_target(self) -> str:
        """Reference used when the picture is linked instead of embedded."""
        raise ImageResourceError("In-memory images cannot be linked")

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._format.mime_type})"


class LocalImageResource(ImageResource):
    """Picture stored in a local file."""

    is_external = True

    def __init__(self, path: Union[str, Path], image_format: Optional[ImageFormat] = None):
        self.path = Path(path).expanduser().resolve()
        if not self.path.is_file():
            raise ImageResourceError("Image file not found", str(self.path))
        self._data = None
        self._format = image_format or format_by_extension(self.path.name)
        if self._format is None:
            self._format = detect_image_format(self.load_data())
        if self._format is None:
            raise ImageResourceError("Cannot identify image format", str(self.path))

    def load_data(self, timeout: Optional[float] = None) -> bytes:
        if self._data is None:
            try:
                self._data = self.path.read_bytes()
            except OSError as e:
                raise ImageResourceError("Cannot read image file", f"{self.path}: {e}") from e
        return self._data

    def pixel_size(self) -> Optional[PixelSize]:
        return read_pixel_size(self.load_data())

    def title_hint(self) -> Optional[str]:
        return self.path.name

    def description_hint(self) -> Optional[str]:
        return str(self.path)

    def link_target(self) -> str:
        return self.path.as_uri()

    def __repr__(self) -> str:
        return f"LocalImageResource({str(self.path)!r})"


class ExternalImageResource(ImageResource):
    """
    Picture addressed by URL.

    Pobranie następuje dopiero przy osadzaniu; przy linkowaniu obraz nie jest
    pobierany, a rozmiar domyślny wynosi 50 x 50 mm.
    """

    is_external = True

    def __init__(self, url: str, image_format: Optional[ImageFormat] = None,
                 transport: Optional[httpx.BaseTransport] = None):
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ImageResourceError("Unsupported image URL", url)
        self.url = url
        self._host = parsed.hostname or parsed.netloc
        self._transport = transport
        self._data = None
        self._format = image_format or format_by_extension(parsed.path)

    @property
    def image_format(self) -> ImageFormat:
        if self._format is None:
            self._format = detect_image_format(self.load_data())
            if self._format is None:
                raise ImageResourceError("Cannot identify image format", self.url)
        return self._format

    def load_data(self, timeout: Optional[float] = None) -> bytes:
        if self._data is not None:
            return self._data

        logger.debug(f"Downloading image {self.url}")
        try:
            with httpx.Client(timeout=timeout, follow_redirects=True, transport=self._transport) as client:
                response = client.get(self.url)
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise ImageResourceError("Cannot download image", f"{self.url}: {e}") from e

        if not response.content:
            raise ImageResourceError("Downloaded image is empty", self.url)
        self._data = response.content
        return self._data

    def title_hint(self) -> Optional[str]:
        return self._host

    def description_hint(self) -> Optional[str]:
        return self.url

    def link_target(self) -> str:
        return self.url

    def __repr__(self) -> str:
        return f"ExternalImageResource({self.url!r})"


def image_from_reference(reference: str, transport: Optional[httpx.BaseTransport] = None) -> ImageResource:
    """Create a resource from a path or an http(s) URL."""
    if urlparse(reference).scheme in ("http", "https"):
        return ExternalImageResource(reference, transport=transport)
    return LocalImageResource(reference)
