"""
Image format descriptors.

Obsługuje:
- Opis formatu obrazu (nazwa, MIME, rozszerzenia plików)
- Listy formatów wspieranych przez WordprocessingML i OpenDocument
- Negocjację formatu (MIME, wspólne rozszerzenie, przekazanie dalej)
- Rozpoznawanie formatu z bajtów za pomocą Pillow
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from PIL import Image as PILImage
from PIL import UnidentifiedImageError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImageFormat:
    """Image file type: human readable name, MIME type and file extensions."""

    description: str
    mime_type: str
    extensions: Tuple[str, ...]

    @property
    def extension(self) -> str:
        """Preferred file extension (first one)."""
        return self.extensions[0]


BMP = ImageFormat("Windows Bitmap", "image/bmp", ("bmp", "dib", "rle"))
JPG = ImageFormat("JPEG File Interchange Format", "image/jpeg", ("jpg", "jpeg", "jfif", "jpe", "jif"))
GIF = ImageFormat("Graphics Interchange Format", "image/gif", ("gif",))
PNG = ImageFormat("Portable Network Graphics", "image/png", ("png",))
TIF = ImageFormat("Tag Image File Format", "image/tiff", ("tif", "tiff"))
EMF = ImageFormat("Windows Enhanced Metafile", "image/x-emf", ("emf",))
EMZ = ImageFormat("Compressed Windows Enhanced Metafile", "image/x-emf", ("emz",))
WMF = ImageFormat("Windows Metafile", "image/x-wmf", ("wmf",))
WMZ = ImageFormat("Compressed Windows Metafile", "image/x-wmf", ("wmz",))
PCZ = ImageFormat("Compressed Macintosh PICT", "image/x-pict", ("pcz",))
PCT = ImageFormat("Macintosh PICT", "image/x-pict", ("pct", "pict"))
EPS = ImageFormat("Encapsulated PostScript", "image/x-eps", ("eps", "epsf", "epsi"))
WPG = ImageFormat("WordPerfect Graphics", "image/x-wpg", ("wpg",))
DXF = ImageFormat("AutoCAD Interchange Format", "image/vnd.dxf", ("dxf",))
MET = ImageFormat("OS/2 Metafile", "image/x-met", ("met",))
MOV = ImageFormat("QuickTime File Format", "video/quicktime", ("mov", "qt"))
PBM = ImageFormat("Portable Bitmap", "image/x-portable-bitmap", ("pbm", "pgm", "ppm", "pnm"))
PCX = ImageFormat("Zsoft Paintbrush", "image/vnd.zbrush.pcx", ("pcx",))
PSD = ImageFormat("Adobe Photoshop", "image/x-psd", ("psd",))
RAS = ImageFormat("Sun Raster Image", "image/x-ras", ("ras",))
SGF = ImageFormat("StarWriter Graphics Format", "image/x-sgf", ("sgf",))
SGV = ImageFormat("StarDraw 2.0", "image/x-sgv", ("sgv",))
SVG = ImageFormat("Scalable Vector Graphics", "image/svg+xml", ("svg", "svgz"))
SVM = ImageFormat("StarView Metafile", "image/x-svm", ("svm",))
TGA = ImageFormat("Truevision Targa", "image/x-tga", ("tga",))
XBM = ImageFormat("X Bitmap", "image/x-xbm", ("xbm",))
XPM = ImageFormat("X PixMap", "image/x-xpm", ("xpm",))

STANDARD_IMAGE_FORMATS: Tuple[ImageFormat, ...] = (BMP, JPG, GIF, PNG)

WORDML_IMAGE_FORMATS: Tuple[ImageFormat, ...] = (
    BMP, JPG, GIF, PNG, TIF, EMF, EMZ, WMF, WMZ, PCZ, PCT, EPS, WPG,
)

OPENDOCUMENT_IMAGE_FORMATS: Tuple[ImageFormat, ...] = (
    BMP, JPG, GIF, PNG, TIF, EMF, EMZ, WMF, WMZ, PCZ, PCT, EPS,
    DXF, MET, MOV, PBM, PCX, PSD, RAS, SGF, SGV, SVG, SVM, TGA, XBM, XPM,
)

# Pillow format name -> descriptor
_PIL_FORMATS = {
    "BMP": BMP,
    "DIB": BMP,
    "JPEG": JPG,
    "MPO": JPG,
    "GIF": GIF,
    "PNG": PNG,
    "TIFF": TIF,
    "WMF": WMF,
    "EPS": EPS,
    "PCX": PCX,
    "PSD": PSD,
    "PPM": PBM,
    "TGA": TGA,
    "XBM": XBM,
    "XPM": XPM,
    "SUN": RAS,
}


def negotiate_format(requested: ImageFormat, supported: Sequence[ImageFormat]) -> ImageFormat:
    """
    Map a requested format onto one the target document format supports.

    Kolejność: identyczny MIME, potem wspólne rozszerzenie pliku, a jeśli nic
    nie pasuje, format wejściowy bez zmian.

    Args:
        requested: Format declared by the image resource
        supported: Formats of the target document type

    Returns:
        Negotiated format
    """
    if requested in supported:
        return requested

    mime = requested.mime_type.strip().lower()
    for candidate in supported:
        if candidate.mime_type.lower() == mime:
            return candidate

    requested_exts = {ext.lower() for ext in requested.extensions}
    for candidate in supported:
        if requested_exts.intersection(candidate.extensions):
            return candidate

    return requested


def format_by_extension(file_name: str,
                        candidates: Sequence[ImageFormat] = OPENDOCUMENT_IMAGE_FORMATS + (WPG,)
                        ) -> Optional[ImageFormat]:
    """Find a format from a file name extension (case-insensitive)."""
    name = file_name.strip().lower()
    for candidate in candidates:
        for ext in candidate.extensions:
            if name.endswith("." + ext):
                return candidate
    return None


def detect_image_format(data: bytes) -> Optional[ImageFormat]:
    """
    Identify image bytes with Pillow.

    Args:
        data: Raw image bytes

    Returns:
        Matching descriptor or None if Pillow cannot identify the data
    """
    try:
        with PILImage.open(io.BytesIO(data)) as pil_img:
            pil_format = (pil_img.format or "").upper()
    except (UnidentifiedImageError, OSError) as e:
        logger.debug(f"Pillow could not identify image data: {e}")
        return None
    return _PIL_FORMATS.get(pil_format)


def read_pixel_size(data: bytes) -> Optional[Tuple[int, int, Tuple[float, float]]]:
    """
    Read pixel dimensions and DPI from image bytes.

    Returns:
        (width_px, height_px, (dpi_x, dpi_y)) or None if unreadable
    """
    try:
        with PILImage.open(io.BytesIO(data)) as pil_img:
            width, height = pil_img.size
            dpi = pil_img.info.get("dpi") or (0, 0)
    except (UnidentifiedImageError, OSError) as e:
        logger.warning(f"Pillow could not read image size: {e}")
        return None
    try:
        dpi_x, dpi_y = float(dpi[0]), float(dpi[1])
    except (TypeError, ValueError, IndexError):
        dpi_x = dpi_y = 0.0
    return width, height, (dpi_x, dpi_y)
