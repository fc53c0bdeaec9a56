"""
Format profiles: everything that differs between WordprocessingML and OpenDocument text.
"""

from ..exceptions import TemplateFormatInvalid
from ..package.office_package import OfficePackage
from .base import FormatProfile, RegisteredImage
from .opendocument import OpenDocumentProfile
from .wordml import WordprocessingProfile

PROFILES = (WordprocessingProfile, OpenDocumentProfile)


def detect_profile(package: OfficePackage) -> FormatProfile:
    """
    Pick the format profile of a container.

    Raises:
        TemplateFormatInvalid: If the container is neither DOCX nor ODT
    """
    for profile_class in PROFILES:
        if profile_class.matches(package):
            return profile_class()
    raise TemplateFormatInvalid(
        "Unknown template container",
        "expected word/document.xml or content.xml",
    )


__all__ = [
    "FormatProfile",
    "RegisteredImage",
    "WordprocessingProfile",
    "OpenDocumentProfile",
    "PROFILES",
    "detect_profile",
]
