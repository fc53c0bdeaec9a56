"""
Optional extensions of template documents.
"""

from .custom_xml import CustomXmlParts

__all__ = ["CustomXmlParts"]
