"""
Office container access: ZIP parts and package manifests.
"""

from .manifests import ContentTypeMap, OdfManifest, RelationshipMap, rels_part_for
from .office_package import OfficePackage

__all__ = ["OfficePackage", "RelationshipMap", "ContentTypeMap", "OdfManifest", "rels_part_for"]
