"""
Image Registrar - rejestracja obrazów w kontenerze.

Każdy zasób obrazu jest zapisywany (lub linkowany) co najwyżej raz na jedno
generowanie; kolejne użycia tego samego obiektu zwracają wynik z pamięci
podręcznej sesji bez zmian w kontenerze.
"""

from __future__ import annotations

import logging

from ..formats.base import RegisteredImage
from ..models.image_formats import negotiate_format
from ..models.resources import ImageResource
from .session import GenerationSession

logger = logging.getLogger(__name__)


class ImageRegistrar:
    """Embeds or links image resources and keeps the manifests consistent."""

    def register(self, session: GenerationSession, resource: ImageResource) -> RegisteredImage:
        """
        Register a resource with the session's container.

        Args:
            session: Current generation session
            resource: Image resource, deduplicated by identity

        Returns:
            RegisteredImage with the reference used by picture elements
        """
        cached = session.image_cache.get(id(resource))
        if cached is not None and cached[0] is resource:
            return cached[1]

        profile = session.profile

        if resource.is_external and not session.options.embed_external_images:
            # Linked pictures are never read; a URL without extension has no known format
            image_format = resource.declared_format
            if image_format is not None:
                image_format = negotiate_format(image_format, profile.image_formats)
            reference = profile.link_image(session, resource, image_format)
            registered = RegisteredImage(reference, True, image_format)
        else:
            data = resource.load_data(timeout=session.options.external_image_timeout)
            image_format = negotiate_format(resource.image_format, profile.image_formats)
            reference = profile.store_image(session, data, image_format)
            registered = RegisteredImage(reference, False, image_format)

        session.image_cache[id(resource)] = (resource, registered)
        mime_type = image_format.mime_type if image_format is not None else "unknown format"
        logger.debug(
            f"Registered image {reference} ({mime_type}, "
            f"{'linked' if registered.is_external else 'embedded'})"
        )
        return registered
