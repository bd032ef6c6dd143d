"""
Delivery URL construction for the preview renderer.

Only builds the URL; no request is made to the transformation service.
"""

from __future__ import annotations

import logging
from typing import Optional

from vedit.core.config import EngineConfig
from vedit.core.operation import ResourceType
from vedit.preview.transform import TransformationDescriptor
from vedit.validation.validator import validate_public_id

logger = logging.getLogger(__name__)


class PreviewUrlBuilder:
    """
    Builds fully-qualified delivery URLs.

    Example:
        builder = PreviewUrlBuilder(config)
        url = builder.build("samples/dog", descriptor)
        # https://res.cloudinary.com/demo/video/upload/e_sepia:100/samples/dog
    """

    def __init__(self, config: EngineConfig):
        self.config = config
        settings = config.preview_settings
        self.delivery_base = str(settings.get("delivery_base", "")).rstrip("/")
        self.cloud_name = settings.get("cloud_name", "")

    def _prefix(self, resource_type: ResourceType) -> str:
        return f"{self.delivery_base}/{self.cloud_name}/{resource_type.value}/upload"

    def build(
        self,
        public_id: str,
        descriptor: TransformationDescriptor,
        resource_type: Optional[ResourceType] = None,
    ) -> str:
        """
        Build the URL for a transformed resource.

        Raises:
            ValidationError: If the public id is malformed
        """
        validate_public_id(public_id)
        resource_type = resource_type or descriptor.resource_type
        path = descriptor.to_path()
        if not path:
            return self.original(public_id, resource_type)

        url = f"{self._prefix(resource_type)}/{path}/{public_id}"
        logger.debug(f"Preview URL: {url}")
        return url

    def chain(
        self,
        public_id: str,
        descriptors: list[TransformationDescriptor],
        resource_type: ResourceType = ResourceType.VIDEO,
    ) -> str:
        """Build one URL applying several descriptors in order."""
        validate_public_id(public_id)
        paths = [d.to_path() for d in descriptors if d.to_path()]
        if not paths:
            return self.original(public_id, resource_type)
        return f"{self._prefix(resource_type)}/{'/'.join(paths)}/{public_id}"

    def original(self, public_id: str, resource_type: ResourceType = ResourceType.VIDEO) -> str:
        """URL of the untransformed resource."""
        validate_public_id(public_id)
        return f"{self._prefix(resource_type)}/{public_id}"
