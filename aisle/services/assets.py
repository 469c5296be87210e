from __future__ import annotations

import logging
from pathlib import PurePosixPath
from typing import Optional, Union

from aisle.core.models import ImageUpload
from aisle.services.exceptions import AssetError, ValidationError
from aisle.services.repo.base import BlobStore

logger = logging.getLogger(__name__)

ImageInput = Union[ImageUpload, str, None]


def blob_path(filename: str) -> str:
    """images/<file name>; directory parts of the client-supplied name are dropped."""
    name = PurePosixPath(filename.replace("\\", "/")).name
    if not name or name in (".", ".."):
        raise ValidationError(f"Image upload needs a file name, got {filename!r}")
    return f"images/{name}"


class ImageAssets:
    """Binds item records to optional image blobs."""

    def __init__(self, blobs: BlobStore):
        self.blobs = blobs

    async def resolve_image(self, image: ImageInput) -> Optional[str]:
        """
        Turn the image given to an add into the value stored on the item.

        Raw uploads go to the blob store at ``images/<file name>`` and the
        returned URL is stored. Two uploads with the same file name share a
        path, and the later one wins. Inline ``data:`` payloads are stored
        as-is; any other string is rejected, so a blob URL can never end up
        bound to two items.
        """
        if image is None:
            return None
        if isinstance(image, str):
            if not image:
                return None
            if not image.startswith("data:"):
                raise ValidationError("Inline images must be data: URLs")
            return image
        path = blob_path(image.filename)
        try:
            url = await self.blobs.upload(path, image.content, image.content_type)
        except AssetError:
            raise
        except Exception as e:
            raise AssetError(f"Upload of {path} failed: {e}") from e
        logger.info("Uploaded %s (%d bytes)", path, len(image.content))
        return url

    async def release_image(self, reference: Optional[str]) -> None:
        """Delete the blob behind `reference`; inline payloads and foreign URLs are left alone."""
        if not self.blobs.owns(reference):
            return
        try:
            await self.blobs.delete(reference)
        except AssetError:
            raise
        except Exception as e:
            raise AssetError(f"Delete of {reference} failed: {e}") from e
        logger.info("Deleted blob %s", reference)
