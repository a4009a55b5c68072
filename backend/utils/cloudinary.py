import asyncio
import logging
from typing import List, Optional

import cloudinary
import cloudinary.api
import cloudinary.uploader

from config.constants import PRODUCT_IMAGE_FOLDER
from config.env import (
    CLOUDINARY_CLOUD_NAME,
    CLOUDINARY_API_KEY,
    CLOUDINARY_API_SECRET,
)

logger = logging.getLogger(__name__)

cloudinary.config(
    cloud_name=CLOUDINARY_CLOUD_NAME,
    api_key=CLOUDINARY_API_KEY,
    api_secret=CLOUDINARY_API_SECRET,
    secure=True,
)

_pending: set = set()


def upload_image(file, folder: str = PRODUCT_IMAGE_FOLDER) -> dict:
    result = cloudinary.uploader.upload(
        file,
        folder=folder,
        resource_type="image",
    )
    return {"url": result["secure_url"], "public_id": result["public_id"]}


async def delete_images(public_ids: List[str]) -> None:
    if not public_ids:
        return

    try:
        await asyncio.to_thread(cloudinary.api.delete_resources, list(public_ids))
        logger.info("IMAGES_DELETED count=%s", len(public_ids))
    except Exception:
        # media clean-up never fails the soft delete that triggered it
        logger.exception("IMAGE_DELETE_FAILED ids=%s", public_ids)


def schedule_image_cleanup(public_ids: List[str]) -> Optional[asyncio.Task]:
    if not public_ids:
        return None

    task = asyncio.get_running_loop().create_task(delete_images(public_ids))
    _pending.add(task)
    task.add_done_callback(_pending.discard)
    return task
