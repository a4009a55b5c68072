from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from fastapi.concurrency import run_in_threadpool

from config.constants import PRODUCT_IMAGE_FOLDER
from models.user import Actor
from utils.cloudinary import upload_image
from utils.security import get_current_seller

router = APIRouter(prefix="/uploads", tags=["Uploads"])


# =========================
# UPLOAD PRODUCT IMAGE
# =========================
@router.post("/product-image")
async def upload_product_image(
    file: UploadFile = File(...),
    actor: Actor = Depends(get_current_seller),
):
    if not file.content_type or not file.content_type.startswith("image/"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only image files are allowed",
        )

    image = await run_in_threadpool(
        upload_image,
        file.file,
        f"{PRODUCT_IMAGE_FOLDER}/{actor.user_id}",
    )

    # nothing is stored here; the client sends {url, public_id} with the product
    return {"success": True, "image": image}
