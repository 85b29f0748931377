import logging
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import JSONResponse
from typing import Optional

from storefront.config import Settings, get_settings
from storefront.utils.security import require_admin
from storefront.utils.storage import (
    MAX_UPLOAD_BYTES,
    BunnyError,
    BunnyStorage,
    timestamped_upload_path,
)

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_admin)])


def get_storage(settings: Settings = Depends(get_settings)) -> BunnyStorage:
    if not settings.bunny_configured:
        raise HTTPException(status_code=503, detail="Image upload is not available")
    return BunnyStorage.from_settings(settings)


@router.post("/bunny-upload")
def upload_image(
    image: Optional[UploadFile] = File(None),
    storage: BunnyStorage = Depends(get_storage),
):
    if image is None or not image.filename:
        raise HTTPException(status_code=400, detail="No image file provided")
    if not (image.content_type or "").startswith("image/"):
        raise HTTPException(status_code=400, detail="File must be an image")

    data = image.file.read(MAX_UPLOAD_BYTES + 1)
    if len(data) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=400, detail="File size exceeds 10MB limit")

    filename = timestamped_upload_path(image.filename)
    try:
        url = storage.upload(data, filename)
    except BunnyError as e:
        logger.error("Error uploading %s to Bunny.net", filename, exc_info=True)
        return JSONResponse(status_code=500, content={"error": "Failed to upload image", "message": str(e)})
    return {"success": True, "url": url, "filename": filename}


@router.get("/bunny-test")
def test_storage(storage: BunnyStorage = Depends(get_storage)):
    ok, message = storage.test_connection()
    return JSONResponse(status_code=200 if ok else 400, content={"success": ok, "message": message})
