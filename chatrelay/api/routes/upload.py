# chatrelay/api/routes/upload.py

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.datastructures import UploadFile

from chatrelay.core import state
from chatrelay.models.models import UploadResponse
from chatrelay.services.upload_gateway import UploadGateway, UploadRejected

logger = logging.getLogger(__name__)

router = APIRouter()


def get_upload_gateway() -> UploadGateway:
    return state.upload_gateway


@router.post("/upload")
async def upload_media(request: Request, gateway: UploadGateway = Depends(get_upload_gateway)):
    """
    Store one uploaded file so it can be referenced from a ``send-media`` event.

    Form field:
        media: the file

    Returns:
        200 {"success": true, "file": {filename, originalname, size, mimetype, url}}
        400 {"error": "No file uploaded"} when ``media`` is absent, a plain
            text field, or an empty file input (no filename)
        500 {"error": "Upload failed"} for a rejected type/size or a storage error
    """
    form = await request.form()
    media = form.get("media")
    if not isinstance(media, UploadFile) or not media.filename:
        if isinstance(media, UploadFile):
            await media.close()
        return JSONResponse(status_code=400, content={"error": "No file uploaded"})

    try:
        stored = await gateway.save(media, media.filename, media.content_type or "")
    except (UploadRejected, OSError) as e:
        logger.error("Upload error: %s", e)
        return JSONResponse(status_code=500, content={"error": "Upload failed"})
    finally:
        await media.close()

    return UploadResponse(file=stored).model_dump()
