import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from ..core.deps import RelayDep
from ..core.errors import ValidationError
from ..core.models import ErrorResponse, UploadResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["upload"])

# The form is read by hand so that a missing file, or an `image` sent as a
# plain text field, gets our 400 instead of FastAPI's 422.
UPLOAD_BODY = {
    "requestBody": {
        "content": {
            "multipart/form-data": {
                "schema": {
                    "type": "object",
                    "properties": {"image": {"type": "string", "format": "binary"}},
                    "required": ["image"],
                }
            }
        },
        "required": True,
    }
}


@router.post(
    "/upload",
    response_model=UploadResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    openapi_extra=UPLOAD_BODY,
    summary="Upload an image to the repository",
    description=(
        "Send one image as multipart form-data in the `image` field.\n\n"
        "The file is committed to `images/{timestamp}_{filename}` in the configured "
        "repository and the raw download URL is returned as `imageUrl`."
    ),
)
async def upload_image(request: Request, relay: RelayDep):
    form = await request.form()
    try:
        result = await relay.handle_http_upload(form.get("image"))
        return UploadResponse(imageUrl=result.public_url)
    except ValidationError as e:
        return JSONResponse(status_code=400, content={"error": str(e)})
    except Exception as e:
        logger.error("upload failed: %s", e)
        return JSONResponse(status_code=500, content={"error": str(e)})
    finally:
        await form.close()
