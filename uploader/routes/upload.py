from fastapi import APIRouter, Header, HTTPException, Request, Response
from loguru import logger

from uploader.models.upload import UploadRequest
from uploader.services.errors import UploadError
from uploader.services.pipeline import UploadPipeline

router = APIRouter(tags=["upload"])


@router.post("/{filename}", status_code=204)
async def upload_file(filename: str, request: Request, content_type: str = Header(default="")) -> Response:
    pipeline: UploadPipeline = request.app.state.pipeline
    upload = UploadRequest(body=request.stream(), content_type=content_type, target_name=filename)
    try:
        await pipeline.upload(upload)
    except UploadError as exc:
        logger.warning(
            "Upload rejected filename={} content_type={} error={}",
            filename,
            content_type,
            str(exc),
        )
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    logger.info("Upload stored filename={} content_type={}", filename, content_type)
    return Response(status_code=204)
