"""
app.api.upload
~~~~~~~~~~~~~~

视频上传接口。上传结果中的 ``url`` 会被客户端作为 ``video-url-change``
的播放地址使用，房间核心只把它当作不透明字符串。
"""

from fastapi import APIRouter, Depends, File, Request, UploadFile
from fastapi.responses import JSONResponse

from app.api.deps import get_video_storage
from app.core.exceptions import UploadError
from app.core.logging import get_logger
from app.core.rate_limit import limiter
from app.schemas.api_response import error_response
from app.services.storage import VideoStorage

logger = get_logger(__name__)

router: APIRouter = APIRouter()


@router.post("/upload", summary="上传视频文件")
@limiter.limit("5/minute")
async def upload_video(
    request: Request,
    video: UploadFile | None = File(default=None, description="视频文件"),
    storage: VideoStorage = Depends(get_video_storage),
) -> JSONResponse:
    """保存上传的视频并返回可播放地址。

    缺少文件或超出大小上限时返回 400。
    """
    try:
        stored = await storage.save_upload(video)
    except UploadError as e:
        logger.warning("上传失败: %s", e)
        return error_response(400, str(e))

    return JSONResponse(
        content={
            "url": stored.url,
            "originalName": stored.original_name,
            "size": stored.size,
        },
    )
