"""
面试视频播放 API 路由

支持 HTTP Range 请求，便于浏览器拖动进度
"""
import re
from pathlib import Path
from typing import Optional, Tuple
from fastapi import APIRouter, Depends, Header
from fastapi.responses import FileResponse, Response

from recruitai.core.exceptions import NotFoundException
from recruitai.core.security import CurrentUser, Permission
from recruitai.services.video_storage import video_storage
from ..deps import require_permission

router = APIRouter()

MEDIA_TYPE = "video/webm"
RANGE_PATTERN = re.compile(r"^bytes=(\d*)-(\d*)$")


def parse_range(header: str, size: int) -> Optional[Tuple[int, int]]:
    """解析单段 Range，返回闭区间 (start, end)，无法满足时返回 None"""
    match = RANGE_PATTERN.match(header.strip())
    if not match or size == 0:
        return None
    start_text, end_text = match.groups()
    if not start_text and not end_text:
        return None
    if not start_text:
        # bytes=-N 表示最后 N 个字节
        length = int(end_text)
        if length == 0:
            return None
        return max(0, size - length), size - 1
    start = int(start_text)
    end = int(end_text) if end_text else size - 1
    if start >= size or end < start:
        return None
    return start, min(end, size - 1)


def _read_chunk(path: Path, start: int, end: int) -> bytes:
    with path.open("rb") as f:
        f.seek(start)
        return f.read(end - start + 1)


@router.get("/{filename}", summary="播放面试视频")
async def stream_video(
    filename: str,
    range_header: Optional[str] = Header(None, alias="Range"),
    user: CurrentUser = Depends(require_permission(Permission.VIEW_INTERVIEWS)),
):
    path = video_storage.resolve(filename)
    if path is None:
        raise NotFoundException("视频不存在")

    size = path.stat().st_size
    if not range_header:
        return FileResponse(path, media_type=MEDIA_TYPE, headers={"Accept-Ranges": "bytes"})

    byte_range = parse_range(range_header, size)
    if byte_range is None:
        return Response(status_code=416, headers={"Content-Range": f"bytes */{size}"})

    start, end = byte_range
    return Response(
        content=_read_chunk(path, start, end),
        status_code=206,
        media_type=MEDIA_TYPE,
        headers={
            "Content-Range": f"bytes {start}-{end}/{size}",
            "Accept-Ranges": "bytes",
        },
    )
