"""
面试视频存储服务

视频保存在本地目录，文件名带时间戳前缀，通过 /api/videos/{filename} 访问
"""
import base64
import re
import time
from pathlib import Path
from typing import Optional

from loguru import logger

from recruitai.core.config import settings

DATA_URL_PREFIX = re.compile(r"^data:[\w/+.-]+;base64,")
UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class VideoStorage:
    """本地视频文件存储"""

    def __init__(self, upload_dir: str, url_prefix: str = "/api/videos"):
        self.upload_dir = Path(upload_dir)
        self.url_prefix = url_prefix.rstrip("/")

    def _ensure_dir(self) -> None:
        self.upload_dir.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def safe_name(filename: str) -> str:
        """去掉目录部分和不安全字符"""
        name = Path(filename or "interview.webm").name
        name = UNSAFE_CHARS.sub("_", name).lstrip(".")
        return name or "interview.webm"

    def save(self, data: bytes, filename: str) -> str:
        """保存视频，返回文件路径"""
        self._ensure_dir()
        stored_name = f"{int(time.time() * 1000)}_{self.safe_name(filename)}"
        path = self.upload_dir / stored_name
        path.write_bytes(data)
        logger.info("视频已保存: {} ({} bytes)", path, len(data))
        return str(path)

    def save_base64(self, encoded: str, filename: str) -> str:
        """保存 base64 / data URL 形式的视频"""
        raw = DATA_URL_PREFIX.sub("", encoded.strip())
        return self.save(base64.b64decode(raw), filename)

    def resolve(self, filename: str) -> Optional[Path]:
        """根据文件名找到存储目录内的文件，不允许跳出目录"""
        if not filename or filename != Path(filename).name:
            return None
        path = (self.upload_dir / filename).resolve()
        if path.parent != self.upload_dir.resolve() or not path.is_file():
            return None
        return path

    def read(self, video_path: str) -> bytes:
        return Path(video_path).read_bytes()

    def delete(self, video_path: str) -> bool:
        path = Path(video_path)
        if not path.is_file():
            return False
        path.unlink()
        logger.info("视频已删除: {}", path)
        return True

    def get_url(self, video_path: Optional[str]) -> Optional[str]:
        if not video_path:
            return None
        return f"{self.url_prefix}/{Path(video_path).name}"


video_storage = VideoStorage(settings.upload_dir, url_prefix=f"{settings.api_prefix}/videos")
