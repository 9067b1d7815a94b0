#!/usr/bin/env python
"""
RecruitAI 后端启动脚本

用法:
    python run.py                    # 默认启动 (127.0.0.1:8000)
    python run.py -p 8080 --reload   # 指定端口并开启热重载
    python run.py --no-sync          # 关闭 ATS 定时同步
"""
import argparse
import os
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).parent
sys.path.insert(0, str(ROOT_DIR))


def parse_args():
    parser = argparse.ArgumentParser(description="RecruitAI 后端启动脚本")
    parser.add_argument("-p", "--port", type=int, default=8000, help="服务端口 (默认: 8000)")
    parser.add_argument("--host", default="127.0.0.1", help="服务地址 (默认: 127.0.0.1)")
    parser.add_argument("--reload", action="store_true", help="开启热重载")
    parser.add_argument("--no-sync", action="store_true", help="关闭 ATS 定时同步")
    return parser.parse_args()


def prepare_dirs(settings) -> None:
    """创建数据库和视频目录"""
    from loguru import logger

    for path in (ROOT_DIR / "data", Path(settings.upload_dir)):
        if not path.exists():
            path.mkdir(parents=True)
            logger.info("目录已创建: {}", path)
    if not (ROOT_DIR / ".env").exists():
        logger.warning("未找到 .env，使用默认配置（可参考 .env.example）")


def main():
    args = parse_args()
    if args.no_sync:
        os.environ["SYNC_AUTO_ENABLED"] = "false"

    import uvicorn
    from loguru import logger
    from recruitai.core.config import settings

    prepare_dirs(settings)
    logger.info("启动 {}: http://{}:{}{}", settings.app_name, args.host, args.port, settings.api_prefix)
    uvicorn.run(
        "recruitai.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level="info",
    )


if __name__ == "__main__":
    main()
