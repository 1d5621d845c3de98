"""日志初始化。"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from rich.logging import RichHandler

FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(verbose: bool = True, logfile: Optional[Path] = None) -> None:
    """初始化项目日志配置：控制台使用 rich 着色，可选写入日志文件。"""

    level = logging.INFO if verbose else logging.WARNING
    handlers: list[logging.Handler] = [RichHandler(show_path=False, markup=False)]
    if logfile is not None:
        logfile.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(logfile, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        handlers.append(file_handler)

    logging.basicConfig(level=level, format="%(message)s", handlers=handlers, force=True)
