"""输出写入：创建目录、写入文件与原样复制，支持演练模式。"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from site_builder.core.exceptions import SiteBuilderError

LOGGER = logging.getLogger(__name__)


class OutputWriteError(SiteBuilderError):
    """输出写入失败。"""


class OutputManager:
    """负责输出目录与文件写入；``dry_run`` 时只记录日志，不落盘。"""

    def __init__(self, dry_run: bool = False) -> None:
        self.dry_run = dry_run

    def ensure_directory(self, directory: Path) -> None:
        """创建目录（已存在时跳过）。"""

        if self.dry_run:
            return
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise OutputWriteError(f"无法创建目录: {directory}") from exc

    def write_bytes(self, destination: Path, data: bytes) -> None:
        if self.dry_run:
            LOGGER.debug("演练模式，跳过写入 %s", destination)
            return
        self.ensure_directory(destination.parent)
        try:
            destination.write_bytes(data)
        except OSError as exc:
            raise OutputWriteError(f"写入文件失败: {destination}") from exc

    def copy_file(self, source: Path, destination: Path) -> None:
        """按字节原样复制文件。"""

        if self.dry_run:
            LOGGER.debug("演练模式，跳过复制 %s -> %s", source, destination)
            return
        self.ensure_directory(destination.parent)
        try:
            shutil.copyfile(source, destination)
        except OSError as exc:
            raise OutputWriteError(f"复制文件失败: {source} -> {destination}") from exc
