"""构建统计：文件数、原始字节数、压缩后字节数与耗时。"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Optional

from rich.filesize import decimal


def format_bytes(size: int) -> str:
    """以十进制单位格式化字节数，负数保留符号。"""

    if size < 0:
        return "-" + decimal(-size)
    return decimal(size)


def percent_of(part: int, whole: int) -> int:
    """返回 ``part`` 占 ``whole`` 的整数百分比；``whole`` 为 0 时返回 0。"""

    if whole <= 0:
        return 0
    return round(part / whole * 100)


@dataclass(slots=True)
class CompressionStats:
    """整个构建过程共享的累加器，只允许累加。"""

    total_files: int = 0
    total_bytes_considered: int = 0
    total_bytes_compressed: int = 0
    start_time: float = field(default_factory=time.time)
    end_time: Optional[float] = None

    def record(self, original_size: int, compressed_size: int, *, files: int = 1) -> None:
        self.total_files += files
        self.total_bytes_considered += original_size
        self.total_bytes_compressed += compressed_size

    def finish(self) -> None:
        self.end_time = time.time()

    @property
    def bytes_saved(self) -> int:
        return self.total_bytes_considered - self.total_bytes_compressed

    @property
    def percent_saved(self) -> int:
        return percent_of(self.bytes_saved, self.total_bytes_considered)

    @property
    def elapsed_seconds(self) -> float:
        end = self.end_time if self.end_time is not None else time.time()
        return max(end - self.start_time, 0.0)

    def summary(self, version: str) -> str:
        """生成构建结束时的汇总文本。"""

        return (
            f"构建版本 {version} 完成，用时 {self.elapsed_seconds:.3f}s："
            f"{self.total_files} 个文件，原始 {format_bytes(self.total_bytes_considered)}，"
            f"现为 {format_bytes(self.total_bytes_compressed)}，"
            f"节省 {format_bytes(self.bytes_saved)}（{self.percent_saved}%）。"
        )
