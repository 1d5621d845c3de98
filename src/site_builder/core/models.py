"""核心数据模型定义。"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from site_builder.core.config import BuildConfig
    from site_builder.core.stats import CompressionStats

CATEGORY_IMAGE = "image"
CATEGORY_CSS = "css"
CATEGORY_JS = "js"


@dataclass(slots=True, frozen=True)
class FileTask:
    """枚举阶段得到的单个待处理文件。"""

    source_path: Path
    dest_path: Path
    category: str


@dataclass(slots=True)
class FileOutcome:
    """记录单个文件或打包的处理结果（用于报告/日志）。

    ``file_count`` 为该结果涵盖的源文件数量，打包结果大于 1。
    """

    source_path: Path
    status: str
    category: str
    output_path: Optional[Path] = None
    original_size: int = 0
    compressed_size: int = 0
    file_count: int = 1
    message: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.status.startswith("error")

    @property
    def counted(self) -> bool:
        """是否计入压缩统计。失败与跳过的结果不计入。"""

        return not (self.failed or self.status.startswith("skip"))


@dataclass(slots=True)
class BuildContext:
    """一次构建的共享上下文：配置、统计与结果记录。"""

    config: "BuildConfig"
    stats: "CompressionStats"
    worker_limit: int
    outcomes: list[FileOutcome] = field(default_factory=list)

    def add_outcome(self, outcome: FileOutcome) -> FileOutcome:
        """登记结果；可计入的结果同时累加到统计。"""

        self.outcomes.append(outcome)
        if outcome.counted:
            self.stats.record(outcome.original_size, outcome.compressed_size, files=outcome.file_count)
        return outcome


@dataclass(slots=True)
class BuildReport:
    """构建结束后的产出。"""

    stats: "CompressionStats"
    outcomes: list[FileOutcome]
    errors: list[BaseException]

    @property
    def succeeded(self) -> list[FileOutcome]:
        return [outcome for outcome in self.outcomes if outcome.counted]

    @property
    def failed(self) -> list[FileOutcome]:
        return [outcome for outcome in self.outcomes if outcome.failed]

    @property
    def skipped(self) -> list[FileOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.failed and not outcome.counted]
