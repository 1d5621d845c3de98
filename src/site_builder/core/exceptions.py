"""项目内使用的自定义异常定义。"""

from __future__ import annotations

from typing import Sequence


class SiteBuilderError(Exception):
    """基础异常类型。"""


class ConfigurationError(SiteBuilderError):
    """配置值类型不合法时抛出。"""


class DestinationOutsideRootError(SiteBuilderError):
    """目标路径落在输出根目录之外。"""


class AssetProcessingError(SiteBuilderError):
    """单个资源（文件或打包）处理失败。"""


class BatchError(SiteBuilderError):
    """批处理结束后汇总抛出的错误，保留全部子错误。"""

    def __init__(self, errors: Sequence[BaseException]) -> None:
        self.errors = list(errors)
        first = self.errors[0] if self.errors else None
        super().__init__(f"{len(self.errors)} 个任务失败，首个错误：{first!r}")

    @property
    def first(self) -> BaseException | None:
        return self.errors[0] if self.errors else None
