"""文件扫描与筛选逻辑。"""

from __future__ import annotations

import logging
from fnmatch import fnmatch
from pathlib import Path
from typing import Iterator, Optional, Sequence, Tuple

from site_builder.core.exceptions import DestinationOutsideRootError

LOGGER = logging.getLogger(__name__)


def expand_glob_spec(spec: str) -> Tuple[str, ...]:
    """将 ``{jpg,png}`` 形式的扩展名描述展开为 fnmatch 模式。"""

    cleaned = spec.strip().lstrip("*.")
    if cleaned.startswith("{") and cleaned.endswith("}"):
        cleaned = cleaned[1:-1]
    extensions = [part.strip().lstrip(".") for part in cleaned.split(",")]
    return tuple(f"*.{ext}" for ext in extensions if ext)


def _iter_candidate_files(path: Path) -> Iterator[Path]:
    """递归遍历目录下的所有文件。"""

    if not path.is_dir():
        return

    for candidate in path.rglob("*"):
        if candidate.is_file():
            yield candidate


def _matches_any(name: str, patterns: Sequence[str]) -> bool:
    lowered = name.lower()
    return any(fnmatch(lowered, pattern.lower()) for pattern in patterns)


def enumerate_files(root: Path, glob_spec: str, exclude_patterns: Sequence[str] = ()) -> list[Path]:
    """返回 ``root`` 下所有匹配 ``glob_spec`` 的文件绝对路径。

    排除模式同时与文件名以及相对 ``root`` 的 posix 路径比较。顺序不做保证。
    """

    resolved_root = root.resolve()
    if not resolved_root.is_dir():
        LOGGER.warning("源目录不存在：%s", resolved_root)
        return []

    include_patterns = expand_glob_spec(glob_spec)
    collected: list[Path] = []
    for candidate in _iter_candidate_files(resolved_root):
        if not _matches_any(candidate.name, include_patterns):
            continue
        if exclude_patterns:
            relative = candidate.relative_to(resolved_root).as_posix()
            if _matches_any(candidate.name, exclude_patterns) or _matches_any(relative, exclude_patterns):
                LOGGER.debug("排除文件：%s", candidate)
                continue
        collected.append(candidate)
    return collected


def load_exclude_patterns(path: Optional[Path]) -> Tuple[str, ...]:
    """读取排除列表文件：每行一个模式，忽略空行与 ``#`` 注释。"""

    if path is None:
        return ()
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError as exc:
        LOGGER.error("无法读取排除列表 %s：%s", path, exc)
        return ()

    patterns = []
    for line in lines:
        stripped = line.strip()
        if stripped and not stripped.startswith("#"):
            patterns.append(stripped)
    return tuple(patterns)


def mirror_destination(source: Path, source_root: Path, dest_root: Path) -> Path:
    """计算源文件在输出目录中的镜像路径，并保证其位于输出根目录之下。"""

    try:
        relative = source.resolve().relative_to(source_root.resolve())
    except ValueError as exc:
        raise DestinationOutsideRootError(f"文件不在源目录之下：{source}") from exc
    return destination_under(dest_root, relative)


def destination_under(dest_root: Path, relative: Path | str) -> Path:
    """拼接输出路径；结果不在 ``dest_root`` 之下时抛出异常。"""

    resolved_root = dest_root.resolve()
    destination = (resolved_root / relative).resolve()
    if not destination.is_relative_to(resolved_root):
        raise DestinationOutsideRootError(f"目标路径超出输出目录：{destination}")
    return destination
