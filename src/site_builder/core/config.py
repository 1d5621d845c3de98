"""构建任务的配置模型与合并逻辑。

配置来源优先级：命令行 > JSON 配置文件 > 内置默认值。
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, fields, replace
from os import PathLike
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence, Tuple

from site_builder.core.exceptions import ConfigurationError

LOGGER = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("./bin/build-config.json")


def _key(name: str):
    """为字段声明 JSON/命令行中使用的 camelCase 键名。"""

    return {"key": name}


@dataclass(slots=True, frozen=True)
class BuildConfig:
    """单次构建的完整配置，解析完成后不再修改。"""

    dry_run: bool = field(default=False, metadata=_key("dryrun"))
    verbose: bool = field(default=True, metadata=_key("verbose"))
    logfile: Optional[Path] = field(default=None, metadata=_key("logfile"))
    exclude: Optional[Path] = field(default=None, metadata=_key("exclude"))
    optimize_images: bool = field(default=True, metadata=_key("optimizeImages"))
    optimize_css: bool = field(default=False, metadata=_key("optimizeCSS"))
    compress_javascript: bool = field(default=True, metadata=_key("isCompressJavaScript"))
    mangle_javascript: bool = field(default=True, metadata=_key("isMangleJavaScript"))
    js_source: Path = field(default=Path("./public/js"), metadata=_key("jsSource"))
    js_destination: Path = field(default=Path("./distrib/js"), metadata=_key("jsDestination"))
    image_source: Path = field(default=Path("./public/images"), metadata=_key("imageSource"))
    image_destination: Path = field(default=Path("./distrib/images"), metadata=_key("imageDestination"))
    css_source: Path = field(default=Path("./public/css"), metadata=_key("cssSource"))
    css_destination: Path = field(default=Path("./distrib/css"), metadata=_key("cssDestination"))
    images_glob_spec: str = field(default="{jpg,jpeg,png,gif}", metadata=_key("imagesGlobSpec"))
    page_manifest: Mapping[str, Tuple[str, ...]] = field(default_factory=dict, metadata=_key("pageManifest"))
    files_to_copy: Tuple[str, ...] = field(default=(), metadata=_key("filesToCopy"))
    js_files_to_ignore: Tuple[str, ...] = field(default=(), metadata=_key("jsFilesToIgnore"))
    libs_to_copy: Tuple[str, ...] = field(default=("bootstrap.bundle.min.js",), metadata=_key("libsToCopy"))
    libs_to_combine: Tuple[str, ...] = field(
        default=("commonUtilities.js", "ShareHelper.js", "enginesis.js"),
        metadata=_key("libsToCombine"),
    )
    combined_lib_file_name: str = field(default="enginesis.min.js", metadata=_key("combinedLibFileName"))
    max_workers: Optional[int] = field(default=None, metadata=_key("maxWorkers"))
    report_file: Optional[Path] = field(default=None, metadata=_key("reportFile"))


_FIELDS = {item.name: item for item in fields(BuildConfig)}
_KEY_TO_FIELD = {item.metadata["key"]: item.name for item in fields(BuildConfig)}
_PATH_FIELDS = {
    "logfile",
    "exclude",
    "js_source",
    "js_destination",
    "image_source",
    "image_destination",
    "css_source",
    "css_destination",
    "report_file",
}
_LIST_FIELDS = {"files_to_copy", "js_files_to_ignore", "libs_to_copy", "libs_to_combine"}
_BOOL_FIELDS = {
    "dry_run",
    "verbose",
    "optimize_images",
    "optimize_css",
    "compress_javascript",
    "mangle_javascript",
}
_STR_FIELDS = {"images_glob_spec", "combined_lib_file_name"}


def load_config_file(path: Path) -> dict[str, Any]:
    """读取 JSON 配置文件；文件缺失或格式错误时记录错误并返回空字典。"""

    if not path.exists():
        LOGGER.error("配置文件 %s 不存在，使用默认配置继续构建", path)
        return {}

    try:
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except (OSError, ValueError) as exc:
        LOGGER.error("读取配置文件 %s 出错：%s", path, exc)
        return {}

    if not isinstance(data, dict):
        LOGGER.error("配置文件 %s 顶层必须是 JSON 对象", path)
        return {}

    LOGGER.info("配置文件 %s 覆盖对应的默认选项", path)
    return data


def merge_config(base: BuildConfig, values: Mapping[str, Any], *, source: str) -> BuildConfig:
    """将 ``values`` 中出现的键合并到 ``base``，返回新的配置对象。

    键名可以是 camelCase（与 JSON/命令行一致）或字段名本身。值为 ``None`` 的键视为未设置。
    类型不符的值记录错误后丢弃，保留原值。
    """

    changes: dict[str, Any] = {}
    for key, value in values.items():
        name = _KEY_TO_FIELD.get(key, key if key in _FIELDS else None)
        if name is None:
            LOGGER.warning("忽略未知的配置项 %s（来源：%s）", key, source)
            continue
        if value is None:
            continue
        try:
            changes[name] = _coerce(name, value)
        except ConfigurationError as exc:
            LOGGER.error("忽略配置项 %s（来源：%s）：%s", key, source, exc)
            continue
        LOGGER.debug(">>> [%s] 设置 %s = %r", source, _FIELDS[name].metadata["key"], changes[name])

    if not changes:
        return base
    return replace(base, **changes)


def resolve_config(
    cli_values: Optional[Mapping[str, Any]] = None,
    config_path: Optional[Path] = DEFAULT_CONFIG_PATH,
) -> BuildConfig:
    """合并默认值、配置文件与命令行参数，得到最终配置。"""

    config = BuildConfig()
    if config_path is not None:
        config = merge_config(config, load_config_file(Path(config_path)), source=str(config_path))
    if cli_values:
        config = merge_config(config, cli_values, source="cli")
    return config


def _coerce(name: str, value: Any) -> Any:
    """按字段类型转换配置值，类型不符时抛出 :class:`ConfigurationError`。"""

    if name in _PATH_FIELDS:
        if not isinstance(value, (str, PathLike)):
            raise ConfigurationError(f"需要路径字符串，得到 {value!r}")
        return Path(value)
    if name in _LIST_FIELDS:
        return _as_tuple(value)
    if name in _BOOL_FIELDS:
        if not isinstance(value, bool):
            raise ConfigurationError(f"需要布尔值，得到 {value!r}")
        return value
    if name in _STR_FIELDS:
        if not isinstance(value, str) or not value:
            raise ConfigurationError(f"需要非空字符串，得到 {value!r}")
        return value
    if name == "max_workers":
        return _as_worker_count(value)
    if name == "page_manifest":
        if not isinstance(value, Mapping):
            raise ConfigurationError(f"需要 JSON 对象，得到 {value!r}")
        return {str(bundle): _as_tuple(files) for bundle, files in value.items()}
    return value


def _as_tuple(value: Any) -> Tuple[str, ...]:
    if isinstance(value, str):
        return (value,)
    if isinstance(value, Sequence) and all(isinstance(item, str) for item in value):
        return tuple(value)
    raise ConfigurationError(f"需要文件名列表，得到 {value!r}")


def _as_worker_count(value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"需要正整数，得到 {value!r}")
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if not isinstance(value, int) or value < 1:
        raise ConfigurationError(f"需要正整数，得到 {value!r}")
    return value
