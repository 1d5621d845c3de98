"""JavaScript 打包：页面脚本包与公共库包的合并、压缩与复制。"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Collection, Sequence, Tuple

import rjsmin
from calmjs.parse import es5
from calmjs.parse.exceptions import ECMASyntaxError
from calmjs.parse.unparsers.es5 import minify_print

from site_builder.core.exceptions import AssetProcessingError, DestinationOutsideRootError
from site_builder.core.models import CATEGORY_JS, BuildContext, FileOutcome
from site_builder.core.output_manager import OutputManager, OutputWriteError
from site_builder.core.scanner import destination_under
from site_builder.processing.images import describe_savings
from site_builder.processing.runner import run_bounded

LOGGER = logging.getLogger(__name__)

BUNDLE_SEPARATOR = "\n;\n"


@dataclass(slots=True, frozen=True)
class BundleSpec:
    """一个输出包：名称、输出文件名与按顺序排列的成员文件。"""

    name: str
    output_name: str
    members: Tuple[str, ...]


def bundle_output_name(members: Sequence[str]) -> str:
    """页面包的输出文件名取自最后一个成员文件，后缀为 ``.min.js``。"""

    return Path(members[-1]).stem + ".min.js"


def minify_javascript(sources: Sequence[str], *, compress: bool = True, mangle: bool = True) -> str:
    """按顺序拼接脚本并压缩。

    ``mangle`` 开启时用 calmjs.parse 解析（ES5）并重命名局部标识符，顶层名称保持不变；
    只开启 ``compress`` 时用 rjsmin 去除空白与注释，保留 ``/*! ... */`` 注释；
    两者都关闭时原样返回拼接结果。语法错误抛出 ``ECMASyntaxError``。
    """

    combined = BUNDLE_SEPARATOR.join(sources)
    if mangle:
        return minify_print(es5(combined), obfuscate=True, obfuscate_globals=False)
    if compress:
        return rjsmin.jsmin(combined, keep_bang_comments=True)
    return combined


async def compress_page_bundles(context: BuildContext) -> list[FileOutcome]:
    """为 ``page_manifest`` 中的每个页面包生成一个 ``.min.js`` 文件。"""

    config = context.config
    writer = OutputManager(dry_run=config.dry_run)
    LOGGER.info("开始页面脚本压缩：%d 个包", len(config.page_manifest))

    specs: list[BundleSpec] = []
    rejected: list[FileOutcome] = []
    claimed: dict[str, str] = {}
    if config.libs_to_combine:
        claimed[config.combined_lib_file_name] = "公共库包"
    for name, members in config.page_manifest.items():
        if not members:
            LOGGER.error("页面包 %s 没有成员文件，跳过", name)
            rejected.append(
                context.add_outcome(
                    FileOutcome(source_path=Path(name), status="skip-empty", category=CATEGORY_JS, message="成员为空")
                )
            )
            continue
        output_name = bundle_output_name(members)
        if output_name in claimed:
            message = f"输出文件 {output_name} 已被 {claimed[output_name]} 使用"
            LOGGER.error("页面包 %s -- %s", name, message)
            rejected.append(
                context.add_outcome(
                    FileOutcome(
                        source_path=config.js_source / members[-1],
                        status="error-duplicate-output",
                        category=CATEGORY_JS,
                        message=message,
                    )
                )
            )
            continue
        claimed[output_name] = f"页面包 {name}"
        specs.append(BundleSpec(name=name, output_name=output_name, members=tuple(members)))

    async def _worker(spec: BundleSpec) -> FileOutcome:
        return context.add_outcome(await _build_bundle(context, writer, spec, ignore=config.js_files_to_ignore))

    return rejected + await run_bounded(specs, _worker, context.worker_limit)


async def build_library_bundle(context: BuildContext) -> list[FileOutcome]:
    """原样复制预构建库文件，并将 ``libs_to_combine`` 合并压缩为一个文件。"""

    config = context.config
    writer = OutputManager(dry_run=config.dry_run)
    LOGGER.info("开始公共库脚本处理")

    try:
        writer.ensure_directory(config.js_destination)
    except OutputWriteError as exc:
        LOGGER.error("%s", exc)
        return [
            context.add_outcome(
                FileOutcome(source_path=config.js_destination, status="error-write", category=CATEGORY_JS, message=str(exc))
            )
        ]

    async def _copy_worker(name: str) -> FileOutcome:
        return context.add_outcome(await _copy_library(context, writer, name))

    to_copy = list(dict.fromkeys([*config.libs_to_copy, *config.files_to_copy]))
    outcomes = await run_bounded(to_copy, _copy_worker, context.worker_limit)

    if config.libs_to_combine:
        spec = BundleSpec(
            name=config.combined_lib_file_name,
            output_name=config.combined_lib_file_name,
            members=config.libs_to_combine,
        )
        outcomes.append(context.add_outcome(await _build_bundle(context, writer, spec, ignore=())))
    return outcomes


async def _copy_library(context: BuildContext, writer: OutputManager, name: str) -> FileOutcome:
    config = context.config
    source = config.js_source / name
    try:
        destination = destination_under(config.js_destination, name)
        original_size = (await asyncio.to_thread(source.stat)).st_size
        await asyncio.to_thread(writer.copy_file, source, destination)
    except DestinationOutsideRootError as exc:
        LOGGER.error("%s -- %s", source, exc)
        return FileOutcome(source_path=source, status="error-destination", category=CATEGORY_JS, message=str(exc))
    except OutputWriteError as exc:
        LOGGER.error("%s -- %s", source, exc)
        return FileOutcome(source_path=source, status="error-write", category=CATEGORY_JS, message=str(exc))
    except OSError as exc:
        LOGGER.error("%s -- 读取文件信息失败：%s", source, exc)
        return FileOutcome(source_path=source, status="error-stat", category=CATEGORY_JS, message=str(exc))

    LOGGER.info("%s -- 复制到 %s", source, destination)
    return FileOutcome(
        source_path=source,
        status="copied",
        category=CATEGORY_JS,
        output_path=destination,
        original_size=original_size,
        compressed_size=original_size,
    )


def _read_members(source_root: Path, members: Sequence[str], ignore: Collection[str]) -> list[Tuple[str, bytes]]:
    """按顺序读取成员文件，跳过忽略列表中的文件与空文件。"""

    loaded: list[Tuple[str, bytes]] = []
    for member in members:
        file_name = Path(member).name
        if file_name in ignore:
            LOGGER.info("忽略脚本 %s", member)
            continue
        path = source_root / member
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise AssetProcessingError(f"读取脚本失败: {path}: {exc}") from exc
        if not data.strip():
            LOGGER.error("脚本 %s 为空，跳过", path)
            continue
        loaded.append((member, data))
    return loaded


async def _build_bundle(
    context: BuildContext,
    writer: OutputManager,
    spec: BundleSpec,
    *,
    ignore: Collection[str],
) -> FileOutcome:
    config = context.config
    source_path = config.js_source / spec.members[-1]

    try:
        destination = destination_under(config.js_destination, spec.output_name)
        members = await asyncio.to_thread(_read_members, config.js_source, spec.members, ignore)
        sources = [data.decode("utf-8") for _, data in members]
    except (DestinationOutsideRootError, AssetProcessingError, UnicodeDecodeError) as exc:
        LOGGER.error("脚本包 %s -- %s", spec.name, exc)
        return FileOutcome(source_path=source_path, status="error-read", category=CATEGORY_JS, message=str(exc))

    if not members:
        LOGGER.error("脚本包 %s 没有可用的成员文件", spec.name)
        return FileOutcome(source_path=source_path, status="skip-empty", category=CATEGORY_JS)

    LOGGER.info("脚本包 %s -- 压缩 %s", spec.name, ", ".join(name for name, _ in members))
    try:
        code = await asyncio.to_thread(
            minify_javascript,
            sources,
            compress=config.compress_javascript,
            mangle=config.mangle_javascript,
        )
    except (ECMASyntaxError, ValueError, TypeError) as exc:
        LOGGER.error("脚本包 %s -- 压缩出错：%s", spec.name, exc)
        return FileOutcome(source_path=source_path, status="error-minify", category=CATEGORY_JS, message=str(exc))

    data = code.encode("utf-8")
    try:
        await asyncio.to_thread(writer.write_bytes, destination, data)
    except OutputWriteError as exc:
        LOGGER.error("脚本包 %s -- %s", spec.name, exc)
        return FileOutcome(source_path=source_path, status="error-write", category=CATEGORY_JS, message=str(exc))

    original_size = sum(len(raw) for _, raw in members)
    LOGGER.info("脚本包 %s -- 写入 %s -- %s", spec.name, destination, describe_savings(original_size, len(data)))
    return FileOutcome(
        source_path=source_path,
        status="bundled",
        category=CATEGORY_JS,
        output_path=destination,
        original_size=original_size,
        compressed_size=len(data),
        file_count=len(members),
        message=f"bundle {spec.name}",
    )
