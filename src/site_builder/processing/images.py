"""图片处理：按扩展名选择编码器重新压缩，或原样复制。"""

from __future__ import annotations

import asyncio
import io
import logging
from pathlib import Path
from typing import Callable, Dict

from PIL import Image, UnidentifiedImageError

from site_builder.core.exceptions import DestinationOutsideRootError
from site_builder.core.models import CATEGORY_IMAGE, BuildContext, FileOutcome, FileTask
from site_builder.core.output_manager import OutputManager, OutputWriteError
from site_builder.core.scanner import enumerate_files, load_exclude_patterns, mirror_destination
from site_builder.core.stats import format_bytes, percent_of
from site_builder.processing.runner import run_bounded

LOGGER = logging.getLogger(__name__)

ImageCodec = Callable[[Image.Image], bytes]

PNG_COLORS = 256
FALLBACK_JPEG_QUALITY = 85


def encode_jpeg(image: Image.Image) -> bytes:
    """JPEG 重新编码：沿用原量化表，开启霍夫曼优化与渐进式。"""

    params = {"optimize": True, "progressive": True}
    if image.format == "JPEG":
        params["quality"] = "keep"
    else:
        params["quality"] = FALLBACK_JPEG_QUALITY
    icc_profile = image.info.get("icc_profile")
    if icc_profile:
        params["icc_profile"] = icc_profile

    to_save = image if image.mode in {"RGB", "L", "CMYK"} else image.convert("RGB")
    buffer = io.BytesIO()
    to_save.save(buffer, format="JPEG", **params)
    return buffer.getvalue()


def encode_png(image: Image.Image) -> bytes:
    """PNG 有损压缩：量化到调色板后再做无损优化。"""

    if image.mode == "RGBA":
        quantized = image.quantize(colors=PNG_COLORS, method=Image.Quantize.FASTOCTREE)
    elif image.mode == "RGB":
        quantized = image.quantize(colors=PNG_COLORS)
    else:
        quantized = image

    buffer = io.BytesIO()
    quantized.save(buffer, format="PNG", optimize=True)
    return buffer.getvalue()


def encode_gif(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="GIF", save_all=getattr(image, "is_animated", False), optimize=True)
    return buffer.getvalue()


DEFAULT_CODECS: Dict[str, ImageCodec] = {
    ".jpg": encode_jpeg,
    ".jpeg": encode_jpeg,
    ".png": encode_png,
    ".gif": encode_gif,
}


def optimize_image_file(path: Path, codec: ImageCodec) -> bytes:
    """读取图片并返回重新编码后的字节。"""

    with Image.open(path) as image:
        image.load()
        return codec(image)


async def process_images(context: BuildContext, codecs: Dict[str, ImageCodec] | None = None) -> list[FileOutcome]:
    """处理图片目录：``optimize_images`` 为真时重新压缩，否则原样复制。"""

    config = context.config
    codec_table = DEFAULT_CODECS if codecs is None else codecs
    writer = OutputManager(dry_run=config.dry_run)
    mode = "优化" if config.optimize_images else "复制"

    LOGGER.info("开始图片%s：%s/**/*.%s -> %s", mode, config.image_source, config.images_glob_spec, config.image_destination)
    sources = enumerate_files(config.image_source, config.images_glob_spec, load_exclude_patterns(config.exclude))

    tasks: list[FileTask] = []
    for source in sources:
        try:
            destination = mirror_destination(source, config.image_source, config.image_destination)
        except DestinationOutsideRootError as exc:
            LOGGER.error("%s -- %s", source, exc)
            context.add_outcome(
                FileOutcome(source_path=source, status="error-destination", category=CATEGORY_IMAGE, message=str(exc))
            )
            continue
        tasks.append(FileTask(source_path=source, dest_path=destination, category=CATEGORY_IMAGE))

    async def _worker(task: FileTask) -> FileOutcome:
        if config.optimize_images and task.source_path.suffix.lower() in codec_table:
            outcome = await _optimize_one(task, codec_table[task.source_path.suffix.lower()], writer)
        else:
            outcome = await _copy_one(task, writer)
        return context.add_outcome(outcome)

    outcomes = await run_bounded(tasks, _worker, context.worker_limit)
    done = [outcome for outcome in outcomes if outcome.counted]
    original = sum(outcome.original_size for outcome in done)
    compressed = sum(outcome.compressed_size for outcome in done)
    LOGGER.info(
        "图片%s完成：%d 个文件，节省 %s（%d%%）",
        mode,
        len(done),
        format_bytes(original - compressed),
        percent_of(original - compressed, original),
    )
    return outcomes


async def _optimize_one(task: FileTask, codec: ImageCodec, writer: OutputManager) -> FileOutcome:
    try:
        original_size = (await asyncio.to_thread(task.source_path.stat)).st_size
    except OSError as exc:
        LOGGER.error("%s -- 读取文件信息失败：%s", task.source_path, exc)
        return _failed(task, "error-stat", exc)

    try:
        data = await asyncio.to_thread(optimize_image_file, task.source_path, codec)
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        LOGGER.error("%s -- 图片压缩失败：%s", task.source_path, exc)
        return _failed(task, "error-optimize", exc)

    try:
        await asyncio.to_thread(writer.write_bytes, task.dest_path, data)
    except OutputWriteError as exc:
        LOGGER.error("%s -- %s", task.source_path, exc)
        return _failed(task, "error-write", exc)

    compressed_size = len(data)
    LOGGER.info("%s -- 写入 %s -- %s", task.source_path, task.dest_path, describe_savings(original_size, compressed_size))
    return FileOutcome(
        source_path=task.source_path,
        status="optimized",
        category=task.category,
        output_path=task.dest_path,
        original_size=original_size,
        compressed_size=compressed_size,
    )


async def _copy_one(task: FileTask, writer: OutputManager) -> FileOutcome:
    try:
        original_size = (await asyncio.to_thread(task.source_path.stat)).st_size
        await asyncio.to_thread(writer.copy_file, task.source_path, task.dest_path)
    except OutputWriteError as exc:
        LOGGER.error("%s -- %s", task.source_path, exc)
        return _failed(task, "error-write", exc)
    except OSError as exc:
        LOGGER.error("%s -- 读取文件信息失败：%s", task.source_path, exc)
        return _failed(task, "error-stat", exc)

    LOGGER.info("%s -- 复制到 %s", task.source_path, task.dest_path)
    return FileOutcome(
        source_path=task.source_path,
        status="copied",
        category=task.category,
        output_path=task.dest_path,
        original_size=original_size,
        compressed_size=original_size,
    )


def describe_savings(original_size: int, compressed_size: int) -> str:
    """生成单个文件的节省说明；节省不足 10 字节视为已是最优。"""

    saved = original_size - compressed_size
    if saved > 9:
        return f"节省 {format_bytes(saved)}（{percent_of(saved, original_size)}%）"
    return "已是最优"


def _failed(task: FileTask, status: str, exc: BaseException) -> FileOutcome:
    return FileOutcome(source_path=task.source_path, status=status, category=task.category, message=str(exc))
