"""命令行入口。"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

from site_builder.core.config import DEFAULT_CONFIG_PATH, resolve_config
from site_builder.processing.pipeline import build
from site_builder.utils.logging import setup_logging

app = typer.Typer(
    help="构建网站静态资源：图片优化、JavaScript 打包压缩、CSS 压缩。",
    context_settings={"help_option_names": ["-?", "--help"]},
    add_completion=False,
)

TRUE_VALUES = {"true", "1", "yes", "on"}
FALSE_VALUES = {"false", "0", "no", "off"}


def _parse_switch(value: Optional[str]) -> Optional[bool]:
    """解析可带值的开关：``--flag``、``--flag=false`` 等；未给出时返回 None。"""

    if value is None:
        return None
    lowered = value.strip().lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    raise typer.BadParameter(f"无法识别的布尔值: {value}（可用 true/false/1/0/yes/no）")


def _switch(name: str, short: str, help_text: str):
    return typer.Option(
        None,
        name,
        short,
        is_flag=False,
        flag_value="true",
        callback=_parse_switch,
        metavar="[true|false]",
        help=help_text,
    )


@app.command()
def run_cli(  # noqa: PLR0913
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, "--config", "-c", help="配置文件路径"),
    js_source: Optional[Path] = typer.Option(None, "--jsSource", "-s", help=".js 文件源目录"),
    js_destination: Optional[Path] = typer.Option(None, "--jsDestination", "-d", help="压缩后 .js 文件输出目录"),
    image_source: Optional[Path] = typer.Option(None, "--imageSource", "-b", help="图片源目录"),
    image_destination: Optional[Path] = typer.Option(None, "--imageDestination", "-a", help="图片输出目录"),
    optimize_images: Optional[str] = _switch("--optimizeImages", "-i", "是否优化图片（否则原样复制）"),
    verbose: Optional[str] = _switch("--verbose", "-v", "输出详细日志，默认开启"),
    dry_run: Optional[str] = _switch("--dryrun", "-y", "演练模式，不写入任何文件"),
    exclude: Optional[Path] = typer.Option(None, "--exclude", "-x", help="排除列表文件（每行一个模式）"),
    logfile: Optional[Path] = typer.Option(None, "--logfile", "-l", help="日志文件路径"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", min=1, help="并发上限，默认 CPU 数量"),
    report: Optional[Path] = typer.Option(None, "--report", help="写入 CSV 处理报告"),
) -> None:
    """执行构建。单个文件失败只记录日志，退出码始终为 0。

    布尔开关既可单独给出（``--optimizeImages``），也可带值（``--optimizeImages=false``）。
    """

    setup_logging(verbose=verbose is not False, logfile=logfile)
    logging.getLogger(__name__).debug("CLI 参数解析完成")

    cli_values = {
        "jsSource": js_source,
        "jsDestination": js_destination,
        "imageSource": image_source,
        "imageDestination": image_destination,
        "optimizeImages": optimize_images,
        "verbose": verbose,
        "dryrun": dry_run,
        "exclude": exclude,
        "logfile": logfile,
        "maxWorkers": workers,
        "reportFile": report,
    }
    build_config = resolve_config(cli_values, config.expanduser())
    if build_config.logfile != logfile or build_config.verbose != (verbose is not False):
        setup_logging(verbose=build_config.verbose, logfile=build_config.logfile)

    result = build(build_config)

    typer.echo(
        f"构建完成：成功 {len(result.succeeded)} 项，跳过 {len(result.skipped)} 项，失败 {len(result.failed)} 项。"
    )


if __name__ == "__main__":
    app()
