"""
命令行接口模块

提供用户友好的命令行界面，包括：
- 列出继电器板卡
- 继电器控制命令
- 序列号修改命令（暂未实现）
"""

import sys
import logging
import functools
from typing import List

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.progress import Progress, SpinnerColumn, TextColumn

from . import __version__
from .config import ConfigManager
from .device_controller import (
    ON_ERROR_SKIP,
    RelayBoard,
    close_boards,
    find_relays,
    open_board,
)
from .exceptions import USBRelayException
from .protocol import RelayState
from .utils import setup_logging, validate_serial_number, verbosity_to_level


PROG_NAME = "usbrelay"

console = Console()
logger = logging.getLogger("usbrelay.cli")


def handle_exceptions(func):
    """异常处理装饰器"""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except USBRelayException as e:
            console.print(f"[red]错误: {escape(str(e))}[/red]")
            sys.exit(1)
        except click.ClickException:
            raise
        except Exception as e:
            logger.debug("未知错误", exc_info=True)
            console.print(f"[red]未知错误: {escape(str(e))}[/red]")
            sys.exit(1)
    return wrapper


def _progress() -> Progress:
    ui = click.get_current_context().obj.get_ui_config()
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
        disable=not ui.show_progress,
    )


def _on_error_policy(skip_invalid: bool) -> str:
    if skip_invalid:
        return ON_ERROR_SKIP
    return click.get_current_context().obj.get_discovery_config().on_error


def _format_states(board: RelayBoard) -> str:
    parts = []
    for index, state in enumerate(board.relay_states):
        color = "green" if state.is_on else "red"
        parts.append(f"{index}:[{color}]{state}[/{color}]")
    return " ".join(parts)


@click.group()
@click.version_option(version=__version__, prog_name=PROG_NAME)
@click.option("--verbose", "-v", count=True, help="日志详细程度（可重复，-vv 输出调试日志）")
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False),
              help="配置文件路径")
@click.option("--log-file", help="日志文件路径")
@click.pass_context
def cli(ctx: click.Context, verbose: int, config_path: str, log_file: str):
    """USB HID继电器控制工具

    发现并控制 VID:PID 为 16C0:05DF 的USB继电器板卡。
    """
    config_manager = ConfigManager()
    if config_path:
        config_manager.load_file(config_path)
    else:
        config_manager.load_config()

    logging_config = config_manager.get_logging_config()
    level = verbosity_to_level(verbose) if verbose else logging_config.level
    setup_logging(level, log_file or logging_config.log_file)

    console.no_color = not config_manager.get_ui_config().colored_output

    logger.info("%s %s", PROG_NAME, __version__)
    logger.debug("调试日志已开启")

    ctx.obj = config_manager


@cli.command("list")
@click.option("--skip-invalid", is_flag=True, help="跳过无法识别的设备而不是报错")
@handle_exceptions
def list_relays(skip_invalid: bool):
    """列出所有继电器板卡"""
    with _progress() as progress:
        task = progress.add_task("正在扫描USB继电器板卡...", total=None)
        boards: List[RelayBoard] = find_relays(on_error=_on_error_policy(skip_invalid))
        progress.update(task, completed=True)

    try:
        if not boards:
            console.print("[yellow]未找到任何USB继电器板卡[/yellow]")
            return

        table = Table(title="USB继电器板卡")
        table.add_column("序列号", style="cyan", no_wrap=True)
        table.add_column("产品", style="magenta")
        table.add_column("继电器数量", justify="center", style="yellow")
        table.add_column("状态")

        for board in boards:
            table.add_row(
                escape(board.serial_number),
                escape(board.product or ""),
                str(board.relay_count),
                _format_states(board)
            )

        console.print(table)
    finally:
        close_boards(boards)


@cli.command("set")
@click.argument("serial_number")
@click.argument("index", type=int)
@click.argument("state", type=click.Choice(["on", "off"], case_sensitive=False))
@click.option("--skip-invalid", is_flag=True, help="跳过无法识别的设备而不是报错")
@handle_exceptions
def set_relay_state(serial_number: str, index: int, state: str, skip_invalid: bool):
    """设置继电器状态

    SERIAL_NUMBER 为板卡序列号，INDEX 为继电器编号（从0开始），STATE 为 on 或 off。
    """
    desired = RelayState.from_name(state)
    logger.debug("尝试设置 %s:%d %s", serial_number, index, desired)

    with _progress() as progress:
        task = progress.add_task("正在查找继电器板卡...", total=None)
        board = open_board(serial_number, on_error=_on_error_policy(skip_invalid))
        progress.update(task, completed=True)

    with board:
        logger.info("设置继电器 %s:%d %s", serial_number, index, desired)
        board.set_state(index, desired)

    color = "green" if desired.is_on else "red"
    console.print(f"[green]✓[/green] 继电器 {escape(serial_number)}:{index} 已设置为 "
                  f"[{color}]{desired}[/{color}]")


@cli.command("update")
@click.argument("serial_number")
@click.argument("new_serial_number")
@handle_exceptions
def update_serial_number(serial_number: str, new_serial_number: str):
    """修改板卡序列号（暂不支持）"""
    if not validate_serial_number(new_serial_number):
        raise click.BadParameter(
            "序列号必须是5个可打印ASCII字符", param_hint="NEW_SERIAL_NUMBER"
        )

    logger.debug("尝试修改继电器序列号 %s -> %s", serial_number, new_serial_number)
    console.print("[yellow]暂不支持修改序列号，未对设备做任何操作[/yellow]")


@cli.command("config-init")
@click.option("--format", "-f", "config_format", type=click.Choice(["yaml", "json"]),
              default="yaml", help="配置文件格式")
@click.option("--force", is_flag=True, help="覆盖已存在的配置文件")
@click.pass_obj
def config_init(config_manager: ConfigManager, config_format: str, force: bool):
    """将当前生效的配置写入默认配置文件"""
    path = config_manager.get_config_file_path(config_format)

    if config_manager.config_exists(config_format) and not force:
        console.print(f"[yellow]配置文件已存在: {escape(path)}（使用 --force 覆盖）[/yellow]")
        sys.exit(1)

    if not config_manager.save_config(config_format):
        console.print(f"[red]✗ 保存配置文件失败: {escape(path)}[/red]")
        sys.exit(1)

    console.print(f"[green]✓ 配置文件已保存: {escape(path)}[/green]")


def main():
    cli(prog_name=PROG_NAME)


if __name__ == "__main__":
    main()
