"""
工具函数模块

提供常用的工具函数，包括：
- 日志记录工具
- 数据转换工具
- 序列号校验
"""

import sys
import logging
from typing import Optional
from pathlib import Path

from .protocol import SERIAL_NUMBER_SIZE


LOGGER_NAME = "usbrelay"


def verbosity_to_level(verbosity: int) -> int:
    """
    将命令行 -v 的次数转换为日志级别

    Args:
        verbosity: -v 出现的次数

    Returns:
        int: 日志级别
    """
    if verbosity <= 0:
        return logging.WARNING
    if verbosity == 1:
        return logging.INFO
    return logging.DEBUG


def setup_logging(log_level="WARNING", log_file: Optional[str] = None) -> logging.Logger:
    """
    设置日志记录

    Args:
        log_level: 日志级别名称 (DEBUG, INFO, WARNING, ERROR, CRITICAL) 或数值
        log_file: 日志文件路径，如果为None则只输出到控制台

    Returns:
        logging.Logger: 配置好的日志记录器
    """
    logger = logging.getLogger(LOGGER_NAME)

    # 清除现有的处理器
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    if isinstance(log_level, int):
        level = log_level
    else:
        level = getattr(logging, str(log_level).upper(), logging.WARNING)
    logger.setLevel(level)

    formatter = logging.Formatter(
        fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # 控制台输出留给命令结果，日志写到stderr
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def bytes_to_hex_string(data: bytes, separator: str = " ") -> str:
    """
    将字节数据转换为十六进制字符串

    Args:
        data: 字节数据
        separator: 分隔符

    Returns:
        str: 十六进制字符串
    """
    return separator.join(f"{byte:02X}" for byte in data)


def validate_serial_number(serial_number: str) -> bool:
    """
    验证序列号是否有效（5个可打印ASCII字符）

    Args:
        serial_number: 序列号

    Returns:
        bool: 是否有效
    """
    return (
        len(serial_number) == SERIAL_NUMBER_SIZE
        and serial_number.isascii()
        and serial_number.isprintable()
    )
