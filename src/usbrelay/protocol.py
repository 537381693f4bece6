"""
USB HID继电器协议实现模块

实现继电器板卡的HID特征报告协议，包括：
- 设备标识常量
- 命令码定义
- 命令数据帧封装
- 特征报告解析
"""

import logging
from enum import Enum, IntEnum
from typing import List, Sequence, Tuple

from .exceptions import (
    EncodingError,
    ParseError,
    ProtocolError,
    UnsupportedProductError,
)


logger = logging.getLogger("usbrelay.protocol")

# 设备标识
USB_RELAY_VID = 0x16C0
USB_RELAY_PID = 0x05DF
PRODUCT_PREFIX = "USBRelay"

# 报告格式
REPORT_SIZE = 9
SERIAL_NUMBER_SIZE = 5
STATE_BYTE_OFFSET = 7
MAX_RELAYS = 8


class RelayState(Enum):
    """继电器状态"""
    ON = "on"
    OFF = "off"

    def __str__(self):
        return self.value

    @property
    def is_on(self) -> bool:
        return self is RelayState.ON

    @classmethod
    def from_bool(cls, state: bool) -> "RelayState":
        return cls.ON if state else cls.OFF

    @classmethod
    def from_name(cls, name: str) -> "RelayState":
        """
        从字符串解析继电器状态

        Args:
            name: "on" 或 "off"，不区分大小写

        Returns:
            RelayState: 继电器状态
        """
        try:
            return cls(name.strip().lower())
        except ValueError:
            raise ValueError(f"无效的继电器状态: {name!r}") from None


class RelayCommand(IntEnum):
    """继电器命令码"""
    READ_FEATURES = 0x01
    SET_SERIAL_NUMBER = 0xFA
    TURN_OFF = 0xFD
    TURN_ON = 0xFF

    def encode(self) -> int:
        """返回命令码在线路上的字节值"""
        return int(self.value)

    @classmethod
    def for_state(cls, state: RelayState) -> "RelayCommand":
        if state is RelayState.ON:
            return cls.TURN_ON
        if state is RelayState.OFF:
            return cls.TURN_OFF
        raise ValueError(f"无效的继电器状态: {state!r}")


def parse_relay_count(product: str) -> int:
    """
    从产品字符串解析继电器数量

    Args:
        product: 设备上报的产品字符串，例如 "USBRelay4"

    Returns:
        int: 继电器数量
    """
    if not product or not product.startswith(PRODUCT_PREFIX):
        raise UnsupportedProductError(product, f"产品字符串必须以 {PRODUCT_PREFIX} 开头")

    suffix = product[len(PRODUCT_PREFIX):]
    # int() 会接受空白、符号和下划线，这里只允许纯数字
    if not suffix.isascii() or not suffix.isdigit():
        raise ParseError(product, suffix)

    relay_count = int(suffix)
    if relay_count > MAX_RELAYS:
        raise UnsupportedProductError(product, f"最多支持 {MAX_RELAYS} 个继电器")

    return relay_count


def build_read_features_request() -> Tuple[int, int]:
    """
    构建读取特征报告的请求

    Returns:
        Tuple[int, int]: (报告编号, 报告长度)
    """
    return RelayCommand.READ_FEATURES.encode(), REPORT_SIZE


def parse_features_report(report: bytes) -> Tuple[str, int]:
    """
    解析特征报告

    Args:
        report: 设备返回的特征报告

    Returns:
        Tuple[str, int]: (序列号, 继电器状态字节)
    """
    if len(report) != REPORT_SIZE:
        raise ProtocolError("无法读取特征报告", REPORT_SIZE, len(report))

    raw_serial = bytes(report[:SERIAL_NUMBER_SIZE])
    try:
        serial_number = raw_serial.decode("utf-8")
    except UnicodeDecodeError:
        raise EncodingError(raw_serial) from None

    state_byte = report[STATE_BYTE_OFFSET]
    logger.debug("继电器 %s 状态: %s", serial_number, f"{state_byte:08b}")

    return serial_number, state_byte


def build_command_frame(command: RelayCommand, relay_index: int) -> bytes:
    """
    构建继电器控制命令帧

    线路上的继电器编号从1开始，API中的编号从0开始。

    Args:
        command: 命令码
        relay_index: 继电器编号（从0开始）

    Returns:
        bytes: 9字节命令帧
    """
    frame = bytearray(REPORT_SIZE)
    frame[1] = command.encode()
    frame[2] = relay_index + 1
    return bytes(frame)


def decode_states(state_byte: int, relay_count: int) -> List[RelayState]:
    """将状态字节解码为继电器状态列表，第i位对应第i个继电器"""
    return [
        RelayState.from_bool(bool(state_byte & (0x01 << index)))
        for index in range(relay_count)
    ]


def encode_states(states: Sequence[RelayState]) -> int:
    """将继电器状态列表编码为状态字节"""
    state_byte = 0
    for index, state in enumerate(states):
        if state is RelayState.ON:
            state_byte |= 0x01 << index
    return state_byte
