"""
设备控制模块

提供USB HID继电器板卡的高级控制接口，包括：
- 继电器板卡发现
- 继电器状态控制
- 按序列号选择板卡
"""

import logging
from typing import Callable, List, Sequence, Tuple

from .exceptions import (
    AmbiguousIdentityError,
    IndexOutOfRangeError,
    NotFoundError,
    ProtocolError,
    USBRelayException,
)
from .hid_transport import HidContext, HidDeviceInfo, HidHandle
from .protocol import (
    REPORT_SIZE,
    USB_RELAY_PID,
    USB_RELAY_VID,
    RelayCommand,
    RelayState,
    build_command_frame,
    build_read_features_request,
    decode_states,
    encode_states,
    parse_features_report,
    parse_relay_count,
)


logger = logging.getLogger("usbrelay.device")

ON_ERROR_ABORT = "abort"
ON_ERROR_SKIP = "skip"
ON_ERROR_POLICIES = (ON_ERROR_ABORT, ON_ERROR_SKIP)


def read_features(handle: HidHandle) -> Tuple[str, int]:
    """
    读取板卡特征报告

    Args:
        handle: 设备句柄

    Returns:
        Tuple[str, int]: (序列号, 继电器状态字节)
    """
    report_id, size = build_read_features_request()
    report = handle.get_feature_report(report_id, size)
    return parse_features_report(report)


class RelayBoard:
    """
    USB继电器板卡

    只能通过 find_relays() 创建。板卡独占其设备句柄，
    调用 close() 或退出 with 语句时释放。
    """

    def __init__(self, handle: HidHandle, serial_number: str,
                 relay_states: Sequence[RelayState], product: str = ""):
        self._handle = handle
        self._serial_number = serial_number
        self._relay_states = list(relay_states)
        self.product = product

    @property
    def serial_number(self) -> str:
        return self._serial_number

    @property
    def relay_states(self) -> Tuple[RelayState, ...]:
        return tuple(self._relay_states)

    @property
    def relay_count(self) -> int:
        return len(self._relay_states)

    @property
    def state_byte(self) -> int:
        """当前继电器状态的位图编码"""
        return encode_states(self._relay_states)

    @property
    def path(self) -> bytes:
        return self._handle.path

    def is_open(self) -> bool:
        return self._handle.is_open()

    def get_state(self, relay_index: int) -> RelayState:
        """
        获取单个继电器状态（内存中的状态，不读取硬件）

        Args:
            relay_index: 继电器编号（从0开始）

        Returns:
            RelayState: 继电器状态
        """
        self._check_index(relay_index)
        return self._relay_states[relay_index]

    def set_state(self, relay_index: int, state: RelayState) -> None:
        """
        设置单个继电器状态

        写入成功后更新内存中的状态，不回读硬件确认。写入失败时状态保持不变。

        Args:
            relay_index: 继电器编号（从0开始）
            state: 目标状态
        """
        self._check_index(relay_index)

        command = RelayCommand.for_state(state)
        frame = build_command_frame(command, relay_index)

        written = self._handle.write(frame)
        if written != len(frame):
            raise ProtocolError(
                f"未能向继电器 {self._serial_number} 写入全部数据", REPORT_SIZE, written
            )

        self._relay_states[relay_index] = state
        logger.info("继电器 %s:%d 已设置为 %s", self._serial_number, relay_index, state)

    def turn_on(self, relay_index: int) -> None:
        """打开继电器"""
        self.set_state(relay_index, RelayState.ON)

    def turn_off(self, relay_index: int) -> None:
        """关闭继电器"""
        self.set_state(relay_index, RelayState.OFF)

    def close(self) -> None:
        """释放设备句柄"""
        self._handle.close()

    def _check_index(self, relay_index: int) -> None:
        if not 0 <= relay_index < len(self._relay_states):
            raise IndexOutOfRangeError(relay_index, self._serial_number, len(self._relay_states))

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __str__(self):
        states = " ".join(f"{index}:{state}" for index, state in enumerate(self._relay_states))
        return f"{self._serial_number} {states}" if states else self._serial_number

    def __repr__(self):
        return (f"RelayBoard(serial_number={self._serial_number!r}, "
                f"relay_states=[{', '.join(str(s) for s in self._relay_states)}])")


def _open_board(context: HidContext, info: HidDeviceInfo) -> RelayBoard:
    """打开单个设备并构建板卡对象"""
    product = info.product_string
    relay_count = parse_relay_count(product)

    handle = context.open(info)
    serial_number, state_byte = read_features(handle)
    relay_states = decode_states(state_byte, relay_count)

    board = RelayBoard(context.detach(handle), serial_number, relay_states, product)
    logger.debug("发现继电器板卡 %s (%s)", board, product)
    return board


def close_boards(boards: Sequence[RelayBoard]) -> None:
    """关闭一组板卡"""
    for board in boards:
        board.close()


def find_relays(on_error: str = ON_ERROR_ABORT,
                context_factory: Callable[[], HidContext] = HidContext) -> List[RelayBoard]:
    """
    查找所有已连接的USB继电器板卡

    Args:
        on_error: 单个设备出错时的处理策略，"abort" 立即抛出异常，
            "skip" 记录警告并跳过该设备
        context_factory: HID上下文工厂

    Returns:
        List[RelayBoard]: 板卡列表，顺序与底层枚举顺序一致
    """
    if on_error not in ON_ERROR_POLICIES:
        raise ValueError(f"无效的错误处理策略: {on_error!r}")

    boards: List[RelayBoard] = []

    with context_factory() as context:
        devices = context.enumerate(USB_RELAY_VID, USB_RELAY_PID)
        logger.debug("枚举到 %d 个匹配的HID设备", len(devices))

        try:
            for info in devices:
                try:
                    boards.append(_open_board(context, info))
                except USBRelayException as e:
                    if on_error != ON_ERROR_SKIP:
                        raise
                    logger.warning("跳过设备 %s: %s", info, e)
        except BaseException:
            # 已移交给板卡的句柄不再由上下文关闭
            close_boards(boards)
            raise

    return boards


def select_board(boards: Sequence[RelayBoard], serial_number: str) -> RelayBoard:
    """
    按序列号选择板卡

    Args:
        boards: 板卡列表
        serial_number: 目标序列号（精确匹配）

    Returns:
        RelayBoard: 唯一匹配的板卡
    """
    matches = [board for board in boards if board.serial_number == serial_number]

    if not matches:
        raise NotFoundError(serial_number)

    if len(matches) > 1:
        raise AmbiguousIdentityError(serial_number, len(matches))

    return matches[0]


def open_board(serial_number: str, on_error: str = ON_ERROR_ABORT,
               context_factory: Callable[[], HidContext] = HidContext) -> RelayBoard:
    """
    查找并打开指定序列号的板卡，其余板卡会被关闭

    Args:
        serial_number: 目标序列号
        on_error: 单个设备出错时的处理策略
        context_factory: HID上下文工厂

    Returns:
        RelayBoard: 板卡对象
    """
    boards = find_relays(on_error, context_factory)

    try:
        board = select_board(boards, serial_number)
    except BaseException:
        close_boards(boards)
        raise

    close_boards([b for b in boards if b is not board])
    return board
