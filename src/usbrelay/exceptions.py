"""
异常定义模块

USB HID继电器相关的全部异常类型，均继承自 USBRelayException。
"""

from typing import Optional


class USBRelayException(Exception):
    """USB继电器异常基类"""
    pass


class TransportError(USBRelayException):
    """HID子系统、设备打开或读写失败"""
    pass


class UnsupportedProductError(USBRelayException):
    """设备的产品字符串不受支持（前缀错误或继电器数量超出上限）"""

    def __init__(self, product: Optional[str], reason: str = ""):
        self.product = product
        message = f"不支持的产品 {product!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ParseError(USBRelayException, ValueError):
    """产品字符串中的继电器数量无法解析"""

    def __init__(self, product: str, suffix: str):
        self.product = product
        self.suffix = suffix
        super().__init__(f"无法从产品字符串 {product!r} 解析继电器数量: {suffix!r}")


class ProtocolError(USBRelayException):
    """报告长度与协议规定不符"""

    def __init__(self, message: str, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(f"{message} (期望 {expected} 字节, 实际 {actual} 字节)")


class EncodingError(USBRelayException):
    """序列号字节不是合法的文本"""

    def __init__(self, raw: bytes):
        self.raw = raw
        super().__init__(f"序列号不是合法的UTF-8文本: {raw.hex(' ')}")


class IndexOutOfRangeError(USBRelayException, IndexError):
    """继电器编号超出板卡的继电器数量"""

    def __init__(self, index: int, serial_number: str, relay_count: int):
        self.index = index
        self.serial_number = serial_number
        self.relay_count = relay_count
        super().__init__(
            f"无效的继电器编号 {index}, 板卡 {serial_number} 只有 {relay_count} 个继电器"
        )


class NotFoundError(USBRelayException):
    """未找到指定序列号的板卡"""

    def __init__(self, serial_number: str):
        self.serial_number = serial_number
        super().__init__(f"未找到序列号为 {serial_number} 的继电器板卡")


class AmbiguousIdentityError(USBRelayException):
    """多个板卡具有相同的序列号"""

    def __init__(self, serial_number: str, count: int):
        self.serial_number = serial_number
        self.count = count
        super().__init__(f"连接了 {count} 个序列号为 {serial_number} 的继电器板卡")
