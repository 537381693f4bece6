"""
HID传输模块

封装主机HID接口（hidapi），包括：
- 按VID/PID枚举设备
- 打开设备句柄
- 特征报告读取和输出报告写入
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

import hid

from .exceptions import TransportError
from .utils import bytes_to_hex_string


logger = logging.getLogger("usbrelay.transport")


@dataclass
class HidDeviceInfo:
    """HID设备信息数据类"""
    path: bytes
    vendor_id: int
    product_id: int
    product_string: Optional[str] = None
    serial_number: Optional[str] = None
    manufacturer_string: Optional[str] = None

    @classmethod
    def from_dict(cls, info: dict) -> "HidDeviceInfo":
        return cls(
            path=info["path"],
            vendor_id=info["vendor_id"],
            product_id=info["product_id"],
            product_string=info.get("product_string"),
            serial_number=info.get("serial_number"),
            manufacturer_string=info.get("manufacturer_string"),
        )

    def __str__(self):
        path = self.path.decode(errors="replace") if isinstance(self.path, bytes) else str(self.path)
        return f"{path} - {self.product_string or 'Unknown Device'}"


class HidHandle:
    """已打开的HID设备句柄"""

    def __init__(self, device, info: HidDeviceInfo):
        self._device = device
        self.info = info

    @property
    def path(self) -> bytes:
        return self.info.path

    def is_open(self) -> bool:
        """检查句柄是否仍然打开"""
        return self._device is not None

    def get_feature_report(self, report_id: int, size: int) -> bytes:
        """
        读取特征报告

        Args:
            report_id: 报告编号
            size: 报告长度

        Returns:
            bytes: 设备返回的报告数据
        """
        if not self.is_open():
            raise TransportError(f"设备 {self.info} 未打开")

        try:
            data = self._device.get_feature_report(report_id, size)
        except (OSError, ValueError) as e:
            raise TransportError(f"读取设备 {self.info} 特征报告失败: {e}") from e

        report = bytes(data)
        logger.debug("设备 %s 特征报告: %s", self.info, bytes_to_hex_string(report))
        return report

    def write(self, data: bytes) -> int:
        """
        写入输出报告

        Args:
            data: 报告数据

        Returns:
            int: 实际写入的字节数
        """
        if not self.is_open():
            raise TransportError(f"设备 {self.info} 未打开")

        logger.debug("写入设备 %s: %s", self.info, bytes_to_hex_string(data))
        try:
            written = self._device.write(data)
        except (OSError, ValueError) as e:
            raise TransportError(f"写入设备 {self.info} 失败: {e}") from e

        # hidapi 在写入失败时返回 -1
        if written < 0:
            raise TransportError(f"写入设备 {self.info} 失败")

        return written

    def close(self) -> None:
        """关闭设备句柄，可重复调用"""
        if self._device is None:
            return
        device, self._device = self._device, None
        device.close()
        logger.debug("已关闭设备 %s", self.info)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class HidContext:
    """
    HID上下文

    每次设备发现创建一个上下文。上下文退出时会关闭所有由它打开、
    但未被 detach() 移交出去的句柄。
    """

    def __init__(self):
        self._handles: List[HidHandle] = []
        self._active = False

    def __enter__(self):
        self._active = True
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self._active = False
        handles, self._handles = self._handles, []
        for handle in handles:
            handle.close()

    def enumerate(self, vendor_id: int, product_id: int) -> List[HidDeviceInfo]:
        """
        按VID/PID枚举HID设备

        Args:
            vendor_id: 厂商ID
            product_id: 产品ID

        Returns:
            List[HidDeviceInfo]: 设备信息列表，保持底层枚举顺序
        """
        if not self._active:
            raise TransportError("HID上下文未初始化")

        try:
            devices = hid.enumerate(vendor_id, product_id)
        except (OSError, ValueError) as e:
            raise TransportError(f"HID设备枚举失败: {e}") from e

        # 某些平台会忽略过滤参数
        return [
            HidDeviceInfo.from_dict(info)
            for info in devices
            if info.get("vendor_id") == vendor_id and info.get("product_id") == product_id
        ]

    def open(self, info: HidDeviceInfo) -> HidHandle:
        """
        打开设备

        Args:
            info: 设备信息

        Returns:
            HidHandle: 设备句柄
        """
        if not self._active:
            raise TransportError("HID上下文未初始化")

        device = hid.device()
        try:
            device.open_path(info.path)
        except (OSError, ValueError) as e:
            raise TransportError(f"无法打开设备 {info}: {e}") from e

        handle = HidHandle(device, info)
        self._handles.append(handle)
        logger.debug("已打开设备 %s", info)
        return handle

    def detach(self, handle: HidHandle) -> HidHandle:
        """将句柄的所有权移交给调用者，上下文退出时不再关闭它"""
        self._handles.remove(handle)
        return handle
