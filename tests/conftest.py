"""
测试公共夹具

用内存中的假 hid 模块替换 hidapi，无需实际硬件连接。
"""

import logging
from typing import List, Optional

import pytest

from usbrelay import hid_transport
from usbrelay.protocol import USB_RELAY_PID, USB_RELAY_VID


def make_report(serial_number: str = "ABCDE", state_byte: int = 0) -> bytes:
    """构建9字节特征报告：序列号(5) + 保留(2) + 状态(1) + 保留(1)"""
    return serial_number.encode("ascii") + bytes([0, 0, state_byte, 0])


class FakeDeviceSpec:
    """假设备的行为描述"""

    def __init__(self, path: bytes, product: Optional[str], report: bytes,
                 vendor_id: int = USB_RELAY_VID, product_id: int = USB_RELAY_PID,
                 write_result: Optional[int] = None, open_error: Optional[Exception] = None,
                 report_error: Optional[BaseException] = None):
        self.path = path
        self.product = product
        self.report = report
        self.vendor_id = vendor_id
        self.product_id = product_id
        self.write_result = write_result
        self.open_error = open_error
        self.report_error = report_error
        self.feature_requests = []
        self.writes: List[bytes] = []


class FakeRawDevice:
    """模拟 hid.device() 返回的对象"""

    def __init__(self, module: "FakeHidModule"):
        self._module = module
        self.spec: Optional[FakeDeviceSpec] = None
        self.closed = False

    def open_path(self, path):
        spec = self._module.specs[path]
        if spec.open_error is not None:
            raise spec.open_error
        self.spec = spec
        self._module.opened.append(self)

    def get_feature_report(self, report_num, max_length):
        self.spec.feature_requests.append((report_num, max_length))
        if self.spec.report_error is not None:
            raise self.spec.report_error
        return list(self.spec.report)

    def write(self, data):
        self.spec.writes.append(bytes(data))
        if self.spec.write_result is not None:
            return self.spec.write_result
        return len(data)

    def close(self):
        self.closed = True


class FakeHidModule:
    """模拟 hidapi 的 hid 模块"""

    def __init__(self):
        self.specs = {}
        self.opened: List[FakeRawDevice] = []
        self.enumerate_error: Optional[Exception] = None

    def add(self, product: Optional[str] = "USBRelay4", serial_number: str = "ABCDE",
            state_byte: int = 0, report: Optional[bytes] = None, **kwargs) -> FakeDeviceSpec:
        path = f"/dev/hidraw{len(self.specs)}".encode()
        if report is None:
            report = make_report(serial_number, state_byte)
        spec = FakeDeviceSpec(path, product, report, **kwargs)
        self.specs[path] = spec
        return spec

    def enumerate(self, vendor_id=0, product_id=0):
        if self.enumerate_error is not None:
            raise self.enumerate_error
        return [
            {
                "path": spec.path,
                "vendor_id": spec.vendor_id,
                "product_id": spec.product_id,
                "product_string": spec.product,
                "serial_number": "",
                "manufacturer_string": "www.dcttech.com",
            }
            for spec in self.specs.values()
        ]

    def device(self):
        return FakeRawDevice(self)

    @property
    def open_devices(self) -> List[FakeRawDevice]:
        return [d for d in self.opened if not d.closed]


@pytest.fixture
def fake_hid(monkeypatch):
    """替换 usbrelay.hid_transport 使用的 hid 模块"""
    module = FakeHidModule()
    monkeypatch.setattr(hid_transport, "hid", module)
    return module


@pytest.fixture(autouse=True)
def reset_logging():
    """移除 setup_logging 添加的处理器，避免指向已关闭的输出流"""
    yield
    logger = logging.getLogger("usbrelay")
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
