"""
HID继电器协议测试
"""

import pytest

from usbrelay.exceptions import (
    EncodingError,
    ParseError,
    ProtocolError,
    UnsupportedProductError,
)
from usbrelay.protocol import (
    MAX_RELAYS,
    REPORT_SIZE,
    RelayCommand,
    RelayState,
    build_command_frame,
    build_read_features_request,
    decode_states,
    encode_states,
    parse_features_report,
    parse_relay_count,
)

from conftest import make_report


class TestRelayCommand:
    """测试命令码"""

    def test_opcode_values(self):
        """测试命令码的线路字节值"""
        assert RelayCommand.READ_FEATURES.encode() == 0x01
        assert RelayCommand.SET_SERIAL_NUMBER.encode() == 0xFA
        assert RelayCommand.TURN_OFF.encode() == 0xFD
        assert RelayCommand.TURN_ON.encode() == 0xFF

    def test_for_state(self):
        assert RelayCommand.for_state(RelayState.ON) is RelayCommand.TURN_ON
        assert RelayCommand.for_state(RelayState.OFF) is RelayCommand.TURN_OFF

    def test_for_state_rejects_bool(self):
        with pytest.raises(ValueError):
            RelayCommand.for_state(True)


class TestRelayState:
    """测试继电器状态"""

    def test_str(self):
        assert str(RelayState.ON) == "on"
        assert str(RelayState.OFF) == "off"

    def test_from_name(self):
        assert RelayState.from_name("ON") is RelayState.ON
        assert RelayState.from_name(" off ") is RelayState.OFF

    def test_from_name_invalid(self):
        with pytest.raises(ValueError):
            RelayState.from_name("toggle")

    def test_from_bool(self):
        assert RelayState.from_bool(True) is RelayState.ON
        assert RelayState.from_bool(False) is RelayState.OFF


class TestParseRelayCount:
    """测试产品字符串解析"""

    @pytest.mark.parametrize("product, expected", [
        ("USBRelay1", 1),
        ("USBRelay2", 2),
        ("USBRelay4", 4),
        ("USBRelay8", 8),
    ])
    def test_supported_products(self, product, expected):
        assert parse_relay_count(product) == expected

    def test_too_many_relays(self):
        with pytest.raises(UnsupportedProductError) as exc_info:
            parse_relay_count("USBRelay9")
        assert exc_info.value.product == "USBRelay9"

    @pytest.mark.parametrize("product", ["USBRelayX", "USBRelay", "USBRelay-1", "USBRelay 4"])
    def test_non_numeric_suffix(self, product):
        with pytest.raises(ParseError):
            parse_relay_count(product)

    @pytest.mark.parametrize("product", ["HIDRelay4", "usbrelay4", "", None])
    def test_wrong_prefix(self, product):
        with pytest.raises(UnsupportedProductError):
            parse_relay_count(product)


class TestFeaturesReport:
    """测试特征报告的请求与解析"""

    def test_read_features_request(self):
        assert build_read_features_request() == (0x01, REPORT_SIZE)

    def test_parse_report(self):
        serial_number, state_byte = parse_features_report(make_report("QWERT", 0b00000101))
        assert serial_number == "QWERT"
        assert state_byte == 0b00000101

    def test_short_report(self):
        """测试长度不足的报告"""
        with pytest.raises(ProtocolError) as exc_info:
            parse_features_report(make_report()[:8])
        assert exc_info.value.expected == 9
        assert exc_info.value.actual == 8

    def test_long_report(self):
        with pytest.raises(ProtocolError):
            parse_features_report(make_report() + b"\x00")

    def test_invalid_serial_encoding(self):
        report = b"\xff\xfeABC" + bytes([0, 0, 0, 0])
        with pytest.raises(EncodingError) as exc_info:
            parse_features_report(report)
        assert exc_info.value.raw == b"\xff\xfeABC"


class TestCommandFrame:
    """测试命令帧构建"""

    def test_turn_on_relay_2(self):
        """继电器编号在线路上从1开始"""
        frame = build_command_frame(RelayCommand.TURN_ON, 2)

        assert len(frame) == 9
        assert frame[1] == 0xFF
        assert frame[2] == 3
        assert frame[0] == 0
        assert frame[3:] == bytes(6)

    def test_turn_off_relay_0(self):
        frame = build_command_frame(RelayCommand.TURN_OFF, 0)
        assert frame == bytes([0x00, 0xFD, 0x01, 0, 0, 0, 0, 0, 0])


class TestStateBitmap:
    """测试状态位图编解码"""

    @pytest.mark.parametrize("relay_count", range(0, MAX_RELAYS + 1))
    def test_all_off(self, relay_count):
        states = decode_states(0x00, relay_count)
        assert states == [RelayState.OFF] * relay_count
        assert encode_states(states) == 0x00

    @pytest.mark.parametrize("relay_count", range(0, MAX_RELAYS + 1))
    def test_all_on(self, relay_count):
        states = decode_states(0xFF, relay_count)
        assert states == [RelayState.ON] * relay_count
        assert encode_states(states) == (1 << relay_count) - 1

    def test_bit_order(self):
        """第0位对应第0个继电器"""
        states = decode_states(0b00000110, 4)
        assert states == [RelayState.OFF, RelayState.ON, RelayState.ON, RelayState.OFF]

    def test_bits_beyond_relay_count_ignored(self):
        assert decode_states(0b11110000, 4) == [RelayState.OFF] * 4
