"""
USB HID继电器控制软件

基于HID特征报告协议的USB继电器控制软件，支持板卡发现和继电器开关控制。
"""

__version__ = "1.0.0"
__author__ = "USB Relay HID Team"
__description__ = "Discover and control 16C0:05DF USB HID relay boards"
