"""
配置管理模块

提供系统配置管理功能，包括：
- 设备发现策略
- 日志参数设置
- 界面偏好设置
"""

import os
import json
import logging
import yaml
from typing import Dict, Any, Optional, Union
from pathlib import Path
from dataclasses import dataclass, asdict, fields


logger = logging.getLogger("usbrelay.config")

DISCOVERY_POLICIES = ("abort", "skip")


@dataclass
class DiscoveryConfig:
    """设备发现配置"""
    on_error: str = "abort"  # abort=遇到错误设备立即失败, skip=跳过并警告


@dataclass
class LoggingConfig:
    """日志配置"""
    level: str = "WARNING"
    log_file: Optional[str] = None


@dataclass
class UIConfig:
    """界面配置"""
    colored_output: bool = True
    show_progress: bool = True


@dataclass
class AppConfig:
    """应用程序配置"""
    discovery: DiscoveryConfig
    logging: LoggingConfig
    ui: UIConfig

    def __init__(self):
        self.discovery = DiscoveryConfig()
        self.logging = LoggingConfig()
        self.ui = UIConfig()


def _build_section(section_cls, data: Any):
    """从字典构建配置段，忽略未知的键"""
    if not isinstance(data, dict):
        return section_cls()
    known = {f.name for f in fields(section_cls)}
    return section_cls(**{k: v for k, v in data.items() if k in known})


class ConfigManager:
    """配置管理器"""

    DEFAULT_CONFIG_NAME = "usbrelay_config"
    SUPPORTED_FORMATS = ["yaml", "yml", "json"]

    def __init__(self, config_dir: Optional[str] = None):
        """
        初始化配置管理器

        Args:
            config_dir: 配置文件目录，如果为None则使用默认目录
        """
        self.config_dir = Path(config_dir) if config_dir else self._get_default_config_dir()
        self.config = AppConfig()

    def _get_default_config_dir(self) -> Path:
        """获取默认配置目录"""
        if os.name == "nt":  # Windows
            config_dir = Path(os.environ.get("APPDATA", "")) / "USBRelay"
        else:  # Linux/macOS
            config_dir = Path.home() / ".config" / "usbrelay"

        return config_dir

    def _get_config_file_path(self, format: str = "yaml") -> Path:
        """获取配置文件路径"""
        if format not in self.SUPPORTED_FORMATS:
            format = "yaml"

        return self.config_dir / f"{self.DEFAULT_CONFIG_NAME}.{format}"

    def load_config(self, format: str = "yaml") -> bool:
        """
        加载配置文件

        Args:
            format: 配置文件格式 (yaml, yml, json)

        Returns:
            bool: 是否加载成功
        """
        config_file = self._get_config_file_path(format)

        if not config_file.exists():
            # 尝试其他格式
            for fmt in self.SUPPORTED_FORMATS:
                test_file = self._get_config_file_path(fmt)
                if test_file.exists():
                    config_file = test_file
                    break
            else:
                # 没有找到配置文件，使用默认配置
                return False

        return self.load_file(config_file)

    def load_file(self, path: Union[str, Path]) -> bool:
        """
        从指定文件加载配置，格式由扩展名决定

        Args:
            path: 配置文件路径

        Returns:
            bool: 是否加载成功
        """
        config_file = Path(path)

        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                if config_file.suffix == ".json":
                    data = json.load(f)
                else:
                    data = yaml.safe_load(f)

            self._update_config_from_dict(data or {})
            logger.debug("已加载配置文件 %s", config_file)
            return True

        except (OSError, ValueError, TypeError, yaml.YAMLError) as e:
            logger.warning("加载配置文件 %s 失败: %s", config_file, e)
            return False

    def save_config(self, format: str = "yaml") -> bool:
        """
        保存配置文件

        Args:
            format: 配置文件格式 (yaml, yml, json)

        Returns:
            bool: 是否保存成功
        """
        config_file = self._get_config_file_path(format)

        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            config_dict = self._config_to_dict()

            with open(config_file, 'w', encoding='utf-8') as f:
                if format == "json":
                    json.dump(config_dict, f, indent=2, ensure_ascii=False)
                else:
                    yaml.dump(config_dict, f, default_flow_style=False,
                              allow_unicode=True, indent=2)

            return True

        except OSError as e:
            logger.warning("保存配置文件 %s 失败: %s", config_file, e)
            return False

    def _config_to_dict(self) -> Dict[str, Any]:
        """将配置对象转换为字典"""
        return {
            "discovery": asdict(self.config.discovery),
            "logging": asdict(self.config.logging),
            "ui": asdict(self.config.ui)
        }

    def _update_config_from_dict(self, data: Dict[str, Any]) -> None:
        """从字典更新配置对象"""
        if not isinstance(data, dict):
            raise TypeError(f"配置文件顶层必须是映射, 实际为 {type(data).__name__}")

        if "discovery" in data:
            discovery = _build_section(DiscoveryConfig, data["discovery"])
            on_error = str(discovery.on_error).strip().lower()
            if on_error not in DISCOVERY_POLICIES:
                logger.warning("无效的设备发现策略 %r，使用默认值 %r",
                               discovery.on_error, DiscoveryConfig.on_error)
                on_error = DiscoveryConfig.on_error
            discovery.on_error = on_error
            self.config.discovery = discovery

        if "logging" in data:
            self.config.logging = _build_section(LoggingConfig, data["logging"])

        if "ui" in data:
            self.config.ui = _build_section(UIConfig, data["ui"])

    def get_discovery_config(self) -> DiscoveryConfig:
        """获取设备发现配置"""
        return self.config.discovery

    def get_logging_config(self) -> LoggingConfig:
        """获取日志配置"""
        return self.config.logging

    def get_ui_config(self) -> UIConfig:
        """获取界面配置"""
        return self.config.ui

    def get_config_file_path(self, format: str = "yaml") -> str:
        """获取配置文件路径字符串"""
        return str(self._get_config_file_path(format))

    def config_exists(self, format: str = "yaml") -> bool:
        """检查配置文件是否存在"""
        return self._get_config_file_path(format).exists()
