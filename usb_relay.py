#!/usr/bin/env python3
"""
USB HID继电器控制软件启动脚本

可以直接运行此脚本来使用软件，无需安装
"""

import sys
from pathlib import Path

# 添加src目录到Python路径
src_path = Path(__file__).parent / "src"
sys.path.insert(0, str(src_path))

from usbrelay.cli import main


if __name__ == "__main__":
    main()
