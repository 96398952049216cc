"""panelgrid 配置

配置分为以下几类：
- 网格配置：默认容器尺寸、最小面板尺寸
- 拖拽配置：边缘/分割阈值
- 分割配置：每个 branch 最大 group 数
- 防抖配置：PTY resize flap guard
- 持久化配置：存储目录、key、版本
- 日志 / 指标 / Web 配置
"""

import os
from pathlib import Path

# === 网格配置 ===
DEFAULT_GRID_WIDTH = 800  # 无容器尺寸时的默认宽度
DEFAULT_GRID_HEIGHT = 600  # 无容器尺寸时的默认高度
DEFAULT_VIEW_MINIMUM_SIZE = 100.0  # 面板默认最小尺寸（像素）
DEFAULT_VIEW_MAXIMUM_SIZE = float("inf")  # 面板默认最大尺寸
SIZE_EPSILON = 1e-6  # 尺寸比较容差

# === 拖拽配置 ===
EDGE_THRESHOLD = 0.1  # 非优先轴边缘带宽（比例）
SPLIT_THRESHOLD = 0.33  # 优先轴边缘带宽（比例）

# === 分割配置 ===
MAX_GROUPS_PER_BRANCH = 4  # 同一 branch 最多兄弟 group
EDITOR_MAX_GROUPS_PER_BRANCH = 3  # 编辑器变体

# === Resize 防抖配置 ===
RESIZE_FLAP_BLOCK_SECONDS = 30.0  # A→B→A 后封锁时间（秒）
RESIZE_EMIT_MIN_INTERVAL_SECONDS = 0.06  # 客户端最小发送间隔（秒）
RESIZE_EMIT_BLOCK_SECONDS = 2.0  # 客户端 A→B→A 封锁时间（秒）

# === 持久化配置 ===
PERSIST_DIR = Path(os.environ.get("PANELGRID_STATE_DIR", str(Path.home() / ".panelgrid")))
PERSIST_KEY = "side-ide-tabs"  # 存储 key
PERSIST_VERSION = 2  # 网格格式版本

# === 日志配置 ===
LOG_LEVEL = os.environ.get("PANELGRID_LOG_LEVEL", "INFO")  # 日志级别

# === 指标配置 ===
METRICS_ENABLED = True  # 是否启用指标收集

# === Web 配置 ===
WEB_HOST = os.environ.get("PANELGRID_HOST", "127.0.0.1")
WEB_PORT = int(os.environ.get("PANELGRID_PORT", "8765"))
