"""
NightGard DDNS 客户端包 (DuckDNS)
"""

__version__ = "1.0.0"
__author__ = "Michael Fluharty"

# 托盘界面依赖图形环境，需要时从 nightgard_ddns.gui 单独导入
from .core import (
    log_message,
    get_public_ip,
    update_duckdns,
    validate_config,
    load_config,
    save_config,
    AgentConfig,
    AgentState,
    StatusCode
)
from .agent import DDNSAgent
from .utils import get_local_ip

__all__ = [
    "log_message",
    "get_public_ip",
    "update_duckdns",
    "validate_config",
    "load_config",
    "save_config",
    "AgentConfig",
    "AgentState",
    "StatusCode",
    "DDNSAgent",
    "get_local_ip"
]
