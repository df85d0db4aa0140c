#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
NightGard DDNS 工具函数模块
"""

import logging
import os
import platform
import socket
import struct
import threading

# 线程锁用于确保配置文件读写的线程安全
_config_lock = threading.Lock()

# 本机地址查询只关心这些网卡，按系统枚举顺序取第一个
LOCAL_INTERFACES = ("en0", "en1", "eth0", "wlan0")

# SIOCGIFADDR 的取值因平台而异
_SIOCGIFADDR = {
    "Linux": 0x8915,
    "Darwin": 0xc0206921,
}


def setup_logging(log_file="nightgard_ddns.log", verbose=False, max_bytes=10*1024*1024, backup_count=5):
    """配置日志系统"""
    import logging.handlers

    # 确保日志目录存在
    log_dir = os.path.dirname(log_file)
    if log_dir and not os.path.exists(log_dir):
        os.makedirs(log_dir)

    logger = logging.getLogger('nightgard_ddns')
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    # 清除现有的处理器
    logger.handlers.clear()

    # 文件处理器（带轮转）
    file_handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding='utf-8'
    )
    file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)

    formatter = logging.Formatter('%(asctime)s %(levelname)s: %(message)s', datefmt='%Y-%m-%d %H:%M:%S')
    file_handler.setFormatter(formatter)
    console_handler.setFormatter(formatter)

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)

    return logger


def is_windows():
    """检查是否为Windows系统"""
    return os.name == 'nt'


def get_config_path():
    """获取配置文件路径"""
    return "config.yaml"


def get_local_ip(interfaces=LOCAL_INTERFACES):
    """
    查询本机局域网 IPv4 地址

    与公网 IP 检测无关，仅供界面展示。按系统枚举顺序返回第一个
    名称在 interfaces 中且已分配 IPv4 地址的网卡地址，找不到返回 None。
    """
    request = _SIOCGIFADDR.get(platform.system())
    if is_windows() or request is None:
        return None

    import fcntl

    try:
        names = [name for _, name in socket.if_nameindex()]
    except OSError:
        return None

    for name in names:
        if name not in interfaces:
            continue
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            try:
                packed = fcntl.ioctl(
                    sock.fileno(),
                    request,
                    struct.pack('256s', name[:15].encode('utf-8'))
                )
            except OSError:
                # 网卡存在但没有 IPv4 地址
                continue
        return socket.inet_ntoa(packed[20:24])
    return None
