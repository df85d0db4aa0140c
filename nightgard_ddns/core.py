#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
NightGard DDNS 核心功能模块

包含公网 IP 检测、DuckDNS 更新以及配置的读写。
"""

import logging
import math
import os
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional

import requests
import yaml

logger = logging.getLogger('nightgard_ddns')

DEFAULT_INTERVAL = 300  # 默认5分钟
REQUEST_TIMEOUT = 10

# 顺序有意义：靠前的服务优先
IP_SERVICES = [
    'https://api.ipify.org',
    'https://icanhazip.com',
    'https://ifconfig.me/ip',
]

DUCKDNS_UPDATE_URL = 'https://www.duckdns.org/update'

CONFIG_KEYS = ('domain', 'token', 'interval')


def log_message(message, level=logging.INFO):
    """通用日志记录函数"""
    logger.log(level, message)


class StatusCode(str, Enum):
    """最近一次操作的状态"""

    IDLE = "Idle"
    STOPPED = "Stopped"
    NO_CHANGE = "No change"
    SUCCESS = "Success"
    FAILED_DETECTION = "Failed: Could not detect IP"
    FAILED_UPDATE = "Failed: Update error"

    def __str__(self):
        return self.value

    @property
    def is_failure(self):
        return self in (StatusCode.FAILED_DETECTION, StatusCode.FAILED_UPDATE)


@dataclass
class AgentState:
    """代理对外可见的状态"""

    running: bool = False
    status: StatusCode = StatusCode.IDLE
    current_address: Optional[str] = None
    last_success_at: Optional[datetime] = None


ConfigListener = Callable[[str, object], None]


class AgentConfig:
    """
    DDNS 配置：域名、令牌和更新间隔（秒）

    由宿主持有并修改。每次字段真正发生变化都会通知订阅者，
    是否持久化由宿主自行决定。
    """

    def __init__(self, domain: str = "", token: str = "", interval: float = DEFAULT_INTERVAL):
        self._listeners: List[ConfigListener] = []
        self._lock = threading.Lock()
        self._domain = domain
        self._token = token
        self._interval = _check_interval(interval)

    def __repr__(self):
        # 不输出 token
        return f"AgentConfig(domain={self._domain!r}, interval={self._interval!r})"

    @property
    def domain(self) -> str:
        return self._domain

    @domain.setter
    def domain(self, value: str):
        self.update(domain=value)

    @property
    def token(self) -> str:
        return self._token

    @token.setter
    def token(self, value: str):
        self.update(token=value)

    @property
    def interval(self) -> float:
        return self._interval

    @interval.setter
    def interval(self, value: float):
        self.update(interval=value)

    def is_complete(self) -> bool:
        """域名和令牌都已填写"""
        return bool(self._domain) and bool(self._token)

    def snapshot(self) -> dict:
        with self._lock:
            return {'domain': self._domain, 'token': self._token, 'interval': self._interval}

    def update(self, **fields):
        """一次性修改多个字段，周期读取到的快照不会混用新旧值"""
        unknown = set(fields) - set(CONFIG_KEYS)
        if unknown:
            raise ValueError(f"未知配置项: {', '.join(sorted(unknown))}")
        if 'interval' in fields:
            _check_interval(fields['interval'])

        with self._lock:
            changed = [
                (name, value) for name, value in fields.items()
                if getattr(self, '_' + name) != value
            ]
            for name, value in changed:
                setattr(self, '_' + name, value)

        for name, value in changed:
            self._notify(name, value)

    def subscribe(self, listener: ConfigListener) -> Callable[[], None]:
        """订阅配置变化，返回取消订阅的函数"""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _notify(self, name, value):
        for listener in list(self._listeners):
            try:
                listener(name, value)
            except Exception:
                logger.exception("配置监听器出错: %s", name)


def _interval_error(value):
    """检查更新间隔，合法时返回 None"""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return "interval必须是数字"
    if not math.isfinite(value) or value <= 0:
        return "interval必须是大于0的有限数"
    if value > threading.TIMEOUT_MAX:
        return f"interval不能超过{threading.TIMEOUT_MAX:.0f}秒"
    return None


def _check_interval(value):
    error = _interval_error(value)
    if error:
        raise ValueError(f"{error}: {value!r}")
    return value


def _decode_body(response):
    """以 UTF-8 解码响应并去除首尾空白"""
    return response.content.decode('utf-8').strip()


def get_public_ip(services=None, timeout=REQUEST_TIMEOUT):
    """
    获取公网IP

    按顺序逐个请求 IP 回显服务，第一个返回非空文本的服务胜出，
    不再请求后面的服务。返回内容不做格式校验。全部失败时返回 None。
    """
    if services is None:
        services = IP_SERVICES

    for url in services:
        try:
            r = requests.get(url, timeout=timeout)
            r.raise_for_status()
            ip = _decode_body(r)
        except (requests.RequestException, UnicodeDecodeError) as e:
            log_message(f"IP检测服务不可用 {url}: {e}", logging.DEBUG)
            continue
        if ip:
            log_message(f"通过 {url} 获取到IP: {ip}", logging.DEBUG)
            return ip
        log_message(f"IP检测服务返回空内容: {url}", logging.DEBUG)

    log_message("所有IP检测服务均失败", logging.WARNING)
    return None


def update_duckdns(domain, token, ip, timeout=REQUEST_TIMEOUT):
    """更新DuckDNS记录，返回是否成功"""
    params = {'domains': domain, 'token': token, 'ip': ip}
    try:
        r = requests.get(DUCKDNS_UPDATE_URL, params=params, timeout=timeout)
        body = _decode_body(r)
    except (requests.RequestException, UnicodeDecodeError) as e:
        # 异常信息中可能带有完整 URL（含 token），只记录类型
        log_message(f"更新记录失败: {domain} ({type(e).__name__})", logging.ERROR)
        return False

    if body == 'OK':
        log_message(f"已更新记录: {domain} -> {ip}")
        return True
    log_message(f"更新记录失败: {domain}，服务返回 {body[:32]!r}", logging.ERROR)
    return False


def validate_config(config):
    """验证配置"""
    errors = []
    if not isinstance(config, dict):
        raise ValueError("配置错误: 配置文件内容必须是映射")

    for field in ('domain', 'token'):
        value = config.get(field, "")
        if value is not None and not isinstance(value, str):
            errors.append(f"{field}必须是字符串")

    interval_error = _interval_error(config.get('interval', DEFAULT_INTERVAL))
    if interval_error:
        errors.append(interval_error)

    unknown = sorted(set(config) - set(CONFIG_KEYS))
    if unknown:
        errors.append(f"未知配置项: {', '.join(map(str, unknown))}")

    if errors:
        raise ValueError("配置错误: " + ", ".join(errors))
    return True


def load_config(path='config.yaml'):
    """加载配置，文件不存在时创建默认配置"""
    if not os.path.exists(path):
        config = AgentConfig()
        save_config(config, path)
        log_message("已创建默认配置文件")
        return config

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        log_message(f"配置加载失败: {e}", logging.ERROR)
        raise ValueError(f"配置错误: 无法解析 {path}") from e

    try:
        validate_config(data)
    except ValueError as e:
        log_message(f"配置加载失败: {e}", logging.ERROR)
        raise

    config = AgentConfig(
        domain=data.get('domain') or "",
        token=data.get('token') or "",
        interval=data.get('interval', DEFAULT_INTERVAL)
    )
    log_message("配置加载成功")
    return config


def save_config(config, path='config.yaml'):
    """保存配置"""
    directory = os.path.dirname(path)
    if directory and not os.path.exists(directory):
        os.makedirs(directory)
    with open(path, 'w', encoding='utf-8') as f:
        yaml.safe_dump(config.snapshot(), f, allow_unicode=True, default_flow_style=False)
    log_message(f"配置已保存: {path}", logging.DEBUG)
