#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
NightGard DDNS 更新代理

启动后立即检测一次公网IP，此后按间隔周期检测；IP 变化时推送到 DuckDNS。
"""

import dataclasses
import logging
import threading
from datetime import datetime
from typing import Callable, List, Optional

from . import core
from .core import AgentConfig, AgentState, StatusCode
from .utils import setup_logging

StateListener = Callable[[AgentState], None]


class DDNSAgent:
    """DDNS 更新代理"""

    def __init__(self, config: Optional[AgentConfig] = None, detector=None, publisher=None):
        self.config = config or AgentConfig()
        self._detector = detector or core.get_public_ip
        self._publisher = publisher or core.update_duckdns
        self._state = AgentState()
        self._listeners: List[StateListener] = []
        # 保证任意时刻只有一个检测周期在执行
        self._cycle_lock = threading.Lock()
        # start/stop 互斥，状态监听器中可重入
        self._lifecycle_lock = threading.RLock()
        self._state_lock = threading.Lock()
        self._stop_event: Optional[threading.Event] = None
        self._worker: Optional[threading.Thread] = None

    @property
    def state(self) -> AgentState:
        """当前状态的副本"""
        with self._state_lock:
            return dataclasses.replace(self._state)

    @property
    def running(self) -> bool:
        return self.state.running

    @property
    def status(self) -> StatusCode:
        return self.state.status

    @property
    def current_address(self) -> Optional[str]:
        return self.state.current_address

    @property
    def last_success_at(self) -> Optional[datetime]:
        return self.state.last_success_at

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """订阅状态变化，返回取消订阅的函数"""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _update_state(self, **changes):
        with self._state_lock:
            for name, value in changes.items():
                setattr(self._state, name, value)
            snapshot = dataclasses.replace(self._state)
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                core.logger.exception("状态监听器出错")

    def start(self):
        """启动周期更新；已在运行或域名/令牌为空时不做任何事"""
        with self._lifecycle_lock:
            if self.running:
                return
            if not self.config.is_complete():
                core.log_message("域名或令牌为空，未启动", logging.WARNING)
                return

            self._stop_event = threading.Event()
            self._update_state(running=True)
            core.log_message(f"🌙 NightGard DDNS 正在守护 {self.config.domain}.duckdns.org")

            self._worker = threading.Thread(
                target=self._run,
                args=(self._stop_event,),
                name="nightgard-ddns",
                daemon=True
            )
            self._worker.start()

    def stop(self):
        """停止周期更新，可重复调用"""
        with self._lifecycle_lock:
            if self._stop_event is not None:
                self._stop_event.set()
            self._stop_event = None
            self._worker = None
            self._update_state(running=False, status=StatusCode.STOPPED)
        core.log_message("已停止")

    def _run(self, stop_event):
        """后台工作线程：先执行一次，之后每个间隔执行一次"""
        while True:
            try:
                self.perform_update()
            except Exception:
                # 出错后等下个周期
                core.logger.exception("更新周期出错")
            if stop_event.wait(self.config.interval):
                break

    def perform_update(self) -> StatusCode:
        """执行一次检测-更新周期，返回本次的最终状态"""
        with self._cycle_lock:
            status = self._cycle()
        return status

    def _cycle(self):
        config = self.config.snapshot()

        try:
            ip = self._detector()
        except Exception:
            core.logger.exception("IP检测出错")
            ip = None
        if not ip:
            core.log_message("获取IP失败", logging.ERROR)
            self._update_state(status=StatusCode.FAILED_DETECTION)
            return StatusCode.FAILED_DETECTION

        # 必须在覆盖之前比较
        previous = self.current_address
        if previous == ip:
            core.log_message(f"IP未变化: {ip}")
            self._update_state(status=StatusCode.NO_CHANGE)
            return StatusCode.NO_CHANGE

        self._update_state(current_address=ip)
        core.log_message(f"IP已变化: {previous or '-'} → {ip}")

        try:
            published = self._publisher(config['domain'], config['token'], ip)
        except Exception:
            core.logger.exception("更新记录出错")
            published = False

        if published:
            self._update_state(status=StatusCode.SUCCESS, last_success_at=datetime.now())
            return StatusCode.SUCCESS

        self._update_state(status=StatusCode.FAILED_UPDATE)
        return StatusCode.FAILED_UPDATE


def main():
    """主函数 - 命令行入口"""
    import argparse
    import signal

    parser = argparse.ArgumentParser(description='NightGard DDNS 客户端 (DuckDNS)')
    parser.add_argument('-c', '--config', default='config.yaml', help='配置文件路径')
    parser.add_argument('-v', '--verbose', action='store_true', help='详细日志')
    parser.add_argument('--once', action='store_true', help='只执行一次更新后退出')

    args = parser.parse_args()

    setup_logging("logs/agent.log", args.verbose)

    try:
        config = core.load_config(args.config)
    except (ValueError, OSError) as e:
        core.log_message(f"程序执行失败: {e}", logging.ERROR)
        return 1

    if not config.is_complete():
        core.log_message(f"请先在 {args.config} 中填写 domain 和 token", logging.ERROR)
        return 1

    agent = DDNSAgent(config)

    if args.once:
        status = agent.perform_update()
        return 1 if status.is_failure else 0

    done = threading.Event()

    def handle_signal(signum, frame):
        core.log_message(f"收到信号 {signum}，正在退出")
        done.set()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    agent.start()
    try:
        done.wait()
    finally:
        agent.stop()
    return 0


if __name__ == '__main__':
    exit(main())
