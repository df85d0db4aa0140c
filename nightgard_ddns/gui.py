#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
NightGard DDNS 托盘界面模块
"""

import os
import sys
import time
import logging
import threading
import subprocess
import platform
import pystray
from PIL import Image, ImageDraw
from tkinter import Tk, messagebox

from . import core
from .agent import DDNSAgent
from .core import StatusCode
from .utils import setup_logging, get_config_path, get_local_ip, _config_lock

APP_NAME = "NightGard DDNS"
VERSION = "1.0.0"
CONFIG_FILE = get_config_path()

GREEN = "#4CAF50"
RED = "#F44336"
GREY = "#9E9E9E"


def status_color(state):
    """根据状态选择图标颜色"""
    if state.status.is_failure:
        return RED
    if state.status in (StatusCode.SUCCESS, StatusCode.NO_CHANGE):
        return GREEN
    return GREY


def format_status(state, domain, local_ip=None):
    """生成状态信息文本"""
    lines = [f"状态: {state.status}"]
    if local_ip:
        lines.append(f"本机IP: {local_ip}")
    if state.current_address:
        lines.append(f"公网IP: {state.current_address}")
    if domain:
        lines.append(f"域名: {domain}.duckdns.org")
    if state.last_success_at:
        lines.append(f"上次更新: {state.last_success_at:%Y-%m-%d %H:%M:%S}")
    lines.append(f"服务: {'运行中' if state.running else '已停止'}")
    return "\n".join(lines)


class DDNSTrayApp:
    def __init__(self):
        self.running = True
        self.config_mtime = 0
        self.reload_interval = 30  # 配置文件检查间隔（秒）

        self.agent = DDNSAgent()
        self._load_config()

        # 创建托盘
        self.icon = pystray.Icon(
            APP_NAME,
            self._create_icon(GREY),
            APP_NAME,
            self._create_menu()
        )
        self.agent.subscribe(self._on_state_changed)
        core.log_message("应用已启动")

    def _load_config(self):
        """加载配置（线程安全），变化的字段在下一个周期生效"""
        with _config_lock:
            try:
                if not os.path.exists(CONFIG_FILE):
                    core.save_config(self.agent.config, CONFIG_FILE)
                    core.log_message("已创建默认配置文件")

                current_mtime = os.path.getmtime(CONFIG_FILE)
                if current_mtime > self.config_mtime:
                    self.config_mtime = current_mtime
                    loaded = core.load_config(CONFIG_FILE)
                    self.agent.config.update(**loaded.snapshot())
                    return True
                return False
            except (ValueError, OSError) as e:
                core.log_message(f"配置错误: {e}", logging.ERROR)
                return False

    def _create_icon(self, color):
        """创建图标"""
        img = Image.new('RGBA', (64, 64))
        draw = ImageDraw.Draw(img)
        # 月亮
        draw.ellipse((8, 8, 56, 56), fill=color)
        draw.ellipse((22, 4, 62, 44), fill=(0, 0, 0, 0))
        draw.text((18, 40), "DNS", fill="white")
        return img.resize((32, 32))

    def _create_menu(self):
        """创建菜单"""
        return pystray.Menu(
            pystray.MenuItem("启动", self._start, enabled=lambda item: not self.agent.running),
            pystray.MenuItem("停止", self._stop, enabled=lambda item: self.agent.running),
            pystray.MenuItem("立即更新", self._update),
            pystray.MenuItem("查看状态", self._show_status),
            pystray.MenuItem("编辑配置", self._edit_config),
            pystray.Menu.SEPARATOR,
            pystray.MenuItem("退出", self.quit)
        )

    def run(self):
        """启动应用"""
        threading.Thread(target=self._watch_config, daemon=True).start()
        self.agent.start()
        self.icon.run()

    def _watch_config(self):
        """后台线程：配置文件变化后通知用户"""
        while self.running:
            if self._load_config():
                self.icon.notify("配置已更新", APP_NAME)
                # 启动时缺少域名或令牌，补全后自动启动
                if not self.agent.running:
                    self.agent.start()
            time.sleep(self.reload_interval)

    def _on_state_changed(self, state):
        """状态变化时刷新图标和标题"""
        self.icon.icon = self._create_icon(status_color(state))
        title = f"{APP_NAME} - {state.status}"
        if state.current_address:
            title += f" ({state.current_address})"
        self.icon.title = title
        self.icon.update_menu()

    def _start(self, icon, item):
        if not self.agent.config.is_complete():
            self._msg("错误", "请先在配置文件中填写 domain 和 token")
            return
        self.agent.start()

    def _stop(self, icon, item):
        self.agent.stop()

    def _update(self, icon, item):
        """手动更新"""
        threading.Thread(target=self.agent.perform_update, daemon=True).start()

    def _show_status(self, icon, item):
        """显示状态"""
        text = format_status(self.agent.state, self.agent.config.domain, get_local_ip())
        self._msg("DDNS状态", text)

    def _edit_config(self, icon, item):
        """编辑配置"""
        try:
            system = platform.system()
            if system == "Windows":
                subprocess.run(["notepad", CONFIG_FILE])
            elif system == "Darwin":  # macOS
                subprocess.run(["open", CONFIG_FILE])
            else:  # Linux
                subprocess.run(["xdg-open", CONFIG_FILE])
        except OSError as e:
            core.log_message(f"无法打开配置文件: {e}", logging.ERROR)
            self._msg("错误", "无法打开配置文件")

    def _msg(self, title, msg):
        """显示消息"""
        root = Tk()
        root.withdraw()
        messagebox.showinfo(title, msg)
        root.destroy()

    def quit(self, icon, item):
        """退出应用"""
        self.running = False
        self.agent.stop()
        self.icon.stop()


def main():
    """GUI 入口函数"""
    setup_logging("logs/gui.log")

    try:
        app = DDNSTrayApp()
        app.run()
    except Exception as e:
        core.log_message(f"启动失败: {e}", logging.ERROR)
        sys.exit(1)


if __name__ == '__main__':
    main()
