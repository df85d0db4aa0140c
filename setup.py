#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
NightGard DDNS 客户端安装脚本
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

with open("requirements.txt", "r", encoding="utf-8") as fh:
    requirements = [line.strip() for line in fh if line.strip() and not line.startswith("#")]

setup(
    name="nightgard-ddns",
    version="1.0.0",
    author="Michael Fluharty",
    author_email="michael@fluharty.com",
    description="DuckDNS 动态域名客户端，自动检测公网 IP 并更新记录",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/fluhartyml/NightGardDDNS",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Intended Audience :: End Users/Desktop",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.8",
    install_requires=requirements,
    entry_points={
        "console_scripts": [
            "nightgard-ddns=nightgard_ddns.agent:main",
        ],
        "gui_scripts": [
            "nightgard-ddns-gui=nightgard_ddns.gui:main",
        ]
    },
    package_data={
        "": ["*.yaml", "*.md"],
    },
    include_package_data=True,
)
