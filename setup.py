#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Global Planner 安装脚本

安装方法:
    # 可编辑安装 (推荐开发时使用)
    pip install -e .

    # 安装测试依赖
    pip install -e .[test]
"""

from setuptools import setup, find_packages

setup(
    name='global-planner',
    version='1.0.0',
    author='Global Planner Team',
    description='四旋翼全局规划管线: 体素地图、安全走廊与最小时间轨迹优化',

    # 自动查找包
    packages=find_packages(include=['global_planner', 'global_planner.*']),

    # 依赖
    install_requires=[
        'numpy>=1.20.0',
        'scipy>=1.7.0',
        'PyYAML>=5.4.0',
    ],
    extras_require={
        'test': ['pytest>=6.0'],
    },

    # Python 版本要求
    python_requires='>=3.8',

    include_package_data=True,
    zip_safe=False,
)
