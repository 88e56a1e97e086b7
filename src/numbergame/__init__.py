"""
numbergame - 猜数字（bulls and cows）联机游戏客户端

A multiplayer bulls-and-cows number guessing game client built with Python and requests.
"""

__version__ = "0.1.0"
__author__ = "numbergame Team"
__license__ = "MIT"

# 导出主要组件
from . import client, shared

__all__ = ["client", "shared", "__version__"]
