"""
共享模块

存放与界面无关、可被客户端各部分共用的代码。

组件说明：
- constants: 服务器地址、接口路径、超时、轮询节奏、游戏状态
- protocols: 服务器 JSON 回包的解析（GuessResponse / StatusResponse / HistoryResponse 等）
- scoring: bulls/cows 计分与谜底/猜测校验

提示：
- 服务器是外部协作方，协议层只做解析，不定义线上格式
- 若新增公共工具，可在此模块下添加并在 __all__ 中显式导出
"""

from . import constants, protocols, scoring

__all__ = ["constants", "protocols", "scoring"]
