"""
客户端模块

负责与游戏服务器的通信、对局状态管理以及终端交互。

模块组成：
- errors: 错误类型与面向用户的错误提示
- network: HTTP 客户端（requests）与连接质量统计
- poller: 定时轮询、延迟执行与断网重连
- game: 对局中的回合状态、乐观更新与对账（OnlineGame）
- lobby: 对局前的等待房间（WaitingRoom）
- npc: 离线人机对战
- settings: settings.json 与环境变量

入口提示：
- 运行 numbergame（或 python -m numbergame.client.main）启动终端客户端
- 服务器为权威方，客户端只保存可能过期的本地副本并通过轮询纠正
"""

from . import errors, network, poller, game, lobby, npc, settings

__all__ = ["errors", "network", "poller", "game", "lobby", "npc", "settings"]
