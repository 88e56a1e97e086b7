"""
常量定义

定义客户端使用的各种常量：服务器地址、接口路径、超时、轮询节奏、游戏状态。
"""

# 网络配置
DEFAULT_SERVER_URL = "https://minddigit-server.vercel.app/api"
REQUEST_TIMEOUT = 10.0  # 秒
GUESS_TIMEOUT = 5.0  # 秒，猜测请求要求快速响应

# 接口路径
ENDPOINT_HEALTH = "/health"
ENDPOINT_JOIN = "/room/join-local"
ENDPOINT_STATUS = "/room/status-local"
ENDPOINT_SELECT_DIGITS = "/game/select-digit-local"
ENDPOINT_SET_SECRET = "/game/set-secret-local"
ENDPOINT_GUESS = "/game/guess-local"
ENDPOINT_HISTORY = "/game/history-local"
ENDPOINT_ASSIGN_TURN = "/game/assign-turn-local"
ENDPOINT_PRACTICE_COMPLETE = "/game/practice-complete-local"
ENDPOINT_LEAVE = "/game/leave-local"

# 游戏配置
MIN_DIGITS = 1
MAX_DIGITS = 4
DEFAULT_DIGITS = 4

# 房间/游戏状态（服务器下发）
STATE_WAITING = "WAITING"
STATE_DIGIT_SELECTION = "DIGIT_SELECTION"
STATE_SECRET_SETTING = "SECRET_SETTING"
STATE_PLAYING = "PLAYING"
STATE_FINISHED = "FINISHED"
STATE_WINNER_ANNOUNCED = "WINNER_ANNOUNCED"
# 仅客户端使用：对局结束后继续猜对手的谜底
STATE_CONTINUE_GUESSING = "CONTINUE_GUESSING"

# 轮询配置（秒）
GAME_POLL_INTERVAL = 2.0
LOBBY_POLL_INTERVALS = {
    STATE_WAITING: 3.0,
    STATE_DIGIT_SELECTION: 2.0,
    STATE_SECRET_SETTING: 2.0,
}
MAX_POLL_FAILURES = 3
RECOVERY_PAUSE = 5.0

# 重试配置
GUESS_RETRY_DELAY = 1.0
CONNECTIVITY_MAX_RETRIES = 3
CONNECTIVITY_RETRY_STEP = 2.0  # 第 n 次重试延迟 n * step 秒
TIME_DRIFT_WARNING_MS = 5000

# 乐观更新
PENDING_GUESS_TTL = 300.0  # 已确认的猜测保留时长（秒）
PENDING_KEY_GUESS = "guess"
