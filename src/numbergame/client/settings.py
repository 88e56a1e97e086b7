"""
客户端设置：settings.json + 环境变量覆盖
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Optional

from numbergame.shared.constants import DEFAULT_DIGITS, DEFAULT_SERVER_URL, MAX_DIGITS, MIN_DIGITS

logger = logging.getLogger(__name__)

SETTINGS_PATH = Path.home() / ".numbergame" / "settings.json"
DIFFICULTIES = ("easy", "medium", "hard", "expert")


@dataclass
class Settings:
    player_name: str = "Player"
    server_url: str = DEFAULT_SERVER_URL
    digits: int = DEFAULT_DIGITS
    difficulty: str = "medium"


def load_settings(path: Optional[Path] = None) -> Settings:
    """从 JSON 文件加载设置（如果存在），再用环境变量覆盖。"""
    path = Path(path) if path is not None else SETTINGS_PATH
    settings = Settings()
    try:
        if path.exists():
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            if isinstance(data, dict):
                _merge(settings, data)
    except (OSError, ValueError) as exc:
        logger.warning("加载设置失败: %s", exc)

    server_url = os.environ.get("NUMBERGAME_SERVER_URL")
    if server_url:
        settings.server_url = server_url
    player_name = os.environ.get("NUMBERGAME_PLAYER_NAME")
    if player_name:
        settings.player_name = player_name
    return settings


def _merge(settings: Settings, data: dict) -> None:
    if isinstance(data.get("player_name"), str) and data["player_name"].strip():
        settings.player_name = data["player_name"].strip()
    if isinstance(data.get("server_url"), str) and data["server_url"]:
        settings.server_url = data["server_url"]
    digits = data.get("digits")
    if isinstance(digits, int) and MIN_DIGITS <= digits <= MAX_DIGITS:
        settings.digits = digits
    elif digits is not None:
        logger.warning("Ignoring invalid digits setting: %r", digits)
    if data.get("difficulty") in DIFFICULTIES:
        settings.difficulty = data["difficulty"]


def save_settings(settings: Settings, path: Optional[Path] = None) -> bool:
    """将当前设置保存到 JSON 文件。"""
    path = Path(path) if path is not None else SETTINGS_PATH
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(asdict(settings), f, ensure_ascii=False, indent=2)
    except OSError as exc:
        logger.warning("保存设置失败: %s", exc)
        return False
    return True


__all__ = ["Settings", "load_settings", "save_settings", "SETTINGS_PATH"]
