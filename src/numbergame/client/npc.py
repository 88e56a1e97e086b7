"""
离线对战：与电脑角色轮流猜对方的谜底

难度决定思考时间与猜测策略：
- easy: 随机，偶尔在玩家上一次得分的猜测上做变化
- medium: 排除自己得 0 分的猜测里出现过的数字
- hard: 统计玩家猜测中各数字的得分率，优先使用高分数字
- expert: 只在与已有反馈一致的候选中选择（消元法）
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from numbergame.client.errors import InvalidMoveError
from numbergame.shared.scoring import (
    all_candidates,
    filter_candidates,
    generate_secret,
    is_winning,
    score_guess,
    validate_guess,
    validate_secret,
)

logger = logging.getLogger(__name__)


class Difficulty(Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    EXPERT = "expert"

    @property
    def thinking_time(self) -> float:
        return _THINKING_TIME[self]


_THINKING_TIME = {
    Difficulty.EASY: 3.0,
    Difficulty.MEDIUM: 2.0,
    Difficulty.HARD: 1.5,
    Difficulty.EXPERT: 1.0,
}


@dataclass(frozen=True)
class Character:
    name: str
    avatar: str
    personality: str
    difficulty: Difficulty
    skills: tuple = ()


CHARACTERS: List[Character] = [
    Character("Amy", "👩‍💻", "Systematic analyst", Difficulty.EASY, ("Logic",)),
    Character("Max", "🧙", "Creative thinker", Difficulty.MEDIUM, ("Logic", "Speed")),
    Character("Sara", "🦸", "Competitive challenger", Difficulty.HARD, ("Precision", "Speed")),
    Character("Professor Bot", "🤖", "Master of everything", Difficulty.EXPERT, ("Precision", "Logic", "Speed", "Lucky")),
]

OPENERS: Dict[int, List[str]] = {
    1: ["5", "7", "3"],
    2: ["12", "34", "56", "78"],
    3: ["123", "456", "789", "012"],
    4: ["1234", "5678", "9012", "3456"],
}


def character_for(difficulty: Difficulty) -> Character:
    for c in CHARACTERS:
        if c.difficulty == difficulty:
            return c
    raise KeyError(difficulty)


@dataclass
class Move:
    guess: str
    bulls: int
    cows: int
    is_player: bool
    is_win: bool = False


@dataclass
class NpcMatch:
    """一局人机对战。先调用 start()，然后轮流调用 play_player_move / play_npc_move。"""

    character: Character
    digits: int
    player_secret: str
    rng: random.Random = field(default_factory=random.Random)
    sleep: Callable[[float], None] = time.sleep
    npc_secret: str = ""
    history: List[Move] = field(default_factory=list)
    winner: Optional[str] = None  # "player" | "npc"
    _candidates: List[str] = field(default_factory=list, repr=False)

    def start(self) -> None:
        ok, message = validate_secret(self.player_secret, self.digits)
        if not ok:
            raise InvalidMoveError(message)
        self.npc_secret = generate_secret(self.digits, self.rng)
        self.history = []
        self.winner = None
        self._candidates = all_candidates(self.digits)
        logger.info("Match started against %s (%s)", self.character.name, self.character.difficulty.value)

    def play_player_move(self, guess: str) -> Move:
        self._check_playable()
        ok, message = validate_guess(guess, self.digits)
        if not ok:
            raise InvalidMoveError(message)
        bulls, cows = score_guess(self.npc_secret, guess)
        move = Move(guess, bulls, cows, is_player=True, is_win=is_winning(bulls, self.digits))
        self.history.append(move)
        if move.is_win:
            self.winner = "player"
        return move

    def play_npc_move(self) -> Move:
        self._check_playable()
        # 模拟思考
        self.sleep(self.character.difficulty.thinking_time)
        guess = self._choose_guess()
        bulls, cows = score_guess(self.player_secret, guess)
        move = Move(guess, bulls, cows, is_player=False, is_win=is_winning(bulls, self.digits))
        self.history.append(move)
        self._candidates = filter_candidates(self._candidates, guess, bulls, cows)
        if move.is_win:
            self.winner = "npc"
        logger.debug("%s guessed %s -> %dB %dC", self.character.name, guess, bulls, cows)
        return move

    def _check_playable(self) -> None:
        if not self.npc_secret:
            raise InvalidMoveError("Match has not started.")
        if self.winner is not None:
            raise InvalidMoveError("Match is already over.")

    # 策略
    def _npc_moves(self) -> List[Move]:
        return [m for m in self.history if not m.is_player]

    def _player_moves(self) -> List[Move]:
        return [m for m in self.history if m.is_player]

    def _choose_guess(self) -> str:
        if not self._npc_moves():
            options = OPENERS.get(self.digits) or []
            return self.rng.choice(options) if options else self._random_guess()
        difficulty = self.character.difficulty
        if difficulty == Difficulty.EASY:
            return self._easy_guess()
        if difficulty == Difficulty.MEDIUM:
            return self._medium_guess()
        if difficulty == Difficulty.HARD:
            return self._hard_guess()
        return self._expert_guess()

    def _random_guess(self) -> str:
        return generate_secret(self.digits, self.rng)

    def _easy_guess(self) -> str:
        if self.rng.random() < 0.5:
            players = self._player_moves()
            if players and players[-1].bulls + players[-1].cows > 0:
                return self._variation(players[-1].guess)
        return self._random_guess()

    def _variation(self, guess: str) -> str:
        digits = list(guess)
        changes = self.rng.randint(1, min(2, len(digits)))
        for _ in range(changes):
            unused = [d for d in "0123456789" if d not in digits]
            index = self.rng.randrange(len(digits))
            digits[index] = self.rng.choice(unused)
        return "".join(digits)

    def _medium_guess(self) -> str:
        possible = set("0123456789")
        for move in self._npc_moves():
            if move.bulls + move.cows == 0:
                possible -= set(move.guess)
        if len(possible) < self.digits:
            return self._random_guess()
        return "".join(self.rng.sample(sorted(possible), self.digits))

    def _hard_guess(self) -> str:
        stats: Dict[str, List[int]] = {}
        for move in self._player_moves():
            for d in set(move.guess):
                count, total = stats.get(d, [0, 0])
                stats[d] = [count + 1, total + move.bulls + move.cows]
        ranked = sorted(stats, key=lambda d: stats[d][1] / stats[d][0], reverse=True)
        top = ranked[: self.digits]
        if len(top) < self.digits:
            return self._random_guess()
        self.rng.shuffle(top)
        return "".join(top)

    def _expert_guess(self) -> str:
        tried = {m.guess for m in self._npc_moves()}
        options = [c for c in self._candidates if c not in tried]
        if not options:
            return self._random_guess()
        return self.rng.choice(options)


__all__ = ["Difficulty", "Character", "CHARACTERS", "Move", "NpcMatch", "character_for"]
