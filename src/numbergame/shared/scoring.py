"""
计分与校验

bulls/cows 计分、谜底与猜测的合法性校验、候选数字生成。纯函数，无网络依赖。
"""

import random
from collections import Counter
from itertools import permutations
from typing import List, Optional, Tuple

DIGITS = "0123456789"


def _is_decimal(text: str) -> bool:
    # 只接受 ASCII 0-9
    return all(ch in DIGITS for ch in text)


def validate_secret(secret: str, digits: int) -> Tuple[bool, str]:
    """校验谜底：恰好 digits 位数字，且各位互不相同。

    Returns:
        (是否合法, 错误信息)
    """
    if not secret or not isinstance(secret, str):
        return False, "Secret must be a non-empty string."
    if len(secret) != digits:
        return False, f"Secret must be exactly {digits} digits."
    if not _is_decimal(secret):
        return False, "Secret must contain digits only."
    if len(set(secret)) != len(secret):
        return False, "All digits must be unique."
    return True, ""


def validate_guess(guess: str, digits: int) -> Tuple[bool, str]:
    """校验猜测：长度等于位数且只含数字（不要求各位不同）。"""
    if not guess or not isinstance(guess, str):
        return False, "Guess must be a non-empty string."
    if not _is_decimal(guess):
        return False, "Guess must contain digits only."
    if len(guess) != digits:
        return False, f"Guess must be exactly {digits} digits."
    return True, ""


def score_guess(secret: str, guess: str) -> Tuple[int, int]:
    """计算 (bulls, cows)。

    bull = 位置和数字都正确
    cow  = 数字出现在谜底中但位置不对；每个谜底数字最多被计一次
    """
    if len(secret) != len(guess):
        raise ValueError(f"length mismatch: secret has {len(secret)} digits, guess has {len(guess)}")
    bulls = sum(1 for s, g in zip(secret, guess) if s == g)
    in_secret = Counter(secret)
    in_guess = Counter(guess)
    common = sum(min(in_secret[d], n) for d, n in in_guess.items())
    return bulls, common - bulls


def is_winning(bulls: int, digits: int) -> bool:
    return bulls == digits


def generate_secret(digits: int, rng: Optional[random.Random] = None) -> str:
    """随机生成各位互不相同的谜底。"""
    rng = rng or random
    return "".join(rng.sample(DIGITS, digits))


def all_candidates(digits: int) -> List[str]:
    """所有合法谜底（允许前导 0）。"""
    return ["".join(p) for p in permutations(DIGITS, digits)]


def filter_candidates(candidates: List[str], guess: str, bulls: int, cows: int) -> List[str]:
    """保留那些若作为谜底、会对 guess 给出相同 (bulls, cows) 的候选。"""
    return [c for c in candidates if score_guess(c, guess) == (bulls, cows)]


__all__ = [
    "validate_secret",
    "validate_guess",
    "score_guess",
    "is_winning",
    "generate_secret",
    "all_candidates",
    "filter_candidates",
]
