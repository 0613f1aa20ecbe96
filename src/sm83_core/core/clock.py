# sm83_core/core/clock.py
"""
Core Layer (クロック計数)

マシンサイクル(M)とTステート(T)の組を保持します。
命令ごとのコストと累計の両方がこの型で表現されます。
"""
from dataclasses import dataclass
from typing import Tuple

# 各カウンタは符号なし16bit
CLOCK_MASK = 0xFFFF

# @intent:responsibility M/Tサイクルの組を保持し、上書き・リセット・加算を提供します。
@dataclass
class Clock:
    m: int = 0
    t: int = 0

    # @intent:responsibility 命令ルーチンが自身の固定コストを宣言するために使用します。
    def set(self, m: int, t: int) -> None:
        self.m = m & CLOCK_MASK
        self.t = t & CLOCK_MASK

    def reset(self) -> None:
        self.m = 0
        self.t = 0

    # @intent:responsibility 別のクロックの値をこのクロックに畳み込みます（16bitで折り返し）。
    def add(self, other: "Clock") -> None:
        self.m = (self.m + other.m) & CLOCK_MASK
        self.t = (self.t + other.t) & CLOCK_MASK

    def as_tuple(self) -> Tuple[int, int]:
        return (self.m, self.t)

    # @intent:responsibility 命令が1つも実行中でない状態（0, 0）かどうかを返します。
    def is_zero(self) -> bool:
        return self.m == 0 and self.t == 0
