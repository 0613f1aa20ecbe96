# tests/core/test_clock.py
"""
sm83_core.core.clockモジュールの単体テスト。
"""
from sm83_core.core.clock import Clock

# @intent:test_suite M/Tサイクルの組の上書き、リセット、加算を検証します。

class TestClock:
    def test_default_is_zero(self):
        clock = Clock()
        assert clock.as_tuple() == (0, 0)
        assert clock.is_zero()

    # @intent:test_case_set setは加算ではなく上書きであることを検証します。
    def test_set_overwrites(self):
        clock = Clock()
        clock.set(2, 8)
        clock.set(1, 4)
        assert clock.as_tuple() == (1, 4)
        assert not clock.is_zero()

    def test_reset(self):
        clock = Clock(3, 12)
        clock.reset()
        assert clock.as_tuple() == (0, 0)

    def test_add_accumulates(self):
        total = Clock()
        total.add(Clock(2, 8))
        total.add(Clock(4, 16))
        assert total.as_tuple() == (6, 24)

    # @intent:test_case_wrap 各カウンタは16bitで折り返します。
    def test_add_wraps_at_16_bits(self):
        total = Clock(0xFFFF, 0xFFFE)
        total.add(Clock(1, 4))
        assert total.as_tuple() == (0x0000, 0x0002)
