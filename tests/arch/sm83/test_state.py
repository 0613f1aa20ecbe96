# tests/arch/sm83/test_state.py
"""
sm83_core.arch.sm83.stateモジュールの単体テスト。
"""
import pytest

from sm83_core.arch.sm83.state import Sm83CpuState, Z_FLAG, N_FLAG, H_FLAG, C_FLAG

# @intent:test_suite レジスタファイル、フラグアクセサ、16bitペアのビューを検証します。

class TestSm83CpuState:
    def test_defaults(self):
        state = Sm83CpuState()
        assert (state.a, state.b, state.c, state.d, state.e, state.h, state.l, state.f) == (0,) * 8
        assert state.pc == 0 and state.sp == 0
        assert not state.ime and not state.halted and not state.stopped

    def test_flag_bit_positions(self):
        assert (Z_FLAG, N_FLAG, H_FLAG, C_FLAG) == (0x80, 0x40, 0x20, 0x10)

    # @intent:test_case_flags セッターは直接のセット/クリアで動作し、二度セットしても反転しません。
    @pytest.mark.parametrize("name, mask", [("flag_z", Z_FLAG), ("flag_n", N_FLAG), ("flag_h", H_FLAG), ("flag_c", C_FLAG)])
    def test_flag_set_clear(self, name, mask):
        state = Sm83CpuState()
        setattr(state, name, True)
        setattr(state, name, True)
        assert state.f == mask
        assert getattr(state, name) is True
        setattr(state, name, False)
        setattr(state, name, False)
        assert state.f == 0
        assert getattr(state, name) is False

    # @intent:test_case_pairs 全ての16bit値でペアの書き込みと読み出しが一致し、上位バイトが先頭レジスタに入ることを検証します。
    @pytest.mark.parametrize("pair, high, low", [("bc", "b", "c"), ("de", "d", "e"), ("hl", "h", "l")])
    def test_pair_views_all_values(self, pair, high, low):
        state = Sm83CpuState()
        for value in range(0x10000):
            setattr(state, pair, value)
            assert getattr(state, pair) == value
            assert getattr(state, high) == value >> 8
            assert getattr(state, low) == value & 0xFF

    def test_af_masks_low_nibble(self):
        state = Sm83CpuState()
        for value in range(0x10000):
            state.af = value
            assert state.a == value >> 8
            assert state.f == value & 0xF0
            assert state.af == value & 0xFFF0

    def test_reset_flags(self):
        state = Sm83CpuState(f=0xF0)
        state.reset_flags()
        assert state.f == 0
