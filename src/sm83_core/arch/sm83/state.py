# sm83_core/arch/sm83/state.py
"""
SM83 CPU固有の状態定義。

8bitレジスタA, B, C, D, E, H, L, F と、16bitのPC/SPを保持します。
BC, DE, HL, AF の16bitペアは保持せず、8bitレジスタから合成するビューとして提供します。
"""
from dataclasses import dataclass

from sm83_core.core.state import CpuState

# @intent:constant Fレジスタ内の各フラグビットの位置を定義します。下位4bitは常に0です。
Z_FLAG = 0b10000000  # Zero
N_FLAG = 0b01000000  # Subtract
H_FLAG = 0b00100000  # Half Carry
C_FLAG = 0b00010000  # Carry
FLAG_MASK = 0xF0


# @intent:responsibility SM83 CPUの全てのレジスタとフラグの状態を保持します。
@dataclass
class Sm83CpuState(CpuState):
    a: int = 0x00
    b: int = 0x00
    c: int = 0x00
    d: int = 0x00
    e: int = 0x00
    h: int = 0x00
    l: int = 0x00
    f: int = 0x00  # Flag register

    ime: bool = False  # Interrupt Master Enable
    halted: bool = False
    stopped: bool = False

    # @intent:responsibility Fレジスタを0にクリアします。
    def reset_flags(self) -> None:
        self.f = 0x00

    # @intent:accessor フラグはXORではなく直接のビットセット/クリアで更新します。
    #                  XORでは既にセットされているビットを正しくクリアできないためです。

    @property
    def flag_z(self) -> bool:
        return (self.f & Z_FLAG) != 0

    @flag_z.setter
    def flag_z(self, value: bool) -> None:
        if value:
            self.f |= Z_FLAG
        else:
            self.f &= ~Z_FLAG & 0xFF

    @property
    def flag_n(self) -> bool:
        return (self.f & N_FLAG) != 0

    @flag_n.setter
    def flag_n(self, value: bool) -> None:
        if value:
            self.f |= N_FLAG
        else:
            self.f &= ~N_FLAG & 0xFF

    @property
    def flag_h(self) -> bool:
        return (self.f & H_FLAG) != 0

    @flag_h.setter
    def flag_h(self, value: bool) -> None:
        if value:
            self.f |= H_FLAG
        else:
            self.f &= ~H_FLAG & 0xFF

    @property
    def flag_c(self) -> bool:
        return (self.f & C_FLAG) != 0

    @flag_c.setter
    def flag_c(self, value: bool) -> None:
        if value:
            self.f |= C_FLAG
        else:
            self.f &= ~C_FLAG & 0xFF

    # 16-bit register pairs (high byte first)
    @property
    def af(self) -> int:
        return (self.a << 8) | self.f

    @af.setter
    def af(self, value: int) -> None:
        self.a = (value >> 8) & 0xFF
        self.f = value & FLAG_MASK

    @property
    def bc(self) -> int:
        return (self.b << 8) | self.c

    @bc.setter
    def bc(self, value: int) -> None:
        self.b = (value >> 8) & 0xFF
        self.c = value & 0xFF

    @property
    def de(self) -> int:
        return (self.d << 8) | self.e

    @de.setter
    def de(self, value: int) -> None:
        self.d = (value >> 8) & 0xFF
        self.e = value & 0xFF

    @property
    def hl(self) -> int:
        return (self.h << 8) | self.l

    @hl.setter
    def hl(self, value: int) -> None:
        self.h = (value >> 8) & 0xFF
        self.l = value & 0xFF
