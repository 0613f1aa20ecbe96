"""
SM83 ALU (算術論理演算ユニット) およびフラグ計算ユーティリティ。

各関数は演算結果と、新しいFレジスタの値全体を返します。
Fは部分的に書き換えるのではなく常に丸ごと置き換えるため、以前の命令のフラグが残ることはありません。
保持されるべきフラグ（INC/DECのCなど）は、呼び出し元が渡す現在のFから明示的に引き継ぎます。
"""
from typing import Tuple

from sm83_core.arch.sm83.state import Z_FLAG, N_FLAG, H_FLAG, C_FLAG

# @intent:utility_function 各フラグの真偽値からFレジスタの値を組み立てます。
def make_flags(z: bool = False, n: bool = False, h: bool = False, c: bool = False) -> int:
    return (Z_FLAG if z else 0) | (N_FLAG if n else 0) | (H_FLAG if h else 0) | (C_FLAG if c else 0)

# --- 8-bit arithmetic / logic ---

def add8(a: int, value: int, carry: int = 0) -> Tuple[int, int]:
    """ADD/ADC。"""
    total = a + value + carry
    result = total & 0xFF
    half = ((a & 0x0F) + (value & 0x0F) + carry) > 0x0F
    return result, make_flags(z=result == 0, h=half, c=total > 0xFF)

def sub8(a: int, value: int, carry: int = 0) -> Tuple[int, int]:
    """SUB/SBC/CP。CPは結果を捨てて使用します。"""
    total = a - value - carry
    result = total & 0xFF
    half = ((a & 0x0F) - (value & 0x0F) - carry) < 0
    return result, make_flags(z=result == 0, n=True, h=half, c=total < 0)

def and8(a: int, value: int) -> Tuple[int, int]:
    result = a & value
    return result, make_flags(z=result == 0, h=True)

def xor8(a: int, value: int) -> Tuple[int, int]:
    result = a ^ value
    return result, make_flags(z=result == 0)

def or8(a: int, value: int) -> Tuple[int, int]:
    result = a | value
    return result, make_flags(z=result == 0)

# @intent:responsibility INC r のフラグを計算します。Cフラグは現在のFから引き継ぎます。
def inc8(value: int, f: int) -> Tuple[int, int]:
    result = (value + 1) & 0xFF
    return result, make_flags(z=result == 0, h=(value & 0x0F) == 0x0F) | (f & C_FLAG)

def dec8(value: int, f: int) -> Tuple[int, int]:
    result = (value - 1) & 0xFF
    return result, make_flags(z=result == 0, n=True, h=(value & 0x0F) == 0x00) | (f & C_FLAG)

# --- 16-bit arithmetic ---

# @intent:responsibility ADD HL,rr。Zは保持し、Hはbit11、Cはbit15からの桁上がりです。
def add16(hl: int, value: int, f: int) -> Tuple[int, int]:
    total = hl + value
    half = ((hl & 0x0FFF) + (value & 0x0FFF)) > 0x0FFF
    return total & 0xFFFF, (f & Z_FLAG) | make_flags(h=half, c=total > 0xFFFF)

# @intent:responsibility ADD SP,r8 / LD HL,SP+r8。フラグは下位バイトの符号なし加算で決まり、Zは常に0です。
def add_sp_offset(sp: int, offset: int) -> Tuple[int, int]:
    signed = offset - 0x100 if offset & 0x80 else offset
    result = (sp + signed) & 0xFFFF
    half = ((sp & 0x0F) + (offset & 0x0F)) > 0x0F
    carry = ((sp & 0xFF) + (offset & 0xFF)) > 0xFF
    return result, make_flags(h=half, c=carry)

# --- Rotates / shifts ---

ROTATE_KINDS = ("RLC", "RRC", "RL", "RR", "SLA", "SRA", "SWAP", "SRL")

# @intent:responsibility CBプレフィックスのローテート/シフト/SWAPを実行します。
# @intent:pre-condition kindはROTATE_KINDSのいずれかである必要があります。
def rotate_shift8(kind: str, value: int, f: int) -> Tuple[int, int]:
    carry_in = 1 if f & C_FLAG else 0
    if kind == "RLC":
        carry = value >> 7
        result = ((value << 1) | carry) & 0xFF
    elif kind == "RRC":
        carry = value & 1
        result = (value >> 1) | (carry << 7)
    elif kind == "RL":
        carry = value >> 7
        result = ((value << 1) | carry_in) & 0xFF
    elif kind == "RR":
        carry = value & 1
        result = (value >> 1) | (carry_in << 7)
    elif kind == "SLA":
        carry = value >> 7
        result = (value << 1) & 0xFF
    elif kind == "SRA":
        carry = value & 1
        result = (value >> 1) | (value & 0x80)
    elif kind == "SWAP":
        carry = 0
        result = ((value << 4) | (value >> 4)) & 0xFF
    elif kind == "SRL":
        carry = value & 1
        result = value >> 1
    else:
        raise ValueError(f"Unknown rotate/shift kind: {kind}")
    return result, make_flags(z=result == 0, c=carry == 1)

# @intent:responsibility RLCA/RRCA/RLA/RRA。CB版と異なりZは常に0になります。
def rotate_accumulator(kind: str, a: int, f: int) -> Tuple[int, int]:
    result, flags = rotate_shift8(kind, a, f)
    return result, flags & C_FLAG

# @intent:responsibility BIT b,r。Cは保持し、Hは常に1です。
def bit_test(bit: int, value: int, f: int) -> int:
    return make_flags(z=(value >> bit) & 1 == 0, h=True) | (f & C_FLAG)

# --- Accumulator adjustments ---

# @intent:responsibility 直前の加減算の結果をBCDに補正します。Nは保持、Hは常に0です。
def daa(a: int, f: int) -> Tuple[int, int]:
    carry = (f & C_FLAG) != 0
    if f & N_FLAG:
        if f & H_FLAG:
            a = (a - 0x06) & 0xFF
        if carry:
            a = (a - 0x60) & 0xFF
    else:
        if carry or a > 0x99:
            a = (a + 0x60) & 0xFF
            carry = True
        if (f & H_FLAG) or (a & 0x0F) > 0x09:
            a = (a + 0x06) & 0xFF
    return a, make_flags(z=a == 0, c=carry) | (f & N_FLAG)

def cpl(a: int, f: int) -> Tuple[int, int]:
    return (~a) & 0xFF, (f & (Z_FLAG | C_FLAG)) | N_FLAG | H_FLAG

def scf(f: int) -> int:
    return (f & Z_FLAG) | C_FLAG

def ccf(f: int) -> int:
    return (f & Z_FLAG) | (0 if f & C_FLAG else C_FLAG)
