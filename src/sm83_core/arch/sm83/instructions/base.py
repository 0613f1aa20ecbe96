"""
SM83命令セット実装のための命令記述子、共通ヘルパー関数と定数。
"""
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Tuple

from sm83_core.arch.sm83.state import Sm83CpuState
from sm83_core.core.clock import Clock
from sm83_core.transport.bus import MemoryDevice

Cycles = Tuple[int, int]  # (M, T)
Handler = Callable[[Sm83CpuState, MemoryDevice, "Instruction", Clock], None]

# @intent:responsibility 命令ルーチンの形（アドレッシングモード）を表すタグです。
class AddressingMode(Enum):
    IMPLIED = "IMPLIED"
    REGISTER = "REGISTER"  # r / (HL) を含む8bitオペランド
    IMMEDIATE8 = "IMMEDIATE8"  # d8
    IMMEDIATE16 = "IMMEDIATE16"  # d16
    REGISTER_INDIRECT = "REGISTER_INDIRECT"  # (BC), (DE), (HL+), (HL-)
    ABSOLUTE = "ABSOLUTE"  # (a16)
    HIGH_PAGE = "HIGH_PAGE"  # (0xFF00+a8)
    HIGH_PAGE_C = "HIGH_PAGE_C"  # (0xFF00+C)
    RELATIVE = "RELATIVE"  # r8
    REGISTER_PAIR = "REGISTER_PAIR"  # BC/DE/HL/SP/AF
    PREFIX = "PREFIX"  # 0xCB

# @intent:data_structure オペコード1つ分の命令記述子。テーブル構築時に一度だけ生成される不変データです。
@dataclass(frozen=True)
class Instruction:
    opcode: int
    mnemonic: str  # オペランドはd8/d16/a8/a16/r8のプレースホルダーで表記
    mode: AddressingMode
    length: int  # プレフィックスとオペコードを含むバイト長
    cycles: Cycles
    handler: Optional[Handler] = None
    dst: Optional[str] = None
    src: Optional[str] = None
    cycles_taken: Optional[Cycles] = None  # 条件分岐が成立した場合のコスト
    operand: Optional[object] = None  # ビット番号、RSTベクタ、ローテート種別など
    prefix: Optional[int] = None

    # @intent:responsibility 命令のコストを命令単位クロックに設定します。
    # @intent:rationale 条件分岐は成立/不成立で2種類の固定コストを持つため、ここで選択します。
    def charge(self, clock: Clock, taken: bool = False) -> None:
        cycles = self.cycles_taken if (taken and self.cycles_taken is not None) else self.cycles
        clock.set(*cycles)


# Helper functions for register mapping
REGISTER_CODES = {
    0b000: "B", 0b001: "C", 0b010: "D", 0b011: "E",
    0b100: "H", 0b101: "L", 0b110: "(HL)", 0b111: "A"
}

# rp: LD rr,d16 / INC rr / DEC rr / ADD HL,rr
PAIR_CODES_SP = {0b00: "BC", 0b01: "DE", 0b10: "HL", 0b11: "SP"}
# rp2: PUSH / POP
PAIR_CODES_AF = {0b00: "BC", 0b01: "DE", 0b10: "HL", 0b11: "AF"}

CONDITION_CODES = {0b00: "NZ", 0b01: "Z", 0b10: "NC", 0b11: "C"}

HIGH_PAGE_BASE = 0xFF00

def get_pair_value(state: Sm83CpuState, pair_name: str) -> int:
    return getattr(state, pair_name.lower())

def set_pair_value(state: Sm83CpuState, pair_name: str, value: int) -> None:
    setattr(state, pair_name.lower(), value & 0xFFFF)

# @intent:utility_function 条件コード(NZ/Z/NC/C)を現在のフラグで評価します。Noneは無条件です。
def check_condition(state: Sm83CpuState, cc: Optional[str]) -> bool:
    if cc is None:
        return True
    if cc == "NZ":
        return not state.flag_z
    if cc == "Z":
        return state.flag_z
    if cc == "NC":
        return not state.flag_c
    if cc == "C":
        return state.flag_c
    raise ValueError(f"Unknown condition code: {cc}")

# @intent:utility_function PCの位置から即値を1バイト読み出し、PCを進めます。
def fetch_byte(state: Sm83CpuState, memory: MemoryDevice) -> int:
    value = memory.read_byte(state.pc)
    state.pc = (state.pc + 1) & 0xFFFF
    return value

# @intent:utility_function PCの位置から即値を2バイト（リトルエンディアン）読み出し、PCを2進めます。
def fetch_word(state: Sm83CpuState, memory: MemoryDevice) -> int:
    value = memory.read_word(state.pc)
    state.pc = (state.pc + 2) & 0xFFFF
    return value

def to_signed(offset: int) -> int:
    return offset - 0x100 if offset & 0x80 else offset

# @intent:utility_function スタックに16bit値を積みます（上位バイトが高位アドレス）。
def push_word(state: Sm83CpuState, memory: MemoryDevice, value: int) -> None:
    state.sp = (state.sp - 1) & 0xFFFF
    memory.write_byte(state.sp, (value >> 8) & 0xFF)
    state.sp = (state.sp - 1) & 0xFFFF
    memory.write_byte(state.sp, value & 0xFF)

def pop_word(state: Sm83CpuState, memory: MemoryDevice) -> int:
    low = memory.read_byte(state.sp)
    state.sp = (state.sp + 1) & 0xFFFF
    high = memory.read_byte(state.sp)
    state.sp = (state.sp + 1) & 0xFFFF
    return (high << 8) | low

# @intent:utility_function 8bitオペランドの実効アドレスを求めます。レジスタ直接の場合はNoneを返します。
# @intent:rationale (HL+)/(HL-)はアドレス算出後にHLを増減します。即値のアドレスはPCから読み出されます。
def _operand_address(state: Sm83CpuState, memory: MemoryDevice, name: str) -> Optional[int]:
    if name == "(HL)":
        return state.hl
    if name == "(BC)":
        return state.bc
    if name == "(DE)":
        return state.de
    if name == "(HL+)":
        address = state.hl
        state.hl = (address + 1) & 0xFFFF
        return address
    if name == "(HL-)":
        address = state.hl
        state.hl = (address - 1) & 0xFFFF
        return address
    if name == "(a16)":
        return fetch_word(state, memory)
    if name == "(a8)":
        return HIGH_PAGE_BASE + fetch_byte(state, memory)
    if name == "(C)":
        return HIGH_PAGE_BASE + state.c
    return None

# @intent:utility_function 8bitオペランド（レジスタ、即値d8、各種メモリ参照）の値を読み出します。
def read_operand8(state: Sm83CpuState, memory: MemoryDevice, name: str) -> int:
    if name == "d8":
        return fetch_byte(state, memory)
    address = _operand_address(state, memory, name)
    if address is None:
        return getattr(state, name.lower())
    return memory.read_byte(address)

# @intent:utility_function 8bitオペランド（レジスタまたはメモリ参照）へ値を書き込みます。
def write_operand8(state: Sm83CpuState, memory: MemoryDevice, name: str, value: int) -> None:
    address = _operand_address(state, memory, name)
    if address is None:
        setattr(state, name.lower(), value & 0xFF)
    else:
        memory.write_byte(address, value & 0xFF)

# @intent:utility_function 8bitオペランドを読み出して変換し、同じ場所へ書き戻します。
# @intent:rationale 実効アドレスは1回だけ求めるため、(HL+)/(HL-)でもHLの増減は1回です。
def modify_operand8(state: Sm83CpuState, memory: MemoryDevice, name: str, operation: Callable[[int], int]) -> None:
    address = _operand_address(state, memory, name)
    if address is None:
        register = name.lower()
        setattr(state, register, operation(getattr(state, register)) & 0xFF)
    else:
        memory.write_byte(address, operation(memory.read_byte(address)) & 0xFF)
