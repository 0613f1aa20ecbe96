"""
SM83 データ転送命令とスタック命令の実装。

8bitの転送はオペランド名（レジスタ、d8、(HL)、(BC)、(HL+)、(a16)、(a8)、(C)など）を
base.read_operand8/write_operand8で解決するため、アドレッシングモードごとに
同じルーチンを使い回します。
"""
from sm83_core.arch.sm83.state import Sm83CpuState
from sm83_core.arch.sm83.alu import add_sp_offset
from sm83_core.core.clock import Clock
from sm83_core.transport.bus import MemoryDevice
from .base import (
    Instruction, read_operand8, write_operand8, fetch_word, fetch_byte,
    get_pair_value, set_pair_value, push_word, pop_word
)

# @intent:responsibility LD dst,src 形式の8bit転送を実行します（r←r, r←d8, r←(rr), (rr)←r, (HL)←d8, A←(a16), (a16)←A, LDH等）。
def execute_ld8(state: Sm83CpuState, memory: MemoryDevice, instruction: Instruction, clock: Clock) -> None:
    value = read_operand8(state, memory, instruction.src)
    write_operand8(state, memory, instruction.dst, value)
    instruction.charge(clock)

# @intent:responsibility LD rr,d16 を実行します。
def execute_ld_rr_d16(state: Sm83CpuState, memory: MemoryDevice, instruction: Instruction, clock: Clock) -> None:
    set_pair_value(state, instruction.dst, fetch_word(state, memory))
    instruction.charge(clock)

# @intent:responsibility LD (a16),SP を実行します。SPは下位バイトから順に格納されます。
def execute_ld_a16_sp(state: Sm83CpuState, memory: MemoryDevice, instruction: Instruction, clock: Clock) -> None:
    address = fetch_word(state, memory)
    memory.write_word(address, state.sp)
    instruction.charge(clock)

def execute_ld_sp_hl(state: Sm83CpuState, memory: MemoryDevice, instruction: Instruction, clock: Clock) -> None:
    state.sp = state.hl
    instruction.charge(clock)

# @intent:responsibility LD HL,SP+r8 を実行します。
def execute_ld_hl_sp_r8(state: Sm83CpuState, memory: MemoryDevice, instruction: Instruction, clock: Clock) -> None:
    offset = fetch_byte(state, memory)
    state.hl, state.f = add_sp_offset(state.sp, offset)
    instruction.charge(clock)

def execute_push(state: Sm83CpuState, memory: MemoryDevice, instruction: Instruction, clock: Clock) -> None:
    push_word(state, memory, get_pair_value(state, instruction.src))
    instruction.charge(clock)

# @intent:responsibility POP rr を実行します。POP AF ではFの下位4bitが0にマスクされます（afセッターが担当）。
def execute_pop(state: Sm83CpuState, memory: MemoryDevice, instruction: Instruction, clock: Clock) -> None:
    set_pair_value(state, instruction.dst, pop_word(state, memory))
    instruction.charge(clock)
