"""
SM83 算術論理演算 (ALU) 命令の実装。
"""
from sm83_core.arch.sm83.state import Sm83CpuState, C_FLAG
from sm83_core.arch.sm83 import alu
from sm83_core.core.clock import Clock
from sm83_core.transport.bus import MemoryDevice
from .base import (
    Instruction, read_operand8, modify_operand8, fetch_byte, get_pair_value, set_pair_value
)

# @intent:responsibility ADD/ADC/SUB/SBC/AND/XOR/OR/CP を、レジスタ・(HL)・d8 のいずれのソースでも実行します。
# @intent:rationale 演算子はinstruction.operandに格納されています。CPは結果をAに書き戻しません。
def execute_alu8(state: Sm83CpuState, memory: MemoryDevice, instruction: Instruction, clock: Clock) -> None:
    value = read_operand8(state, memory, instruction.src)
    op = instruction.operand
    carry = 1 if state.f & C_FLAG else 0

    if op == "ADD":
        result, flags = alu.add8(state.a, value)
    elif op == "ADC":
        result, flags = alu.add8(state.a, value, carry)
    elif op == "SUB" or op == "CP":
        result, flags = alu.sub8(state.a, value)
    elif op == "SBC":
        result, flags = alu.sub8(state.a, value, carry)
    elif op == "AND":
        result, flags = alu.and8(state.a, value)
    elif op == "XOR":
        result, flags = alu.xor8(state.a, value)
    elif op == "OR":
        result, flags = alu.or8(state.a, value)
    else:
        raise ValueError(f"Unknown ALU operation: {op}")

    if op != "CP":
        state.a = result
    state.f = flags
    instruction.charge(clock)

def execute_inc8(state: Sm83CpuState, memory: MemoryDevice, instruction: Instruction, clock: Clock) -> None:
    def increment(value: int) -> int:
        result, state.f = alu.inc8(value, state.f)
        return result

    modify_operand8(state, memory, instruction.dst, increment)
    instruction.charge(clock)

def execute_dec8(state: Sm83CpuState, memory: MemoryDevice, instruction: Instruction, clock: Clock) -> None:
    def decrement(value: int) -> int:
        result, state.f = alu.dec8(value, state.f)
        return result

    modify_operand8(state, memory, instruction.dst, decrement)
    instruction.charge(clock)

# @intent:responsibility 16bitのINC/DEC。フラグは変化しません。
def execute_inc16(state: Sm83CpuState, memory: MemoryDevice, instruction: Instruction, clock: Clock) -> None:
    set_pair_value(state, instruction.dst, get_pair_value(state, instruction.dst) + 1)
    instruction.charge(clock)

def execute_dec16(state: Sm83CpuState, memory: MemoryDevice, instruction: Instruction, clock: Clock) -> None:
    set_pair_value(state, instruction.dst, get_pair_value(state, instruction.dst) - 1)
    instruction.charge(clock)

def execute_add_hl_rr(state: Sm83CpuState, memory: MemoryDevice, instruction: Instruction, clock: Clock) -> None:
    state.hl, state.f = alu.add16(state.hl, get_pair_value(state, instruction.src), state.f)
    instruction.charge(clock)

def execute_add_sp_r8(state: Sm83CpuState, memory: MemoryDevice, instruction: Instruction, clock: Clock) -> None:
    offset = fetch_byte(state, memory)
    state.sp, state.f = alu.add_sp_offset(state.sp, offset)
    instruction.charge(clock)

# @intent:responsibility RLCA/RRCA/RLA/RRA を実行します。
def execute_rotate_a(state: Sm83CpuState, memory: MemoryDevice, instruction: Instruction, clock: Clock) -> None:
    state.a, state.f = alu.rotate_accumulator(instruction.operand, state.a, state.f)
    instruction.charge(clock)

def execute_daa(state: Sm83CpuState, memory: MemoryDevice, instruction: Instruction, clock: Clock) -> None:
    state.a, state.f = alu.daa(state.a, state.f)
    instruction.charge(clock)

def execute_cpl(state: Sm83CpuState, memory: MemoryDevice, instruction: Instruction, clock: Clock) -> None:
    state.a, state.f = alu.cpl(state.a, state.f)
    instruction.charge(clock)

def execute_scf(state: Sm83CpuState, memory: MemoryDevice, instruction: Instruction, clock: Clock) -> None:
    state.f = alu.scf(state.f)
    instruction.charge(clock)

def execute_ccf(state: Sm83CpuState, memory: MemoryDevice, instruction: Instruction, clock: Clock) -> None:
    state.f = alu.ccf(state.f)
    instruction.charge(clock)
