"""
SM83 CBプレフィックス命令（ローテート、シフト、SWAP、BIT、RES、SET）の実装。
"""
from sm83_core.arch.sm83.state import Sm83CpuState
from sm83_core.arch.sm83.alu import rotate_shift8, bit_test
from sm83_core.core.clock import Clock
from sm83_core.transport.bus import MemoryDevice
from .base import Instruction, read_operand8, modify_operand8

# @intent:responsibility RLC/RRC/RL/RR/SLA/SRA/SWAP/SRL r を実行します。種別はinstruction.operandです。
def execute_rotate_shift(state: Sm83CpuState, memory: MemoryDevice, instruction: Instruction, clock: Clock) -> None:
    def rotate(value: int) -> int:
        result, state.f = rotate_shift8(instruction.operand, value, state.f)
        return result

    modify_operand8(state, memory, instruction.dst, rotate)
    instruction.charge(clock)

def execute_bit(state: Sm83CpuState, memory: MemoryDevice, instruction: Instruction, clock: Clock) -> None:
    value = read_operand8(state, memory, instruction.src)
    state.f = bit_test(instruction.operand, value, state.f)
    instruction.charge(clock)

# @intent:responsibility RES b,r を実行します。フラグは変化しません。
def execute_res(state: Sm83CpuState, memory: MemoryDevice, instruction: Instruction, clock: Clock) -> None:
    modify_operand8(state, memory, instruction.dst, lambda value: value & ~(1 << instruction.operand))
    instruction.charge(clock)

def execute_set(state: Sm83CpuState, memory: MemoryDevice, instruction: Instruction, clock: Clock) -> None:
    modify_operand8(state, memory, instruction.dst, lambda value: value | (1 << instruction.operand))
    instruction.charge(clock)
