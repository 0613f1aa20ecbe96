"""
SM83 制御命令（分岐、呼び出し、復帰、RST、システム制御）の実装。

条件付き命令は instruction.src に条件コード(NZ/Z/NC/C)を持ち、
成立時は cycles_taken、不成立時は cycles のコストを設定します。
"""
from sm83_core.arch.sm83.state import Sm83CpuState
from sm83_core.core.clock import Clock
from sm83_core.transport.bus import MemoryDevice
from .base import (
    Instruction, fetch_byte, fetch_word, to_signed, check_condition, push_word, pop_word
)

# @intent:responsibility JP [cc,]a16 を実行します。オペランドは条件に関わらず読み出されます。
def execute_jp(state: Sm83CpuState, memory: MemoryDevice, instruction: Instruction, clock: Clock) -> None:
    target = fetch_word(state, memory)
    taken = check_condition(state, instruction.src)
    if taken:
        state.pc = target
    instruction.charge(clock, taken)

def execute_jp_hl(state: Sm83CpuState, memory: MemoryDevice, instruction: Instruction, clock: Clock) -> None:
    state.pc = state.hl
    instruction.charge(clock)

# @intent:responsibility JR [cc,]r8 を実行します。オフセットはオペランド読み出し後のPCからの符号付き相対値です。
def execute_jr(state: Sm83CpuState, memory: MemoryDevice, instruction: Instruction, clock: Clock) -> None:
    offset = to_signed(fetch_byte(state, memory))
    taken = check_condition(state, instruction.src)
    if taken:
        state.pc = (state.pc + offset) & 0xFFFF
    instruction.charge(clock, taken)

def execute_call(state: Sm83CpuState, memory: MemoryDevice, instruction: Instruction, clock: Clock) -> None:
    target = fetch_word(state, memory)
    taken = check_condition(state, instruction.src)
    if taken:
        push_word(state, memory, state.pc)
        state.pc = target
    instruction.charge(clock, taken)

def execute_ret(state: Sm83CpuState, memory: MemoryDevice, instruction: Instruction, clock: Clock) -> None:
    taken = check_condition(state, instruction.src)
    if taken:
        state.pc = pop_word(state, memory)
    instruction.charge(clock, taken)

# @intent:responsibility RETI: 復帰と同時に割り込みを許可します。
def execute_reti(state: Sm83CpuState, memory: MemoryDevice, instruction: Instruction, clock: Clock) -> None:
    state.pc = pop_word(state, memory)
    state.ime = True
    instruction.charge(clock)

# @intent:responsibility RST n: 戻り先を積み、固定ベクタ(instruction.operand)へ分岐します。
def execute_rst(state: Sm83CpuState, memory: MemoryDevice, instruction: Instruction, clock: Clock) -> None:
    push_word(state, memory, state.pc)
    state.pc = instruction.operand
    instruction.charge(clock)

def execute_nop(state: Sm83CpuState, memory: MemoryDevice, instruction: Instruction, clock: Clock) -> None:
    # Intentional: NOP (No Operation)
    instruction.charge(clock)

# @intent:responsibility CPUをHALT状態にします。解除は割り込み制御側（または呼び出し元）の責務です。
def execute_halt(state: Sm83CpuState, memory: MemoryDevice, instruction: Instruction, clock: Clock) -> None:
    state.halted = True
    instruction.charge(clock)

# @intent:responsibility STOP: 後続の1バイトを読み捨てて停止状態に入ります。
def execute_stop(state: Sm83CpuState, memory: MemoryDevice, instruction: Instruction, clock: Clock) -> None:
    fetch_byte(state, memory)
    state.stopped = True
    instruction.charge(clock)

def execute_di(state: Sm83CpuState, memory: MemoryDevice, instruction: Instruction, clock: Clock) -> None:
    state.ime = False
    instruction.charge(clock)

def execute_ei(state: Sm83CpuState, memory: MemoryDevice, instruction: Instruction, clock: Clock) -> None:
    state.ime = True
    instruction.charge(clock)
