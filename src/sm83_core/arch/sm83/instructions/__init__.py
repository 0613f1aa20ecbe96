"""
SM83命令セット実装パッケージ。
"""
from typing import Optional

from sm83_core.arch.sm83.state import Sm83CpuState
from sm83_core.core.clock import Clock
from sm83_core.core.errors import UnmappedOpcodeError
from sm83_core.transport.bus import MemoryDevice
from .base import Instruction, AddressingMode, fetch_byte
from .maps import UNPREFIXED_TABLE, CB_TABLE, CB_PREFIX, ILLEGAL_OPCODES

# @intent:responsibility 与えられたオペコードをSM83の命令記述子にデコードします。
# @intent:pre-condition state.pcはオペコードの直後を指している必要があります（CBプレフィックスの場合は2バイト目を読み出します）。
def decode_opcode(opcode: int, state: Sm83CpuState, memory: MemoryDevice, address: int) -> Instruction:
    """
    オペコードに対応する命令記述子を返します。
    未定義のオペコードの場合はUnmappedOpcodeErrorを送出します。addressはエラー報告用のオペコード位置です。
    """
    instruction = UNPREFIXED_TABLE[opcode]
    if instruction is None:
        raise UnmappedOpcodeError(opcode, address)
    if instruction.mode is AddressingMode.PREFIX:
        sub_opcode = fetch_byte(state, memory)
        instruction = CB_TABLE[sub_opcode]
        if instruction is None:
            raise UnmappedOpcodeError(sub_opcode, address, prefix=opcode)
    return instruction

# @intent:responsibility 静的にバイト列から命令記述子を引きます（逆アセンブラ用、副作用なし）。
# @intent:return 未定義の場合はNone。
def lookup(opcode: int, sub_opcode: Optional[int] = None) -> Optional[Instruction]:
    instruction = UNPREFIXED_TABLE[opcode]
    if instruction is not None and instruction.mode is AddressingMode.PREFIX:
        if sub_opcode is None:
            return None
        return CB_TABLE[sub_opcode]
    return instruction

# @intent:responsibility デコードされたSM83命令を実行し、CPUの状態と命令単位クロックを更新します。
def execute_instruction(instruction: Instruction, state: Sm83CpuState, memory: MemoryDevice, clock: Clock) -> None:
    instruction.handler(state, memory, instruction, clock)
