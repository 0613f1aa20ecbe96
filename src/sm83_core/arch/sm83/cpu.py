# sm83_core/arch/sm83/cpu.py
"""
SM83 CPUエミュレーションの中心モジュール。

このモジュールはGame Boy系CPU(SM83)の具体的な実装を提供し、
AbstractCpuインターフェースを実装します。
"""
import logging
from typing import Dict, List, Optional, Tuple

from sm83_core.core.cpu import AbstractCpu, TraceHook
from sm83_core.core.errors import UnmappedOpcodeError
from sm83_core.core.snapshot import Operation
from sm83_core.transport.bus import MemoryDevice
from sm83_core.arch.sm83.state import Sm83CpuState
from sm83_core.arch.sm83.instructions import decode_opcode, execute_instruction
from sm83_core.arch.sm83.instructions.base import Instruction, fetch_byte
from sm83_core.arch.sm83 import disassembler

logger = logging.getLogger(__name__)

# 停止中の1ステップのコスト
IDLE_CYCLES = (1, 4)

# @intent:responsibility SM83 CPUの具体的なエミュレーションロジックを提供します。
class Sm83Cpu(AbstractCpu):
    """
    SM83 CPUをエミュレートするクラス。
    AbstractCpuを継承し、SM83固有のフェッチ・デコード・実行を実装します。
    """
    # @intent:pre-condition `memory`は有効なMemoryDeviceである必要があります。CPUはメモリを所有しません。
    def __init__(self, memory: MemoryDevice, trace_hook: Optional[TraceHook] = None):
        self._fetch_pc = 0
        self._operand_bytes: List[int] = []
        super().__init__(memory, trace_hook)

    def _create_initial_state(self) -> Sm83CpuState:
        return Sm83CpuState()

    # @intent:responsibility 現在のPCからオペコードをフェッチし、PCを1進めます。
    def _fetch(self) -> int:
        self._fetch_pc = self._state.pc
        return fetch_byte(self._state, self._bus)

    # @intent:responsibility フェッチしたオペコードを命令記述子にデコードします。CBプレフィックスはここで解決されます。
    # @intent:post-condition 未定義オペコードの場合、PCはオペコードの直後を指したままUnmappedOpcodeErrorが送出されます。
    # @intent:post-condition トレースフックが設定されている場合、実行前のオペランドバイトを記録します。
    def _decode(self, opcode: int) -> Instruction:
        try:
            instruction = decode_opcode(opcode, self._state, self._bus, self._fetch_pc)
        except UnmappedOpcodeError as e:
            logger.error("%s", e)
            raise
        if self._trace_hook is not None:
            pc = self._state.pc
            self._operand_bytes = [
                self._bus.peek((pc + i) & 0xFFFF) for i in range(disassembler.operand_count(instruction))
            ]
        return instruction

    def _execute(self, instruction: Instruction) -> None:
        execute_instruction(instruction, self._state, self._bus, self.last_instruction_clock)

    # @intent:responsibility HALT/STOP中は命令をフェッチせず、固定コストで1ステップ消費します。
    # @intent:rationale 割り込み制御を持たないため、停止状態の解除は呼び出し元(デバッガや外部コード)が状態を書き換えて行います。
    def _handle_halt(self) -> Optional[Operation]:
        if not (self._state.halted or self._state.stopped):
            return None
        self.last_instruction_clock.set(*IDLE_CYCLES)
        if self._state.stopped:
            return Operation(opcode_hex="10", mnemonic="STOP (suspended)", cycles=IDLE_CYCLES, length=0)
        return Operation(opcode_hex="76", mnemonic="HALT (suspended)", cycles=IDLE_CYCLES, length=0)

    # @intent:responsibility 実行済みの命令をトレース用のOperationに変換します。オペランドはデコード時に記録した値を使います。
    # @intent:rationale 命令が自身のオペランド領域を書き換えても、フェッチされた値を報告します。
    def _describe(self, instruction: Instruction, initial_pc: int) -> Operation:
        operand_bytes = list(self._operand_bytes)
        _, operands = disassembler.render(instruction, operand_bytes, initial_pc)
        return Operation(
            opcode_hex=disassembler.opcode_hex(instruction),
            mnemonic=instruction.mnemonic,
            operands=operands,
            operand_bytes=operand_bytes,
            cycles=instruction.cycles,
            length=instruction.length,
        )

    def get_register_map(self) -> Dict[str, int]:
        s = self._state
        return {
            "A": s.a, "F": s.f, "B": s.b, "C": s.c, "D": s.d, "E": s.e, "H": s.h, "L": s.l,
            "SP": s.sp, "PC": s.pc,
            "AF": s.af, "BC": s.bc, "DE": s.de, "HL": s.hl,
        }

    def get_flag_state(self) -> Dict[str, bool]:
        s = self._state
        return {
            "Z": s.flag_z,
            "N": s.flag_n,
            "H": s.flag_h,
            "C": s.flag_c,
        }

    def disassemble(self, start_addr: int, length: int) -> List[Tuple[int, str, str]]:
        return disassembler.disassemble(self._bus, start_addr, length)
