# sm83_core/core/cpu.py
"""
Core Layer (抽象CPU)

このモジュールは、CPUの状態管理、クロック計数、命令サイクルの駆動を抽象化します。
具体的な命令の振る舞いはInstruction Layerに委譲されます。
"""
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional, Tuple
import logging

from sm83_core.transport.bus import MemoryDevice
from sm83_core.core.clock import Clock
from sm83_core.core.snapshot import Snapshot, Operation, Metadata
from sm83_core.core.state import CpuState

logger = logging.getLogger(__name__)

SymbolMap = Dict[str, int]
TraceHook = Callable[[Snapshot], None]

# @intent:responsibility 抽象CPUの基本機能とインターフェースを定義します。
class AbstractCpu(ABC):
    """
    全てのCPUエミュレーションの基底となる抽象クラス。
    メモリデバイスへの非所有参照、累計クロックと命令単位クロック、
    任意のトレースフックを保持します。
    """
    # @intent:pre-condition `memory`は有効なMemoryDeviceである必要があります。
    def __init__(self, memory: MemoryDevice, trace_hook: Optional[TraceHook] = None):
        self._bus = memory
        self._trace_hook = trace_hook
        self._symbol_map: SymbolMap = {}
        self._reverse_symbol_map: Dict[int, str] = {}
        self.clock = Clock()
        self.last_instruction_clock = Clock()
        self._state: CpuState = self._create_initial_state()
        self.reset()

    @abstractmethod
    def _create_initial_state(self) -> CpuState:
        """CPUの電源投入時の状態を生成して返します。"""
        pass

    # @intent:responsibility CPUをリセットし、レジスタと両方のクロックを初期状態に戻します。
    def reset(self) -> None:
        self._state = self._create_initial_state()
        self.clock.reset()
        self.last_instruction_clock.reset()
        logger.debug("CPU reset")

    def get_state(self) -> CpuState:
        return self._state

    # @intent:responsibility 保存済みの状態をCPUに復元します（デバッガの逆実行用）。
    # @intent:rationale 呼び出し元が保持するオブジェクトと共有しないよう、コピーを適用します。
    def restore_state(self, state: CpuState) -> None:
        self._state = replace(state)

    @property
    def memory(self) -> MemoryDevice:
        return self._bus

    # @intent:responsibility 1命令ごとに呼び出されるトレースフックを設定します。Noneで解除します。
    def set_trace_hook(self, hook: Optional[TraceHook]) -> None:
        self._trace_hook = hook

    def get_trace_hook(self) -> Optional[TraceHook]:
        return self._trace_hook

    def set_symbol_map(self, symbol_map: SymbolMap) -> None:
        self._symbol_map = symbol_map
        self._reverse_symbol_map = {addr: name for name, addr in symbol_map.items()}

    def get_symbol_map(self) -> SymbolMap:
        return self._symbol_map

    @abstractmethod
    def _fetch(self) -> int:
        """
        現在のPCから1バイトを読み出し、PCを1進めてその値を返します。
        """
        pass

    @abstractmethod
    def _decode(self, opcode: int) -> Any:
        """
        オペコードに対応する命令記述子を返します。
        対応する命令がない場合は例外を送出し、決して黙って読み飛ばしません。
        """
        pass

    @abstractmethod
    def _execute(self, instruction: Any) -> None:
        """
        命令を実行します。命令ルーチンはlast_instruction_clockに自身のコストを設定します。
        """
        pass

    @abstractmethod
    def _describe(self, instruction: Any, initial_pc: int) -> Operation:
        """トレース用に、実行した命令をOperationとして表現します。"""
        pass

    # @intent:responsibility HALT状態の場合の処理を行います。
    # @intent:return 停止中で命令を実行しなかった場合はそのOperation、そうでなければNone。
    def _handle_halt(self) -> Optional[Operation]:
        return None

    # @intent:responsibility CPUを1命令分進めます。
    # @intent:rationale Template Methodパターンで共通の実行フロー（フェッチ→デコード→実行→クロック畳み込み→トレース）を定義します。
    #                  step()は常に完結したトランザクションであり、呼び出し間に途中状態は存在しません。
    def step(self) -> None:
        self._bus.get_and_clear_activity_log()
        initial_pc = self._state.pc

        operation = self._handle_halt()
        if operation is None:
            opcode = self._fetch()
            instruction = self._decode(opcode)
            self._execute(instruction)
            if self._trace_hook is not None:
                operation = self._describe(instruction, initial_pc)

        last_cycles = self.last_instruction_clock.as_tuple()
        self.clock.add(self.last_instruction_clock)
        self.last_instruction_clock.reset()

        if self._trace_hook is not None:
            self._trace_hook(self._create_snapshot(initial_pc, operation, last_cycles))

    def _create_snapshot(self, initial_pc: int, operation: Operation, cycles: Tuple[int, int]) -> Snapshot:
        bus_activity = self._bus.get_and_clear_activity_log()

        symbol_label = self._reverse_symbol_map.get(initial_pc, "")
        symbol_info = f"{symbol_label}: " if symbol_label else ""
        symbol_info += operation.mnemonic
        if operation.operands:
            symbol_info += " " + ", ".join(operation.operands)

        if operation.cycles != cycles:
            operation = replace(operation, cycles=cycles)

        return Snapshot(
            state=replace(self._state),
            operation=operation,
            metadata=Metadata(clock=self.clock.as_tuple(), symbol_info=symbol_info),
            bus_activity=bus_activity,
        )

    @abstractmethod
    def get_register_map(self) -> Dict[str, int]:
        """現在のレジスタ値を辞書形式で返します。"""
        pass

    @abstractmethod
    def get_flag_state(self) -> Dict[str, bool]:
        """現在のフラグの各ビットの状態を辞書形式で返します。"""
        pass

    @abstractmethod
    def disassemble(self, start_addr: int, length: int) -> List[Tuple[int, str, str]]:
        """指定範囲を逆アセンブルし、(address, hex_bytes, text) のリストを返します。"""
        pass
