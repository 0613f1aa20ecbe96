# sm83_core/debugger/debugger.py
"""
デバッガモジュール。

コアエンジンの実行を制御し、ユーザーが指定した条件（ブレークポイント）で
実行を中断させる責務を負います。CPUのトレースフックを通じてSnapshotを受け取り、
実行履歴として保持することで逆実行（step_back）を可能にします。
"""
from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Optional
import logging

from sm83_core.core.cpu import AbstractCpu, TraceHook
from sm83_core.core.snapshot import Snapshot
from sm83_core.core.state import CpuState
from sm83_core.transport.bus import Bus, BusAccessType

logger = logging.getLogger(__name__)

# @intent:responsibility ブレークポイントの条件タイプを定義します。
class BreakpointConditionType(Enum):
    PC_MATCH = "PC_MATCH"               # プログラムカウンタが特定のアドレスに一致
    MEMORY_READ = "MEMORY_READ"         # 特定のアドレスが読み込まれた
    MEMORY_WRITE = "MEMORY_WRITE"       # 特定のアドレスに書き込まれた
    REGISTER_VALUE = "REGISTER_VALUE"   # 特定のレジスタが特定の値になった
    REGISTER_CHANGE = "REGISTER_CHANGE" # 特定のレジスタの値が変化した

# @intent:responsibility ブレークポイントをトリガーする条件を定義します。
@dataclass(frozen=True)
class BreakpointCondition:
    condition_type: BreakpointConditionType
    value: Optional[int] = None           # PC_MATCH, REGISTER_VALUEで使用
    address: Optional[int] = None         # MEMORY_READ, MEMORY_WRITEで使用
    register_name: Optional[str] = None   # REGISTER_VALUE, REGISTER_CHANGEで使用（"a", "hl", "sp" など）
    enabled: bool = True

# @intent:responsibility run()が停止した理由を表します。
class StopReason(Enum):
    BREAKPOINT = "BREAKPOINT"
    HALT = "HALT"              # HALTまたはSTOPにより停止状態に入った
    STEP_LIMIT = "STEP_LIMIT"
    INTERRUPTED = "INTERRUPTED"  # stop()による中断

# @intent:responsibility コアエンジンの実行制御とブレークポイント管理を行います。
class Debugger:
    """
    CPUの実行を制御し、ブレークポイントの管理を行うクラス。
    生成時にCPUのトレースフックを自身に差し替えます。既に設定されていたフックは
    Snapshotごとに引き続き呼び出されます。
    """
    def __init__(self, cpu: AbstractCpu):
        self._cpu = cpu
        self._breakpoints: List[BreakpointCondition] = []
        self._running: bool = False
        self._previous_state: CpuState = replace(self._cpu.get_state())
        self._last_snapshot: Optional[Snapshot] = None
        self._pending_snapshot: Optional[Snapshot] = None
        self._history: List[Snapshot] = []
        # 履歴が尽きた時に戻るための初期状態
        self._initial_state: CpuState = replace(self._cpu.get_state())
        self._initial_clock = self._cpu.clock.as_tuple()
        self._chained_hook: Optional[TraceHook] = self._cpu.get_trace_hook()
        self._cpu.set_trace_hook(self._capture)

    def _capture(self, snapshot: Snapshot) -> None:
        self._pending_snapshot = snapshot
        if self._chained_hook is not None:
            self._chained_hook(snapshot)

    def add_breakpoint(self, condition: BreakpointCondition) -> None:
        if condition not in self._breakpoints:
            self._breakpoints.append(condition)

    def update_breakpoint(self, old_condition: BreakpointCondition, new_condition: BreakpointCondition) -> None:
        if old_condition in self._breakpoints:
            idx = self._breakpoints.index(old_condition)
            self._breakpoints[idx] = new_condition

    def remove_breakpoint(self, condition: BreakpointCondition) -> None:
        if condition in self._breakpoints:
            self._breakpoints.remove(condition)

    def get_breakpoints(self) -> List[BreakpointCondition]:
        return list(self._breakpoints)

    def get_history(self) -> List[Snapshot]:
        return list(self._history)

    def get_last_snapshot(self) -> Optional[Snapshot]:
        return self._last_snapshot

    def _pc_breakpoint_at(self, pc: int) -> bool:
        for bp in self._breakpoints:
            if bp.enabled and bp.condition_type == BreakpointConditionType.PC_MATCH and bp.value == pc:
                return True
        return False

    # @intent:responsibility Snapshotに基づいてPC_MATCH以外のブレークポイントをチェックします。
    def _check_other_breakpoints(self, snapshot: Snapshot) -> bool:
        current_state = snapshot.state

        for bp in self._breakpoints:
            if not bp.enabled:
                continue

            if bp.condition_type == BreakpointConditionType.MEMORY_READ:
                for access in snapshot.bus_activity:
                    if access.access_type == BusAccessType.READ and access.address == bp.address:
                        return True
            elif bp.condition_type == BreakpointConditionType.MEMORY_WRITE:
                for access in snapshot.bus_activity:
                    if access.access_type == BusAccessType.WRITE and access.address == bp.address:
                        return True
            elif bp.condition_type == BreakpointConditionType.REGISTER_VALUE:
                if bp.register_name and hasattr(current_state, bp.register_name):
                    if getattr(current_state, bp.register_name) == bp.value:
                        return True
            elif bp.condition_type == BreakpointConditionType.REGISTER_CHANGE:
                name = bp.register_name
                if name and hasattr(current_state, name) and hasattr(self._previous_state, name):
                    if getattr(current_state, name) != getattr(self._previous_state, name):
                        return True
        return False

    # @intent:responsibility CPUを1命令分実行し、その結果のSnapshotを返します。
    def step_instruction(self) -> Snapshot:
        self._previous_state = replace(self._cpu.get_state())
        self._pending_snapshot = None
        self._cpu.step()
        snapshot = self._pending_snapshot
        if snapshot is None:
            raise RuntimeError("CPU trace hook was replaced; the debugger can no longer observe execution.")
        self._last_snapshot = snapshot
        self._history.append(snapshot)
        return snapshot

    # @intent:responsibility 実行履歴を1つ戻り、CPUとメモリの状態を復元します。
    # @intent:return 復元後の直近のSnapshot。履歴が尽きて初期状態に戻った場合はNone。
    def step_back(self) -> Optional[Snapshot]:
        if not self._history:
            return None

        snapshot_to_revert = self._history.pop()

        # 書き込みを逆順に取り消す
        memory = self._cpu.memory
        for access in reversed(snapshot_to_revert.bus_activity):
            if access.access_type == BusAccessType.WRITE and access.previous_data is not None:
                if isinstance(memory, Bus):
                    memory.load(access.address, access.previous_data)
                else:
                    memory.write_byte(access.address, access.previous_data)
        memory.get_and_clear_activity_log()

        if self._history:
            previous_snapshot = self._history[-1]
            self._cpu.restore_state(previous_snapshot.state)
            self._cpu.clock.set(*previous_snapshot.metadata.clock)
            self._last_snapshot = previous_snapshot
            return previous_snapshot

        self._cpu.restore_state(self._initial_state)
        self._cpu.clock.set(*self._initial_clock)
        self._last_snapshot = None
        return None

    # @intent:responsibility ブレークポイント、停止状態、またはステップ上限に達するまで実行を継続します。
    # @intent:rationale 現在のPCにブレークポイントがある場合でも、最初の1命令は実行して先へ進みます。
    def run(self, max_steps: Optional[int] = None) -> StopReason:
        self._running = True
        steps = 0
        try:
            while self._running:
                if max_steps is not None and steps >= max_steps:
                    return StopReason.STEP_LIMIT

                current_pc = self._cpu.get_state().pc
                if steps > 0 and self._pc_breakpoint_at(current_pc):
                    logger.info("Breakpoint hit at PC: %#06x", current_pc)
                    return StopReason.BREAKPOINT

                snapshot = self.step_instruction()
                steps += 1

                if getattr(snapshot.state, "halted", False) or getattr(snapshot.state, "stopped", False):
                    logger.info("CPU suspended at PC: %#06x", snapshot.state.pc)
                    return StopReason.HALT

                if self._check_other_breakpoints(snapshot):
                    logger.info("Breakpoint hit at PC: %#06x", snapshot.state.pc)
                    return StopReason.BREAKPOINT
            return StopReason.INTERRUPTED
        finally:
            self._running = False

    def stop(self) -> None:
        self._running = False
