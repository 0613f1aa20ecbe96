# sm83_core/core/snapshot.py
"""
実行状態の不変スナップショット

1命令の実行結果（実行後の状態、命令、クロック、バスアクティビティ）を記録します。
トレースフックとデバッガへの情報提供に用いられます。
"""
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from sm83_core.core.state import CpuState
from sm83_core.transport.bus import BusAccess

# @intent:responsibility 実行された命令の詳細を記録します。
@dataclass(frozen=True)
class Operation:
    opcode_hex: str  # 例: "C3", "CB 7C"
    mnemonic: str  # 例: "JP a16"
    operands: List[str] = field(default_factory=list)  # 例: ["$1234"]
    operand_bytes: List[int] = field(default_factory=list)
    cycles: Tuple[int, int] = (0, 0)  # (M, T)
    length: int = 1

# @intent:responsibility 実行に関するメタデータを記録します。
@dataclass(frozen=True)
class Metadata:
    clock: Tuple[int, int]  # 実行後の累計 (M, T)
    symbol_info: Optional[str] = None  # 例: "main_loop: JP $0150"

# @intent:responsibility ある一時点におけるCPUとバスの状態を不変に記録します。
@dataclass(frozen=True)
class Snapshot:
    """
    stateはスナップショット生成時のコピーであり、以降のCPU実行の影響を受けません。
    """
    state: CpuState
    operation: Operation
    metadata: Metadata
    bus_activity: List[BusAccess] = field(default_factory=list)
