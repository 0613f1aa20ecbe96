# tests/core/test_snapshot.py
"""
sm83_core.core.snapshotモジュールの単体テスト。
"""
import pytest
from dataclasses import FrozenInstanceError

from sm83_core.core.state import CpuState
from sm83_core.core.snapshot import Operation, Metadata, Snapshot
from sm83_core.transport.bus import BusAccess, BusAccessType

# @intent:test_suite スナップショット関連のデータクラスが不変であることを検証します。

class TestSnapshot:
    def test_operation_defaults(self):
        op = Operation(opcode_hex="00", mnemonic="NOP")
        assert op.operands == []
        assert op.operand_bytes == []
        assert op.cycles == (0, 0)
        assert op.length == 1

    def test_snapshot_holds_values(self):
        access = BusAccess(address=0x10, data=0x3E, access_type=BusAccessType.READ)
        snapshot = Snapshot(
            state=CpuState(pc=0x0002, sp=0xFFFE),
            operation=Operation(opcode_hex="3E", mnemonic="LD A,d8", operands=["$10"], cycles=(2, 8), length=2),
            metadata=Metadata(clock=(2, 8), symbol_info="LD A,d8 $10"),
            bus_activity=[access],
        )
        assert snapshot.state.pc == 0x0002
        assert snapshot.operation.cycles == (2, 8)
        assert snapshot.metadata.clock == (2, 8)
        assert snapshot.bus_activity == [access]

    def test_snapshot_is_frozen(self):
        snapshot = Snapshot(
            state=CpuState(),
            operation=Operation(opcode_hex="00", mnemonic="NOP"),
            metadata=Metadata(clock=(1, 4)),
        )
        with pytest.raises(FrozenInstanceError):
            snapshot.operation = Operation(opcode_hex="76", mnemonic="HALT")
