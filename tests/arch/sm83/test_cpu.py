# tests/arch/sm83/test_cpu.py
"""
sm83_core.arch.sm83.cpuモジュールの単体テスト。
Sm83Cpuのフェッチ、デコード、実行サイクルとクロック計数を検証します。
"""
import logging

import pytest

from sm83_core.transport.bus import Bus, RAM, MemoryDevice, BusAccessType
from sm83_core.arch.sm83 import Sm83Cpu, Sm83CpuState
from sm83_core.arch.sm83.state import Z_FLAG, N_FLAG, H_FLAG, C_FLAG
from sm83_core.arch.sm83.instructions.maps import UNPREFIXED_TABLE, CB_TABLE, ILLEGAL_OPCODES
from sm83_core.core.errors import UnmappedOpcodeError

# @intent:test_suite SM83 CPUの命令サイクル全体（代表的なシナリオ、全オペコードのディスパッチ、停止状態）を検証します。

class RecordingMemory(MemoryDevice):
    """全ての書き込みを記録する辞書ベースのメモリ。"""
    def __init__(self, contents=None):
        self.cells = dict(contents or {})
        self.writes = []

    def read_byte(self, address: int) -> int:
        return self.cells.get(address, 0x00)

    def write_byte(self, address: int, value: int) -> None:
        self.writes.append((address, value))
        self.cells[address] = value


def load_program(bus: Bus, address: int, program) -> None:
    for offset, value in enumerate(program):
        bus.load(address + offset, value)


class TestSm83Cpu:
    @pytest.fixture
    def setup_cpu(self):
        bus = Bus()
        ram = RAM(0x10000)
        bus.register_device(0x0000, 0xFFFF, ram)
        cpu = Sm83Cpu(bus)
        return cpu, bus

    def test_initial_state(self, setup_cpu):
        cpu, _ = setup_cpu
        state = cpu.get_state()
        assert isinstance(state, Sm83CpuState)
        assert state.pc == 0x0000
        assert cpu.clock.as_tuple() == (0, 0)

    # @intent:test_case_scenario LD A,d8 はAに即値をロードし、PCを2進め、(2, 8)を消費します。
    def test_ld_a_d8(self, setup_cpu):
        cpu, bus = setup_cpu
        load_program(bus, 0x0000, [0x3E, 0x10])
        cpu.get_state().f = Z_FLAG | C_FLAG
        cpu.step()
        state = cpu.get_state()
        assert state.a == 0x10
        assert state.f == Z_FLAG | C_FLAG
        assert state.pc == 0x0002
        assert cpu.clock.as_tuple() == (2, 8)
        assert cpu.last_instruction_clock.as_tuple() == (0, 0)

    # @intent:test_case_scenario ADD A,d8 でA=0x05に0xFBを加えるとA=0、Z/H/Cがセットされます。
    def test_add_a_d8_sets_flags(self, setup_cpu):
        cpu, bus = setup_cpu
        load_program(bus, 0x0000, [0xC6, 0xFB])
        cpu.get_state().a = 0x05
        cpu.step()
        state = cpu.get_state()
        assert state.a == 0x00
        assert state.f == Z_FLAG | H_FLAG | C_FLAG
        assert cpu.clock.as_tuple() == (2, 8)

    def test_add_a_b_overflow(self, setup_cpu):
        cpu, bus = setup_cpu
        load_program(bus, 0x0000, [0x80])
        state = cpu.get_state()
        state.a = 0xFF
        state.b = 0x01
        cpu.step()
        assert state.a == 0x00
        assert state.flag_z and state.flag_h and state.flag_c
        assert not state.flag_n
        assert cpu.clock.as_tuple() == (1, 4)

    # @intent:test_case_scenario LD (HL),A はメモリデバイスへ1回だけ書き込みます。
    def test_ld_hl_a_writes_through_memory_device(self):
        memory = RecordingMemory({0x0000: 0x77})
        cpu = Sm83Cpu(memory)
        state = cpu.get_state()
        state.hl = 0x0010
        state.a = 0x42
        cpu.step()
        assert memory.writes == [(0x0010, 0x42)]
        assert state.pc == 0x0001
        assert cpu.clock.as_tuple() == (2, 8)

    # @intent:test_case_error 未定義オペコードは例外となり、PCはオペコードの直後を指し、クロックは変化しません。
    def test_unmapped_opcode_raises(self, setup_cpu, caplog):
        cpu, bus = setup_cpu
        load_program(bus, 0x0000, [0xD3])
        with caplog.at_level(logging.ERROR, logger="sm83_core.arch.sm83.cpu"):
            with pytest.raises(UnmappedOpcodeError) as excinfo:
                cpu.step()
        assert excinfo.value.opcode == 0xD3
        assert excinfo.value.address == 0x0000
        assert cpu.get_state().pc == 0x0001
        assert cpu.clock.as_tuple() == (0, 0)
        assert "Unmapped opcode D3 at 0x0000" in caplog.text

    # @intent:test_case_flags 以前のフラグが残っていても、命令後のFは演算結果だけで決まります。
    @pytest.mark.parametrize("garbage", [0x00, 0xF0, 0xA0, 0x50])
    def test_flags_fully_overwritten(self, setup_cpu, garbage):
        cpu, bus = setup_cpu
        load_program(bus, 0x0000, [0xAF, 0xC6, 0x01])  # XOR A; ADD A,$01
        state = cpu.get_state()
        state.a = 0x37
        state.f = garbage
        cpu.step()
        assert state.f == Z_FLAG
        state.f = garbage
        cpu.step()
        assert state.a == 0x01
        assert state.f == 0x00

    def test_flag_low_nibble_stays_zero(self, setup_cpu):
        cpu, bus = setup_cpu
        load_program(bus, 0x0000, [0x3C, 0x3D, 0x37, 0x3F, 0x2F, 0x27])
        for _ in range(6):
            cpu.step()
            assert cpu.get_state().f & 0x0F == 0

    def test_register_and_flag_maps(self, setup_cpu):
        cpu, _ = setup_cpu
        state = cpu.get_state()
        state.hl = 0xBEEF
        state.f = Z_FLAG | C_FLAG
        registers = cpu.get_register_map()
        assert registers["HL"] == 0xBEEF
        assert registers["H"] == 0xBE
        assert cpu.get_flag_state() == {"Z": True, "N": False, "H": False, "C": True}

    # @intent:test_case_trace トレースフックに整形済みのオペランドとバスアクティビティが渡されます。
    def test_trace_hook_operation(self, setup_cpu):
        cpu, bus = setup_cpu
        load_program(bus, 0x0000, [0x3E, 0x10, 0xCB, 0x7F])
        snapshots = []
        cpu.set_trace_hook(snapshots.append)
        cpu.step()
        cpu.step()

        first, second = snapshots
        assert first.operation.opcode_hex == "3E"
        assert first.operation.mnemonic == "LD A,d8"
        assert first.operation.operands == ["$10"]
        assert first.operation.operand_bytes == [0x10]
        assert first.operation.cycles == (2, 8)
        assert first.metadata.symbol_info == "LD A,d8 $10"
        assert [a.address for a in first.bus_activity] == [0x0000, 0x0001]

        assert second.operation.opcode_hex == "CB 7F"
        assert second.operation.mnemonic == "BIT 7,A"
        assert second.metadata.clock == (4, 16)

    # @intent:test_case_trace 自身のオペランドを書き換える命令でも、フェッチ時のオペランドを報告します。
    def test_trace_reports_fetched_operands_after_self_overwrite(self, setup_cpu):
        cpu, bus = setup_cpu
        load_program(bus, 0x0000, [0xEA, 0x01, 0x00])  # LD ($0001),A
        cpu.get_state().a = 0x99
        snapshots = []
        cpu.set_trace_hook(snapshots.append)
        cpu.step()

        (snapshot,) = snapshots
        assert bus.peek(0x0001) == 0x99
        assert snapshot.operation.operand_bytes == [0x01, 0x00]
        assert snapshot.operation.operands == ["$0001"]
        assert snapshot.metadata.symbol_info == "LD (a16),A $0001"

    # @intent:test_case_halt HALT後はフェッチを行わず、PCを維持したまま(1, 4)ずつ消費します。
    def test_halt_idles(self, setup_cpu):
        cpu, bus = setup_cpu
        load_program(bus, 0x0000, [0x76, 0x3C])
        snapshots = []
        cpu.set_trace_hook(snapshots.append)
        cpu.step()
        assert cpu.get_state().halted
        assert cpu.get_state().pc == 0x0001

        cpu.step()
        cpu.step()
        assert cpu.get_state().pc == 0x0001
        assert cpu.get_state().a == 0x00
        assert cpu.clock.as_tuple() == (3, 12)
        assert snapshots[-1].operation.mnemonic == "HALT (suspended)"
        assert snapshots[-1].bus_activity == []

        cpu.get_state().halted = False
        cpu.step()
        assert cpu.get_state().a == 0x01

    def test_stop_consumes_two_bytes_and_suspends(self, setup_cpu):
        cpu, bus = setup_cpu
        load_program(bus, 0x0000, [0x10, 0x00])
        cpu.step()
        assert cpu.get_state().stopped
        assert cpu.get_state().pc == 0x0002
        cpu.step()
        assert cpu.get_state().pc == 0x0002
        assert cpu.clock.as_tuple() == (2, 8)

    def test_reset(self, setup_cpu):
        cpu, bus = setup_cpu
        load_program(bus, 0x0000, [0x3E, 0x10])
        cpu.step()
        cpu.reset()
        assert cpu.get_state().a == 0x00
        assert cpu.get_state().pc == 0x0000
        assert cpu.clock.as_tuple() == (0, 0)

    def test_disassemble(self, setup_cpu):
        cpu, bus = setup_cpu
        load_program(bus, 0x0100, [0x00, 0xC3, 0x50, 0x01])
        assert cpu.disassemble(0x0100, 4) == [
            (0x0100, "00", "NOP"),
            (0x0101, "C3 50 01", "JP $0150"),
        ]


class TestDispatch:
    """全オペコードに対するディスパッチの網羅性を検証します。"""

    PROGRAM_START = 0x0100

    def _run_one(self, program):
        bus = Bus()
        bus.register_device(0x0000, 0xFFFF, RAM(0x10000))
        load_program(bus, self.PROGRAM_START, program)
        cpu = Sm83Cpu(bus)
        state = cpu.get_state()
        state.pc = self.PROGRAM_START
        state.sp = 0xFFF0
        state.hl = 0xC000
        cpu.step()
        return cpu

    # @intent:test_case_dispatch 定義済みの全オペコードが実行でき、テーブル記載のコストを消費します。
    @pytest.mark.parametrize("opcode", [op for op in range(256) if op not in ILLEGAL_OPCODES and op != 0xCB])
    def test_every_unprefixed_opcode(self, opcode):
        instruction = UNPREFIXED_TABLE[opcode]
        cpu = self._run_one([opcode, 0x00, 0x00])
        costs = [instruction.cycles]
        if instruction.cycles_taken is not None:
            costs.append(instruction.cycles_taken)
        assert cpu.clock.as_tuple() in costs
        assert cpu.last_instruction_clock.as_tuple() == (0, 0)

        if not instruction.mnemonic.startswith(("JP", "JR", "CALL", "RET", "RST")):
            assert cpu.get_state().pc == self.PROGRAM_START + instruction.length

    @pytest.mark.parametrize("opcode", range(256))
    def test_every_cb_opcode(self, opcode):
        cpu = self._run_one([0xCB, opcode])
        assert cpu.clock.as_tuple() == CB_TABLE[opcode].cycles
        assert cpu.get_state().pc == self.PROGRAM_START + 2

    @pytest.mark.parametrize("opcode", sorted(ILLEGAL_OPCODES))
    def test_every_illegal_opcode_raises(self, opcode):
        bus = Bus()
        bus.register_device(0x0000, 0xFFFF, RAM(0x10000))
        bus.load(0x0000, opcode)
        cpu = Sm83Cpu(bus)
        with pytest.raises(UnmappedOpcodeError):
            cpu.step()
        assert cpu.get_state().pc == 0x0001
