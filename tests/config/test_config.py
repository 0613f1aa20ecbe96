# tests/config/test_config.py
"""
sm83_core.configパッケージ（YAMLローダーとシステムビルダー）の単体テスト。
"""
import logging

import pytest

from sm83_core.config.loader import ConfigLoader
from sm83_core.config.builder import SystemBuilder
from sm83_core.config.models import SystemConfig, MemoryRegion, CpuInitialState, MemoryImage
from sm83_core.core.errors import ConfigError
from sm83_core.arch.sm83 import Sm83Cpu

# @intent:test_suite 構成ファイルの解析と、構成からのシステム組み立てを検証します。

SAMPLE_CONFIG = """
architecture: SM83
memory_map:
  - start: 0x0000
    end: 0x7FFF
    type: ROM
    label: cartridge
  - start: "$C000"
    end: "$DFFF"
    type: RAM
    label: wram
  - start: 0xFF00
    end: 0xFFFF
    type: RAM
    label: io_hram
initial_state:
  pc: "0x0100"
  sp: 0xFFFE
  ime: true
  registers:
    A: 0x01
    f: 0xB5
images:
  - address: 0x0100
    data: [0x3E, 0x10, 0x76]
  - address: "$0150"
    data: "C3 00 01"
"""


class TestConfigLoader:
    def test_load_from_string(self):
        config = ConfigLoader().load_from_string(SAMPLE_CONFIG)
        assert config.memory_map[0] == MemoryRegion(start=0x0000, end=0x7FFF, type="ROM", label="cartridge")
        assert config.memory_map[1].start == 0xC000
        assert config.initial_state == CpuInitialState(pc=0x0100, sp=0xFFFE, ime=True, registers={"a": 0x01, "f": 0xB5})
        assert config.images == [
            MemoryImage(address=0x0100, data=bytes([0x3E, 0x10, 0x76])),
            MemoryImage(address=0x0150, data=bytes([0xC3, 0x00, 0x01])),
        ]

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "system.yaml"
        path.write_text(SAMPLE_CONFIG)
        config = ConfigLoader().load_from_file(str(path))
        assert len(config.memory_map) == 3

    def test_empty_document(self):
        assert ConfigLoader().load_from_string("") == SystemConfig()

    def test_omitted_sections_default_to_empty(self):
        config = ConfigLoader().load_from_string("memory_map:\ninitial_state:\nimages:\n")
        assert config == SystemConfig()

    @pytest.mark.parametrize("text", [
        "architecture: Z80",
        "memory_map: [{start: 0x2000, end: 0x1000}]",
        "memory_map: [{start: zzz, end: 0x1000}]",
        "initial_state: {pc: 0x10000}",
        "initial_state: {registers: {ix: 1}}",
        "initial_state: {registers: {a: 0x100}}",
        "images: [{address: 0, data: 5}]",
        "memory_map: [5]",
        "memory_map: {start: 0, end: 1}",
        "initial_state: 5",
        "initial_state: {registers: [a]}",
        "images: [7]",
        "images: {address: 0}",
        "- just\n- a list",
        "key: [unclosed",
    ])
    def test_invalid_documents(self, text):
        with pytest.raises(ConfigError):
            ConfigLoader().load_from_string(text)

    def test_config_error_is_value_error(self):
        with pytest.raises(ValueError):
            ConfigLoader().load_from_string("architecture: MOS6502")


class TestSystemBuilder:
    def test_build_system(self):
        config = ConfigLoader().load_from_string(SAMPLE_CONFIG)
        cpu, bus = SystemBuilder().build_system(config)

        assert isinstance(cpu, Sm83Cpu)
        state = cpu.get_state()
        assert state.pc == 0x0100
        assert state.sp == 0xFFFE
        assert state.a == 0x01
        assert state.f == 0xB0
        assert state.ime
        assert bus.peek(0x0150) == 0xC3
        assert bus.get_and_clear_activity_log() == []

        # ROM領域へのイメージ配置後、プログラムを実行できる
        cpu.step()
        cpu.step()
        assert state.a == 0x10
        assert state.halted

        bus.write_byte(0x0100, 0x00)
        assert bus.peek(0x0100) == 0x3E

    def test_unknown_device_type_warns(self, caplog):
        config = SystemConfig(memory_map=[MemoryRegion(start=0x0000, end=0x00FF, type="MMIO")])
        with caplog.at_level(logging.WARNING, logger="sm83_core.config.builder"):
            _, bus = SystemBuilder().build_system(config)
        assert "Unknown device type 'MMIO'" in caplog.text
        bus.write_byte(0x0010, 0x12)
        assert bus.peek(0x0010) == 0x12

    def test_image_outside_memory_map(self):
        config = SystemConfig(
            memory_map=[MemoryRegion(start=0x0000, end=0x00FF, type="RAM")],
            images=[MemoryImage(address=0x00FF, data=bytes([0x00, 0x00]))],
        )
        with pytest.raises(ConfigError):
            SystemBuilder().build_system(config)
