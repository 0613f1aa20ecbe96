from dataclasses import dataclass, field
from typing import Dict, List

@dataclass
class MemoryRegion:
    start: int
    end: int
    type: str  # "RAM", "ROM"
    label: str = ""

# @intent:data_structure メモリに配置するプログラムイメージ（インラインのバイト列）です。
@dataclass
class MemoryImage:
    address: int
    data: bytes = b""

@dataclass
class CpuInitialState:
    pc: int = 0x0000
    sp: int = 0x0000
    ime: bool = False
    registers: Dict[str, int] = field(default_factory=dict)

@dataclass
class SystemConfig:
    memory_map: List[MemoryRegion] = field(default_factory=list)
    initial_state: CpuInitialState = field(default_factory=CpuInitialState)
    images: List[MemoryImage] = field(default_factory=list)
