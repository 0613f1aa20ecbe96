import logging
from typing import Tuple

from sm83_core.core.errors import ConfigError
from sm83_core.transport.bus import Bus, Device, RAM, ROM
from sm83_core.arch.sm83.cpu import Sm83Cpu
from .models import SystemConfig, CpuInitialState, MemoryImage

logger = logging.getLogger(__name__)

# @intent:responsibility システム構成（Config）に基づいて、Bus、Device、CPUを生成・接続し、初期状態を適用します。
class SystemBuilder:
    def build_system(self, config: SystemConfig) -> Tuple[Sm83Cpu, Bus]:
        bus = Bus()

        for region in config.memory_map:
            size = region.end - region.start + 1
            bus.register_device(region.start, region.end, self._create_device(region.type, size, region.start))

        for image in config.images:
            self._load_image(bus, image)

        cpu = Sm83Cpu(bus)
        self.apply_initial_state(cpu, config.initial_state)
        return cpu, bus

    def _create_device(self, device_type: str, size: int, start: int) -> Device:
        if device_type == "RAM":
            return RAM(size)
        if device_type == "ROM":
            return ROM(size)
        logger.warning("Unknown device type '%s' at %04X, defaulting to RAM", device_type, start)
        return RAM(size)

    # @intent:responsibility イメージをログを残さずにバスへ配置します（ROM領域にも書き込めます）。
    def _load_image(self, bus: Bus, image: MemoryImage) -> None:
        for offset, value in enumerate(image.data):
            address = (image.address + offset) & 0xFFFF
            try:
                bus.load(address, value)
            except IndexError as e:
                raise ConfigError(f"Image byte at {address:#06x} is outside the memory map.") from e

    # @intent:responsibility CPUをリセットし、Configで定義された初期状態を適用します。
    def apply_initial_state(self, cpu: Sm83Cpu, config_state: CpuInitialState) -> None:
        cpu.reset()
        state = cpu.get_state()
        state.pc = config_state.pc
        state.sp = config_state.sp
        state.ime = config_state.ime
        for reg_name, value in config_state.registers.items():
            setattr(state, reg_name, value)
        # Fの下位4bitは常に0
        state.f &= 0xF0
