import yaml
from typing import Any, Dict, List

from sm83_core.core.errors import ConfigError
from .models import SystemConfig, MemoryRegion, MemoryImage, CpuInitialState

# @intent:constant 初期状態で指定可能な8bitレジスタ名です。
REGISTER_NAMES = ("a", "f", "b", "c", "d", "e", "h", "l")

# @intent:responsibility YAML形式のシステム構成を読み込み、SystemConfigに変換します。
class ConfigLoader:
    def load_from_file(self, path: str) -> SystemConfig:
        with open(path, 'r') as f:
            text = f.read()
        return self.load_from_string(text)

    def load_from_string(self, text: str) -> SystemConfig:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML: {e}") from e
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError("Configuration root must be a mapping.")
        return self._parse_config(data)

    def _parse_config(self, data: Dict[str, Any]) -> SystemConfig:
        architecture = data.get("architecture", "SM83")
        if str(architecture).upper() != "SM83":
            raise ConfigError(f"Unsupported architecture: {architecture}")

        memory_map = []
        for region_data in self._as_sequence(data.get("memory_map"), "memory_map"):
            region_data = self._as_mapping(region_data, "memory_map entry")
            start = self._parse_int(region_data.get("start"))
            end = self._parse_int(region_data.get("end"))
            if not 0 <= start <= end <= 0xFFFF:
                raise ConfigError(f"Invalid memory region: {start:#06x}-{end:#06x}")
            memory_map.append(MemoryRegion(
                start=start,
                end=end,
                type=str(region_data.get("type", "RAM")).upper(),
                label=region_data.get("label", "")
            ))

        initial_state_data = self._as_mapping(data.get("initial_state"), "initial_state")
        registers = {}
        for name, value in self._as_mapping(initial_state_data.get("registers"), "registers").items():
            key = str(name).lower()
            if key not in REGISTER_NAMES:
                raise ConfigError(f"Unknown register: {name}")
            registers[key] = self._parse_byte(value)
        initial_state = CpuInitialState(
            pc=self._parse_word(initial_state_data.get("pc", 0)),
            sp=self._parse_word(initial_state_data.get("sp", 0)),
            ime=bool(initial_state_data.get("ime", False)),
            registers=registers
        )

        images = []
        for image_data in self._as_sequence(data.get("images"), "images"):
            image_data = self._as_mapping(image_data, "images entry")
            images.append(MemoryImage(
                address=self._parse_word(image_data.get("address", 0)),
                data=bytes(self._parse_byte(b) for b in self._as_list(image_data.get("data", [])))
            ))

        return SystemConfig(memory_map=memory_map, initial_state=initial_state, images=images)

    # @intent:utility_function 省略された項目は空のマッピングとして扱い、それ以外の型はConfigErrorにします。
    def _as_mapping(self, value: Any, what: str) -> Dict[Any, Any]:
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise ConfigError(f"{what} must be a mapping, got {type(value).__name__}.")
        return value

    def _as_sequence(self, value: Any, what: str) -> List[Any]:
        if value is None:
            return []
        if not isinstance(value, list):
            raise ConfigError(f"{what} must be a list, got {type(value).__name__}.")
        return value

    def _as_list(self, value: Any) -> List[Any]:
        if isinstance(value, str):
            # "3E 10 76" 形式の16進ダンプ
            return [f"0x{token}" for token in value.split()]
        if isinstance(value, list):
            return value
        raise ConfigError(f"Invalid image data: {value!r}")

    # @intent:utility_function 整数、"0x"形式、"$"形式の16進文字列を整数に変換します。
    def _parse_int(self, value: Any) -> int:
        if isinstance(value, bool):
            raise ConfigError(f"Invalid integer format: {value}")
        if isinstance(value, int):
            return value
        if isinstance(value, str):
            text = value.strip()
            try:
                if text.lower().startswith("0x"):
                    return int(text, 16)
                if text.startswith("$"):
                    return int(text[1:], 16)
                return int(text)
            except ValueError as e:
                raise ConfigError(f"Invalid integer format: {value}") from e
        raise ConfigError(f"Invalid integer format: {value}")

    def _parse_byte(self, value: Any) -> int:
        result = self._parse_int(value)
        if not 0 <= result <= 0xFF:
            raise ConfigError(f"Value {value} is not an 8-bit value.")
        return result

    def _parse_word(self, value: Any) -> int:
        result = self._parse_int(value)
        if not 0 <= result <= 0xFFFF:
            raise ConfigError(f"Value {value} is not a 16-bit value.")
        return result
