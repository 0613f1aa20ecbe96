# sm83_core/transport/bus.py
"""
Transport Layer (メモリデバイスと共通バス)

このモジュールは、CPUコアが利用するメモリデバイスの契約（MemoryDevice）と、
64KBのアドレス空間にRAM/ROMデバイスを割り当てる共通バスを提供します。
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

ADDRESS_MASK = 0xFFFF

# @intent:responsibility バスアクセスを記録するためのタイプを定義します。
class BusAccessType(Enum):
    READ = "READ"
    WRITE = "WRITE"

# @intent:responsibility 個々のバスアクセス操作を記録します。
@dataclass(frozen=True)
class BusAccess:
    """
    バス上で行われた単一のアクセスを記録するデータクラス。
    WRITEの場合、previous_dataに書き込み前の値を保持します（デバッガのUndo用）。
    """
    address: int
    data: int
    access_type: BusAccessType
    previous_data: Optional[int] = None

# @intent:responsibility CPUコアが必要とするメモリデバイスの機能（バイト/ワード読み書き）を定義します。
# @intent:rationale コアはこのインターフェースへの非所有参照のみを持ちます。
class MemoryDevice(ABC):
    @abstractmethod
    def read_byte(self, address: int) -> int:
        """指定アドレスから8bit値を読み出します。"""
        pass

    @abstractmethod
    def write_byte(self, address: int, value: int) -> None:
        """指定アドレスへ8bit値を書き込みます。"""
        pass

    # @intent:responsibility リトルエンディアンで16bit値を読み出します（下位バイトが先のアドレス）。
    def read_word(self, address: int) -> int:
        low = self.read_byte(address & ADDRESS_MASK)
        high = self.read_byte((address + 1) & ADDRESS_MASK)
        return (high << 8) | low

    def write_word(self, address: int, value: int) -> None:
        self.write_byte(address & ADDRESS_MASK, value & 0xFF)
        self.write_byte((address + 1) & ADDRESS_MASK, (value >> 8) & 0xFF)

    # @intent:responsibility 副作用のない読み出し。逆アセンブラやトレースが使用します。
    def peek(self, address: int) -> int:
        return self.read_byte(address)

    # @intent:responsibility アクセスログを持たないデバイスでは常に空リストを返します。
    def get_and_clear_activity_log(self) -> List[BusAccess]:
        return []

# @intent:responsibility バスに接続されるデバイス（RAM/ROMなど）の抽象インターフェースを定義します。
class Device(ABC):
    """
    バスに接続されるデバイスの抽象基底クラス。
    アドレスはデバイス内でのオフセットとして扱われます。
    """
    @abstractmethod
    def read(self, address: int) -> int:
        pass

    @abstractmethod
    def write(self, address: int, data: int) -> None:
        pass

# @intent:responsibility 基本的なRAMデバイスの機能を提供します。
class RAM(Device):
    # @intent:pre-condition sizeは正の整数である必要があります。
    def __init__(self, size: int):
        if not isinstance(size, int) or size <= 0:
            raise ValueError("RAM size must be a positive integer.")
        self._memory = bytearray(size)
        self._size = size

    def read(self, address: int) -> int:
        if not 0 <= address < self._size:
            raise IndexError(f"Address {address} out of bounds for RAM of size {self._size}.")
        return self._memory[address]

    def write(self, address: int, data: int) -> None:
        if not 0 <= address < self._size:
            raise IndexError(f"Address {address} out of bounds for RAM of size {self._size}.")
        if not 0 <= data <= 0xFF:
            raise ValueError(f"Data {data} is not an 8-bit value.")
        self._memory[address] = data

    def get_size(self) -> int:
        return self._size

# @intent:responsibility 読み込み専用メモリ(ROM)の機能を提供します。
class ROM(RAM):
    """
    読み込み専用メモリデバイス。
    通常の書き込みは無視されますが、load_data経由で内容を初期化できます。
    """
    def write(self, address: int, data: int) -> None:
        if not 0 <= address < self._size:
            raise IndexError(f"Address {address} out of bounds for ROM of size {self._size}.")
        # Intentional: ROM writes are ignored as per hardware behavior.

    # @intent:responsibility ROMの内容を初期化するためのバックドアです。
    def load_data(self, address: int, data: int) -> None:
        super().write(address, data)

# @intent:responsibility アドレス空間を管理し、デバイスへのアクセスをディスパッチする共通バス。
# @intent:rationale 全てのアクセスを記録し、Snapshotに含めることでシステムの観測可能性を高めます。
class Bus(MemoryDevice):
    """
    16bitアドレス空間を管理し、登録されたデバイスへ読み書きを委譲するバス。
    0xFF00-0xFFFFのI/Oページもメモリマップドであり、通常の読み書きとして扱います。
    """
    def __init__(self):
        # メモリマップ: (start_address, end_address, device) のタプルリスト
        self._memory_map: List[Tuple[int, int, Device]] = []
        self._bus_activity_log: List[BusAccess] = []

    def _log_access(self, address: int, data: int, access_type: BusAccessType,
                    previous_data: Optional[int] = None) -> None:
        self._bus_activity_log.append(
            BusAccess(address=address, data=data, access_type=access_type, previous_data=previous_data)
        )

    # @intent:responsibility 記録されたバスアクティビティログを取得し、クリアします。
    def get_and_clear_activity_log(self) -> List[BusAccess]:
        log = self._bus_activity_log
        self._bus_activity_log = []
        return log

    # @intent:responsibility 指定されたアドレス範囲にデバイスを登録します。
    # @intent:pre-condition 0 <= start_address <= end_address <= 0xFFFF であり、deviceはDeviceのインスタンスである必要があります。
    # @intent:rationale アドレス範囲の重複チェックは行いません。先に登録されたデバイスが優先されます。
    def register_device(self, start_address: int, end_address: int, device: Device) -> None:
        if not (0 <= start_address <= end_address <= ADDRESS_MASK):
            raise ValueError("Invalid address range: start_address must be <= end_address and within 0x0000-0xFFFF.")
        if not isinstance(device, Device):
            raise TypeError("Device must be an instance of a class derived from Device.")

        if isinstance(device, RAM):
            expected_size = end_address - start_address + 1
            if device.get_size() != expected_size:
                raise ValueError(
                    f"Registered {type(device).__name__} device size ({device.get_size()} bytes) does not match "
                    f"the specified address range size ({expected_size} bytes)."
                )

        self._memory_map.append((start_address, end_address, device))

    # @intent:post-condition デバイスが見つからなかった場合、IndexErrorを発生させます。
    def _find_device(self, address: int) -> Tuple[Device, int]:
        for start, end, device in self._memory_map:
            if start <= address <= end:
                return device, address - start
        raise IndexError(f"Address {address:#06x} not mapped to any device.")

    def read_byte(self, address: int) -> int:
        device, offset = self._find_device(address)
        data = device.read(offset)
        self._log_access(address, data, BusAccessType.READ)
        return data

    # @intent:responsibility ログを記録せずに読み出します（逆アセンブラ、UI、トレース用）。
    def peek(self, address: int) -> int:
        device, offset = self._find_device(address)
        return device.read(offset)

    def write_byte(self, address: int, value: int) -> None:
        device, offset = self._find_device(address)
        previous = device.read(offset)
        device.write(offset, value)
        self._log_access(address, value, BusAccessType.WRITE, previous_data=previous)

    # @intent:responsibility ログを残さずにデバイスへ直接書き込みます。ROMにも書き込めます。
    # @intent:rationale プログラムイメージの配置やデバッガのUndoなど、CPU実行外の書き込みに使用します。
    def load(self, address: int, data: int) -> None:
        device, offset = self._find_device(address)
        if isinstance(device, ROM):
            device.load_data(offset, data)
        else:
            device.write(offset, data)
