# lc4_tracer/transport/bus.py
"""
Transport Layer (共通バス)

このモジュールは、システム全体のワードアドレス空間を抽象化し、
読み書きアクセスを適切なデバイスに委譲する責務を負います。
LC-4はワード単位でアドレス付けされるため、1アドレスは16ビットの値を保持します。
"""
from abc import ABC, abstractmethod
from typing import List, Tuple
from dataclasses import dataclass
from enum import Enum

WORD_MASK = 0xFFFF

# @intent:responsibility バスアクセスを記録するためのタイプを定義します。
class BusAccessType(Enum):
    READ = "READ"
    WRITE = "WRITE"

# @intent:responsibility 個々のバスアクセス操作を記録します。
@dataclass(frozen=True) # 不変データ構造
class BusAccess:
    """
    バス上で行われた単一のアクセス（読み込みまたは書き込み）を記録するデータクラス。
    """
    address: int
    data: int # 16bit value
    access_type: BusAccessType

# @intent:responsibility バスの抽象デバイスインターフェースを定義します。
class Device(ABC):
    """
    バスに接続されるデバイスの抽象基底クラス。
    全てのデバイスはread、write、clearのインターフェースを実装する必要があります。
    """
    # @intent:responsibility 指定されたアドレスから16bitのデータを読み出す責務を負います。
    # @intent:pre-condition アドレスはデバイスの有効範囲内である必要があります。
    @abstractmethod
    def read(self, address: int) -> int:
        """
        指定されたアドレスから16bitのデータを読み出します。
        アドレスはデバイス内でのオフセットとして扱われます。
        """
        pass

    # @intent:responsibility 指定されたアドレスに16bitのデータを書き込みます。
    @abstractmethod
    def write(self, address: int, data: int) -> None:
        pass

    # @intent:responsibility デバイスの内容を全てゼロに戻します。
    @abstractmethod
    def clear(self) -> None:
        pass

# @intent:responsibility 基本的なRAMデバイスの機能を提供します。
class RAM(Device):
    """
    16ビットワードを保持するRAMデバイス。
    """
    # @intent:responsibility 指定されたワード数のメモリ領域を初期化します。
    # @intent:pre-condition sizeは正の整数である必要があります。
    def __init__(self, size: int):
        if not isinstance(size, int) or size <= 0:
            raise ValueError("RAM size must be a positive integer.")
        self._memory = [0] * size
        self._size = size

    def read(self, address: int) -> int:
        if not 0 <= address < self._size:
            raise IndexError(f"Address {address} out of bounds for RAM of size {self._size}.")
        return self._memory[address]

    # @intent:pre-condition アドレスはRAMの有効範囲内であり、データは16bit値である必要があります。
    def write(self, address: int, data: int) -> None:
        if not 0 <= address < self._size:
            raise IndexError(f"Address {address} out of bounds for RAM of size {self._size}.")
        if not 0 <= data <= WORD_MASK:
            raise ValueError(f"Data {data} is not a 16-bit value.")
        self._memory[address] = data

    def clear(self) -> None:
        self._memory = [0] * self._size

    # @intent:responsibility RAMのサイズ（ワード数）を返します。
    def get_size(self) -> int:
        return self._size

# @intent:responsibility メモリアドレス空間を管理し、デバイスへのアクセスをディスパッチする共通バス。
# @intent:rationale バスの全てのアクセスを記録し、Snapshotに含めることでシステムの観測可能性を高めます。
class Bus:
    """
    ワードアドレス空間を管理し、デバイスへのアクセスをディスパッチする共通バス。
    特権チェックは行いません。書き込みの可否は transport.memory_map が判定し、
    実行エンジンがその結果に従ってwriteを呼び出します。
    """
    def __init__(self):
        # メモリマップ: (start_address, end_address, device) のタプルリスト
        self._memory_map: List[Tuple[int, int, Device]] = []
        self._bus_activity_log: List[BusAccess] = []

    def _log_access(self, address: int, data: int, access_type: BusAccessType) -> None:
        self._bus_activity_log.append(BusAccess(address=address, data=data, access_type=access_type))

    # @intent:responsibility 記録されたバスアクティビティログを取得し、クリアします。
    def get_and_clear_activity_log(self) -> List[BusAccess]:
        """
        現在のバスアクティビティログを返し、内部ログをクリアします。
        """
        log = self._bus_activity_log
        self._bus_activity_log = []
        return log

    # @intent:responsibility 指定されたアドレス範囲にデバイスを登録します。
    # @intent:pre-condition start_address <= end_addressかつ非負であり、deviceはDeviceのインスタンスである必要があります。
    # @intent:rationale アドレス範囲の重複チェックは行いません。領域の整合性は MemoryMap が検証します。
    def register_device(self, start_address: int, end_address: int, device: Device) -> None:
        """
        指定されたアドレス範囲にデバイスを登録します。
        RAMを登録する場合、そのサイズは指定されたアドレス範囲と一致する必要があります。
        """
        if not (0 <= start_address <= end_address):
            raise ValueError("Invalid address range: start_address must be <= end_address and non-negative.")
        if not isinstance(device, Device):
            raise TypeError("Device must be an instance of a class derived from Device.")

        if isinstance(device, RAM):
            expected_size = end_address - start_address + 1
            if device.get_size() != expected_size:
                raise ValueError(
                    f"Registered {type(device).__name__} device size ({device.get_size()} words) does not match "
                    f"the specified address range size ({expected_size} words)."
                )

        self._memory_map.append((start_address, end_address, device))

    # @intent:post-condition デバイスが見つからなかった場合、IndexErrorを発生させます。
    def _find_device(self, address: int) -> Tuple[Device, int]:
        for start, end, device in self._memory_map:
            if start <= address <= end:
                return device, address - start
        raise IndexError(f"Address {address:#06x} not mapped to any device.")

    # @intent:responsibility 指定されたアドレスから16bitのデータを読み出します（ログ記録あり）。
    def read(self, address: int) -> int:
        device, offset = self._find_device(address)
        data = device.read(offset)
        self._log_access(address, data, BusAccessType.READ)
        return data

    # @intent:responsibility ログを記録せずに指定されたアドレスからデータを読み出します。
    def peek(self, address: int) -> int:
        """
        指定されたアドレスから16bitのデータを読み出します（ログ記録なし）。
        デコーダ、逆アセンブラ、シェルなどのインスペクタ用。
        """
        device, offset = self._find_device(address)
        return device.read(offset)

    # @intent:responsibility 指定されたアドレスに16bitのデータを書き込みます（ログ記録あり）。
    def write(self, address: int, data: int) -> None:
        device, offset = self._find_device(address)
        device.write(offset, data)
        self._log_access(address, data, BusAccessType.WRITE)

    # @intent:responsibility ローダー専用の書き込み口です。ログを残しません。
    def load(self, address: int, data: int) -> None:
        device, offset = self._find_device(address)
        device.write(offset, data)

    # @intent:responsibility 登録済みの全デバイスの内容をゼロクリアします。
    def clear(self) -> None:
        for _, _, device in self._memory_map:
            device.clear()
        self._bus_activity_log = []
