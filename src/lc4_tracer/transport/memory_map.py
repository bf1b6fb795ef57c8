# lc4_tracer/transport/memory_map.py
"""
メモリ領域と特権モデル

アドレス空間の区画（ユーザーコード/ユーザーデータ/OSコード/OSデータ）と、
実行・書き込みのアクセス可否を判定する純粋な述語を提供します。
読み込みは常に許可されます。
"""
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

ADDRESS_SPACE_END = 0xFFFF

# @intent:responsibility 領域ごとのアクセス規則を定義します。
class AccessRule(Enum):
    ALWAYS = "always"
    PRIVILEGED = "privileged"
    NEVER = "never"

    def allows(self, privilege: bool) -> bool:
        if self is AccessRule.ALWAYS:
            return True
        if self is AccessRule.PRIVILEGED:
            return privilege
        return False

# @intent:responsibility 1つのアドレス領域とそのアクセス規則を保持します。
@dataclass(frozen=True)
class Region:
    name: str
    start: int
    end: int
    execute: AccessRule
    write: AccessRule

    def contains(self, address: int) -> bool:
        return self.start <= address <= self.end

# @intent:responsibility アドレス空間全体の区画表を保持し、アクセス可否を判定します。
# @intent:rationale 区画表は構築後に変化しません。検証はコンストラクタで一度だけ行います。
class MemoryMap:
    """
    64Kワードのアドレス空間を隙間なく覆う領域リスト。
    """
    def __init__(self, regions: Sequence[Region]):
        self._regions: List[Region] = sorted(regions, key=lambda r: r.start)
        self._validate()

    # @intent:responsibility LC-4標準の4領域からなる区画表を返します。
    @classmethod
    def default(cls) -> "MemoryMap":
        return cls([
            Region("USER_CODE", 0x0000, 0x1FFF, AccessRule.ALWAYS, AccessRule.NEVER),
            Region("USER_DATA", 0x2000, 0x7FFF, AccessRule.ALWAYS, AccessRule.ALWAYS),
            Region("OS_CODE", 0x8000, 0x9FFF, AccessRule.PRIVILEGED, AccessRule.NEVER),
            Region("OS_DATA", 0xA000, 0xFFFF, AccessRule.ALWAYS, AccessRule.PRIVILEGED),
        ])

    def _validate(self) -> None:
        if not self._regions:
            raise ValueError("Memory map must contain at least one region.")
        expected_start = 0x0000
        for region in self._regions:
            if region.start > region.end:
                raise ValueError(f"Region {region.name} has start {region.start:#06x} after end {region.end:#06x}.")
            if region.start != expected_start:
                raise ValueError(
                    f"Region {region.name} starts at {region.start:#06x}, expected {expected_start:#06x} "
                    "(regions must be contiguous and non-overlapping)."
                )
            expected_start = region.end + 1
        if expected_start != ADDRESS_SPACE_END + 1:
            raise ValueError(f"Memory map ends at {expected_start - 1:#06x}, expected {ADDRESS_SPACE_END:#06x}.")

    @property
    def regions(self) -> List[Region]:
        return list(self._regions)

    def region_for(self, address: int) -> Optional[Region]:
        for region in self._regions:
            if region.contains(address):
                return region
        return None

    # @intent:responsibility 指定アドレスの命令を現在の特権状態で実行できるか判定します。
    def check_execute(self, pc: int, privilege: bool) -> bool:
        region = self.region_for(pc)
        return region is not None and region.execute.allows(privilege)

    # @intent:responsibility 指定アドレスへのデータ書き込みが現在の特権状態で許されるか判定します。
    def check_write(self, address: int, privilege: bool) -> bool:
        region = self.region_for(address)
        return region is not None and region.write.allows(privilege)
