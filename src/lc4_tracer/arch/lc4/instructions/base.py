# src/lc4_tracer/arch/lc4/instructions/base.py
"""
LC-4命令実装用の共通ユーティリティ。
"""
from dataclasses import dataclass, field

from lc4_tracer.arch.lc4.state import Lc4CpuState
from lc4_tracer.common.errors import ExecutionFault, FaultKind
from lc4_tracer.core.instruction import Instruction
from lc4_tracer.transport.memory_map import MemoryMap

# @intent:responsibility 寛容な異常（ゼロ除算・保護領域への書き込み）をフォルトに格上げするかを定義します。
@dataclass(frozen=True)
class FaultPolicy:
    fault_on_divide_by_zero: bool = False
    fault_on_protected_write: bool = False

# @intent:responsibility 命令実行時に参照する、CPU状態以外の環境（領域表とフォルト方針）をまとめます。
@dataclass(frozen=True)
class ExecutionEnv:
    memory_map: MemoryMap = field(default_factory=MemoryMap.default)
    policy: FaultPolicy = field(default_factory=FaultPolicy)

# @intent:utility_function PC計算の結果がアドレス空間内にあることを検査します。
def checked_pc(value: int, instruction: Instruction) -> int:
    if not 0 <= value <= 0xFFFF:
        raise ExecutionFault(
            FaultKind.PC_OVERFLOW, instruction.address,
            f"{instruction} computed PC {value:#x} outside address space",
        )
    return value

# @intent:utility_function レジスタへ結果を書き込み、NZPフラグを更新します。
def write_result(state: Lc4CpuState, rd: int, value: int) -> None:
    word = value & 0xFFFF
    state.registers[rd] = word
    state.set_nzp_word(word)
