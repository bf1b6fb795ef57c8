# src/lc4_tracer/arch/lc4/instructions/__init__.py
"""
LC-4命令セット実装パッケージ。
"""
from lc4_tracer.transport.bus import Bus
from lc4_tracer.core.instruction import Instruction, Opcode
from lc4_tracer.arch.lc4.state import Lc4CpuState
from .base import ExecutionEnv, FaultPolicy
from .control import decode_unknown
from .maps import DECODE_MAP, EXECUTE_MAP

_missing = [op.name for op in Opcode if op not in EXECUTE_MAP]
if _missing:
    raise ImportError(f"EXECUTE_MAP has no entry for: {', '.join(_missing)}")

# @intent:responsibility 16ビットの命令ワードをデコードします。
def decode_word(word: int, address: int) -> Instruction:
    """
    主オペコード（ビット15-12）でデコード関数を選び、Instructionを返します。
    未定義のグループはUNKNOWNになり、例外は送出しません。
    """
    decoder = DECODE_MAP.get((word >> 12) & 0xF, decode_unknown)
    return decoder(word & 0xFFFF, address)

# @intent:responsibility デコードされたLC-4命令を実行します。
def execute_instruction(instruction: Instruction, state: Lc4CpuState, bus: Bus, env: ExecutionEnv) -> None:
    """
    デコードされたLC-4命令を実行し、CPUの状態を変更します。
    """
    EXECUTE_MAP[instruction.opcode](state, bus, instruction, env)

__all__ = ["decode_word", "execute_instruction", "ExecutionEnv", "FaultPolicy"]
