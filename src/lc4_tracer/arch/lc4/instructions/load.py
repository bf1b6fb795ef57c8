# src/lc4_tracer/arch/lc4/instructions/load.py
"""
ロード/ストア命令と定数ロード命令（擬似命令LEA/LCを含む）の実装。
"""
import logging

from lc4_tracer.arch.lc4.instructions.base import ExecutionEnv, write_result
from lc4_tracer.arch.lc4.state import Lc4CpuState
from lc4_tracer.common.bits import field, signed_field
from lc4_tracer.common.errors import ExecutionFault, FaultKind
from lc4_tracer.core.instruction import Instruction, Opcode
from lc4_tracer.transport.bus import Bus

logger = logging.getLogger(__name__)

# --- デコード ---

def decode_ldr(word: int, address: int) -> Instruction:
    return Instruction(Opcode.LDR, address, word, rd=field(word, 11, 9), rs=field(word, 8, 6),
                       imm=signed_field(word, 5, 0))

# @intent:responsibility STRをデコードします。格納元のレジスタ（ビット11-9）はrtに入ります。
def decode_str(word: int, address: int) -> Instruction:
    return Instruction(Opcode.STR, address, word, rt=field(word, 11, 9), rs=field(word, 8, 6),
                       imm=signed_field(word, 5, 0))

def decode_const(word: int, address: int) -> Instruction:
    return Instruction(Opcode.CONST, address, word, rd=field(word, 11, 9), imm=signed_field(word, 8, 0))

def decode_hiconst(word: int, address: int) -> Instruction:
    return Instruction(Opcode.HICONST, address, word, rd=field(word, 11, 9), imm=field(word, 7, 0))

# --- 実行 ---

# @intent:responsibility LDRを実行します。読み込みは特権に関係なく常に許可されます。
def execute_ldr(state: Lc4CpuState, bus: Bus, instr: Instruction, env: ExecutionEnv) -> None:
    address = (state.registers[instr.rs] + instr.imm) & 0xFFFF
    write_result(state, instr.rd, bus.read(address))

# @intent:responsibility STRを実行します。唯一のメモリ書き込み経路であり、必ず領域表の検査を通します。
# @intent:rationale 許可されない書き込みは、既定ではフォルトにせず何もしません（厳格モードを除く）。
def execute_str(state: Lc4CpuState, bus: Bus, instr: Instruction, env: ExecutionEnv) -> None:
    address = (state.registers[instr.rs] + instr.imm) & 0xFFFF
    if not env.memory_map.check_write(address, state.privilege):
        if env.policy.fault_on_protected_write:
            raise ExecutionFault(FaultKind.PROTECTED_WRITE, instr.address,
                                 f"write to {address:#06x} not permitted")
        logger.warning("STR at %#06x to protected address %#06x ignored (privilege=%s)",
                       instr.address, address, state.privilege)
        return
    bus.write(address, state.registers[instr.rt])

def execute_const(state: Lc4CpuState, bus: Bus, instr: Instruction, env: ExecutionEnv) -> None:
    write_result(state, instr.rd, instr.imm)

# @intent:responsibility HICONSTを実行し、下位バイトを保ったまま上位バイトを置き換えます。
def execute_hiconst(state: Lc4CpuState, bus: Bus, instr: Instruction, env: ExecutionEnv) -> None:
    write_result(state, instr.rd, (state.registers[instr.rd] & 0x00FF) | (instr.imm << 8))

# @intent:responsibility LEAを実行します。immには構築時に解決済みのラベルアドレスが入っています。
def execute_lea(state: Lc4CpuState, bus: Bus, instr: Instruction, env: ExecutionEnv) -> None:
    write_result(state, instr.rd, instr.imm)

# @intent:responsibility LCを実行し、ラベルのアドレスに格納されている値を読み込みます。
def execute_lc(state: Lc4CpuState, bus: Bus, instr: Instruction, env: ExecutionEnv) -> None:
    write_result(state, instr.rd, bus.read(instr.imm & 0xFFFF))
