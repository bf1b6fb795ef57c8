# src/lc4_tracer/arch/lc4/instructions/control.py
"""
制御命令（分岐、ジャンプ、サブルーチン、トラップ）の実装。

CPUは実行前にPCを次の命令（PC+1）へ進めています。
ここでのstate.pcは常に「PC+1」を指している点に注意してください。
"""
import logging

from lc4_tracer.arch.lc4.instructions.base import ExecutionEnv, checked_pc
from lc4_tracer.arch.lc4.state import Lc4CpuState
from lc4_tracer.common.bits import field, signed_field
from lc4_tracer.core.instruction import BRANCH_MASKS, Instruction, Opcode
from lc4_tracer.transport.bus import Bus

logger = logging.getLogger(__name__)

RETURN_REGISTER = 7
TRAP_BASE = 0x8000

# @intent:map NZPフィールド（ビット11-9）から分岐命令への対応表。0はNOP。
_BRANCH_BY_NZP = {mask: opcode for opcode, mask in BRANCH_MASKS.items()}

# --- デコード ---

# @intent:responsibility 0000グループ（NOP/BRxxx）をデコードします。
def decode_branch(word: int, address: int) -> Instruction:
    nzp = field(word, 11, 9)
    if nzp == 0:
        return Instruction(Opcode.NOP, address, word)
    return Instruction(_BRANCH_BY_NZP[nzp], address, word, imm=signed_field(word, 8, 0))

# @intent:responsibility 0100グループ（JSR/JSRR）をデコードします。
def decode_jsr(word: int, address: int) -> Instruction:
    if field(word, 11, 11):
        return Instruction(Opcode.JSR, address, word, imm=signed_field(word, 10, 0))
    return Instruction(Opcode.JSRR, address, word, rs=field(word, 8, 6))

# @intent:responsibility 1100グループ（JMP/JMPR）をデコードします。
def decode_jmp(word: int, address: int) -> Instruction:
    if field(word, 11, 11):
        return Instruction(Opcode.JMP, address, word, imm=signed_field(word, 10, 0))
    return Instruction(Opcode.JMPR, address, word, rs=field(word, 8, 6))

def decode_rti(word: int, address: int) -> Instruction:
    return Instruction(Opcode.RTI, address, word)

def decode_trap(word: int, address: int) -> Instruction:
    return Instruction(Opcode.TRAP, address, word, imm=field(word, 7, 0))

def decode_unknown(word: int, address: int) -> Instruction:
    return Instruction(Opcode.UNKNOWN, address, word)

# --- 実行 ---

def execute_nop(state: Lc4CpuState, bus: Bus, instr: Instruction, env: ExecutionEnv) -> None:
    pass

# @intent:responsibility 現在のNZPが条件マスクと重なる場合に、PC+1からの相対分岐を行います。
def execute_branch(state: Lc4CpuState, bus: Bus, instr: Instruction, env: ExecutionEnv) -> None:
    if state.nzp & BRANCH_MASKS[instr.opcode]:
        state.pc = checked_pc(state.pc + instr.imm, instr)

# @intent:responsibility JSRを実行します。飛び先はPCの最上位ビットと11ビットフィールドの4ビット左シフトで決まります。
def execute_jsr(state: Lc4CpuState, bus: Bus, instr: Instruction, env: ExecutionEnv) -> None:
    target = (instr.address & 0x8000) | ((instr.imm & 0x7FF) << 4)
    state.registers[RETURN_REGISTER] = state.pc
    state.set_nzp_word(state.pc)
    state.pc = target

# @intent:responsibility JSRRを実行します。RsがR7の場合に備え、飛び先を先に読み出します。
def execute_jsrr(state: Lc4CpuState, bus: Bus, instr: Instruction, env: ExecutionEnv) -> None:
    target = state.registers[instr.rs]
    state.registers[RETURN_REGISTER] = state.pc
    state.set_nzp_word(state.pc)
    state.pc = target

def execute_jmp(state: Lc4CpuState, bus: Bus, instr: Instruction, env: ExecutionEnv) -> None:
    state.pc = checked_pc(state.pc + instr.imm, instr)

def execute_jmpr(state: Lc4CpuState, bus: Bus, instr: Instruction, env: ExecutionEnv) -> None:
    state.pc = state.registers[instr.rs]

# @intent:responsibility RET（JMPR R7の別名）を実行します。
def execute_ret(state: Lc4CpuState, bus: Bus, instr: Instruction, env: ExecutionEnv) -> None:
    state.pc = state.registers[RETURN_REGISTER]

# @intent:responsibility TRAPを実行し、戻り先をR7に保存して特権モードでOSのトラップベクタへ移ります。
def execute_trap(state: Lc4CpuState, bus: Bus, instr: Instruction, env: ExecutionEnv) -> None:
    state.registers[RETURN_REGISTER] = state.pc
    state.set_nzp_word(state.pc)
    state.privilege = True
    state.pc = TRAP_BASE | instr.imm

# @intent:responsibility RTIを実行し、R7からPCを復元して特権ビットを下ろします。
def execute_rti(state: Lc4CpuState, bus: Bus, instr: Instruction, env: ExecutionEnv) -> None:
    state.pc = state.registers[RETURN_REGISTER]
    state.privilege = False

# @intent:responsibility 未知の命令はNOPとして扱い、警告を記録します。
def execute_unknown(state: Lc4CpuState, bus: Bus, instr: Instruction, env: ExecutionEnv) -> None:
    logger.warning("Unrecognized instruction word %#06x at %#06x treated as NOP", instr.word, instr.address)
