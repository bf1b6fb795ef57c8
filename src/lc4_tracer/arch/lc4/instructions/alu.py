# src/lc4_tracer/arch/lc4/instructions/alu.py
"""
算術論理演算命令（算術、論理、比較、シフト）の実装。
"""
import logging

from lc4_tracer.arch.lc4.instructions.base import ExecutionEnv, write_result
from lc4_tracer.arch.lc4.state import Lc4CpuState
from lc4_tracer.common.bits import field, signed_field, to_signed
from lc4_tracer.common.errors import ExecutionFault, FaultKind
from lc4_tracer.core.instruction import Instruction, Opcode
from lc4_tracer.transport.bus import Bus

logger = logging.getLogger(__name__)

_ARITH_OPS = (Opcode.ADD, Opcode.MUL, Opcode.SUB, Opcode.DIV)
_LOGIC_OPS = (Opcode.AND, Opcode.NOT, Opcode.OR, Opcode.XOR)
_COMPARE_OPS = (Opcode.CMP, Opcode.CMPU, Opcode.CMPI, Opcode.CMPIU)
_SHIFT_OPS = (Opcode.SLL, Opcode.SRA, Opcode.SRL)

# --- デコード ---

# @intent:responsibility 0001グループ（ADD/MUL/SUB/DIV/ADDI）をデコードします。
def decode_arith(word: int, address: int) -> Instruction:
    rd, rs = field(word, 11, 9), field(word, 8, 6)
    if field(word, 5, 5):
        return Instruction(Opcode.ADDI, address, word, rd=rd, rs=rs, imm=signed_field(word, 4, 0))
    return Instruction(_ARITH_OPS[field(word, 4, 3)], address, word, rd=rd, rs=rs, rt=field(word, 2, 0))

# @intent:responsibility 0101グループ（AND/NOT/OR/XOR/ANDI）をデコードします。
def decode_logic(word: int, address: int) -> Instruction:
    rd, rs = field(word, 11, 9), field(word, 8, 6)
    if field(word, 5, 5):
        return Instruction(Opcode.ANDI, address, word, rd=rd, rs=rs, imm=signed_field(word, 4, 0))
    opcode = _LOGIC_OPS[field(word, 4, 3)]
    if opcode == Opcode.NOT:
        return Instruction(opcode, address, word, rd=rd, rs=rs)
    return Instruction(opcode, address, word, rd=rd, rs=rs, rt=field(word, 2, 0))

# @intent:responsibility 0010グループ（CMP/CMPU/CMPI/CMPIU）をデコードします。
def decode_compare(word: int, address: int) -> Instruction:
    rs = field(word, 11, 9)
    opcode = _COMPARE_OPS[field(word, 8, 7)]
    if opcode == Opcode.CMPI:
        return Instruction(opcode, address, word, rs=rs, imm=signed_field(word, 6, 0))
    if opcode == Opcode.CMPIU:
        return Instruction(opcode, address, word, rs=rs, imm=field(word, 6, 0))
    return Instruction(opcode, address, word, rs=rs, rt=field(word, 2, 0))

# @intent:responsibility 1010グループ（SLL/SRA/SRL/MOD）をデコードします。シフト量は符号なし4ビットです。
def decode_shift(word: int, address: int) -> Instruction:
    rd, rs = field(word, 11, 9), field(word, 8, 6)
    selector = field(word, 5, 4)
    if selector == 3:
        return Instruction(Opcode.MOD, address, word, rd=rd, rs=rs, rt=field(word, 2, 0))
    return Instruction(_SHIFT_OPS[selector], address, word, rd=rd, rs=rs, imm=field(word, 3, 0))

# --- 算術 ---

def execute_add(state: Lc4CpuState, bus: Bus, instr: Instruction, env: ExecutionEnv) -> None:
    write_result(state, instr.rd, state.registers[instr.rs] + state.registers[instr.rt])

def execute_addi(state: Lc4CpuState, bus: Bus, instr: Instruction, env: ExecutionEnv) -> None:
    write_result(state, instr.rd, state.registers[instr.rs] + instr.imm)

def execute_sub(state: Lc4CpuState, bus: Bus, instr: Instruction, env: ExecutionEnv) -> None:
    write_result(state, instr.rd, state.registers[instr.rs] - state.registers[instr.rt])

def execute_mul(state: Lc4CpuState, bus: Bus, instr: Instruction, env: ExecutionEnv) -> None:
    product = to_signed(state.registers[instr.rs]) * to_signed(state.registers[instr.rt])
    write_result(state, instr.rd, product)

# @intent:responsibility 符号付き除算・剰余の共通処理。商はゼロ方向へ切り捨て、剰余は被除数の符号に従います。
# @intent:rationale ゼロ除算は結果0として扱い、フォルトにしません（厳格モードを除く）。
def _divide(state: Lc4CpuState, instr: Instruction, env: ExecutionEnv, modulo: bool) -> None:
    dividend = to_signed(state.registers[instr.rs])
    divisor = to_signed(state.registers[instr.rt])
    if divisor == 0:
        if env.policy.fault_on_divide_by_zero:
            raise ExecutionFault(FaultKind.DIVIDE_BY_ZERO, instr.address, f"{instr} divides by zero")
        logger.warning("%s at %#06x divides by zero; result forced to 0", instr.mnemonic, instr.address)
        write_result(state, instr.rd, 0)
        return
    quotient = abs(dividend) // abs(divisor)
    if (dividend < 0) != (divisor < 0):
        quotient = -quotient
    if modulo:
        write_result(state, instr.rd, dividend - quotient * divisor)
    else:
        write_result(state, instr.rd, quotient)

def execute_div(state: Lc4CpuState, bus: Bus, instr: Instruction, env: ExecutionEnv) -> None:
    _divide(state, instr, env, modulo=False)

def execute_mod(state: Lc4CpuState, bus: Bus, instr: Instruction, env: ExecutionEnv) -> None:
    _divide(state, instr, env, modulo=True)

# --- 論理 ---

def execute_and(state: Lc4CpuState, bus: Bus, instr: Instruction, env: ExecutionEnv) -> None:
    write_result(state, instr.rd, state.registers[instr.rs] & state.registers[instr.rt])

def execute_andi(state: Lc4CpuState, bus: Bus, instr: Instruction, env: ExecutionEnv) -> None:
    write_result(state, instr.rd, state.registers[instr.rs] & (instr.imm & 0xFFFF))

def execute_not(state: Lc4CpuState, bus: Bus, instr: Instruction, env: ExecutionEnv) -> None:
    write_result(state, instr.rd, ~state.registers[instr.rs])

def execute_or(state: Lc4CpuState, bus: Bus, instr: Instruction, env: ExecutionEnv) -> None:
    write_result(state, instr.rd, state.registers[instr.rs] | state.registers[instr.rt])

def execute_xor(state: Lc4CpuState, bus: Bus, instr: Instruction, env: ExecutionEnv) -> None:
    write_result(state, instr.rd, state.registers[instr.rs] ^ state.registers[instr.rt])

# --- 比較 ---
# 比較命令は差分を保存せず、差分の符号からNZPのみを更新します。

def execute_cmp(state: Lc4CpuState, bus: Bus, instr: Instruction, env: ExecutionEnv) -> None:
    state.set_nzp(to_signed(state.registers[instr.rs]) - to_signed(state.registers[instr.rt]))

def execute_cmpu(state: Lc4CpuState, bus: Bus, instr: Instruction, env: ExecutionEnv) -> None:
    state.set_nzp(state.registers[instr.rs] - state.registers[instr.rt])

def execute_cmpi(state: Lc4CpuState, bus: Bus, instr: Instruction, env: ExecutionEnv) -> None:
    state.set_nzp(to_signed(state.registers[instr.rs]) - instr.imm)

def execute_cmpiu(state: Lc4CpuState, bus: Bus, instr: Instruction, env: ExecutionEnv) -> None:
    state.set_nzp(state.registers[instr.rs] - instr.imm)

# --- シフト ---

def execute_sll(state: Lc4CpuState, bus: Bus, instr: Instruction, env: ExecutionEnv) -> None:
    write_result(state, instr.rd, state.registers[instr.rs] << instr.imm)

def execute_sra(state: Lc4CpuState, bus: Bus, instr: Instruction, env: ExecutionEnv) -> None:
    write_result(state, instr.rd, to_signed(state.registers[instr.rs]) >> instr.imm)

def execute_srl(state: Lc4CpuState, bus: Bus, instr: Instruction, env: ExecutionEnv) -> None:
    write_result(state, instr.rd, state.registers[instr.rs] >> instr.imm)
