# src/lc4_tracer/arch/lc4/instructions/maps.py
"""
命令グループ/オペコードと命令実装のマッピング定義。
"""
from lc4_tracer.core.instruction import Opcode
from . import load
from . import alu
from . import control

# @intent:map 主オペコード（ビット15-12）からデコード関数へのマッピングテーブル。
# 0011, 1011, 1110 は未定義グループのため含みません。
DECODE_MAP = {
    0b0000: control.decode_branch,
    0b0001: alu.decode_arith,
    0b0010: alu.decode_compare,
    0b0100: control.decode_jsr,
    0b0101: alu.decode_logic,
    0b0110: load.decode_ldr,
    0b0111: load.decode_str,
    0b1000: control.decode_rti,
    0b1001: load.decode_const,
    0b1010: alu.decode_shift,
    0b1100: control.decode_jmp,
    0b1101: load.decode_hiconst,
    0b1111: control.decode_trap,
}

# @intent:map Opcodeから実行関数へのマッピングテーブル。全てのOpcodeを網羅します。
EXECUTE_MAP = {
    # Control
    Opcode.NOP: control.execute_nop,
    Opcode.BRN: control.execute_branch,
    Opcode.BRZ: control.execute_branch,
    Opcode.BRP: control.execute_branch,
    Opcode.BRNZ: control.execute_branch,
    Opcode.BRNP: control.execute_branch,
    Opcode.BRZP: control.execute_branch,
    Opcode.BRNZP: control.execute_branch,
    Opcode.JSR: control.execute_jsr,
    Opcode.JSRR: control.execute_jsrr,
    Opcode.JMP: control.execute_jmp,
    Opcode.JMPR: control.execute_jmpr,
    Opcode.RET: control.execute_ret,
    Opcode.TRAP: control.execute_trap,
    Opcode.RTI: control.execute_rti,
    Opcode.UNKNOWN: control.execute_unknown,

    # ALU
    Opcode.ADD: alu.execute_add,
    Opcode.MUL: alu.execute_mul,
    Opcode.SUB: alu.execute_sub,
    Opcode.DIV: alu.execute_div,
    Opcode.ADDI: alu.execute_addi,
    Opcode.MOD: alu.execute_mod,
    Opcode.AND: alu.execute_and,
    Opcode.NOT: alu.execute_not,
    Opcode.OR: alu.execute_or,
    Opcode.XOR: alu.execute_xor,
    Opcode.ANDI: alu.execute_andi,
    Opcode.CMP: alu.execute_cmp,
    Opcode.CMPU: alu.execute_cmpu,
    Opcode.CMPI: alu.execute_cmpi,
    Opcode.CMPIU: alu.execute_cmpiu,
    Opcode.SLL: alu.execute_sll,
    Opcode.SRA: alu.execute_sra,
    Opcode.SRL: alu.execute_srl,

    # Load/Store
    Opcode.LDR: load.execute_ldr,
    Opcode.STR: load.execute_str,
    Opcode.CONST: load.execute_const,
    Opcode.HICONST: load.execute_hiconst,
    Opcode.LEA: load.execute_lea,
    Opcode.LC: load.execute_lc,
}
