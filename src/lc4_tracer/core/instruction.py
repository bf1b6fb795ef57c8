# lc4_tracer/core/instruction.py
"""
デコード済み命令の表現

デコーダが一度だけ生成し、実行エンジンが消費するタグ付きバリアント型を定義します。
デコードと実行を直交させ、それぞれを独立してテストできるようにします。
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional


# @intent:responsibility LC-4の全命令（擬似命令と未知命令を含む）を列挙します。
# @intent:rationale 値はEnum内で一意である必要があるため、表示用ニーモニックは別表（MNEMONICS）で管理します。
class Opcode(Enum):
    NOP = "NOP"
    BRN = "BRN"
    BRZ = "BRZ"
    BRP = "BRP"
    BRNZ = "BRNZ"
    BRNP = "BRNP"
    BRZP = "BRZP"
    BRNZP = "BRNZP"
    ADD = "ADD"
    MUL = "MUL"
    SUB = "SUB"
    DIV = "DIV"
    ADDI = "ADDI"
    MOD = "MOD"
    AND = "AND"
    NOT = "NOT"
    OR = "OR"
    XOR = "XOR"
    ANDI = "ANDI"
    CMP = "CMP"
    CMPU = "CMPU"
    CMPI = "CMPI"
    CMPIU = "CMPIU"
    LDR = "LDR"
    STR = "STR"
    CONST = "CONST"
    HICONST = "HICONST"
    SLL = "SLL"
    SRA = "SRA"
    SRL = "SRL"
    JSR = "JSR"
    JSRR = "JSRR"
    JMP = "JMP"
    JMPR = "JMPR"
    TRAP = "TRAP"
    RTI = "RTI"
    # 擬似命令
    RET = "RET"
    LEA = "LEA"
    LC = "LC"
    UNKNOWN = "UNKNOWN"


# @intent:constant NZPフラグのビット位置（PSRの下位3ビットと同じ配置）。
NZP_N = 0b100
NZP_Z = 0b010
NZP_P = 0b001

# @intent:map 分岐命令と、その分岐条件となるNZPマスクの対応表。
BRANCH_MASKS: Dict[Opcode, int] = {
    Opcode.BRN: NZP_N,
    Opcode.BRZ: NZP_Z,
    Opcode.BRP: NZP_P,
    Opcode.BRNZ: NZP_N | NZP_Z,
    Opcode.BRNP: NZP_N | NZP_P,
    Opcode.BRZP: NZP_Z | NZP_P,
    Opcode.BRNZP: NZP_N | NZP_Z | NZP_P,
}

# @intent:map 表示用ニーモニック。即値形式のADD/ANDはアセンブリ上の綴りに合わせます。
MNEMONICS: Dict[Opcode, str] = {
    Opcode.BRN: "BRn",
    Opcode.BRZ: "BRz",
    Opcode.BRP: "BRp",
    Opcode.BRNZ: "BRnz",
    Opcode.BRNP: "BRnp",
    Opcode.BRZP: "BRzp",
    Opcode.BRNZP: "BRnzp",
    Opcode.ADDI: "ADD",
    Opcode.ANDI: "AND",
}

# 即値をハッシュ記号付き10進で表示する命令
_SIGNED_IMM_OPS = {
    Opcode.ADDI, Opcode.ANDI, Opcode.CMPI, Opcode.CMPIU, Opcode.LDR, Opcode.STR,
    Opcode.CONST, Opcode.SLL, Opcode.SRA, Opcode.SRL,
}


# @intent:responsibility デコード済みの1命令を不変に保持します。
@dataclass(frozen=True)
class Instruction:
    """
    デコード済み命令。opcodeがバリアントのタグとなり、使用するフィールドはopcodeごとに異なります。
    immはフィールドが符号付きであれば符号拡張済みのPython整数、符号なしであればそのままの値です。
    """
    opcode: Opcode
    address: int
    word: int
    rd: Optional[int] = None
    rs: Optional[int] = None
    rt: Optional[int] = None
    imm: Optional[int] = None
    label: Optional[str] = None  # 擬似命令（LEA/LC）のみ

    @property
    def mnemonic(self) -> str:
        return MNEMONICS.get(self.opcode, self.opcode.value)

    # @intent:responsibility 逆アセンブル表示用のオペランド文字列リストを生成します。
    @property
    def operands(self) -> List[str]:
        op = self.opcode
        # STRはアセンブリ上 "STR Rt, Rs, #imm" の順で表記する
        regs = (self.rt, self.rs) if op == Opcode.STR else (self.rd, self.rs, self.rt)
        ops = [f"R{reg}" for reg in regs if reg is not None]
        if op in (Opcode.LEA, Opcode.LC):
            ops.append(self.label or f"x{self.imm:04X}")
        elif op in BRANCH_MASKS or op == Opcode.JMP:
            target = (self.address + 1 + self.imm) & 0xFFFF
            ops.append(f"x{target:04X}")
        elif op == Opcode.JSR:
            target = (self.address & 0x8000) | ((self.imm & 0x7FF) << 4)
            ops.append(f"x{target:04X}")
        elif op in (Opcode.HICONST, Opcode.TRAP):
            ops.append(f"x{self.imm:02X}")
        elif op == Opcode.UNKNOWN:
            ops.append(f"x{self.word:04X}")
        elif op in _SIGNED_IMM_OPS:
            ops.append(f"#{self.imm}")
        return ops

    def __str__(self) -> str:
        if self.operands:
            return f"{self.mnemonic} {', '.join(self.operands)}"
        return self.mnemonic
