# src/lc4_tracer/arch/lc4/decoder.py
"""
LC-4 Instruction Decoder

メモリ上の命令ワードをInstructionへ変換します。
デコードは純粋な関数であり、メモリを変更せず、バスアクセスログも汚しません（peekを使用）。
擬似命令（RET/LEA/LC）はワードからは生成されないため、ここで明示的に構築します。
"""
from typing import Mapping

from lc4_tracer.arch.lc4.instructions import decode_word
from lc4_tracer.arch.lc4.instructions.control import RETURN_REGISTER
from lc4_tracer.common.errors import UnknownLabelError
from lc4_tracer.core.instruction import Instruction, Opcode
from lc4_tracer.transport.bus import Bus

# JMPR R7 の命令ワード（RETの機械語表現）
RET_WORD = 0xC000 | (RETURN_REGISTER << 6)

# @intent:responsibility 指定アドレスの命令ワードをログなしで読み出し、デコードします。
# @intent:post-condition 同じアドレスの同じワードは常に等しいInstructionになります。
def decode(bus: Bus, address: int) -> Instruction:
    return decode_word(bus.peek(address), address)

# @intent:responsibility RET（JMPR R7の別名）を構築します。実行結果はJMPR R7と同一です。
def make_ret(address: int) -> Instruction:
    return Instruction(Opcode.RET, address, RET_WORD, rs=RETURN_REGISTER)

# @intent:responsibility LEA/LC擬似命令を構築し、ラベルを一度だけアドレスへ解決します。
# @intent:pre-condition opcodeはLEAまたはLCである必要があります。
def resolve_pseudo(opcode: Opcode, rd: int, label: str, labels: Mapping[str, int], address: int) -> Instruction:
    """
    ラベルのアドレスをimmに格納したInstructionを返します。
    ラベルが未定義であればUnknownLabelErrorを送出します。
    """
    if opcode not in (Opcode.LEA, Opcode.LC):
        raise ValueError(f"{opcode.name} is not a label pseudo-instruction.")
    if not 0 <= rd < 8:
        raise ValueError(f"Register index {rd} out of range.")
    if label not in labels:
        raise UnknownLabelError(label)
    return Instruction(opcode, address, 0, rd=rd, imm=labels[label] & 0xFFFF, label=label)
