# src/lc4_tracer/arch/lc4/disassembler.py
"""
LC-4 Disassembler

メモリ上の命令ワードを解析し、LC-4のアセンブリ言語（ニーモニック）に変換します。
デコーダを再利用しますが、読み出しはpeekで行うためバスアクセスログを汚しません。
"""
from typing import List, Optional, Mapping, Tuple

from lc4_tracer.arch.lc4.decoder import decode
from lc4_tracer.arch.lc4.instructions.control import RETURN_REGISTER
from lc4_tracer.core.instruction import Instruction, Opcode
from lc4_tracer.transport.bus import Bus

# @intent:responsibility 1命令を表示用の文字列に変換します。JMPR R7はRETとして表示します。
def format_instruction(instruction: Instruction) -> str:
    if instruction.opcode == Opcode.JMPR and instruction.rs == RETURN_REGISTER:
        return "RET"
    return str(instruction)

# @intent:responsibility 指定されたメモリ範囲を逆アセンブルし、表示用データを生成します。
def disassemble(bus: Bus, start_addr: int, length: int,
                labels: Optional[Mapping[int, str]] = None) -> List[Tuple[int, str, str]]:
    """
    指定された範囲のメモリを逆アセンブルします。
    labelsにアドレスからラベル名への対応を渡すと、該当行の先頭に "LABEL: " を付けます。

    Returns:
        List of (address, hex_word, mnemonic) tuples.
    """
    result = []
    for address in range(start_addr, min(start_addr + length, 0x10000)):
        instruction = decode(bus, address)
        text = format_instruction(instruction)
        if labels and address in labels:
            text = f"{labels[address]}: {text}"
        result.append((address, f"{instruction.word:04X}", text))
    return result
