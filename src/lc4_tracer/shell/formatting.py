# lc4_tracer/shell/formatting.py
"""
シェル表示用の整形関数。

CPUの内部構造に依存せず、状態とメモリを人間が読める文字列へ変換します。
メモリの読み出しは全てpeekで行い、バスアクセスログを汚しません。
"""
from typing import List

from lc4_tracer.arch.lc4.cpu import Lc4Cpu
from lc4_tracer.arch.lc4.state import Lc4CpuState

def format_word(address: int, data: int) -> str:
    return f"0x{address:04X}:\t0b{data:016b} / 0x{data:04X}"

# @intent:responsibility 現在のPCにある命令ワードを表示します。
def format_code(cpu: Lc4Cpu) -> str:
    pc = cpu.get_state().pc
    return format_word(pc, cpu.bus.peek(pc))

def format_memory(cpu: Lc4Cpu, address: int) -> str:
    return format_word(address, cpu.bus.peek(address))

def format_psr(state: Lc4CpuState) -> str:
    n, z, p = int(state.flag_n), int(state.flag_z), int(state.flag_p)
    return f"psr:\t{n}/{z}/{p} (privilege {'true' if state.privilege else 'false'})"

def format_nzp(state: Lc4CpuState) -> str:
    return f"nzp:\t{int(state.flag_n)}/{int(state.flag_z)}/{int(state.flag_p)}"

def format_registers(state: Lc4CpuState) -> str:
    return "\n".join(f"\tR{i}: {value:016b} / 0x{value:04X}" for i, value in enumerate(state.registers))

# @intent:responsibility 逆アセンブル結果を表示します。PCの行には">"、ブレークポイントの行には"*"を付けます。
def format_disassembly(cpu: Lc4Cpu, start: int, count: int) -> str:
    pc = cpu.get_state().pc
    lines: List[str] = []
    for address, hex_word, text in cpu.disassemble(start, count):
        marker = ">" if address == pc else " "
        marker += "*" if cpu.has_breakpoint(address) else " "
        lines.append(f"{marker} 0x{address:04X}:  {hex_word}  {text}")
    return "\n".join(lines)
