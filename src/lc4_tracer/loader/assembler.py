# lc4_tracer/loader/assembler.py
"""
LC-4 アセンブラ。

アセンブリソースを2パスで解析し、オブジェクトファイル形式のブロック列を生成します。
プログラム（とテスト）をアセンブリで記述し、ObjectFileLoaderで読み込むために使用します。
"""
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from lc4_tracer.common.errors import AssemblyError
from lc4_tracer.common.types import SymbolMap
from lc4_tracer.loader.objfile import (
    Block, CodeBlock, DataBlock, FileNameBlock, LineNumberBlock, SymbolBlock, encode_blocks,
)

CODE_START = 0x0000
DATA_START = 0x2000

_BRANCHES = {
    "NOP": 0b000, "BRN": 0b100, "BRZ": 0b010, "BRP": 0b001,
    "BRNZ": 0b110, "BRNP": 0b101, "BRZP": 0b011, "BRNZP": 0b111,
}
_ARITH = {"ADD": 0, "MUL": 1, "SUB": 2, "DIV": 3}
_LOGIC = {"AND": 0, "NOT": 1, "OR": 2, "XOR": 3}
_COMPARE = {"CMP": 0, "CMPU": 1, "CMPI": 2, "CMPIU": 3}
_SHIFT = {"SLL": 0, "SRA": 1, "SRL": 2, "MOD": 3}

# @intent:constant 命令ごとの生成ワード数。擬似命令LEA/LCは複数ワードに展開されます。
_SIZES = {"LEA": 2, "LC": 3}

MNEMONICS = (set(_BRANCHES) | set(_ARITH) | set(_LOGIC) | set(_COMPARE) | set(_SHIFT)
             | {"JSR", "JSRR", "JMP", "JMPR", "LDR", "STR", "RTI", "CONST", "HICONST", "TRAP",
                "RET", "LEA", "LC"})
DIRECTIVES = {".CODE", ".DATA", ".ADDR", ".FALIGN", ".FILL", ".BLKW", ".CONST", ".UCONST"}

_REGISTER = re.compile(r'^[Rr]([0-7])$')

# @intent:data_structure 1行分の解析結果。
@dataclass
class _Line:
    number: int
    label: Optional[str]
    mnemonic: Optional[str]
    operands: List[str]

# @intent:data_structure アセンブル結果。ブロック列とラベル表を保持します。
@dataclass
class AssembledProgram:
    symbol_map: SymbolMap = field(default_factory=dict)
    constants: Dict[str, int] = field(default_factory=dict)
    blocks: List[Block] = field(default_factory=list)

    # @intent:responsibility ブロック列をオブジェクトファイルのバイト列として返します。
    def to_object_bytes(self) -> bytes:
        return encode_blocks(self.blocks)

# @intent:responsibility LC-4用のアセンブラ実装。
class Lc4Assembler:
    """
    2パスアセンブラ。1パス目でラベルのアドレスを確定し、2パス目で機械語を生成します。
    """
    def assemble(self, source: str, file_name: Optional[str] = None) -> AssembledProgram:
        lines = [self._parse_line(text, number) for number, text in enumerate(source.splitlines(), 1)]
        program = AssembledProgram()
        self._first_pass(lines, program)
        self._second_pass(lines, program, file_name)
        return program

    # @intent:responsibility ファイルからソースを読み込んでアセンブルします。
    def assemble_file(self, file_path: str) -> AssembledProgram:
        with open(file_path, 'r', encoding="utf-8") as f:
            source = f.read()
        return self.assemble(source, file_name=file_path)

    # --- 字句解析 ---

    def _parse_line(self, text: str, number: int) -> _Line:
        text = text.split(';', 1)[0].strip()
        if not text:
            return _Line(number, None, None, [])

        tokens = [t for t in re.split(r'[\s,]+', text) if t]
        label = None
        head = tokens[0]
        if head.endswith(':'):
            label = head[:-1]
            tokens = tokens[1:]
        elif head.upper() not in MNEMONICS and head.upper() not in DIRECTIVES:
            label = head
            tokens = tokens[1:]

        if label is not None and not re.match(r'^[A-Za-z_][A-Za-z0-9_]*$', label):
            raise AssemblyError(f"Invalid label '{label}'", number)
        if not tokens:
            return _Line(number, label, None, [])

        mnemonic = tokens[0].upper()
        if mnemonic not in MNEMONICS and mnemonic not in DIRECTIVES:
            raise AssemblyError(f"Unknown instruction '{tokens[0]}'", number)
        return _Line(number, label, mnemonic, tokens[1:])

    # @intent:utility_function 数値表現（#n, n, xHH, 0xHH, bBB）またはシンボル名を数値に変換します。
    def _parse_val(self, token: str, symbols: Dict[str, int], line: int) -> int:
        text = token[1:] if token.startswith('#') else token
        sign = 1
        if text.startswith('-'):
            sign, text = -1, text[1:]
        lowered = text.lower()
        match = re.match(r'^(?:0x|x)([0-9a-f]+)$', lowered)
        if match:
            return sign * int(match.group(1), 16)
        match = re.match(r'^(?:0b|b)([01]+)$', lowered)
        if match:
            return sign * int(match.group(1), 2)
        if re.match(r'^[0-9]+$', text):
            return sign * int(text)
        if sign == 1 and token in symbols:
            return symbols[token]
        raise AssemblyError(f"Undefined symbol or invalid value '{token}'", line)

    def _register(self, token: str, line: int) -> int:
        match = _REGISTER.match(token)
        if not match:
            raise AssemblyError(f"Expected register, got '{token}'", line)
        return int(match.group(1))

    def _signed(self, value: int, bits: int, line: int) -> int:
        low, high = -(1 << (bits - 1)), (1 << (bits - 1)) - 1
        if not low <= value <= high:
            raise AssemblyError(f"Immediate {value} out of range for {bits}-bit signed field", line)
        return value & ((1 << bits) - 1)

    def _unsigned(self, value: int, bits: int, line: int) -> int:
        if not 0 <= value < (1 << bits):
            raise AssemblyError(f"Immediate {value} out of range for {bits}-bit unsigned field", line)
        return value

    def _expect(self, line: _Line, count: int) -> List[str]:
        if len(line.operands) != count:
            raise AssemblyError(
                f"{line.mnemonic} expects {count} operand(s), got {len(line.operands)}", line.number)
        return line.operands

    # --- 1パス目: アドレス割り当て ---

    def _first_pass(self, lines: List[_Line], program: AssembledProgram) -> None:
        counters = {".CODE": CODE_START, ".DATA": DATA_START}
        section = ".CODE"
        for line in lines:
            mnemonic = line.mnemonic
            if mnemonic in (".CONST", ".UCONST"):
                if line.label is None:
                    raise AssemblyError(f"{mnemonic} requires a label", line.number)
                value = self._parse_val(self._expect(line, 1)[0], program.constants, line.number)
                if mnemonic == ".CONST":
                    self._signed(value, 16, line.number)
                else:
                    self._unsigned(value, 16, line.number)
                self._define(program.constants, program.symbol_map, line.label, value, line.number)
                continue

            if mnemonic in (".CODE", ".DATA"):
                section = mnemonic
            elif mnemonic == ".ADDR":
                address = self._parse_val(self._expect(line, 1)[0], program.constants, line.number)
                counters[section] = self._unsigned(address, 16, line.number)
            elif mnemonic == ".FALIGN":
                counters[section] = (counters[section] + 0xF) & ~0xF

            if line.label is not None:
                self._define(program.symbol_map, program.constants, line.label, counters[section], line.number)

            if mnemonic == ".FILL":
                counters[section] += 1
            elif mnemonic == ".BLKW":
                count = self._parse_val(self._expect(line, 1)[0], program.constants, line.number)
                counters[section] += self._unsigned(count, 16, line.number)
            elif mnemonic in MNEMONICS:
                counters[section] += _SIZES.get(mnemonic, 1)

            if counters[section] > 0x10000:
                raise AssemblyError("Program extends past the end of memory", line.number)

    def _define(self, table: Dict[str, int], other: Dict[str, int], name: str, value: int, line: int) -> None:
        if name in table or name in other:
            raise AssemblyError(f"Duplicate label '{name}'", line)
        table[name] = value

    # --- 2パス目: 機械語生成 ---

    def _second_pass(self, lines: List[_Line], program: AssembledProgram, file_name: Optional[str]) -> None:
        symbols = dict(program.constants)
        symbols.update(program.symbol_map)
        counters = {".CODE": CODE_START, ".DATA": DATA_START}
        section = ".CODE"
        runs: List[Tuple[str, int, List[int]]] = []
        line_blocks: List[LineNumberBlock] = []

        def emit(address: int, words: List[int]) -> None:
            if runs and runs[-1][0] == section and runs[-1][1] + len(runs[-1][2]) == address:
                runs[-1][2].extend(words)
            else:
                runs.append((section, address, list(words)))

        for line in lines:
            mnemonic = line.mnemonic
            if mnemonic is None or mnemonic in (".CONST", ".UCONST"):
                continue
            pc = counters[section]
            if mnemonic in (".CODE", ".DATA"):
                section = mnemonic
            elif mnemonic == ".ADDR":
                counters[section] = self._parse_val(line.operands[0], symbols, line.number)
            elif mnemonic == ".FALIGN":
                counters[section] = (pc + 0xF) & ~0xF
            elif mnemonic == ".FILL":
                value = self._parse_val(self._expect(line, 1)[0], symbols, line.number)
                if not -0x8000 <= value <= 0xFFFF:
                    raise AssemblyError(f".FILL value {value} does not fit in 16 bits", line.number)
                emit(pc, [value & 0xFFFF])
                counters[section] = pc + 1
            elif mnemonic == ".BLKW":
                count = self._parse_val(line.operands[0], symbols, line.number)
                if count:
                    emit(pc, [0] * count)
                counters[section] = pc + count
            else:
                words = self._encode(line, pc, symbols)
                emit(pc, words)
                if file_name is not None:
                    line_blocks.append(LineNumberBlock(pc, line.number, 0))
                counters[section] = pc + len(words)

        for run_section, address, words in runs:
            block_type = CodeBlock if run_section == ".CODE" else DataBlock
            program.blocks.append(block_type(address, words))
        for name, address in program.symbol_map.items():
            program.blocks.append(SymbolBlock(address, name))
        if file_name is not None:
            program.blocks.append(FileNameBlock(file_name))
            program.blocks.extend(line_blocks)

    # @intent:responsibility 1命令を機械語ワード列へ変換します。
    def _encode(self, line: _Line, pc: int, symbols: Dict[str, int]) -> List[int]:
        m, n = line.mnemonic, line.number
        reg = lambda token: self._register(token, n)
        val = lambda token: self._parse_val(token, symbols, n)

        if m in _BRANCHES:
            if m == "NOP":
                self._expect(line, 0)
                return [0x0000]
            offset = self._pc_offset(self._expect(line, 1)[0], pc, symbols, n)
            return [(_BRANCHES[m] << 9) | self._signed(offset, 9, n)]

        if m in _ARITH:
            rd, rs, third = self._expect(line, 3)
            base = 0x1000 | (reg(rd) << 9) | (reg(rs) << 6)
            if _REGISTER.match(third):
                return [base | (_ARITH[m] << 3) | reg(third)]
            if m != "ADD":
                raise AssemblyError(f"{m} does not take an immediate operand", n)
            return [base | 0x20 | self._signed(val(third), 5, n)]

        if m in _LOGIC:
            if m == "NOT":
                rd, rs = self._expect(line, 2)
                return [0x5000 | (reg(rd) << 9) | (reg(rs) << 6) | (1 << 3)]
            rd, rs, third = self._expect(line, 3)
            base = 0x5000 | (reg(rd) << 9) | (reg(rs) << 6)
            if _REGISTER.match(third):
                return [base | (_LOGIC[m] << 3) | reg(third)]
            if m != "AND":
                raise AssemblyError(f"{m} does not take an immediate operand", n)
            return [base | 0x20 | self._signed(val(third), 5, n)]

        if m in _COMPARE:
            rs, second = self._expect(line, 2)
            base = 0x2000 | (reg(rs) << 9) | (_COMPARE[m] << 7)
            if m == "CMP" or m == "CMPU":
                return [base | reg(second)]
            if m == "CMPI":
                return [base | self._signed(val(second), 7, n)]
            return [base | self._unsigned(val(second), 7, n)]

        if m in _SHIFT:
            rd, rs, third = self._expect(line, 3)
            base = 0xA000 | (reg(rd) << 9) | (reg(rs) << 6) | (_SHIFT[m] << 4)
            if m == "MOD":
                return [base | reg(third)]
            return [base | self._unsigned(val(third), 4, n)]

        if m in ("LDR", "STR"):
            r1, r2, imm = self._expect(line, 3)
            base = 0x6000 if m == "LDR" else 0x7000
            return [base | (reg(r1) << 9) | (reg(r2) << 6) | self._signed(val(imm), 6, n)]

        if m == "CONST":
            rd, imm = self._expect(line, 2)
            return [0x9000 | (reg(rd) << 9) | self._signed(val(imm), 9, n)]
        if m == "HICONST":
            rd, imm = self._expect(line, 2)
            return [0xD100 | (reg(rd) << 9) | self._unsigned(val(imm), 8, n)]
        if m == "TRAP":
            return [0xF000 | self._unsigned(val(self._expect(line, 1)[0]), 8, n)]
        if m == "RTI":
            self._expect(line, 0)
            return [0x8000]
        if m == "RET":
            self._expect(line, 0)
            return [0xC000 | (7 << 6)]
        if m == "JSRR":
            return [0x4000 | (reg(self._expect(line, 1)[0]) << 6)]
        if m == "JMPR":
            return [0xC000 | (reg(self._expect(line, 1)[0]) << 6)]
        if m == "JMP":
            offset = self._pc_offset(self._expect(line, 1)[0], pc, symbols, n)
            return [0xC800 | self._signed(offset, 11, n)]
        if m == "JSR":
            target = val(self._expect(line, 1)[0])
            if target & 0xF:
                raise AssemblyError(f"JSR target {target:#06x} is not 16-word aligned", n)
            if (target & 0x8000) != (pc & 0x8000):
                raise AssemblyError(f"JSR target {target:#06x} is outside the current half of memory", n)
            return [0x4800 | ((target >> 4) & 0x7FF)]

        # LEA / LC
        rd, label = self._expect(line, 2)
        address = val(label) & 0xFFFF
        words = [0x9000 | (reg(rd) << 9) | (address & 0xFF),
                 0xD100 | (reg(rd) << 9) | (address >> 8)]
        if m == "LC":
            words.append(0x6000 | (reg(rd) << 9) | (reg(rd) << 6))
        return words

    # @intent:utility_function 分岐先をPC+1からの相対オフセットへ変換します。数値はそのままオフセットとして扱います。
    def _pc_offset(self, token: str, pc: int, symbols: Dict[str, int], line: int) -> int:
        if token in symbols:
            return symbols[token] - (pc + 1)
        return self._parse_val(token, {}, line)

# @intent:responsibility ソース文字列をアセンブルする簡易関数です。
def assemble(source: str, file_name: Optional[str] = None) -> AssembledProgram:
    return Lc4Assembler().assemble(source, file_name)
