# lc4_tracer/loader/objfile.py
"""
LC-4 オブジェクトファイル形式の定義。

ファイルはビッグエンディアンの16ビットワードで構成され、タグで始まるブロックが
ファイル終端まで並びます。

    CODE   : 0xCADE, address, n, n words
    DATA   : 0xDADA, address, n, n words
    SYMBOL : 0xC3B7, address, n, n bytes (ASCII)
    FILE   : 0xF17E, n, n bytes (ASCII)
    LINE   : 0x715E, address, line, file index
"""
import struct
from dataclasses import dataclass, field
from typing import Iterable, List, Union

CODE_TAG = 0xCADE
DATA_TAG = 0xDADA
SYMBOL_TAG = 0xC3B7
FILENAME_TAG = 0xF17E
LINE_TAG = 0x715E

# @intent:data_structure メモリへ書き込まれるワード列（コード）。
@dataclass(frozen=True)
class CodeBlock:
    address: int
    words: List[int] = field(default_factory=list)

# @intent:data_structure メモリへ書き込まれるワード列（データ）。
@dataclass(frozen=True)
class DataBlock:
    address: int
    words: List[int] = field(default_factory=list)

@dataclass(frozen=True)
class SymbolBlock:
    address: int
    name: str

@dataclass(frozen=True)
class FileNameBlock:
    name: str

# @intent:data_structure アドレスとソース行番号の対応。file_indexはFileNameBlockの出現順です。
@dataclass(frozen=True)
class LineNumberBlock:
    address: int
    line: int
    file_index: int

Block = Union[CodeBlock, DataBlock, SymbolBlock, FileNameBlock, LineNumberBlock]

def _words(*values: int) -> bytes:
    return struct.pack(f">{len(values)}H", *(v & 0xFFFF for v in values))

def _text(name: str) -> bytes:
    raw = name.encode("ascii")
    return _words(len(raw)) + raw

# @intent:responsibility ブロック列をオブジェクトファイルのバイト列へ変換します。
def encode_blocks(blocks: Iterable[Block]) -> bytes:
    out = bytearray()
    for block in blocks:
        if isinstance(block, CodeBlock):
            out += _words(CODE_TAG, block.address, len(block.words), *block.words)
        elif isinstance(block, DataBlock):
            out += _words(DATA_TAG, block.address, len(block.words), *block.words)
        elif isinstance(block, SymbolBlock):
            out += _words(SYMBOL_TAG, block.address) + _text(block.name)
        elif isinstance(block, FileNameBlock):
            out += _words(FILENAME_TAG) + _text(block.name)
        elif isinstance(block, LineNumberBlock):
            out += _words(LINE_TAG, block.address, block.line, block.file_index)
        else:
            raise TypeError(f"Unsupported block type: {type(block).__name__}")
    return bytes(out)
