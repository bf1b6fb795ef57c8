# lc4_tracer/loader/loader.py
"""
オブジェクトファイルローダーモジュール。

LC-4 オブジェクトファイル（.obj）を先頭から順に解析し、コード/データをメモリへ、
シンボルをラベルとアドレス注釈へ反映します。
"""
import logging
import struct
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from lc4_tracer.arch.lc4.cpu import Lc4Cpu
from lc4_tracer.common.errors import LoadError
from lc4_tracer.loader.objfile import CODE_TAG, DATA_TAG, FILENAME_TAG, LINE_TAG, SYMBOL_TAG

logger = logging.getLogger(__name__)

# @intent:data_structure 1回の読み込みで得られた情報の要約です。
@dataclass
class LoadResult:
    words_loaded: int = 0
    symbols: List[Tuple[str, int]] = field(default_factory=list)
    file_names: List[str] = field(default_factory=list)
    line_numbers: List[Tuple[int, int, int]] = field(default_factory=list)  # (address, line, file_index)

# @intent:utility_class バイト列からビッグエンディアンのワードを順に取り出す読み取り器です。
class _WordReader:
    def __init__(self, data: bytes):
        self._data = data
        self.offset = 0

    def at_end(self) -> bool:
        return self.offset >= len(self._data)

    def word(self, what: str) -> int:
        if self.offset + 2 > len(self._data):
            raise LoadError(f"Truncated {what}", self.offset)
        (value,) = struct.unpack_from(">H", self._data, self.offset)
        self.offset += 2
        return value

    def text(self, length: int, what: str) -> str:
        if self.offset + length > len(self._data):
            raise LoadError(f"Truncated {what}", self.offset)
        raw = self._data[self.offset:self.offset + length]
        self.offset += length
        return raw.decode("ascii", errors="replace")

class ObjectFileLoader:
    """
    LC-4 オブジェクトファイルを解析し、データをCPUのメモリとラベルへロードするローダー。
    失敗した場合も、それまでに書き込んだ内容はメモリに残ります。
    """
    # @intent:responsibility オブジェクトファイルの内容をバイト列として読み込みます。マシンには触れません。
    def read_file(self, file_path: str) -> bytes:
        try:
            with open(file_path, 'rb') as f:
                data = f.read()
        except OSError as e:
            logger.error("Cannot read object file %s: %s", file_path, e)
            raise LoadError(f"Cannot read object file {file_path}: {e}") from e
        return data

    # @intent:responsibility ファイルを読み込み、内容をCPUへロードします。
    def load_file(self, file_path: str, cpu: Lc4Cpu) -> LoadResult:
        return self.load_bytes(self.read_file(file_path), cpu)

    # @intent:responsibility オブジェクトファイルのバイト列を解析し、CPUへロードします。
    # @intent:post-condition ブロック境界でのEOFは正常終了です。それ以外の異常はLoadErrorになります。
    def load_bytes(self, data: bytes, cpu: Lc4Cpu) -> LoadResult:
        reader = _WordReader(data)
        result = LoadResult()
        try:
            while not reader.at_end():
                tag_offset = reader.offset
                tag = reader.word("block tag")
                if tag == CODE_TAG:
                    self._load_words(reader, cpu, result, "code block")
                elif tag == DATA_TAG:
                    self._load_words(reader, cpu, result, "data block")
                elif tag == SYMBOL_TAG:
                    address = reader.word("symbol address")
                    length = reader.word("symbol length")
                    name = reader.text(length, "symbol name")
                    cpu.add_label(name, address)
                    result.symbols.append((name, address))
                elif tag == FILENAME_TAG:
                    length = reader.word("file name length")
                    result.file_names.append(reader.text(length, "file name"))
                elif tag == LINE_TAG:
                    address = reader.word("line number address")
                    line = reader.word("line number")
                    file_index = reader.word("line number file index")
                    result.line_numbers.append((address, line, file_index))
                else:
                    raise LoadError(f"Unknown block tag {tag:#06x}", tag_offset)
        except LoadError as e:
            logger.error("Object file load failed: %s", e)
            raise

        logger.info("Loaded %d words, %d symbols", result.words_loaded, len(result.symbols))
        return result

    # @intent:responsibility コード/データブロックのワードを1つずつメモリへ書き込みます。アドレスは16ビットで折り返します。
    def _load_words(self, reader: _WordReader, cpu: Lc4Cpu, result: LoadResult, what: str) -> None:
        address = reader.word(f"{what} address")
        count = reader.word(f"{what} length")
        for i in range(count):
            cpu.bus.load((address + i) & 0xFFFF, reader.word(what))
            result.words_loaded += 1
