"""
共通の型定義を提供するモジュール。
プロジェクト全体で使用される汎用的な型エイリアスなどを定義します。
"""
from dataclasses import dataclass
from typing import Dict, Optional

# @intent:data_structure シンボル名とアドレスをマッピングする辞書の型エイリアス。
# Loader, CPU, Assemblerなど複数のレイヤーで共通して使用されます。
SymbolMap = Dict[str, int]

# @intent:data_structure アドレスごとのデバッグ用注釈。メモリ内容とは独立したオーバーレイです。
@dataclass
class MemMetadata:
    label: Optional[str] = None
    breakpoint: bool = False

# @intent:data_structure アドレスからデバッグ注釈へのマッピング。
MetadataMap = Dict[int, MemMetadata]
