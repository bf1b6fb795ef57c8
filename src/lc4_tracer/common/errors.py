"""
例外クラスの定義。

実行エンジン、ローダー、アセンブラ、設定レイヤーが送出する例外を一元管理します。
デコーダは決して例外を送出しません（未知のビットパターンはUNKNOWN命令になります）。
"""
from enum import Enum
from typing import Optional


# @intent:responsibility プロジェクト固有の全例外の基底クラスです。
class Lc4Error(Exception):
    pass


# @intent:responsibility 実行フォルトの種類を定義します。
class FaultKind(Enum):
    PC_OVERFLOW = "PC_OVERFLOW"                   # PC計算が0x0000-0xFFFFの範囲外
    PRIVILEGE_VIOLATION = "PRIVILEGE_VIOLATION"   # 非特権モードでOSコード領域を実行
    DIVIDE_BY_ZERO = "DIVIDE_BY_ZERO"             # 厳格モードのみ
    PROTECTED_WRITE = "PROTECTED_WRITE"           # 厳格モードのみ


# @intent:responsibility 命令実行中のフォルトを表します。
# @intent:post-condition 送出時点でレジスタとメモリはフォルト命令の実行前の状態のままです。
class ExecutionFault(Lc4Error):
    def __init__(self, kind: FaultKind, address: int, message: str):
        super().__init__(f"{kind.value} at {address:#06x}: {message}")
        self.kind = kind
        self.address = address


# @intent:responsibility オブジェクトファイルの読み込み失敗を表します。
class LoadError(Lc4Error):
    def __init__(self, message: str, offset: Optional[int] = None):
        if offset is not None:
            message = f"{message} (offset {offset})"
        super().__init__(message)
        self.offset = offset


# @intent:responsibility アセンブリソースの解析失敗を表します。
class AssemblyError(Lc4Error):
    def __init__(self, message: str, line: Optional[int] = None):
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)
        self.line = line


# @intent:responsibility 設定ファイルの不正を表します。
class ConfigError(Lc4Error):
    pass


# @intent:responsibility 擬似命令の解決時に未定義ラベルを参照したことを表します。
# @intent:rationale 辞書引きの失敗として扱えるよう、KeyErrorも継承します。
class UnknownLabelError(Lc4Error, KeyError):
    def __init__(self, label: str):
        super().__init__(f"Undefined label: {label}")
        self.label = label

    def __str__(self) -> str:
        return self.args[0]
