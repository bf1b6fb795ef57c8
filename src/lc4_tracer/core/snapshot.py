# lc4_tracer/core/snapshot.py
"""
実行状態の不変スナップショット

このモジュールは、1命令実行後のCPUとバスの状態を記録した不変のデータ構造を定義します。
シェルへの情報提供と、デバッグ時の状態記録に用いる責務を負います。
"""
from dataclasses import dataclass, field
from typing import List, Optional

from lc4_tracer.core.state import CpuState
from lc4_tracer.core.instruction import Instruction
from lc4_tracer.transport.bus import BusAccess


# @intent:responsibility 実行に関するメタデータを記録します。
@dataclass(frozen=True)
class Metadata:
    """
    実行に関するメタデータ（累計実行命令数、シンボル情報など）を記録するデータクラス。
    """
    step_count: int
    symbol_info: Optional[str] = None  # 例: "MULTIPLY: ADD R1, R1, R2"

# @intent:responsibility ある一時点におけるCPUとバスの状態を不変に記録します。
@dataclass(frozen=True)
class Snapshot:
    """
    1ステップ実行後の状態を記録した不変のデータ構造。
    停止アドレスに到達していた場合はinstructionがNoneとなり、halted=Trueになります。
    """
    state: CpuState
    instruction: Optional[Instruction]
    metadata: Metadata
    bus_activity: List[BusAccess] = field(default_factory=list)
    halted: bool = False

    # @intent:rationale stateはSnapshot生成時にコピーされたものを受け取ります。
    #                  以降のCPU実行によってSnapshotの内容が変化しないようにするためです。
