# lc4_tracer/core/state.py
"""
Core Layer (CPU状態)

命令サイクルの駆動に必要な最小限の状態、すなわちプログラムカウンタのみを定義します。
汎用レジスタやPSRはアーキテクチャ側の状態クラスが追加します。
"""
from dataclasses import dataclass

# @intent:responsibility 命令サイクルが参照するPCを保持する基底状態です。
# @intent:invariant pcは常に0x0000-0xFFFFのワードアドレスです。範囲外の計算はフォルトとして扱われ、ここには書き込まれません。
@dataclass
class CpuState:
    pc: int = 0x0000
