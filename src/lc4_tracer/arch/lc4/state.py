# src/lc4_tracer/arch/lc4/state.py
"""
LC-4 CPU固有の状態定義。
"""
from dataclasses import dataclass, field
from typing import List

from lc4_tracer.core.state import CpuState
from lc4_tracer.common.bits import to_signed

NUM_REGISTERS = 8

# LC-4 プロセッサ状態レジスタ (PSR) ビットマスク
# @intent:constant PSR内の特権ビットとNZPフラグの位置を定義します。
PRIVILEGE_BIT = 0x8000
N_FLAG = 0b100
Z_FLAG = 0b010
P_FLAG = 0b001
NZP_MASK = N_FLAG | Z_FLAG | P_FLAG

PC_INIT_VAL = 0x8200
PSR_INIT_VAL = 0x8002  # 特権モード + Zフラグ

# @intent:responsibility LC-4 CPUの全てのレジスタ（R0-R7, PC, PSR）の状態を保持します。
@dataclass
class Lc4CpuState(CpuState):
    """
    LC-4 CPUのレジスタ状態を保持するデータクラス。
    PSRはビット15に特権ビット、下位3ビットにN/Z/Pフラグを持ちます。
    """
    pc: int = PC_INIT_VAL
    registers: List[int] = field(default_factory=lambda: [0] * NUM_REGISTERS)
    psr: int = PSR_INIT_VAL

    # @intent:accessor PSRの各ビットにアクセスするためのプロパティを提供します。
    # @intent:rationale フラグ操作の可読性を高め、PSRへのビット操作を隠蔽するためにプロパティを使用します。

    @property
    def flag_n(self) -> bool:
        return (self.psr & N_FLAG) != 0

    @property
    def flag_z(self) -> bool:
        return (self.psr & Z_FLAG) != 0

    @property
    def flag_p(self) -> bool:
        return (self.psr & P_FLAG) != 0

    @property
    def nzp(self) -> int:
        return self.psr & NZP_MASK

    @property
    def privilege(self) -> bool:
        return (self.psr & PRIVILEGE_BIT) != 0

    @privilege.setter
    def privilege(self, value: bool) -> None:
        if value: self.psr |= PRIVILEGE_BIT
        else: self.psr &= ~PRIVILEGE_BIT

    # @intent:responsibility 整数値の符号からNZPフラグを排他的に1つだけ設定します。
    def set_nzp(self, value: int) -> None:
        """
        valueはPythonの符号付き整数として評価されます（比較命令の差分など）。
        """
        if value < 0:
            flag = N_FLAG
        elif value == 0:
            flag = Z_FLAG
        else:
            flag = P_FLAG
        self.psr = (self.psr & ~NZP_MASK) | flag

    # @intent:responsibility 16ビットワードを2の補数とみなしてNZPフラグを設定します。
    def set_nzp_word(self, word: int) -> None:
        self.set_nzp(to_signed(word))
