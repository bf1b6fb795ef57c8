# lc4_tracer/debugger/debugger.py
"""
デバッガモジュール。

コアエンジンの実行を制御し、ユーザーが指定した条件（ブレークポイント、停止アドレス、
次の命令への到達）で実行を中断させる責務を負います。
"""
import logging
from enum import Enum
from typing import List, Optional

from lc4_tracer.arch.lc4.cpu import Lc4Cpu
from lc4_tracer.common.errors import ExecutionFault
from lc4_tracer.core.snapshot import Snapshot
from lc4_tracer.loader.loader import LoadResult, ObjectFileLoader

logger = logging.getLogger(__name__)

# @intent:responsibility デバッガの実行状態を定義します。
class DebuggerState(Enum):
    IDLE = "IDLE"         # 未実行、またはリセット直後
    RUNNING = "RUNNING"   # 直前のステップが正常に完了した
    HALTED = "HALTED"     # 停止アドレスへの到達、またはフォルト

# @intent:responsibility continue/nextが停止した理由を定義します。
class StopReason(Enum):
    HALTED = "HALTED"
    FAULT = "FAULT"
    BREAKPOINT = "BREAKPOINT"
    NEXT_REACHED = "NEXT_REACHED"
    STOPPED = "STOPPED"   # stop()またはステップ数上限による中断

# @intent:responsibility コアエンジンの実行制御とブレークポイント管理を行います。
class Debugger:
    """
    CPUの実行を制御し、ブレークポイントの管理を行うクラス。
    ブレークポイントはCPUのアドレス注釈（MemMetadata.breakpoint）として保持されます。
    """
    def __init__(self, cpu: Lc4Cpu, loader: Optional[ObjectFileLoader] = None):
        self._cpu = cpu
        self._loader = loader or ObjectFileLoader()
        self._state = DebuggerState.IDLE
        self._running: bool = False
        self._last_snapshot: Optional[Snapshot] = None
        self._last_fault: Optional[ExecutionFault] = None
        self._last_stop_reason: Optional[StopReason] = None

    @property
    def cpu(self) -> Lc4Cpu:
        return self._cpu

    @property
    def state(self) -> DebuggerState:
        return self._state

    @property
    def last_fault(self) -> Optional[ExecutionFault]:
        return self._last_fault

    @property
    def last_stop_reason(self) -> Optional[StopReason]:
        return self._last_stop_reason

    def get_last_snapshot(self) -> Optional[Snapshot]:
        return self._last_snapshot

    # --- ブレークポイント ---

    # @intent:responsibility 指定アドレスにブレークポイントを設定します。既に設定済みでも状態は変わりません。
    def set_breakpoint(self, address: int) -> None:
        self._cpu.metadata_at(address).breakpoint = True

    def remove_breakpoint(self, address: int) -> None:
        if self._cpu.has_breakpoint(address):
            self._cpu.metadata_at(address).breakpoint = False

    def get_breakpoints(self) -> List[int]:
        """
        現在設定されている全てのブレークポイントのアドレスを昇順で返します。
        """
        return sorted(addr for addr, meta in self._cpu.metadata.items() if meta.breakpoint)

    # --- 実行制御 ---

    # @intent:responsibility 1命令を実行します。停止アドレスへの到達かフォルトでFalseを返します。
    def step(self) -> bool:
        """
        CPUを1命令分実行します。
        フォルトは例外として外に出さず、last_faultに記録してHALTED状態へ遷移します。
        """
        self._last_fault = None
        try:
            snapshot = self._cpu.step()
        except ExecutionFault as fault:
            logger.error("Execution fault: %s", fault)
            self._last_fault = fault
            self._state = DebuggerState.HALTED
            return False

        self._last_snapshot = snapshot
        if snapshot.halted:
            self._state = DebuggerState.HALTED
            return False

        self._state = DebuggerState.RUNNING
        return True

    # @intent:responsibility 停止アドレス、フォルト、ブレークポイントのいずれかまで実行を続けます。
    # @intent:post-condition ブレークポイントで停止した場合、その命令は未実行です。
    def continue_(self, max_steps: Optional[int] = None) -> StopReason:
        return self._run_until(next_pc=None, max_steps=max_steps)

    # @intent:responsibility 呼び出し時のPC+1に到達するまで実行を続けます。
    # @intent:rationale 呼び出しの深さは追跡しません。再帰呼び出しの内側でPC+1に達した場合もそこで停止します。
    def next(self, max_steps: Optional[int] = None) -> StopReason:
        next_pc = (self._cpu.get_state().pc + 1) & 0xFFFF
        return self._run_until(next_pc=next_pc, max_steps=max_steps)

    # @intent:responsibility CPUをリセットしてから実行を続けます。
    def run(self, max_steps: Optional[int] = None) -> StopReason:
        self.reset()
        return self.continue_(max_steps=max_steps)

    def _run_until(self, next_pc: Optional[int], max_steps: Optional[int]) -> StopReason:
        self._running = True
        steps = 0
        try:
            while True:
                if not self.step():
                    return self._finish(StopReason.FAULT if self._last_fault else StopReason.HALTED)
                steps += 1

                pc = self._cpu.get_state().pc
                if next_pc is not None and pc == next_pc:
                    return self._finish(StopReason.NEXT_REACHED)
                if self._cpu.has_breakpoint(pc):
                    logger.info("Hit breakpoint at %#06x", pc)
                    return self._finish(StopReason.BREAKPOINT)
                if not self._running or (max_steps is not None and steps >= max_steps):
                    return self._finish(StopReason.STOPPED)
        finally:
            self._running = False

    def _finish(self, reason: StopReason) -> StopReason:
        self._last_stop_reason = reason
        return reason

    # @intent:responsibility 実行ループに協調的な中断を要求します。ステップ間で確認されます。
    def stop(self) -> None:
        self._running = False

    # --- マシン状態の初期化と読み込み ---

    # @intent:responsibility レジスタとPC、PSRを初期値に戻します。メモリと注釈は保持します。
    def reset(self) -> None:
        self._cpu.reset()
        self._state = DebuggerState.IDLE
        self._last_snapshot = None
        self._last_fault = None
        self._last_stop_reason = None

    # @intent:responsibility メモリ、注釈、ラベルを消去し、リセットします。
    def clear(self) -> None:
        self._cpu.clear()
        self.reset()

    # @intent:responsibility オブジェクトファイルを読み込み、マシンを消去してからロードします。
    # @intent:post-condition ファイルを読めなかった場合、マシンの状態は変化しません。
    def load(self, path: str) -> LoadResult:
        data = self._loader.read_file(path)
        self.clear()
        return self._loader.load_bytes(data, self._cpu)

    def load_bytes(self, data: bytes) -> LoadResult:
        self.clear()
        return self._loader.load_bytes(data, self._cpu)
