# lc4_tracer/core/cpu.py
"""
Core Layer (抽象CPU)

このモジュールは、CPUの基本的な状態管理と命令サイクルの駆動に関する抽象化を提供します。
具体的な命令の振る舞いはInstruction Layerに移譲されます。
"""
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Optional, List, Dict, Tuple

from lc4_tracer.transport.bus import Bus
from lc4_tracer.core.snapshot import Snapshot, Metadata
from lc4_tracer.core.state import CpuState
from lc4_tracer.core.instruction import Instruction
from lc4_tracer.common.types import SymbolMap

# @intent:responsibility 抽象CPUの基本機能とインターフェースを定義します。
class AbstractCpu(ABC):
    """
    CPUエミュレーションの基底となる抽象クラス。
    Busとのインターフェース、基本的な状態管理、命令サイクルの抽象化を提供します。
    """
    # @intent:pre-condition `bus`は有効なBusオブジェクトである必要があります。
    def __init__(self, bus: Bus):
        self._bus = bus
        self._state: CpuState = self._create_initial_state()
        self._step_count: int = 0
        self._symbol_map: SymbolMap = {}
        self._reverse_symbol_map: Dict[int, str] = {}
        # @intent:rationale Stateオブジェクトの直接操作を避けるため、protectedな命名規則を採用。
        #                  外部からのアクセスは`get_state()`メソッドを介して行う。

    @property
    def bus(self) -> Bus:
        return self._bus

    # @intent:responsibility シンボルマップを設定します。
    def set_symbol_map(self, symbol_map: SymbolMap) -> None:
        """
        シンボルマップ（名前とアドレスの対応表）を設定します。
        """
        self._symbol_map = symbol_map
        # 逆引きマップを作成して、アドレスからラベルを素早く引けるようにする
        self._reverse_symbol_map = {addr: name for name, addr in symbol_map.items()}

    def get_symbol_map(self) -> SymbolMap:
        return self._symbol_map

    # @intent:responsibility 初期状態のCpuStateオブジェクトを生成します。
    @abstractmethod
    def _create_initial_state(self) -> CpuState:
        pass

    # @intent:responsibility CPUをリセットし、初期状態に戻します。
    def reset(self) -> None:
        """
        CPUのレジスタ類を初期値にリセットします。メモリには触れません。
        """
        self._state = self._create_initial_state()

    def get_state(self) -> CpuState:
        return self._state

    @abstractmethod
    def _fetch(self) -> int:
        """
        現在のPCからメモリの次の命令ワードをフェッチし、その値を返します。
        """
        pass

    @abstractmethod
    def _decode(self, word: int) -> Instruction:
        pass

    @abstractmethod
    def _execute(self, instruction: Instruction) -> None:
        pass

    # @intent:responsibility CPUを1命令サイクル進め、その結果のスナップショットを返します。
    # @intent:rationale Template Methodパターンを採用し、共通の実行フロー（ログクリア→停止判定→実行可否判定→
    #                  フェッチ→デコード→PC更新→実行→Snapshot生成）を定義します。
    def step(self) -> Snapshot:
        """
        CPUを1命令サイクル進め、その時点でのCPUとバスの状態を含むSnapshotオブジェクトを返します。
        実行フォルトが発生した場合はPCをフォルト命令のアドレスに戻してから例外を再送出します。
        """
        self._bus.get_and_clear_activity_log()
        initial_pc = self._state.pc

        halt_snapshot = self._handle_halt(initial_pc)
        if halt_snapshot:
            return halt_snapshot

        self._check_fetch(initial_pc)

        word = self._fetch()
        instruction = self._decode(word)

        try:
            self._update_pc(instruction)
            self._execute(instruction)
        except Exception:
            self._state.pc = initial_pc
            self._bus.get_and_clear_activity_log()
            raise

        return self._create_snapshot(initial_pc, instruction)

    # @intent:return 停止アドレスに到達していればその状態のSnapshot、そうでなければNone。
    def _handle_halt(self, current_pc: int) -> Optional[Snapshot]:
        return None

    # @intent:responsibility フェッチ前に、現在のPCから命令を実行してよいか検査します。
    def _check_fetch(self, pc: int) -> None:
        pass

    # @intent:responsibility 命令実行前にPCを更新します。
    def _update_pc(self, instruction: Instruction) -> None:
        self._state.pc = (self._state.pc + 1) & 0xFFFF

    # @intent:responsibility 実行後の状態をコピーしてスナップショットを生成します。
    def _create_snapshot(self, initial_pc: int, instruction: Optional[Instruction], halted: bool = False) -> Snapshot:
        bus_activity = self._bus.get_and_clear_activity_log()
        if instruction is not None:
            self._step_count += 1

        symbol_label = self._reverse_symbol_map.get(initial_pc, "")
        symbol_info = f"{symbol_label}: " if symbol_label else ""
        symbol_info += str(instruction) if instruction is not None else "HALT"

        return Snapshot(
            state=self._copy_state(),
            instruction=instruction,
            metadata=Metadata(step_count=self._step_count, symbol_info=symbol_info),
            bus_activity=bus_activity,
            halted=halted,
        )

    # @intent:responsibility スナップショット用に現在の状態の独立したコピーを返します。
    def _copy_state(self) -> CpuState:
        return replace(self._state)

    @abstractmethod
    def get_register_map(self) -> Dict[str, int]:
        """
        現在のレジスタ値を辞書形式で返す。
        シェルがCPUの内部構造を知らなくても値を表示できるようにするために使用される。
        """
        pass

    @abstractmethod
    def get_flag_state(self) -> Dict[str, bool]:
        pass

    @abstractmethod
    def disassemble(self, start_addr: int, length: int) -> List[Tuple[int, str, str]]:
        """
        指定されたメモリ範囲を逆アセンブルし、(address, hex_word, mnemonic) のタプルリストを返す。
        """
        pass
