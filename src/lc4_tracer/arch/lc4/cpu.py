# src/lc4_tracer/arch/lc4/cpu.py
"""
LC-4 CPUエミュレーションの中心モジュール。

レジスタ状態、メモリ（Bus）、領域表、ラベルとデバッグ注釈をひとまとめにした
マシンを表します。グローバルなインスタンスは持たず、呼び出し側が明示的に構築します。
"""
import logging
from dataclasses import replace
from typing import Dict, List, Optional, Tuple

from lc4_tracer.arch.lc4 import decoder, disassembler
from lc4_tracer.arch.lc4.instructions import ExecutionEnv, FaultPolicy, decode_word, execute_instruction
from lc4_tracer.arch.lc4.instructions.base import checked_pc
from lc4_tracer.arch.lc4.state import Lc4CpuState, NUM_REGISTERS, PC_INIT_VAL, PSR_INIT_VAL
from lc4_tracer.common.errors import ExecutionFault, FaultKind
from lc4_tracer.common.types import MemMetadata, MetadataMap, SymbolMap
from lc4_tracer.core.cpu import AbstractCpu
from lc4_tracer.core.instruction import Instruction
from lc4_tracer.core.snapshot import Snapshot
from lc4_tracer.transport.bus import Bus
from lc4_tracer.transport.memory_map import MemoryMap

logger = logging.getLogger(__name__)

# @intent:constant このアドレスに到達するとプログラム終了とみなし、命令をデコードしません。
HALT_ADDRESS = 0x80FF

# @intent:responsibility LC-4 CPUの具体的なエミュレーションロジック（フェッチ、デコード、実行）を提供します。
class Lc4Cpu(AbstractCpu):
    """
    LC-4 CPUをエミュレートするクラス。
    """
    # @intent:pre-condition busは0x0000-0xFFFFの全アドレスにデバイスが登録されている必要があります。
    def __init__(self, bus: Bus, memory_map: Optional[MemoryMap] = None,
                 policy: Optional[FaultPolicy] = None,
                 pc_init: int = PC_INIT_VAL, psr_init: int = PSR_INIT_VAL,
                 halt_address: int = HALT_ADDRESS):
        # 初期状態の生成に使うため、基底クラスの初期化より先に設定します
        self._pc_init = pc_init & 0xFFFF
        self._psr_init = psr_init & 0xFFFF
        self._env = ExecutionEnv(memory_map or MemoryMap.default(), policy or FaultPolicy())
        self._halt_address = halt_address & 0xFFFF
        self._metadata: MetadataMap = {}
        super().__init__(bus)

    # @intent:responsibility LC-4の初期状態（PC=0x8200, PSR=0x8002, レジスタ全て0）を生成します。
    def _create_initial_state(self) -> Lc4CpuState:
        return Lc4CpuState(pc=self._pc_init, psr=self._psr_init)

    @property
    def memory_map(self) -> MemoryMap:
        return self._env.memory_map

    @property
    def policy(self) -> FaultPolicy:
        return self._env.policy

    @property
    def halt_address(self) -> int:
        return self._halt_address

    @property
    def step_count(self) -> int:
        return self._step_count

    # --- ラベルとデバッグ注釈 ---

    @property
    def labels(self) -> SymbolMap:
        return self._symbol_map

    @property
    def metadata(self) -> MetadataMap:
        return self._metadata

    # @intent:responsibility ラベルを登録し、アドレスの注釈にも反映します。
    # @intent:post-condition 同名のラベルが別アドレスにあった場合、旧アドレスの逆引きと注釈からは取り除かれます。
    def add_label(self, name: str, address: int) -> None:
        address &= 0xFFFF
        old_address = self._symbol_map.get(name)
        if old_address is not None and old_address != address:
            if self._reverse_symbol_map.get(old_address) == name:
                del self._reverse_symbol_map[old_address]
            old_meta = self._metadata.get(old_address)
            if old_meta is not None and old_meta.label == name:
                old_meta.label = None
        self._symbol_map[name] = address
        self._reverse_symbol_map[address] = name
        self.metadata_at(address).label = name

    # @intent:responsibility 指定アドレスの注釈を返します。存在しなければ空の注釈を作成します。
    def metadata_at(self, address: int) -> MemMetadata:
        return self._metadata.setdefault(address & 0xFFFF, MemMetadata())

    def has_breakpoint(self, address: int) -> bool:
        meta = self._metadata.get(address & 0xFFFF)
        return meta is not None and meta.breakpoint

    # @intent:responsibility シンボルマップを設定し、各アドレスの注釈にもラベルを反映します。
    def set_symbol_map(self, symbol_map: SymbolMap) -> None:
        super().set_symbol_map(symbol_map)
        for name, address in symbol_map.items():
            self.metadata_at(address).label = name

    # --- リセット ---

    # @intent:responsibility レジスタ、PSR、PCを初期値に戻します。メモリ、ラベル、注釈は保持します。
    def reset(self) -> None:
        super().reset()
        self._step_count = 0

    # @intent:responsibility リセットに加えて、メモリ、注釈、ラベルを全て消去します。
    def clear(self) -> None:
        self.reset()
        self._bus.clear()
        self._metadata.clear()
        self.set_symbol_map({})

    # --- 命令サイクル ---

    # @intent:responsibility 停止アドレスでは命令をデコードせず、停止状態のSnapshotを返します。
    def _handle_halt(self, current_pc: int) -> Optional[Snapshot]:
        if current_pc == self._halt_address:
            logger.debug("PC reached halt address %#06x", current_pc)
            return self._create_snapshot(current_pc, None, halted=True)
        return None

    # @intent:responsibility 非特権モードでのOSコード領域の実行を、デコード前に検出します。
    def _check_fetch(self, pc: int) -> None:
        if not self._env.memory_map.check_execute(pc, self._state.privilege):
            region = self._env.memory_map.region_for(pc)
            region_name = region.name if region else "unmapped"
            raise ExecutionFault(
                FaultKind.PRIVILEGE_VIOLATION, pc,
                f"execution in {region_name} not permitted (privilege={self._state.privilege})",
            )

    def _fetch(self) -> int:
        return self._bus.read(self._state.pc)

    def _decode(self, word: int) -> Instruction:
        return decode_word(word, self._state.pc)

    # @intent:responsibility PC+1を計算します。0xFFFFからの進行はフォルトになります。
    def _update_pc(self, instruction: Instruction) -> None:
        self._state.pc = checked_pc(self._state.pc + 1, instruction)

    def _execute(self, instruction: Instruction) -> None:
        execute_instruction(instruction, self._state, self._bus, self._env)

    # @intent:responsibility レジスタ配列も含めて状態を複製します。
    def _copy_state(self) -> Lc4CpuState:
        return replace(self._state, registers=list(self._state.registers))

    # @intent:responsibility デコード済み命令（擬似命令を含む）を現在のPCで1つ実行します。
    def execute(self, instruction: Instruction) -> Snapshot:
        """
        メモリからのフェッチを行わず、与えられた命令を実行します。
        主にLEA/LCなど、機械語を持たない擬似命令の実行に使用します。
        """
        self._bus.get_and_clear_activity_log()
        initial_pc = self._state.pc
        try:
            self._update_pc(instruction)
            self._execute(instruction)
        except Exception:
            self._state.pc = initial_pc
            self._bus.get_and_clear_activity_log()
            raise
        return self._create_snapshot(initial_pc, instruction)

    # --- インスペクタ ---

    def decode_at(self, address: int) -> Instruction:
        return decoder.decode(self._bus, address & 0xFFFF)

    def get_register_map(self) -> Dict[str, int]:
        s = self._state
        registers = {f"R{i}": s.registers[i] for i in range(NUM_REGISTERS)}
        registers.update({"PC": s.pc, "PSR": s.psr})
        return registers

    def get_flag_state(self) -> Dict[str, bool]:
        s = self._state
        return {"N": s.flag_n, "Z": s.flag_z, "P": s.flag_p, "PRIV": s.privilege}

    # @intent:responsibility 指定範囲のメモリを逆アセンブルします。
    def disassemble(self, start_addr: int, length: int) -> List[Tuple[int, str, str]]:
        return disassembler.disassemble(self._bus, start_addr, length, self._reverse_symbol_map)
