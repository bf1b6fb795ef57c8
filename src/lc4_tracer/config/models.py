from dataclasses import dataclass, field
from typing import List

from lc4_tracer.arch.lc4.cpu import HALT_ADDRESS
from lc4_tracer.arch.lc4.state import PC_INIT_VAL, PSR_INIT_VAL

@dataclass
class MemoryRegionConfig:
    start: int
    end: int
    label: str = ""
    type: str = "RAM"  # 現在はRAMのみ
    execute: str = "always"  # "always", "privileged", "never"
    write: str = "always"

@dataclass
class InitialState:
    pc: int = PC_INIT_VAL
    psr: int = PSR_INIT_VAL

@dataclass
class FaultPolicyConfig:
    divide_by_zero: bool = False
    protected_write: bool = False

# メモリマップが空の場合は、LC-4標準の4領域を使用します
@dataclass
class MachineConfig:
    architecture: str = "LC4"
    memory_map: List[MemoryRegionConfig] = field(default_factory=list)
    initial_state: InitialState = field(default_factory=InitialState)
    halt_address: int = HALT_ADDRESS
    fault_policy: FaultPolicyConfig = field(default_factory=FaultPolicyConfig)
