import logging
from typing import Optional, Tuple

from lc4_tracer.arch.lc4.cpu import Lc4Cpu
from lc4_tracer.arch.lc4.instructions import FaultPolicy
from lc4_tracer.common.errors import ConfigError
from lc4_tracer.transport.bus import Bus, RAM
from lc4_tracer.transport.memory_map import AccessRule, MemoryMap, Region
from .models import MachineConfig

logger = logging.getLogger(__name__)

# @intent:responsibility 構成（Config）に基づいて、Bus、Device、CPUを生成・接続し、初期状態を適用します。
class SystemBuilder:
    def build_system(self, config: Optional[MachineConfig] = None) -> Tuple[Lc4Cpu, Bus]:
        config = config or MachineConfig()
        memory_map = self.build_memory_map(config)

        bus = Bus()
        for region in memory_map.regions:
            bus.register_device(region.start, region.end, RAM(region.end - region.start + 1))

        policy = FaultPolicy(
            fault_on_divide_by_zero=config.fault_policy.divide_by_zero,
            fault_on_protected_write=config.fault_policy.protected_write,
        )
        cpu = Lc4Cpu(
            bus,
            memory_map=memory_map,
            policy=policy,
            pc_init=config.initial_state.pc,
            psr_init=config.initial_state.psr,
            halt_address=config.halt_address,
        )
        return cpu, bus

    # @intent:responsibility 構成のメモリ領域から領域表を作ります。空であれば標準の区画表を使用します。
    def build_memory_map(self, config: MachineConfig) -> MemoryMap:
        if not config.memory_map:
            return MemoryMap.default()

        regions = []
        for region in config.memory_map:
            if region.type != "RAM":
                logger.warning("Unknown device type '%s' for range %04X-%04X, defaulting to RAM",
                               region.type, region.start, region.end)
            regions.append(Region(
                name=region.label or f"{region.start:04X}-{region.end:04X}",
                start=region.start,
                end=region.end,
                execute=AccessRule(region.execute),
                write=AccessRule(region.write),
            ))
        try:
            return MemoryMap(regions)
        except ValueError as e:
            raise ConfigError(str(e)) from e
