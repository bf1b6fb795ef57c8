import logging
from typing import Any, Dict

import yaml

from lc4_tracer.common.errors import ConfigError
from .models import FaultPolicyConfig, InitialState, MachineConfig, MemoryRegionConfig

logger = logging.getLogger(__name__)

_ACCESS_RULES = ("always", "privileged", "never")

class ConfigLoader:
    def load_from_file(self, path: str) -> MachineConfig:
        try:
            with open(path, 'r') as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise ConfigError(f"Cannot read config file {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e
        logger.debug("Loaded configuration from %s", path)
        return self._parse_config(data)

    def load_from_string(self, text: str) -> MachineConfig:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML: {e}") from e
        return self._parse_config(data)

    def _parse_config(self, data: Any) -> MachineConfig:
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError("Configuration root must be a mapping.")

        arch = str(data.get("architecture", "LC4")).upper().replace("-", "")
        if arch != "LC4":
            raise ConfigError(f"Unsupported architecture: {data.get('architecture')}")

        # Parse Memory Map
        memory_map = []
        for region_data in data.get("memory_map") or []:
            if not isinstance(region_data, dict):
                raise ConfigError(f"Invalid memory region entry: {region_data!r}")
            memory_map.append(MemoryRegionConfig(
                start=self._parse_int(region_data.get("start")),
                end=self._parse_int(region_data.get("end")),
                label=str(region_data.get("label", "")),
                type=str(region_data.get("type", "RAM")).upper(),
                execute=self._parse_rule(region_data.get("execute", "always")),
                write=self._parse_rule(region_data.get("write", "always")),
            ))

        # Parse Initial State
        initial_state_data = data.get("initial_state") or {}
        defaults = InitialState()
        initial_state = InitialState(
            pc=self._parse_int(initial_state_data.get("pc", defaults.pc)),
            psr=self._parse_int(initial_state_data.get("psr", defaults.psr)),
        )

        policy_data = data.get("fault_policy") or {}
        fault_policy = FaultPolicyConfig(
            divide_by_zero=self._parse_bool(policy_data.get("divide_by_zero", False)),
            protected_write=self._parse_bool(policy_data.get("protected_write", False)),
        )

        return MachineConfig(
            architecture="LC4",
            memory_map=memory_map,
            initial_state=initial_state,
            halt_address=self._parse_int(data.get("halt_address", MachineConfig().halt_address)),
            fault_policy=fault_policy,
        )

    # @intent:utility_function 整数、または"0x"付き16進/10進の文字列を16ビット値に変換します。
    def _parse_int(self, value: Any) -> int:
        if isinstance(value, bool):
            raise ConfigError(f"Invalid integer format: {value}")
        if isinstance(value, int):
            result = value
        elif isinstance(value, str):
            try:
                result = int(value, 16) if value.lower().startswith("0x") else int(value)
            except ValueError as e:
                raise ConfigError(f"Invalid integer format: {value}") from e
        else:
            raise ConfigError(f"Invalid integer format: {value}")
        if not 0 <= result <= 0xFFFF:
            raise ConfigError(f"Value {value} is not a 16-bit quantity")
        return result

    def _parse_rule(self, value: Any) -> str:
        rule = str(value).lower()
        if rule not in _ACCESS_RULES:
            raise ConfigError(f"Invalid access rule: {value} (expected one of {', '.join(_ACCESS_RULES)})")
        return rule

    def _parse_bool(self, value: Any) -> bool:
        if not isinstance(value, bool):
            raise ConfigError(f"Invalid boolean: {value}")
        return value
