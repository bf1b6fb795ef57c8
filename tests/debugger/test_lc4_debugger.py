# tests/debugger/test_lc4_debugger.py
"""
lc4_tracer.debugger.debuggerモジュールの単体テスト。
Debuggerの実行制御、ブレークポイント管理、停止理由を検証します。
"""
import pytest

from lc4_tracer.arch.lc4.cpu import Lc4Cpu
from lc4_tracer.common.errors import FaultKind, LoadError
from lc4_tracer.debugger.debugger import Debugger, DebuggerState, StopReason
from lc4_tracer.loader.objfile import CodeBlock, SymbolBlock, encode_blocks
from lc4_tracer.transport.bus import Bus, RAM

# CONST R0, #5 / LOOP: ADD R0, R0, #-1 / BRp LOOP / JMP x80FF
COUNTDOWN = [0x9005, 0x103F, 0x03FE, 0xCEFB]

# JSR SUB / JMP x80FF / ... / SUB (x8210): CONST R1, #7 / RET
CALL_PROGRAM = {0x8200: [0x4821, 0xCEFD], 0x8210: [0x9207, 0xC1C0]}

# @intent:test_suite デバッガのステップ実行、continue、next、ブレークポイントの検証。

class TestDebugger:
    @pytest.fixture
    def setup_debugger(self):
        bus = Bus()
        bus.register_device(0x0000, 0xFFFF, RAM(0x10000))
        cpu = Lc4Cpu(bus)
        debugger = Debugger(cpu)
        return debugger, cpu, bus

    def _load(self, bus, address, words):
        for offset, word in enumerate(words):
            bus.load(address + offset, word)

    def test_initial_state(self, setup_debugger):
        debugger, _, _ = setup_debugger
        assert debugger.state == DebuggerState.IDLE
        assert debugger.get_last_snapshot() is None
        assert debugger.last_fault is None

    # @intent:test_case_step 1ステップの実行でRUNNINGへ遷移し、Snapshotが記録されることを検証します。
    def test_step(self, setup_debugger):
        debugger, cpu, bus = setup_debugger
        self._load(bus, 0x8200, COUNTDOWN)
        assert debugger.step() is True
        assert debugger.state == DebuggerState.RUNNING
        assert cpu.get_state().registers[0] == 5
        assert debugger.get_last_snapshot().state.pc == 0x8201

    # @intent:test_case_termination 停止アドレスでは何度stepしてもFalseを返し、状態が変化しないことを検証します。
    def test_step_at_halt_address(self, setup_debugger):
        debugger, cpu, _ = setup_debugger
        cpu.get_state().pc = 0x80FF
        assert debugger.step() is False
        assert debugger.state == DebuggerState.HALTED
        assert debugger.step() is False
        assert cpu.get_state().pc == 0x80FF

    def test_run_until_halt(self, setup_debugger):
        debugger, cpu, bus = setup_debugger
        self._load(bus, 0x8200, COUNTDOWN)
        cpu.get_state().registers[3] = 0x1111
        assert debugger.run() == StopReason.HALTED
        assert debugger.state == DebuggerState.HALTED
        assert cpu.get_state().pc == 0x80FF
        assert cpu.get_state().registers[0] == 0
        # runはリセットしてから実行する
        assert cpu.get_state().registers[3] == 0
        assert debugger.last_stop_reason == StopReason.HALTED

    # @intent:test_case_breakpoint ブレークポイントの命令は実行されずに停止することを検証します。
    def test_continue_stops_at_breakpoint(self, setup_debugger):
        debugger, cpu, bus = setup_debugger
        self._load(bus, 0x8200, COUNTDOWN)
        debugger.set_breakpoint(0x8203)
        assert debugger.continue_() == StopReason.BREAKPOINT
        assert cpu.get_state().pc == 0x8203
        assert cpu.get_state().registers[0] == 0
        # 再開すると、ブレークポイントの命令から実行を続ける
        assert debugger.continue_() == StopReason.HALTED
        assert cpu.get_state().pc == 0x80FF

    def test_breakpoint_inside_loop_hits_each_iteration(self, setup_debugger):
        debugger, cpu, bus = setup_debugger
        self._load(bus, 0x8200, COUNTDOWN)
        debugger.set_breakpoint(0x8201)
        values = []
        while debugger.continue_() == StopReason.BREAKPOINT:
            values.append(cpu.get_state().registers[0])
        assert values == [5, 4, 3, 2, 1]

    def test_breakpoint_management(self, setup_debugger):
        debugger, cpu, _ = setup_debugger
        debugger.set_breakpoint(0x8203)
        debugger.set_breakpoint(0x8203)
        debugger.set_breakpoint(0x0010)
        assert debugger.get_breakpoints() == [0x0010, 0x8203]
        debugger.remove_breakpoint(0x8203)
        debugger.remove_breakpoint(0x9999)
        assert debugger.get_breakpoints() == [0x0010]
        assert cpu.has_breakpoint(0x0010)

    def test_next_stops_at_following_instruction(self, setup_debugger):
        debugger, cpu, bus = setup_debugger
        self._load(bus, 0x8200, COUNTDOWN)
        assert debugger.next() == StopReason.NEXT_REACHED
        assert cpu.get_state().pc == 0x8201

    # @intent:test_case_next_over_call サブルーチン呼び出しをnextで飛び越えられることを検証します。
    def test_next_steps_over_subroutine(self, setup_debugger):
        debugger, cpu, bus = setup_debugger
        for address, words in CALL_PROGRAM.items():
            self._load(bus, address, words)
        assert debugger.next() == StopReason.NEXT_REACHED
        assert cpu.get_state().pc == 0x8201
        assert cpu.get_state().registers[1] == 7
        assert cpu.get_state().registers[7] == 0x8201
        assert debugger.continue_() == StopReason.HALTED

    def test_next_stops_at_breakpoint_inside_call(self, setup_debugger):
        debugger, cpu, bus = setup_debugger
        for address, words in CALL_PROGRAM.items():
            self._load(bus, address, words)
        debugger.set_breakpoint(0x8211)
        assert debugger.next() == StopReason.BREAKPOINT
        assert cpu.get_state().pc == 0x8211

    # @intent:test_case_fault フォルトで実行が停止し、HALTED状態とフォルト情報が記録されることを検証します。
    def test_fault_halts_execution(self, setup_debugger):
        debugger, cpu, bus = setup_debugger
        bus.load(0x8200, 0x8000)  # RTI
        cpu.get_state().registers[7] = 0x8300
        assert debugger.continue_() == StopReason.FAULT
        assert debugger.state == DebuggerState.HALTED
        assert debugger.last_fault.kind == FaultKind.PRIVILEGE_VIOLATION
        assert debugger.last_fault.address == 0x8300
        assert cpu.get_state().pc == 0x8300
        # フォルト後のstepは再試行されず、同じフォルトで失敗する
        assert debugger.step() is False
        assert debugger.last_fault.kind == FaultKind.PRIVILEGE_VIOLATION

    def test_max_steps_stops_infinite_loop(self, setup_debugger):
        debugger, cpu, bus = setup_debugger
        bus.load(0x8200, 0x0FFF)  # BRnzp #-1
        assert debugger.continue_(max_steps=25) == StopReason.STOPPED
        assert cpu.step_count == 25
        assert cpu.get_state().pc == 0x8200

    def test_reset_and_clear(self, setup_debugger):
        debugger, cpu, bus = setup_debugger
        self._load(bus, 0x8200, COUNTDOWN)
        debugger.set_breakpoint(0x8202)
        debugger.step()
        debugger.reset()
        assert debugger.state == DebuggerState.IDLE
        assert cpu.get_state().registers[0] == 0
        assert debugger.get_breakpoints() == [0x8202]
        debugger.clear()
        assert debugger.get_breakpoints() == []
        assert bus.peek(0x8200) == 0

    def test_load_bytes_clears_previous_program(self, setup_debugger):
        debugger, cpu, bus = setup_debugger
        bus.load(0x4000, 0xAAAA)
        debugger.set_breakpoint(0x8201)
        image = encode_blocks([CodeBlock(0x8200, COUNTDOWN), SymbolBlock(0x8201, "LOOP")])
        result = debugger.load_bytes(image)
        assert result.words_loaded == 4
        assert bus.peek(0x4000) == 0
        assert debugger.get_breakpoints() == []
        assert cpu.labels == {"LOOP": 0x8201}
        assert debugger.run() == StopReason.HALTED

    def test_load_file(self, setup_debugger, tmp_path):
        debugger, cpu, _ = setup_debugger
        path = tmp_path / "countdown.obj"
        path.write_bytes(encode_blocks([CodeBlock(0x8200, COUNTDOWN)]))
        debugger.load(str(path))
        assert debugger.run() == StopReason.HALTED
        assert cpu.get_state().registers[0] == 0

    # @intent:test_case_load_failure 読めないファイルを指定しても、読み込み済みのプログラムとブレークポイントは残ることを検証します。
    def test_failed_load_keeps_machine(self, setup_debugger, tmp_path):
        debugger, cpu, bus = setup_debugger
        debugger.load_bytes(encode_blocks([CodeBlock(0x8200, COUNTDOWN), SymbolBlock(0x8201, "LOOP")]))
        debugger.set_breakpoint(0x8201)
        with pytest.raises(LoadError, match="Cannot read object file"):
            debugger.load(str(tmp_path / "typo.obj"))
        assert bus.peek(0x8200) == 0x9005
        assert debugger.get_breakpoints() == [0x8201]
        assert cpu.labels == {"LOOP": 0x8201}
