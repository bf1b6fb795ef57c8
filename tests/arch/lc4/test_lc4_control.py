# tests/arch/lc4/test_lc4_control.py
"""
制御命令（分岐、ジャンプ、サブルーチン、トラップ）の実行テスト。
"""
import logging

import pytest

from lc4_tracer.arch.lc4.cpu import Lc4Cpu
from lc4_tracer.arch.lc4.state import N_FLAG, P_FLAG, Z_FLAG
from lc4_tracer.common.errors import ExecutionFault, FaultKind
from lc4_tracer.transport.bus import Bus, RAM

PRIVILEGED = 0x8000

@pytest.fixture
def cpu():
    bus = Bus()
    bus.register_device(0x0000, 0xFFFF, RAM(0x10000))
    return Lc4Cpu(bus)

def place(cpu, address, *words):
    for offset, word in enumerate(words):
        cpu.bus.load(address + offset, word)
    cpu.get_state().pc = address

# @intent:test_suite 分岐条件とPC計算、サブルーチン呼び出しと復帰の検証。

class TestBranches:
    @pytest.mark.parametrize("word, flag, taken", [
        (0x0403, Z_FLAG, True),   # BRz #3
        (0x0403, P_FLAG, False),
        (0x0803, N_FLAG, True),   # BRn #3
        (0x0803, Z_FLAG, False),
        (0x0603, P_FLAG, True),   # BRzp #3
        (0x0603, N_FLAG, False),
        (0x0E03, N_FLAG, True),   # BRnzp #3
    ])
    def test_branch_condition(self, cpu, word, flag, taken):
        place(cpu, 0x0010, word)
        cpu.get_state().psr = PRIVILEGED | flag
        cpu.step()
        assert cpu.get_state().pc == (0x0014 if taken else 0x0011)

    def test_nop_only_advances_pc(self, cpu):
        place(cpu, 0x0010, 0x0000)
        before = list(cpu.get_state().registers)
        psr = cpu.get_state().psr
        cpu.step()
        assert cpu.get_state().pc == 0x0011
        assert cpu.get_state().registers == before
        assert cpu.get_state().psr == psr

    def test_branch_backwards(self, cpu):
        # BRnzp #-1 は自分自身へ戻る
        place(cpu, 0x0010, 0x0FFF)
        cpu.step()
        assert cpu.get_state().pc == 0x0010

    # @intent:test_case_overflow アドレス空間外への分岐はPC_OVERFLOWとなり、PCが元に戻ることを検証します。
    def test_branch_below_zero_faults(self, cpu):
        # BRnzp #-2 at 0x0000 -> -1
        place(cpu, 0x0000, 0x0FFE)
        with pytest.raises(ExecutionFault) as excinfo:
            cpu.step()
        assert excinfo.value.kind == FaultKind.PC_OVERFLOW
        assert excinfo.value.address == 0x0000
        assert cpu.get_state().pc == 0x0000

    def test_pc_increment_past_end_faults(self, cpu):
        place(cpu, 0xFFFF, 0x0000)
        with pytest.raises(ExecutionFault) as excinfo:
            cpu.step()
        assert excinfo.value.kind == FaultKind.PC_OVERFLOW
        assert cpu.get_state().pc == 0xFFFF


class TestJumps:
    def test_jmp_relative(self, cpu):
        # JMP #5
        place(cpu, 0x0000, 0xC805)
        cpu.step()
        assert cpu.get_state().pc == 0x0006

    def test_jmpr(self, cpu):
        place(cpu, 0x0000, 0xC0C0)  # JMPR R3
        cpu.get_state().registers[3] = 0x2345
        cpu.step()
        assert cpu.get_state().pc == 0x2345

    def test_jsr_target_and_link(self, cpu):
        # JSR with imm11 = 0x21 from OS code: (0x8200 & 0x8000) | (0x21 << 4)
        place(cpu, 0x8200, 0x4821)
        cpu.step()
        state = cpu.get_state()
        assert state.pc == 0x8210
        assert state.registers[7] == 0x8201
        assert state.flag_n

    def test_jsrr_reads_target_before_linking(self, cpu):
        place(cpu, 0x0000, 0x41C0)  # JSRR R7
        cpu.get_state().registers[7] = 0x0040
        cpu.step()
        assert cpu.get_state().pc == 0x0040
        assert cpu.get_state().registers[7] == 0x0001
        assert cpu.get_state().flag_p

    # @intent:test_case_pairing JSRの直後にRETを実行すると、JSRの次の命令へ戻ることを検証します。
    def test_jsr_ret_pairing(self, cpu):
        place(cpu, 0x0000, 0x4801, 0x0000)  # JSR x0010 ; NOP
        cpu.bus.load(0x0010, 0xC1C0)         # RET
        cpu.step()
        assert cpu.get_state().pc == 0x0010
        cpu.step()
        assert cpu.get_state().pc == 0x0001


class TestTrapAndRti:
    def test_trap_enters_privileged_mode(self, cpu):
        place(cpu, 0x0000, 0xF025)  # TRAP x25
        cpu.get_state().psr = Z_FLAG
        cpu.step()
        state = cpu.get_state()
        assert state.pc == 0x8025
        assert state.privilege
        assert state.registers[7] == 0x0001

    def test_rti_leaves_privileged_mode(self, cpu):
        place(cpu, 0x8200, 0x8000)  # RTI
        cpu.get_state().registers[7] = 0x0010
        cpu.step()
        state = cpu.get_state()
        assert state.pc == 0x0010
        assert not state.privilege

    # @intent:test_case_privilege 非特権モードでOSコード領域を実行するとデコード前にフォルトすることを検証します。
    def test_os_code_requires_privilege(self, cpu):
        place(cpu, 0x8200, 0x1283)
        cpu.get_state().psr = Z_FLAG
        with pytest.raises(ExecutionFault) as excinfo:
            cpu.step()
        assert excinfo.value.kind == FaultKind.PRIVILEGE_VIOLATION
        assert cpu.get_state().pc == 0x8200
        assert cpu.get_state().registers == [0] * 8
        assert cpu.bus.get_and_clear_activity_log() == []

    def test_user_data_is_executable_without_privilege(self, cpu):
        place(cpu, 0x2000, 0x0000)
        cpu.get_state().psr = Z_FLAG
        cpu.step()
        assert cpu.get_state().pc == 0x2001


def test_unknown_instruction_acts_as_nop(cpu, caplog):
    place(cpu, 0x0000, 0xE123)
    with caplog.at_level(logging.WARNING):
        snapshot = cpu.step()
    assert cpu.get_state().pc == 0x0001
    assert snapshot.instruction.mnemonic == "UNKNOWN"
    assert "treated as NOP" in caplog.text
