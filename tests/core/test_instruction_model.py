# tests/core/test_instruction_model.py
"""
lc4_tracer.core.instructionモジュールの単体テスト。
"""
import dataclasses

import pytest

from lc4_tracer.core.instruction import BRANCH_MASKS, Instruction, Opcode

# @intent:test_suite デコード済み命令の表示と不変性の検証。

class TestInstruction:
    def test_instruction_is_immutable(self):
        instr = Instruction(Opcode.NOP, 0x0000, 0x0000)
        with pytest.raises(dataclasses.FrozenInstanceError):
            instr.rd = 1

    def test_equal_instructions_compare_equal(self):
        a = Instruction(Opcode.ADD, 0x10, 0x1283, rd=1, rs=2, rt=3)
        b = Instruction(Opcode.ADD, 0x10, 0x1283, rd=1, rs=2, rt=3)
        assert a == b
        assert hash(a) == hash(b)

    # @intent:test_case_display 命令ごとのオペランド表記を検証します。
    @pytest.mark.parametrize("instr, text", [
        (Instruction(Opcode.NOP, 0x0000, 0x0000), "NOP"),
        (Instruction(Opcode.ADD, 0x0000, 0x1283, rd=1, rs=2, rt=3), "ADD R1, R2, R3"),
        (Instruction(Opcode.ADDI, 0x0000, 0x12BD, rd=1, rs=2, imm=-3), "ADD R1, R2, #-3"),
        (Instruction(Opcode.ANDI, 0x0000, 0x52A5, rd=1, rs=2, imm=5), "AND R1, R2, #5"),
        (Instruction(Opcode.NOT, 0x0000, 0x5288, rd=1, rs=2), "NOT R1, R2"),
        (Instruction(Opcode.STR, 0x0000, 0x7284, rt=1, rs=2, imm=4), "STR R1, R2, #4"),
        (Instruction(Opcode.LDR, 0x0000, 0x62BF, rd=1, rs=2, imm=-1), "LDR R1, R2, #-1"),
        (Instruction(Opcode.BRZ, 0x0010, 0x0403, imm=3), "BRz x0014"),
        (Instruction(Opcode.BRNZP, 0x0010, 0x0FFF, imm=-1), "BRnzp x0010"),
        (Instruction(Opcode.JMP, 0x0000, 0xC805, imm=5), "JMP x0006"),
        (Instruction(Opcode.JSR, 0x8200, 0x4821, imm=0x21), "JSR x8210"),
        (Instruction(Opcode.HICONST, 0x0000, 0xD3FF, rd=1, imm=0xFF), "HICONST R1, xFF"),
        (Instruction(Opcode.TRAP, 0x0000, 0xF025, imm=0x25), "TRAP x25"),
        (Instruction(Opcode.CMPI, 0x0000, 0x237F, rs=1, imm=-1), "CMPI R1, #-1"),
        (Instruction(Opcode.LEA, 0x0000, 0, rd=1, imm=0x2000, label="DATA"), "LEA R1, DATA"),
        (Instruction(Opcode.UNKNOWN, 0x0000, 0xE000), "UNKNOWN xE000"),
    ])
    def test_str(self, instr, text):
        assert str(instr) == text

    def test_branch_masks_cover_every_branch(self):
        branches = [op for op in Opcode if op.name.startswith("BR")]
        assert set(branches) == set(BRANCH_MASKS)
        assert sorted(BRANCH_MASKS.values()) == list(range(1, 8))
