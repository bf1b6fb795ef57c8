# tests/arch/lc4/test_lc4_decoder.py
"""
lc4_tracer.arch.lc4.decoderモジュールの単体テスト。
"""
import pytest

from lc4_tracer.arch.lc4.decoder import decode, make_ret, resolve_pseudo
from lc4_tracer.arch.lc4.instructions import decode_word
from lc4_tracer.common.errors import UnknownLabelError
from lc4_tracer.core.instruction import Opcode
from lc4_tracer.transport.bus import Bus, RAM

# @intent:test_suite 命令ワードからInstructionへの変換を、全ての命令グループについて検証します。

@pytest.mark.parametrize("word, opcode, fields", [
    (0x0000, Opcode.NOP, {}),
    (0x0403, Opcode.BRZ, {"imm": 3}),
    (0x0FFF, Opcode.BRNZP, {"imm": -1}),
    (0x0800, Opcode.BRN, {"imm": 0}),
    (0x0C03, Opcode.BRNZ, {"imm": 3}),
    (0x0A00, Opcode.BRNP, {"imm": 0}),
    (0x0600, Opcode.BRZP, {"imm": 0}),
    (0x0200, Opcode.BRP, {"imm": 0}),
    (0x1283, Opcode.ADD, {"rd": 1, "rs": 2, "rt": 3}),
    (0x128B, Opcode.MUL, {"rd": 1, "rs": 2, "rt": 3}),
    (0x1293, Opcode.SUB, {"rd": 1, "rs": 2, "rt": 3}),
    (0x129B, Opcode.DIV, {"rd": 1, "rs": 2, "rt": 3}),
    (0x12BD, Opcode.ADDI, {"rd": 1, "rs": 2, "imm": -3}),
    (0x2202, Opcode.CMP, {"rs": 1, "rt": 2}),
    (0x2282, Opcode.CMPU, {"rs": 1, "rt": 2}),
    (0x237F, Opcode.CMPI, {"rs": 1, "imm": -1}),
    (0x23FF, Opcode.CMPIU, {"rs": 1, "imm": 127}),
    (0x4805, Opcode.JSR, {"imm": 5}),
    (0x40C0, Opcode.JSRR, {"rs": 3}),
    (0x5283, Opcode.AND, {"rd": 1, "rs": 2, "rt": 3}),
    (0x5288, Opcode.NOT, {"rd": 1, "rs": 2, "rt": None}),
    (0x5293, Opcode.OR, {"rd": 1, "rs": 2, "rt": 3}),
    (0x529B, Opcode.XOR, {"rd": 1, "rs": 2, "rt": 3}),
    (0x52A5, Opcode.ANDI, {"rd": 1, "rs": 2, "imm": 5}),
    (0x62BF, Opcode.LDR, {"rd": 1, "rs": 2, "imm": -1}),
    (0x7284, Opcode.STR, {"rt": 1, "rs": 2, "imm": 4}),
    (0x8000, Opcode.RTI, {}),
    (0x93FF, Opcode.CONST, {"rd": 1, "imm": -1}),
    (0x9400, Opcode.CONST, {"rd": 2, "imm": 0}),
    (0xA284, Opcode.SLL, {"rd": 1, "rs": 2, "imm": 4}),
    (0xA294, Opcode.SRA, {"rd": 1, "rs": 2, "imm": 4}),
    (0xA2A4, Opcode.SRL, {"rd": 1, "rs": 2, "imm": 4}),
    (0xA2B3, Opcode.MOD, {"rd": 1, "rs": 2, "rt": 3}),
    (0xCFFE, Opcode.JMP, {"imm": -2}),
    (0xC1C0, Opcode.JMPR, {"rs": 7}),
    (0xD3FF, Opcode.HICONST, {"rd": 1, "imm": 0xFF}),
    (0xF025, Opcode.TRAP, {"imm": 0x25}),
    (0x3000, Opcode.UNKNOWN, {}),
    (0xB123, Opcode.UNKNOWN, {}),
    (0xEFFF, Opcode.UNKNOWN, {}),
])
def test_decode_word(word, opcode, fields):
    instr = decode_word(word, 0x0000)
    assert instr.opcode == opcode
    assert instr.word == word
    for name, value in fields.items():
        assert getattr(instr, name) == value


class TestDecodeFromMemory:
    @pytest.fixture
    def bus(self):
        bus = Bus()
        bus.register_device(0x0000, 0xFFFF, RAM(0x10000))
        return bus

    # @intent:test_case_pure デコードがバスアクセスログを残さず、同じ結果を返し続けることを検証します。
    def test_decode_is_pure(self, bus):
        bus.load(0x2000, 0x12BD)
        first = decode(bus, 0x2000)
        second = decode(bus, 0x2000)
        assert first == second
        assert first.address == 0x2000
        assert bus.get_and_clear_activity_log() == []
        assert bus.peek(0x2000) == 0x12BD

    def test_decode_never_raises(self):
        for word in range(0, 0x10000, 0x0107):
            assert decode_word(word, 0x1234) == decode_word(word, 0x1234)

    # @intent:test_case_object_words オブジェクトファイル例のワード列が期待通りの命令になることを検証します。
    def test_sample_program_words(self, bus):
        for offset, word in enumerate([0x9400, 0x2300, 0x0C03]):
            bus.load(offset, word)
        assert str(decode(bus, 0)) == "CONST R2, #0"
        assert str(decode(bus, 1)) == "CMPI R1, #0"
        assert str(decode(bus, 2)) == "BRnz x0006"


class TestPseudoInstructions:
    def test_ret(self):
        ret = make_ret(0x0010)
        assert ret.opcode == Opcode.RET
        assert ret.rs == 7
        assert ret.word == 0xC1C0

    def test_resolve_lea(self):
        instr = resolve_pseudo(Opcode.LEA, 3, "DATA", {"DATA": 0x4000}, 0x0000)
        assert instr.opcode == Opcode.LEA
        assert instr.rd == 3
        assert instr.imm == 0x4000
        assert instr.label == "DATA"

    def test_unknown_label(self):
        with pytest.raises(UnknownLabelError) as excinfo:
            resolve_pseudo(Opcode.LC, 1, "MISSING", {}, 0x0000)
        assert excinfo.value.label == "MISSING"
        assert isinstance(excinfo.value, KeyError)
        assert str(excinfo.value) == "Undefined label: MISSING"

    def test_non_pseudo_opcode_rejected(self):
        with pytest.raises(ValueError):
            resolve_pseudo(Opcode.ADD, 1, "DATA", {"DATA": 0}, 0x0000)
