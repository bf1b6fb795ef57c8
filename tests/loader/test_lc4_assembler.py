# tests/loader/test_lc4_assembler.py
"""
lc4_tracer.loader.assemblerモジュールの単体テスト。
"""
import pytest

from lc4_tracer.common.errors import AssemblyError
from lc4_tracer.config.builder import SystemBuilder
from lc4_tracer.debugger.debugger import Debugger, StopReason
from lc4_tracer.loader.assembler import Lc4Assembler, assemble
from lc4_tracer.loader.objfile import CodeBlock, DataBlock, FileNameBlock, LineNumberBlock, SymbolBlock

COUNTDOWN_SOURCE = """
; R0を5から0まで数え下げて停止する
HALT    .UCONST x80FF

        .CODE
        .ADDR x8200
        CONST R0, #5
LOOP    ADD R0, R0, #-1
        BRp LOOP
        JMP HALT
"""

def code_blocks(program):
    return [b for b in program.blocks if isinstance(b, CodeBlock)]

# @intent:test_suite アセンブラの機械語生成を検証します。

def test_countdown_program():
    program = assemble(COUNTDOWN_SOURCE)
    assert code_blocks(program) == [CodeBlock(0x8200, [0x9005, 0x103F, 0x03FE, 0xCEFB])]
    assert program.symbol_map == {"LOOP": 0x8201}
    assert program.constants == {"HALT": 0x80FF}
    assert SymbolBlock(0x8201, "LOOP") in program.blocks
    # 定数はシンボルブロックとして出力されない
    assert all(b.name != "HALT" for b in program.blocks if isinstance(b, SymbolBlock))

def test_lc_expands_to_three_words():
    source = """
        .DATA
        .ADDR x4000
VALUE   .FILL #42
        .CODE
        LC R1, VALUE
        LEA R2, VALUE
    """
    program = assemble(source)
    assert code_blocks(program) == [CodeBlock(0x0000, [0x9200, 0xD340, 0x6240, 0x9400, 0xD540])]
    assert DataBlock(0x4000, [42]) in program.blocks

def test_register_and_immediate_forms():
    source = """
        ADD R1, R2, R3
        MUL R1, R2, R3
        AND R4, R5, #-16
        NOT R0, R7
        CMPI R1, #-64
        CMPIU R1, #127
        SLL R1, R2, #15
        MOD R1, R2, R3
        STR R5, R6, #-1
        HICONST R3, xFF
        TRAP x25
        RTI
        RET
        JMPR R3
        JSRR R4
        NOP
    """
    words = code_blocks(assemble(source))[0].words
    assert words == [
        0x1283, 0x128B, 0x5970, 0x51C8,
        0x2340, 0x23FF, 0xA28F, 0xA2B3,
        0x7BBF, 0xD7FF, 0xF025, 0x8000,
        0xC1C0, 0xC0C0, 0x4100, 0x0000,
    ]

# @intent:test_case_hiconst HICONSTは標準のLC-4形式（ビット8が1）で出力されることを検証します。
def test_hiconst_sets_bit_eight():
    assert code_blocks(assemble("HICONST R1, x12"))[0].words == [0xD312]
    assert code_blocks(assemble("LEA R0, x1234"))[0].words == [0x9034, 0xD112]

def test_falign_and_jsr():
    source = """
        .CODE
        JSR FUNC
        NOP
        .FALIGN
FUNC    RET
    """
    program = assemble(source)
    assert code_blocks(program) == [CodeBlock(0x0000, [0x4801, 0x0000]), CodeBlock(0x0010, [0xC1C0])]
    assert program.symbol_map["FUNC"] == 0x0010

def test_blkw_and_fill_share_a_data_block():
    source = """
        .DATA
ARR     .BLKW 3
END     .FILL xBEEF
    """
    program = assemble(source)
    assert [b for b in program.blocks if isinstance(b, DataBlock)] == [DataBlock(0x2000, [0, 0, 0, 0xBEEF])]
    assert program.symbol_map == {"ARR": 0x2000, "END": 0x2003}

def test_line_numbers_with_file_name():
    program = Lc4Assembler().assemble("CONST R0, #1\n\nADD R0, R0, R0\n", file_name="prog.asm")
    assert FileNameBlock("prog.asm") in program.blocks
    assert [b for b in program.blocks if isinstance(b, LineNumberBlock)] == [
        LineNumberBlock(0x0000, 1, 0), LineNumberBlock(0x0001, 3, 0),
    ]

def test_assemble_file(tmp_path):
    path = tmp_path / "countdown.asm"
    path.write_text(COUNTDOWN_SOURCE, encoding="utf-8")
    program = Lc4Assembler().assemble_file(str(path))
    assert FileNameBlock(str(path)) in program.blocks

@pytest.mark.parametrize("source, message", [
    ("ADD R0, R0, #16", "out of range"),
    ("        BRz NOWHERE", "Undefined symbol"),
    ("X NOP\nX NOP", "Duplicate label"),
    ("CONST R8, #1", "Expected register"),
    ("SUB R0, R0, #1", "does not take an immediate"),
    ("JSR x0001", "not 16-word aligned"),
    (".CONST #1", "requires a label"),
    ("ADD R0, R0", "expects 3 operand"),
])
def test_errors(source, message):
    with pytest.raises(AssemblyError, match=message):
        assemble(source)

def test_error_reports_line_number():
    with pytest.raises(AssemblyError) as excinfo:
        assemble("NOP\nCONST R0, #300\n")
    assert excinfo.value.line == 2
    assert str(excinfo.value).startswith("line 2:")

# @intent:test_case_integration アセンブルしたプログラムを読み込み、停止アドレスまで実行できることを検証します。
def test_assembled_program_runs():
    cpu, _ = SystemBuilder().build_system()
    debugger = Debugger(cpu)
    debugger.load_bytes(assemble(COUNTDOWN_SOURCE).to_object_bytes())
    assert cpu.labels == {"LOOP": 0x8201}

    assert debugger.run() == StopReason.HALTED
    state = cpu.get_state()
    assert state.registers[0] == 0
    assert state.pc == 0x80FF
