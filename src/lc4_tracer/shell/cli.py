# lc4_tracer/shell/cli.py
"""
LC-4 Tracer 対話シェル

オブジェクトファイルを読み込み、ステップ実行、ブレークポイント、レジスタ/メモリの
表示を行うコマンドラインインターフェースです。

Usage:
  lc4-tracer [program.obj|program.asm] [--config lc4.yaml] [--verbose] [--run]
"""
import argparse
import cmd
import logging
import re
import shlex
import sys
from typing import Optional

from lc4_tracer.common.errors import AssemblyError, ConfigError, LoadError
from lc4_tracer.config.builder import SystemBuilder
from lc4_tracer.config.loader import ConfigLoader
from lc4_tracer.debugger.debugger import Debugger, StopReason
from lc4_tracer.loader.assembler import Lc4Assembler
from lc4_tracer.shell import formatting

DEFAULT_DISASM_COUNT = 10

# @intent:constant 先頭が0の数字列は8進数として扱います（例: 010 は 8）。
_LEGACY_OCTAL = re.compile(r"^0[0-7_]+$")

class Lc4Shell(cmd.Cmd):
    """Interactive debugger for LC-4 programs."""

    intro = "LC-4 Tracer. Type 'help' for commands, 'quit' to exit."
    prompt = "(lc4) "

    def __init__(self, debugger: Debugger, stdin=None, stdout=None):
        super().__init__(stdin=stdin, stdout=stdout)
        self.debugger = debugger

    @property
    def cpu(self):
        return self.debugger.cpu

    def _print(self, text: str = "") -> None:
        print(text, file=self.stdout)

    # -- Parsing helpers --

    # @intent:utility_function アドレスを解析します。不正な値はNoneを返し、状態は変更しません。
    # @intent:rationale 0x/0o/0b接頭辞に加え、先頭0の8進表記とラベル名を受け付けます。
    def _parse_addr(self, text: str) -> Optional[int]:
        text = text.strip()
        try:
            address = int(text, 8) if _LEGACY_OCTAL.match(text) else int(text, 0)
        except ValueError:
            address = self.cpu.labels.get(text)
        if address is None or not 0 <= address <= 0xFFFF:
            self._print(f"Invalid address: {text}")
            return None
        return address

    def _report_stop(self, reason: StopReason) -> None:
        pc = self.cpu.get_state().pc
        if reason == StopReason.BREAKPOINT:
            self._print(f"Hit breakpoint at 0x{pc:04X}")
        elif reason == StopReason.FAULT:
            self._print(f"Fault: {self.debugger.last_fault}")
        elif reason == StopReason.HALTED:
            self._print(f"Program halted at 0x{pc:04X}")
        elif reason == StopReason.STOPPED:
            self._print(f"Stopped at 0x{pc:04X}")

    # ================================================================
    #  Commands
    # ================================================================

    # -- Loading --

    def do_load(self, arg):
        """Clear the machine and load an object file: load <file.obj>"""
        parts = shlex.split(arg)
        if not parts:
            self._print("Usage: load <file>")
            return
        try:
            result = self.debugger.load(parts[0])
        except LoadError as e:
            self._print(f"Error: {e}")
            return
        self._print(f"Loaded {result.words_loaded} words, {len(result.symbols)} symbols from '{parts[0]}'")

    def do_asm(self, arg):
        """Clear the machine, assemble a source file and load it: asm <file.asm>"""
        parts = shlex.split(arg)
        if not parts:
            self._print("Usage: asm <file>")
            return
        try:
            program = Lc4Assembler().assemble_file(parts[0])
            result = self.debugger.load_bytes(program.to_object_bytes())
        except (OSError, AssemblyError, LoadError) as e:
            self._print(f"Error: {e}")
            return
        self._print(f"Assembled {result.words_loaded} words, {len(result.symbols)} symbols from '{parts[0]}'")

    # -- Execution --

    # @intent:responsibility 実行コマンドを実行します。Ctrl-Cで中断した場合はシェルを終了せず、停止位置を表示します。
    def _run_and_report(self, action) -> None:
        try:
            reason = action()
        except KeyboardInterrupt:
            self.debugger.stop()
            reason = StopReason.STOPPED
        self._report_stop(reason)

    def do_run(self, arg):
        """Reset the machine and run until halt, fault or breakpoint."""
        self._run_and_report(self.debugger.run)

    def do_continue(self, arg):
        """Continue running until halt, fault or breakpoint."""
        self._run_and_report(self.debugger.continue_)
    do_c = do_continue

    def do_step(self, arg):
        """Execute one instruction."""
        pc = self.cpu.get_state().pc
        if self.debugger.step():
            snapshot = self.debugger.get_last_snapshot()
            self._print(f"0x{pc:04X}:  {snapshot.metadata.symbol_info}")
        elif self.debugger.last_fault is not None:
            self._print(f"Fault: {self.debugger.last_fault}")
        else:
            self._print(f"Program halted at 0x{pc:04X}")
    do_s = do_step

    def do_next(self, arg):
        """Run until the instruction after the current one is reached."""
        self._run_and_report(self.debugger.next)
    do_n = do_next

    # -- Breakpoints --

    def do_breakpoint(self, arg):
        """Set breakpoint: breakpoint <address|label>. Addresses accept 0x/0o/0b prefixes and leading-zero octal. Without argument, list breakpoints."""
        if not arg.strip():
            breakpoints = self.debugger.get_breakpoints()
            if not breakpoints:
                self._print("No breakpoints set.")
            for address in breakpoints:
                self._print(f"  0x{address:04X}")
            return
        address = self._parse_addr(arg)
        if address is None:
            return
        self.debugger.set_breakpoint(address)
        self._print(f"Breakpoint set at 0x{address:04X}")
    do_b = do_breakpoint

    def do_delete(self, arg):
        """Delete breakpoint: delete <address|label>"""
        address = self._parse_addr(arg)
        if address is None:
            return
        self.debugger.remove_breakpoint(address)
        self._print(f"Breakpoint at 0x{address:04X} removed.")

    # -- Inspection --

    def do_print(self, arg):
        """Print machine state: print [code | mem <address> | psr | nzp | reg]"""
        parts = arg.split()
        state = self.cpu.get_state()
        what = parts[0].lower() if parts else ""
        if what == "":
            self._print(formatting.format_code(self.cpu))
            self._print(formatting.format_psr(state))
            self._print(formatting.format_registers(state))
        elif what == "code":
            self._print(formatting.format_code(self.cpu))
        elif what == "mem":
            if len(parts) < 2:
                self._print("Usage: print mem <address>")
                return
            address = self._parse_addr(parts[1])
            if address is not None:
                self._print(formatting.format_memory(self.cpu, address))
        elif what == "psr":
            self._print(formatting.format_psr(state))
        elif what == "nzp":
            self._print(formatting.format_nzp(state))
        elif what in ("reg", "regs"):
            self._print(formatting.format_registers(state))
        else:
            self._print(f"Unknown print target: {parts[0]}")
    do_p = do_print

    def do_disasm(self, arg):
        """Disassemble memory: disasm [address] [count]"""
        parts = arg.split()
        start = self.cpu.get_state().pc
        if parts:
            start = self._parse_addr(parts[0])
            if start is None:
                return
        count = DEFAULT_DISASM_COUNT
        if len(parts) > 1:
            try:
                count = int(parts[1], 0)
            except ValueError:
                self._print(f"Invalid count: {parts[1]}")
                return
        self._print(formatting.format_disassembly(self.cpu, start, count))

    # -- Machine state --

    def do_reset(self, arg):
        """Reset registers, PC and PSR. Memory and breakpoints are kept."""
        self.debugger.reset()
        self._print("Machine reset.")

    def do_clear(self, arg):
        """Clear memory, labels and breakpoints, then reset."""
        self.debugger.clear()
        self._print("Machine cleared.")

    def do_quit(self, arg):
        """Exit the shell."""
        return True
    do_q = do_quit

    def do_EOF(self, arg):
        self._print()
        return self.do_quit(arg)

    def default(self, line):
        self._print(f"Unknown command: {line.split()[0]!r}. Type 'help' for available commands.")

    def emptyline(self):
        pass

# @intent:responsibility 構成を読み込み、マシンとデバッガを組み立てます。
def build_debugger(config_path: Optional[str] = None) -> Debugger:
    config = ConfigLoader().load_from_file(config_path) if config_path else None
    cpu, _ = SystemBuilder().build_system(config)
    return Debugger(cpu)

def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="lc4-tracer", description="LC-4 instruction set tracer and debugger")
    parser.add_argument("program", nargs="?", help="object file (.obj) or assembly source (.asm) to load")
    parser.add_argument("--config", type=str, default=None, help="machine configuration YAML")
    parser.add_argument("--verbose", "-v", action="store_true", help="enable debug logging")
    parser.add_argument("--run", action="store_true", help="run the program and exit instead of starting the shell")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        debugger = build_debugger(args.config)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    shell = Lc4Shell(debugger)
    if args.program:
        if args.program.lower().endswith(".asm"):
            shell.do_asm(shlex.quote(args.program))
        else:
            shell.do_load(shlex.quote(args.program))

    if args.run:
        shell.do_run("")
        shell.do_print("")
        return 1 if debugger.last_fault is not None else 0

    shell.cmdloop()
    return 0

if __name__ == "__main__":
    sys.exit(main())
