"""MIPS assembly output for three-address instructions."""

from __future__ import annotations

from typing import Iterable, Sequence, TextIO

from cmmopt.ir import Instr, OpKind, Operand, OperandKind
from cmmopt.symtab import Scope, StackSlot, Symbol, SymbolTable, Type, find_slot

_INDENT = "        "
_TEMP_REG = 8
_MAX_GLOBALS = 50

_MNEMONICS = {
    OpKind.PLUS: "add",
    OpKind.BINARY_MINUS: "sub",
    OpKind.MULT: "mul",
    OpKind.DIV: "div",
    OpKind.LOGICAL_NOT: "not",
    OpKind.UNARY_MINUS: "neg",
    OpKind.IF_EQUALS: "eq",
    OpKind.IF_NEQ: "ne",
    OpKind.IF_LEQ: "le",
    OpKind.IF_LT: "lt",
    OpKind.IF_GEQ: "ge",
    OpKind.IF_GT: "gt",
    OpKind.IF_LOGICAL_AND: "&&",
    OpKind.IF_LOGICAL_OR: "||",
}


def mnemonic(op: OpKind) -> str:
    """The instruction (or branch suffix) used for ``op``; empty if none."""
    return _MNEMONICS.get(op, "")


class AsmWriter:
    """Writes the assembly for one function's instructions to ``stream``.

    ``slots`` is the frame layout of the current function; symbols without
    a slot are globals. ``uses_print_int`` and ``uses_print_string`` record
    whether those built-ins were called.
    """

    def __init__(
        self,
        stream: TextIO,
        symtab: SymbolTable,
        slots: Sequence[StackSlot] = (),
        stack_len: int = 0,
    ) -> None:
        self.stream = stream
        self.symtab = symtab
        self.slots: list[StackSlot] = list(slots)
        self.stack_len = stack_len
        self.uses_print_int = False
        self.uses_print_string = False
        self.globals: list[Symbol] = []
        self._param_mode = False

    # -- helpers ---------------------------------------------------------

    def _line(self, text: str, indent: bool = True) -> None:
        self.stream.write((_INDENT if indent else "") + text + "\n")

    def _slot(self, name: str) -> StackSlot | None:
        return find_slot(self.slots, name)

    def _frame_slot(self, name: str) -> StackSlot:
        slot = self._slot(name)
        if slot is None:
            raise KeyError(f"{name} has no stack slot")
        return slot

    # -- data section ----------------------------------------------------

    def string_table(self, strings: Iterable[tuple[str, str]]) -> None:
        """Write the data section: new globals, then the string constants."""
        self._line(".data")
        start = len(self.globals)
        fresh = self.symtab.new_globals(self.globals)
        if fresh:
            self.globals.extend(fresh)
            self.globals_section(self.globals, start)
        for label, text in strings:
            self._line(f'_{label}:    .asciiz "{text}"', indent=False)

    def globals_section(self, globals_: Sequence[Symbol], start: int) -> None:
        """Reserve space for ``globals_[start:]`` (at most the first 50 overall)."""
        for symbol in globals_[start:_MAX_GLOBALS]:
            name = symbol.name
            if symbol.type == Type.INT:
                self._line(f"#int {name};", indent=False)
                self._line(f"_{name}: .space 4")
            elif symbol.type == Type.CHAR:
                self._line(f"#char {name};", indent=False)
                self._line(f"_{name}: .space 1")
                self._line(".align 2")
            elif symbol.type == Type.ARRAY:
                count = symbol.num_elts
                if symbol.elt_type == Type.INT:
                    self._line(f"#int {name}[{count}];", indent=False)
                    self._line(f"_{name}: .space {count * 4}")
                else:
                    self._line(f"#char {name}[{count}];", indent=False)
                    self._line(f"_{name}: .space {count}")
                    self._line(".align 2")

    # -- function framing ------------------------------------------------

    def enter(self, function_name: str) -> None:
        """Function prologue."""
        self._line(".text")
        self._line(f".globl _{function_name}")
        self._line(f"_{function_name}:", indent=False)
        self._line("la $sp, -8($sp)")
        self._line("sw $fp, 4($sp)")
        self._line("sw $ra, 0($sp)")
        self._line("la $fp, 0($sp)")
        self._line(f"la $sp, {self.stack_len}($sp)")

    def builtin(self, name: str, syscall: int) -> None:
        """A built-in routine that passes its one argument to a syscall."""
        self._line(".text")
        self._line(f"_{name}:", indent=False)
        self._line(f"li $v0, {syscall}")
        self._line("lw $a0, 0($sp)")
        self._line("syscall")
        self._line("jr $ra")

    def emit_return(self, instr: Instr, reg: int) -> None:
        """Load the return value, if any, and leave the function."""
        if instr.dest.kind != OperandKind.NONE:
            self._line(f"lw $v0, {self.location(instr.dest)}")
        self._line("la $sp,0($fp)")
        self._line("lw $ra,0($sp)")
        self._line("lw $fp,4($sp)")
        self._line("la $sp,8($sp)")
        self._line("jr $ra")

    def call(self, instr: Instr) -> None:
        """Call a function and pop its arguments."""
        name = instr.src1.value.name
        self._line(f"jal _{name}")
        self._line(f"la $sp, {instr.src2.value * 4}($sp)")
        if name == "print_int":
            self.uses_print_int = True
        if name == "print_string":
            self.uses_print_string = True

    def param(self, instr: Instr, reg: int) -> None:
        """Push an argument."""
        self._param_mode = True
        try:
            self.load(instr.src1, reg)
        finally:
            self._param_mode = False
        self._line("la $sp, -4($sp)")
        self._line(f"sw ${reg}, 0($sp)")

    def retrieve(self, instr: Instr) -> None:
        """Store a call's result into a local."""
        symbol = instr.dest.value
        slot = self._frame_slot(symbol.name)
        width = "b" if symbol.type == Type.CHAR else "w"
        self._line(f"s{width} $v0, {slot.fp_offset}($fp)")

    # -- operations ------------------------------------------------------

    def assign(self, instr: Instr, reg: int) -> None:
        src = instr.src1
        if src.kind in (OperandKind.INTCON, OperandKind.CHARCON):
            self.load(src, reg)
            self.store(instr.dest, reg)
        elif src.kind == OperandKind.STRINGCON and not self.in_temp_stack(src.value.name):
            self._line(f"la ${reg}, _{instr.dest.value.name}")
            self.store(instr.dest, reg)
        else:
            self.load(src, reg)
            self.store(instr.dest, reg)

    def binary(self, instr: Instr, reg_src1: int, reg_src2: int, reg_dest: int) -> None:
        self.load(instr.src1, reg_src1)
        self.load(instr.src2, reg_src2)
        self._line(f"{mnemonic(instr.op)} ${reg_dest}, ${reg_src1}, ${reg_src2}")
        self.store(instr.dest, reg_dest)

    def unary(self, instr: Instr, reg_src1: int, reg_dest: int) -> None:
        self.load(instr.src1, reg_src1)
        self._line(f"{mnemonic(instr.op)} ${reg_dest}, ${reg_src1}")
        self.store(instr.dest, reg_dest)

    def deref(self, instr: Instr, reg_src1: int, reg_dest: int) -> None:
        """Load through a pointer held in a local."""
        slot = self._frame_slot(instr.src1.value.name)
        self._line(f"lw ${reg_src1}, {slot.fp_offset}($fp)")
        width = "b" if instr.dest.value.type == Type.CHAR else "w"
        self._line(f"l{width} ${reg_dest}, (${reg_src1})")
        self.store(instr.dest, reg_dest)

    def compare(self, instr: Instr, reg_src1: int, reg_src2: int) -> None:
        """Conditional branch to the instruction's target label."""
        self.load(instr.src1, reg_src1)
        self.load(instr.src2, reg_src2)
        self._line(
            f"b{mnemonic(instr.op)} ${reg_src1}, ${reg_src2}, _tdest{instr.dest.value}"
        )

    # -- loads and stores, locals or globals -----------------------------

    def location(self, operand: Operand) -> str:
        """``N($fp)`` for a local, ``_name`` for a global."""
        name = operand.value.name
        slot = self._slot(name)
        return f"_{name}" if slot is None else f"{slot.fp_offset}($fp)"

    def load(self, operand: Operand, reg: int) -> None:
        """Load ``operand`` into ``reg``."""
        kind = operand.kind
        if kind in (OperandKind.INTCON, OperandKind.CHARCON):
            self._line(f"li ${reg}, {operand.value}")
        elif kind in (OperandKind.ADDRESS, OperandKind.ID_LOC):
            slot = self._slot(operand.value.name)
            if slot is None:
                self._line(f"la ${reg}, _{operand.value.name}")
            elif slot.fp_offset < 0:
                self._line(f"la ${reg}, {self.location(operand)}")
            else:
                self._line(f"lw ${reg}, {self.location(operand)}")
        elif kind == OperandKind.STRINGCON:
            self._line(f"la ${reg}, _{operand.value.name}")
        elif kind == OperandKind.SYMBOL:
            self._load_symbol(operand, reg)
        else:
            raise ValueError(f"cannot load operand of kind {kind.name}")

    def _load_symbol(self, operand: Operand, reg: int) -> None:
        symbol = operand.value
        if symbol.type == Type.STRING:
            self._line(f"la ${reg}, _{symbol.name}")
        elif symbol.type == Type.ARRAY:
            if self._slot(symbol.name) is None or self._array_param_address(symbol.name):
                self._line(f"la ${reg}, {self.location(operand)}")
            else:
                self._line(f"lw ${reg}, {self.location(operand)}")
        elif symbol.type == Type.CHAR:
            self._line(f"lb ${reg}, {self.location(operand)}")
        else:
            self._line(f"lw ${reg}, {self.location(operand)}")

    def _array_param_address(self, name: str) -> bool:
        if not self._param_mode or self.symtab.lookup(name, Scope.GLOBAL) is not None:
            return False
        local = self.symtab.lookup(name, Scope.LOCAL)
        return local is not None and local.elt_type == Type.INT

    def store(self, operand: Operand, reg: int) -> None:
        """Store ``reg`` into ``operand``, through a pointer for DEREF operands."""
        symbol = operand.value
        if operand.kind == OperandKind.DEREF:
            self._line(f"lw ${_TEMP_REG}, {self.location(operand)}")
            width = "b" if symbol.elt_type == Type.CHAR else "w"
            self._line(f"s{width} ${reg}, (${_TEMP_REG})")
        else:
            width = "b" if symbol.type == Type.CHAR else "w"
            self._line(f"s{width} ${reg}, {self.location(operand)}")

    # -- loads and stores, frame only ------------------------------------

    def load_frame(self, operand: Operand, reg: int) -> None:
        """Load ``operand``, which must be a constant or live in the frame."""
        kind = operand.kind
        if kind in (OperandKind.INTCON, OperandKind.CHARCON):
            self._line(f"li ${reg}, {operand.value}")
        elif kind == OperandKind.STRINGCON:
            self._line(f"la ${reg}, _{operand.value.name}")
        elif kind == OperandKind.SYMBOL:
            symbol = operand.value
            if symbol.type == Type.STRING:
                self._line(f"la ${reg}, _{symbol.name}")
                return
            slot = self._frame_slot(symbol.name)
            op = "la" if symbol.type == Type.ARRAY and slot.fp_offset < 0 else "lw"
            self._line(f"{op} ${reg}, {slot.fp_offset}($fp)")
        elif kind in (OperandKind.ADDRESS, OperandKind.ID_LOC):
            slot = self._frame_slot(operand.value.name)
            op = "la" if slot.fp_offset < 0 else "lw"
            self._line(f"{op} ${reg}, {slot.fp_offset}($fp)")
        else:
            raise ValueError(f"cannot load operand of kind {kind.name}")

    def store_frame(self, operand: Operand, reg: int, src_type: Type) -> None:
        """Store ``reg`` into a frame operand, sized by ``src_type``."""
        slot = self._frame_slot(operand.value.name)
        width = "b" if src_type == Type.CHAR else "w"
        if operand.kind == OperandKind.DEREF:
            self._line(f"lw ${_TEMP_REG}, {slot.fp_offset}($fp)")
            self._line(f"s{width} ${reg}, (${_TEMP_REG})")
        else:
            self._line(f"s{width} ${reg}, {slot.fp_offset}($fp)")

    def in_temp_stack(self, name: str) -> bool:
        """True when ``name`` is one of the current function's locals."""
        count = self.symtab.local_count()
        return any(slot.name == name for slot in self.slots[:count])