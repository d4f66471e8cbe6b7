"""Symbol table for the C-- compiler: scopes, function records and frame layout."""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Sequence

_TABLE_SIZE = 512
_RULE = "-" * 60


class Type(enum.IntEnum):
    """Types a symbol or expression can have."""

    CHAR = 0
    INT = 1
    BOOL = 2
    ARRAY = 3
    FUNC = 4
    NONE = 5
    ERROR = 6
    ADDRESS = 7
    STRING = 8


class Scope(enum.IntEnum):
    """The two scopes of the language."""

    GLOBAL = 0
    LOCAL = 1


class ProtoState(enum.IntEnum):
    """How far a function has been declared."""

    PROTO = 0
    DEFINED = 1


@dataclass(eq=False)
class Symbol:
    """A symbol table entry; entries compare by identity."""

    name: str
    scope: Scope = Scope.GLOBAL
    formal: bool = False
    type: Type = Type.NONE
    elt_type: Type = Type.NONE
    num_elts: int = 0
    ret_type: Type = Type.NONE
    formals: list[Symbol] = field(default_factory=list)
    proto_state: ProtoState | None = None
    is_extern: bool = False


@dataclass(frozen=True)
class Param:
    """A parameter as declared in a function header."""

    name: str
    type: Type
    is_array: bool = False


@dataclass
class StackSlot:
    """Where a local or formal lives relative to the frame pointer."""

    name: str
    fp_offset: int
    symbol: Symbol


def _hash(name: str) -> int:
    total = sum(b if b < 128 else b - 256 for b in name.encode())
    return total % _TABLE_SIZE


def _c_mod(value: int, divisor: int) -> int:
    """Remainder with the sign of the dividend."""
    return int(math.fmod(value, divisor))


def formal_offset(function: Symbol, name: str) -> int:
    """Frame-pointer offset of the formal ``name`` of ``function``."""
    for position, formal in enumerate(function.formals):
        if formal.name == name:
            return position * 4 + 8
    raise KeyError(f"{name} is not a formal of {function.name}")


def find_slot(slots: Sequence[StackSlot], name: str) -> StackSlot | None:
    """The stack slot named ``name``, or None when it is not a local."""
    return next((slot for slot in slots if slot.name == name), None)


def type_signature(symbol: Symbol) -> str:
    """A compact rendering of a symbol's type."""
    kind = symbol.type
    if kind == Type.CHAR:
        return "C"
    if kind == Type.INT:
        return "I"
    if kind == Type.ARRAY:
        if symbol.elt_type == Type.CHAR:
            return f"C[{symbol.num_elts}]"
        if symbol.elt_type == Type.INT:
            return f"I[{symbol.num_elts}]"
        return f"{int(symbol.elt_type)}?[{symbol.num_elts}]"
    if kind == Type.FUNC:
        args = ", ".join(type_signature(f) for f in symbol.formals) or "void"
        returns = {Type.CHAR: "C", Type.INT: "I", Type.NONE: "void"}.get(
            symbol.ret_type, f"??{int(symbol.ret_type)}"
        )
        return f"({args}) -> {returns}"
    if kind == Type.NONE:
        return "-"
    return f"?!?{int(kind)}"


def describe(symbol: Symbol) -> str:
    """One line describing a symbol, as shown in table dumps."""
    scope = "G" if symbol.scope == Scope.GLOBAL else "L"
    formal = "<formal param>" if symbol.formal else ""
    return f">> {symbol.name}: scope = {scope}{formal}; type: {type_signature(symbol)}"


class SymbolTable:
    """A global and a local hash table of symbols.

    Problems found while recording declarations are collected in ``errors``.
    """

    def __init__(self) -> None:
        self._tables: dict[Scope, list[list[Symbol]]] = {}
        self.errors: list[str] = []
        for scope in Scope:
            self.reset(scope)

    def reset(self, scope: Scope) -> None:
        """Empty the table for ``scope``."""
        self._tables[Scope(scope)] = [[] for _ in range(_TABLE_SIZE)]

    def lookup(self, name: str, scope: Scope) -> Symbol | None:
        bucket = self._tables[Scope(scope)][_hash(name)]
        return next((s for s in bucket if s.name == name), None)

    def lookup_all(self, name: str) -> Symbol | None:
        """Look in the local scope first, then the global one."""
        found = self.lookup(name, Scope.LOCAL)
        return found if found is not None else self.lookup(name, Scope.GLOBAL)

    def insert(self, name: str, scope: Scope) -> Symbol:
        """Add ``name``; a repeated declaration is reported and the old entry kept."""
        existing = self.lookup(name, scope)
        if existing is not None:
            self.errors.append(f"multiple declarations of {name}")
            return existing
        symbol = Symbol(name=name, scope=Scope(scope))
        self._tables[Scope(scope)][_hash(name)].insert(0, symbol)
        return symbol

    def symbols(self, scope: Scope) -> Iterator[Symbol]:
        """Every symbol of ``scope`` in table order."""
        for bucket in self._tables[Scope(scope)]:
            yield from bucket

    def record_function(
        self,
        name: str,
        return_type: Type,
        params: Iterable[Param],
        is_proto: bool,
        is_extern: bool = False,
        scope: Scope = Scope.LOCAL,
    ) -> Symbol:
        """Record a function prototype or definition and its formals."""
        params = list(params)
        func = self.lookup(name, Scope.GLOBAL)
        if func is None:
            func = self.insert(name, Scope.GLOBAL)
        elif func.proto_state is ProtoState.PROTO and not is_proto:
            self._check_against_prototype(func, name, return_type, params)
        else:
            self.errors.append(f"Multiple prototypes/definitions for function {name}")

        func.type = Type.FUNC
        func.ret_type = return_type

        formals: list[Symbol] = []
        for param in params:
            if param.type == Type.NONE:
                self.errors.append(f"Illegal type [void] for identifier {param.name}")
                continue
            entry = self.insert(param.name, scope)
            entry.formal = True
            if param.is_array:
                entry.type, entry.elt_type = Type.ARRAY, param.type
            else:
                entry.type, entry.elt_type = param.type, Type.NONE
            formals.append(
                Symbol(
                    name=entry.name,
                    scope=entry.scope,
                    formal=True,
                    type=entry.type,
                    elt_type=entry.elt_type,
                )
            )
        func.formals = formals

        if is_proto and func.proto_state is not ProtoState.DEFINED:
            func.proto_state = ProtoState.PROTO
        else:
            func.proto_state = ProtoState.DEFINED
        func.is_extern = is_extern
        return func

    def _check_against_prototype(
        self, func: Symbol, name: str, return_type: Type, params: list[Param]
    ) -> None:
        for position, (formal, param) in enumerate(zip(func.formals, params), start=1):
            formal_array = formal.elt_type != Type.NONE
            mismatch = (
                (not formal_array and not param.is_array and formal.type != param.type)
                or (formal_array != param.is_array)
                or (formal_array and param.is_array and formal.elt_type != param.type)
            )
            if mismatch:
                self.errors.append(
                    f"function {name}: type of argument {position} "
                    "does not match that of prototype"
                )
        if len(func.formals) != len(params):
            self.errors.append(
                f"function {name}: no of arguments in definition does not match prototype"
            )
        if return_type != func.ret_type:
            self.errors.append(f"function {name}: return type does not match that of prototype")
        if func.is_extern:
            self.errors.append(f"function {name} was previously defined as EXTERN")

    def cleanup_function(self) -> None:
        """Forget the local scope once a function has been processed."""
        self.reset(Scope.LOCAL)

    def _dump(self, scope: Scope, title: str) -> str:
        lines = [f"-------------------- {title} SYMBOL TABLE --------------------"]
        lines.extend(describe(symbol) for symbol in self.symbols(scope))
        lines.append(_RULE)
        return "\n".join(lines) + "\n"

    def dump_global(self) -> str:
        return self._dump(Scope.GLOBAL, "GLOBAL")

    def dump_local(self) -> str:
        return self._dump(Scope.LOCAL, "LOCAL")

    def dump(self) -> str:
        return self.dump_global() + self.dump_local()

    def local_count(self) -> int:
        return sum(1 for _ in self.symbols(Scope.LOCAL))

    def local_stack(self, function_name: str) -> tuple[list[StackSlot], int]:
        """Lay out the frame of ``function_name``.

        Returns the slots of all locals and formals and the (negative) space
        the locals take below the frame pointer.
        """
        function = self.lookup(function_name, Scope.GLOBAL)
        offset = 0
        slots: list[StackSlot] = []
        for symbol in self.symbols(Scope.LOCAL):
            if symbol.formal:
                if function is None:
                    raise KeyError(f"unknown function {function_name}")
                slot_offset = formal_offset(function, symbol.name)
            else:
                if symbol.type == Type.ARRAY:
                    width = 1 if symbol.elt_type == Type.CHAR else 4
                    offset -= symbol.num_elts * width
                else:
                    offset -= 4
                if _c_mod(offset, 4) != 0:
                    offset -= _c_mod(offset, 4) + 4
                slot_offset = offset
            slots.append(StackSlot(symbol.name, slot_offset, symbol))
        return slots, offset

    def new_globals(self, known: Iterable[Symbol]) -> list[Symbol]:
        """Global variables not yet among ``known``.

        Within one hash bucket, scanning stops at the first function.
        """
        seen = {symbol.name for symbol in known}
        found: list[Symbol] = []
        for bucket in self._tables[Scope.GLOBAL]:
            for symbol in bucket:
                if symbol.type == Type.FUNC:
                    break
                if symbol.name not in seen:
                    seen.add(symbol.name)
                    found.append(symbol)
        return found

    def live_at_exit(self) -> list[Symbol]:
        """Every global plus every array formal of the current function."""
        result = list(self.symbols(Scope.GLOBAL))
        result.extend(
            s for s in self.symbols(Scope.LOCAL) if s.formal and s.type == Type.ARRAY
        )
        return result