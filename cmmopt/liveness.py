"""Iterative live-variable analysis over basic blocks."""

from __future__ import annotations

from typing import Iterable, Sequence

from cmmopt.copyprop import Block, BranchKind
from cmmopt.genkill import ordered_add, ordered_remove
from cmmopt.ir import OpKind, OperandKind
from cmmopt.symtab import Symbol


def same_members(first: Sequence[Symbol], second: Sequence[Symbol]) -> bool:
    """True when every member of ``first`` is in ``second``.

    An empty ``first`` matches only an empty ``second``.
    """
    if not first:
        return not second
    return all(any(item is other for other in second) for item in first)


class Liveness:
    """Live-in and live-out sets of a function's blocks.

    The first block is the entry. ``global_symbols`` are live at exit;
    when ``globals_live`` is set they also seed every block's live-in, once.
    """

    def __init__(
        self,
        blocks: Iterable[Block],
        global_symbols: Iterable[Symbol],
        globals_live: bool = False,
    ) -> None:
        self.blocks: list[Block] = list(blocks)
        if not self.blocks:
            raise ValueError("liveness needs at least one block")
        self.global_symbols: list[Symbol] = list(global_symbols)
        self.globals_live = globals_live
        self.iteration_count = 0
        self._visited: list[Block] = []

    def seed(self) -> None:
        """Start every block's live-in from its gen set."""
        for block in self.blocks:
            block.live_in = list(block.gen)
            if self.globals_live:
                for symbol in self.global_symbols:
                    ordered_add(block.live_in, symbol)
            block.live_out = []
        self.globals_live = False

    def _exit_uses(self, block: Block) -> list[Symbol]:
        start = next(i for i, ins in enumerate(block.code) if ins is block.head)
        used: list[Symbol] = []
        for ins in block.code[start:]:
            if (
                ins.op == OpKind.RETURN
                and ins.dest.kind != OperandKind.NONE
                and isinstance(ins.dest.value, Symbol)
            ):
                ordered_add(used, ins.dest.value)
        for symbol in self.global_symbols:
            ordered_add(used, symbol)
        return used

    def update_block(self, block: Block) -> None:
        """Recompute live-out from the successors, then live-in."""
        block.iteration += 1
        if block.kind == BranchKind.NO_BRANCH:
            out = list(block.successors[0].live_in)
        elif block.kind == BranchKind.BRANCH:
            out = list(block.successors[0].live_in)
            for symbol in block.successors[1].live_in:
                ordered_add(out, symbol)
        else:
            out = self._exit_uses(block)
        block.live_out = out

        live_in = list(out)
        for symbol in block.kill:
            if not symbol.formal:
                ordered_remove(live_in, symbol)
        for symbol in block.gen:
            ordered_add(live_in, symbol)
        block.live_in = live_in

    def _visit(self, block: Block) -> None:
        self._visited.append(block)
        if block.kind == BranchKind.FINISH:
            return
        children = block.successors[:1] if block.kind == BranchKind.NO_BRANCH else block.successors[:2]
        for child in children:
            if child.iteration != self.iteration_count:
                if any(child is seen for seen in self._visited):
                    return
                self._visit(child)
                self.update_block(child)

    def converged(self) -> bool:
        """Compare with the previous pass and remember the current sets."""
        stable = True
        for block in self.blocks:
            if not same_members(block.prev_in, block.live_in):
                block.prev_in = list(block.live_in)
                stable = False
            if not same_members(block.prev_out, block.live_out):
                block.prev_out = list(block.live_out)
                stable = False
        return stable

    def run(self) -> int:
        """Iterate to a fixed point; returns the number of passes made."""
        self.seed()
        self.iteration_count = 1
        entry = self.blocks[0]
        entry.live_out = []
        for block in self.blocks:
            block.prev_in = []
            block.prev_out = []
        passes = 0
        while True:
            self._visited = [entry]
            self._visit(entry)
            self.update_block(entry)
            self.iteration_count += 1
            passes += 1
            if self.converged():
                return passes