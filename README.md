# cmmopt

Back-end building blocks for a compiler of a small C-like language with
integers, characters, one-dimensional arrays and functions: a two-scope symbol
table, type-checked syntax-tree construction, a three-address intermediate
representation, several machine-independent optimizations and a MIPS assembly
writer. It has no dependencies outside the standard library.

## Install

```
pip install .
pip install ".[test]"   # adds pytest for the test suite
```

## Modules

### `cmmopt.symtab`

- `Type`, `Scope` and `ProtoState` enums; `Symbol` (entries compare by
  identity), `Param` (a declared parameter) and `StackSlot` (a frame slot).
- `SymbolTable` holds a global and a local hash table:
  - `insert`, `lookup`, `lookup_all` (local first, then global), `symbols`,
    `reset`, `local_count`.
  - `record_function(name, return_type, params, is_proto, is_extern, scope)`
    records a prototype or definition and its formals, checking a definition
    against an earlier prototype. Problems such as repeated declarations are
    appended to the table's `errors` list rather than raised.
  - `cleanup_function()` empties the local scope.
  - `local_stack(function_name)` lays out the frame: it returns the slots of
    all locals and formals and the (negative) space the locals take.
  - `new_globals(known)` and `live_at_exit()` list global variables for the
    data section and for liveness at function exit.
  - `dump_global()`, `dump_local()` and `dump()` return text dumps.
- Helpers: `formal_offset`, `find_slot`, `type_signature`, `describe`.

### `cmmopt.syntax`

- `Node` with typed accessors (`intcon`, `var`, `binop_left`, `assign_rhs`,
  `for_body`, `if_else`, `list_head`, ...). Using an accessor on a node of the
  wrong kind raises `SyntaxTreeError`.
- Constructors: `const_node`, `str_node`, `symref_node`, `expr_node`,
  `stmt_node`, `error_node`, `list_node`.
- `unary_expr` and `binary_expr` type-check and build expressions, returning
  an error node on a type error; `actuals_match_formals` checks a call's
  arguments. Diagnostics go into an optional list passed by the caller.
- `append_return(tree)` makes sure a function body ends with a return.

### `cmmopt.ir`

`Instr`, `Operand`, `OpKind`, `OperandKind`, plus `is_conditional` and
`is_arithmetic`.

### `cmmopt.peephole`

Passes that edit a list of `Instr` in place:

- `remove_if` — drop a conditional jump to the label that directly follows.
- `fold_conditional_gotos` — drop repeated gotos, turn
  `if c goto L1; goto L2; L1:` into an inverted jump to `L2`, and remove
  unused labels.
- `forward_results` — let an operation write straight into the variable its
  result is copied to.
- `propagate_constants` — fold `t = c; x = t` into `x = c`.
- `collapse_jump_chains` — retarget jumps through chains of labels and gotos
  until nothing changes.

Helpers: `negate_condition`, `delete_after`, `label_unused`, `resolve_chain`.

### `cmmopt.copyprop`

`Block` (a basic block over a shared instruction list, with `successors` and
fields for data-flow results) and `BranchKind`. `propagate_copies`,
`propagate_block` and `propagate_from` replace uses of a copied variable by
its source within a block.

### `cmmopt.genkill`

`Effect` (what one instruction defines and uses), `instruction_effect`,
`block_effects`, `summarize` and `compute_gen_kill(blocks)`, which fills in
each block's `effects`, `gen` and `kill`.

### `cmmopt.liveness`

`Liveness(blocks, global_symbols, globals_live)` computes `live_in` and
`live_out` for every block; the first block is the entry. `run()` iterates to
a fixed point and returns the number of passes. `same_members` compares two
symbol lists.

### `cmmopt.deadcode`

`eliminate_in_block(block)` removes instructions whose results are never used
and recomputes gen and kill; `eliminate_dead_code(liveness)` does this for
every block reachable from the entry, re-running the analysis as it goes.
Both return the number of instructions removed.

### `cmmopt.asm`

`AsmWriter(stream, symtab, slots, stack_len)` writes MIPS assembly to any text
stream: data section (`string_table`, `globals_section`), prologue (`enter`),
built-in routines (`builtin`), and one method per instruction kind
(`assign`, `binary`, `unary`, `deref`, `compare`, `param`, `call`,
`retrieve`, `emit_return`). `mnemonic(op)` gives the instruction name for an
operation.

## Example

```python
from cmmopt.symtab import Scope, SymbolTable, Type

table = SymbolTable()
x = table.insert("x", Scope.GLOBAL)
x.type = Type.INT
assert table.lookup_all("x") is x
print(table.dump_global())
```

## What it does not do

There is no parser and no command-line compiler. The package does not
translate syntax trees into three-address code, nor split an instruction list
into basic blocks: callers build `Instr` lists and `Block` objects themselves
and then run the passes and the assembly writer on them.

## Tests

```
pytest
```