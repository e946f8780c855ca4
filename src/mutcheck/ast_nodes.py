"""Program model for Go sources: packages, files, declarations and bodies.

Only the shapes the mutability checker looks at are modelled precisely;
everything else lowers to ``OtherExpr`` / ``OtherStmt`` so the walk can still
reach nested calls and identifiers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from mutcheck.source import Span

# ── Type expressions ─────────────────────────────────────────────


@dataclass(frozen=True)
class TypeName:
    """A named type, optionally qualified by an import alias (``pkg.T``)."""

    name: str
    package: str | None
    span: Span


# ── Expressions ──────────────────────────────────────────────────


@dataclass(frozen=True)
class Ident:
    name: str
    span: Span


@dataclass(frozen=True)
class SelectorExpr:
    operand: Expr
    field: Ident
    span: Span


@dataclass(frozen=True)
class CallExpr:
    func: Expr
    args: list[Expr]
    span: Span


@dataclass(frozen=True)
class UnaryExpr:
    op: str
    operand: Expr
    span: Span


@dataclass(frozen=True)
class FuncLit:
    params: list[Param]
    results: list[Param]
    body: Block
    span: Span


@dataclass(frozen=True)
class TypeAssertExpr:
    operand: Expr
    type_name: TypeName | None
    span: Span


@dataclass(frozen=True)
class CompositeLit:
    type_name: TypeName | None
    elements: list[Expr]
    span: Span


@dataclass(frozen=True)
class OtherExpr:
    """Any expression without checker-relevant structure (literals, binary ops, ...)."""

    kind: str
    children: list[Expr]
    span: Span


Expr = Union[
    Ident, SelectorExpr, CallExpr, UnaryExpr, FuncLit,
    TypeAssertExpr, CompositeLit, OtherExpr,
]


# ── Statements ───────────────────────────────────────────────────


@dataclass(frozen=True)
class Param:
    name: str | None  # None for unnamed parameters
    type_name: TypeName | None
    span: Span


@dataclass(frozen=True)
class AssignStmt:
    """``=``, ``:=``, compound assignment, or ``++``/``--`` (no values)."""

    targets: list[Expr]
    values: list[Expr]
    op: str
    span: Span

    @property
    def declares(self) -> bool:
        return self.op == ":="


@dataclass(frozen=True)
class VarDecl:
    names: list[Ident]
    type_name: TypeName | None
    values: list[Expr]
    span: Span
    const: bool = False


@dataclass(frozen=True)
class DeclStmt:
    decls: list[VarDecl]
    span: Span


@dataclass(frozen=True)
class ExprStmt:
    expr: Expr
    span: Span


@dataclass(frozen=True)
class GoStmt:
    call: Expr
    span: Span


@dataclass(frozen=True)
class DeferStmt:
    call: Expr
    span: Span


@dataclass(frozen=True)
class ReturnStmt:
    values: list[Expr]
    span: Span


@dataclass(frozen=True)
class SendStmt:
    channel: Expr
    value: Expr
    span: Span


@dataclass(frozen=True)
class Block:
    stmts: list[Stmt]
    span: Span


@dataclass(frozen=True)
class IfStmt:
    init: Stmt | None
    cond: Expr | None
    then: Block
    else_: Block | IfStmt | None
    span: Span


@dataclass(frozen=True)
class ForStmt:
    init: Stmt | None
    cond: Expr | None
    post: Stmt | None
    body: Block
    span: Span


@dataclass(frozen=True)
class RangeStmt:
    targets: list[Expr]
    op: str | None  # ":=", "=" or None for a bare ``for range``
    iterable: Expr | None
    body: Block
    span: Span


@dataclass(frozen=True)
class CaseClause:
    exprs: list[Expr]
    body: list[Stmt]
    span: Span
    types: list[TypeName | None] = field(default_factory=list)


@dataclass(frozen=True)
class SwitchStmt:
    """Expression switch, or type switch when ``binding`` names the guard."""

    init: Stmt | None
    tag: Expr | None
    binding: Ident | None
    clauses: list[CaseClause]
    span: Span


@dataclass(frozen=True)
class CommClause:
    comm: Stmt | None  # None for ``default``
    body: list[Stmt]
    span: Span


@dataclass(frozen=True)
class SelectStmt:
    clauses: list[CommClause]
    span: Span


@dataclass(frozen=True)
class OtherStmt:
    """break, continue, goto, fallthrough, empty and local type declarations."""

    exprs: list[Expr]
    span: Span


Stmt = Union[
    AssignStmt, DeclStmt, ExprStmt, GoStmt, DeferStmt, ReturnStmt, SendStmt,
    Block, IfStmt, ForStmt, RangeStmt, SwitchStmt, SelectStmt, OtherStmt,
]


# ── Top-level declarations ───────────────────────────────────────


@dataclass(frozen=True)
class ImportSpec:
    path: str
    alias: str | None  # explicit alias, "." or "_"
    span: Span


@dataclass(frozen=True)
class FuncDecl:
    name: str
    receiver: Param | None
    params: list[Param]
    results: list[Param]
    body: Block | None
    span: Span

    @property
    def param_names(self) -> list[str]:
        return [p.name for p in self.params if p.name is not None]


@dataclass(frozen=True)
class TypeDecl:
    name: str
    span: Span


Decl = Union[FuncDecl, TypeDecl, VarDecl]


@dataclass(frozen=True)
class SourceFile:
    path: str
    package_name: str
    imports: list[ImportSpec]
    decls: list[Decl]


@dataclass(frozen=True)
class Package:
    id: str  # import path
    name: str
    directory: str
    files: list[SourceFile]
