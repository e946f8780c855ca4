"""Mutability checker for Go function bodies.

Walks each function declared in a file and reports:

  M100  an immutable argument passed to a parameter named as mutable
  M200  assignment to a variable not named as mutable
  M201  assignment to a struct field not named as mutable
  M300  a mutable binding shared with a goroutine

Every function is checked inside its own fault boundary: an unexpected
exception turns that function into a skipped FunctionOutcome instead of
aborting the file.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from mutcheck.ast_nodes import (
    AssignStmt,
    Block,
    CallExpr,
    CaseClause,
    CommClause,
    CompositeLit,
    DeclStmt,
    DeferStmt,
    Expr,
    ExprStmt,
    ForStmt,
    FuncDecl,
    FuncLit,
    GoStmt,
    Ident,
    IfStmt,
    OtherExpr,
    OtherStmt,
    Package,
    Param,
    RangeStmt,
    ReturnStmt,
    SelectorExpr,
    SelectStmt,
    SendStmt,
    SourceFile,
    Stmt,
    SwitchStmt,
    TypeAssertExpr,
    UnaryExpr,
    VarDecl,
)
from mutcheck.errors import Diagnostic, SubjectKind, Suggestion
from mutcheck.resolver import Resolver
from mutcheck.source import Span
from mutcheck.symbols import (
    BLANK,
    DEFAULT_POLICY,
    Binding,
    BindingKind,
    DeclarationIndex,
    ImportTable,
    Mutability,
    NamingPolicy,
    Scope,
    TypeRef,
    declaration_id,
)

logger = logging.getLogger(__name__)

# Predeclared identifiers that are never bindings.
_PREDECLARED = frozenset({"nil", "true", "false", "iota"})

_GOROUTINE_NOTE = "goroutines may only share bindings without a mutable marker"


@dataclass
class FunctionOutcome:
    """Result of checking one function: diagnostics, or a skip with a reason."""

    name: str
    diagnostics: list[Diagnostic] = field(default_factory=list)
    skipped: bool = False
    reason: str | None = None


@dataclass
class _Task:
    """A goroutine body being walked; ``depth`` is its function depth."""

    depth: int
    reported: set[Binding] = field(default_factory=set)


def describe(expr: Expr | None) -> str:
    """Short source-like rendering of an expression, for messages."""
    if isinstance(expr, Ident):
        return expr.name
    if isinstance(expr, SelectorExpr):
        return f"{describe(expr.operand)}.{expr.field.name}"
    if isinstance(expr, CallExpr):
        return f"{describe(expr.func)}()"
    if isinstance(expr, UnaryExpr) and expr.op == "*":
        return f"(*{describe(expr.operand)})"
    return "(...)"


class Checker:
    """Checks the functions of one file against the naming convention."""

    def __init__(
        self,
        index: DeclarationIndex,
        *,
        policy: NamingPolicy = DEFAULT_POLICY,
        goroutines: bool = True,
    ) -> None:
        self.index = index
        self.policy = policy
        self.goroutines = goroutines
        self.resolver = Resolver(index)
        self._package_id = ""
        self._imports = ImportTable()
        self._reset(Scope())

    def _reset(self, scope: Scope) -> None:
        self.scope = scope
        self.diagnostics: list[Diagnostic] = []
        self._depth = 0
        self._tasks: list[_Task] = []

    # ── Public API ──────────────────────────────────────────────

    def check(self, package: Package, file: SourceFile) -> list[FunctionOutcome]:
        """Check every function body in ``file``, one outcome per function.

        Package-level ``var`` initializers get an outcome of their own, since
        they can hold calls and function literals.
        """
        self._package_id = package.id
        self._imports = self.index.imports(file)
        outcomes = []
        for decl in file.decls:
            if isinstance(decl, FuncDecl) and decl.body is not None:
                outcomes.append(self.check_function(decl))
            elif isinstance(decl, VarDecl) and decl.values and not decl.const:
                outcomes.append(self.check_initializer(decl))
        return outcomes

    def check_function(self, decl: FuncDecl) -> FunctionOutcome:
        name = declaration_id(self._package_id, decl) or f"{self._package_id}.<func>"
        return self._guarded(name, self._check_function, decl)

    def check_initializer(self, decl: VarDecl) -> FunctionOutcome:
        names = ", ".join(ident.name for ident in decl.names)
        name = f"{self._package_id}.var {names}"
        return self._guarded(name, self._walk_exprs, decl.values)

    def _guarded(self, name, walk, node) -> FunctionOutcome:
        self._reset(Scope(parent=self.index.package_scope(self._package_id), name=name))
        try:
            walk(node)
        except Exception as e:
            logger.debug("traceback while checking %s", name, exc_info=True)
            return FunctionOutcome(name, skipped=True, reason=f"{type(e).__name__}: {e}")
        return FunctionOutcome(name, diagnostics=list(self.diagnostics))

    # ── Diagnostic helpers ──────────────────────────────────────

    def _needs_prefix(self, code: str, subject: SubjectKind, name: str, span: Span,
                      bare_name: str) -> None:
        self.diagnostics.append(Diagnostic(
            code=code,
            subject=subject,
            name=name,
            message=(
                f"{subject.value} '{name}' should be prefixed with "
                f"{self.policy.describe_prefixes()}"
            ),
            span=span,
            suggestions=(Suggestion(
                message=f"rename '{bare_name}'",
                replacement=self.policy.suggest(bare_name),
            ),),
        ))

    def _shared_with_goroutine(self, name: str, span: Span) -> None:
        self.diagnostics.append(Diagnostic(
            code="M300",
            subject=SubjectKind.VARIABLE,
            name=name,
            message=f"Variable '{name}' is mutable and must not be shared with a goroutine",
            span=span,
            notes=(_GOROUTINE_NOTE,),
        ))

    def _is(self, name: str, tag: Mutability) -> bool:
        return self.policy.classify(name) is tag

    # ── Scopes and bindings ─────────────────────────────────────

    def _push_scope(self, name: str = "") -> None:
        self.scope = Scope(parent=self.scope, name=name)

    def _pop_scope(self) -> None:
        if self.scope.parent is None:
            raise RuntimeError("cannot pop outermost scope")
        self.scope = self.scope.parent

    def _define(self, name: str, kind: BindingKind, type_ref: TypeRef | None,
                span: Span) -> None:
        if name == BLANK:
            return
        self.scope.define(Binding(
            name=name, kind=kind, type_ref=type_ref, span=span, depth=self._depth,
        ))

    def _define_params(self, params: list[Param], kind: BindingKind) -> None:
        for param in params:
            if param.name is not None:
                self._define(
                    param.name, kind, self._imports.type_ref(param.type_name), param.span,
                )

    # ── Functions ───────────────────────────────────────────────

    def _check_function(self, decl: FuncDecl) -> None:
        self._depth = 1
        if decl.receiver is not None:
            self._define_params([decl.receiver], BindingKind.RECEIVER)
        self._define_params(decl.params, BindingKind.PARAMETER)
        self._define_params(decl.results, BindingKind.RESULT)
        # Parameters share the outermost block of the body.
        if decl.body is not None:
            self._check_stmts(decl.body.stmts)

    def _check_func_lit(self, lit: FuncLit) -> None:
        self._depth += 1
        self._push_scope("func literal")
        self._define_params(lit.params, BindingKind.PARAMETER)
        self._define_params(lit.results, BindingKind.RESULT)
        self._check_stmts(lit.body.stmts)
        self._pop_scope()
        self._depth -= 1

    # ── Statements ──────────────────────────────────────────────

    def _check_stmts(self, stmts: list[Stmt]) -> None:
        for stmt in stmts:
            self._check_stmt(stmt)

    def _check_block(self, block: Block, name: str = "block") -> None:
        self._push_scope(name)
        self._check_stmts(block.stmts)
        self._pop_scope()

    def _check_stmt(self, stmt: Stmt | None) -> None:
        if stmt is None:
            return
        if isinstance(stmt, AssignStmt):
            self._check_assignment(stmt)
        elif isinstance(stmt, DeclStmt):
            for decl in stmt.decls:
                self._check_var_decl(decl)
        elif isinstance(stmt, ExprStmt):
            self._walk_expr(stmt.expr)
        elif isinstance(stmt, GoStmt):
            self._check_go(stmt)
        elif isinstance(stmt, DeferStmt):
            self._walk_expr(stmt.call)
        elif isinstance(stmt, ReturnStmt):
            self._walk_exprs(stmt.values)
        elif isinstance(stmt, SendStmt):
            self._walk_expr(stmt.channel)
            self._walk_expr(stmt.value)
        elif isinstance(stmt, Block):
            self._check_block(stmt)
        elif isinstance(stmt, IfStmt):
            self._check_if(stmt)
        elif isinstance(stmt, ForStmt):
            self._check_for(stmt)
        elif isinstance(stmt, RangeStmt):
            self._check_range(stmt)
        elif isinstance(stmt, SwitchStmt):
            self._check_switch(stmt)
        elif isinstance(stmt, SelectStmt):
            self._check_select(stmt)
        elif isinstance(stmt, OtherStmt):
            self._walk_exprs(stmt.exprs)
        else:
            raise TypeError(f"unhandled statement {type(stmt).__name__}")

    def _check_var_decl(self, decl: VarDecl) -> None:
        self._walk_exprs(decl.values)
        kind = BindingKind.CONSTANT if decl.const else BindingKind.VARIABLE
        declared = self._imports.type_ref(decl.type_name)
        paired = len(decl.values) == len(decl.names)
        for i, ident in enumerate(decl.names):
            type_ref = declared
            if type_ref is None and paired:
                type_ref = self._imports.infer_type_ref(decl.values[i])
            self._define(ident.name, kind, type_ref, ident.span)

    def _check_assignment(self, stmt: AssignStmt) -> None:
        self._walk_exprs(stmt.values)
        if stmt.declares:
            self._declare_targets(stmt.targets, stmt.values, BindingKind.VARIABLE)
            return
        for target in stmt.targets:
            self._check_target(target)
            self._walk_expr(target)

    def _declare_targets(self, targets: list[Expr], values: list[Expr],
                         kind: BindingKind) -> None:
        """``:=`` semantics: new names are declared, redeclared ones are assigned."""
        paired = len(values) == len(targets)
        for i, target in enumerate(targets):
            if not isinstance(target, Ident):
                self._walk_expr(target)
                continue
            if target.name == BLANK:
                continue
            if self.scope.lookup_local(target.name) is not None:
                self._check_target(target)
                self._reference(target)
                continue
            type_ref = self._imports.infer_type_ref(values[i]) if paired else None
            self._define(target.name, kind, type_ref, target.span)

    def _check_target(self, target: Expr) -> None:
        if isinstance(target, Ident):
            if self._is(target.name, Mutability.IMMUTABLE):
                self._needs_prefix(
                    "M200", SubjectKind.VARIABLE, target.name, target.span, target.name,
                )
        elif isinstance(target, SelectorExpr):
            field_name = target.field.name
            if self._is(field_name, Mutability.IMMUTABLE):
                subject, name = self._field_subject(target)
                code = "M201" if subject is SubjectKind.FIELD else "M200"
                self._needs_prefix(code, subject, name, target.field.span, field_name)

    def _field_subject(self, target: SelectorExpr) -> tuple[SubjectKind, str]:
        """How to name ``recv.field`` in a message: ``Type.field`` when known."""
        operand = target.operand
        field_name = target.field.name
        if isinstance(operand, Ident):
            binding = self.scope.lookup(operand.name)
            if binding is not None:
                owner = self.resolver.receiver_type(binding, self._package_id)
                if owner is not None:
                    return SubjectKind.FIELD, f"{owner[1]}.{field_name}"
                return SubjectKind.FIELD, f"{operand.name}.{field_name}"
            if operand.name in self._imports:
                # Package-level variable of another package.
                return SubjectKind.VARIABLE, f"{operand.name}.{field_name}"
        return SubjectKind.FIELD, f"{describe(operand)}.{field_name}"

    def _check_if(self, stmt: IfStmt) -> None:
        self._push_scope("if")
        self._check_stmt(stmt.init)
        self._walk_expr(stmt.cond)
        self._check_block(stmt.then)
        if isinstance(stmt.else_, IfStmt):
            self._check_if(stmt.else_)
        elif stmt.else_ is not None:
            self._check_block(stmt.else_)
        self._pop_scope()

    def _check_for(self, stmt: ForStmt) -> None:
        self._push_scope("for")
        self._check_stmt(stmt.init)
        self._walk_expr(stmt.cond)
        self._check_stmt(stmt.post)
        self._check_block(stmt.body)
        self._pop_scope()

    def _check_range(self, stmt: RangeStmt) -> None:
        self._walk_expr(stmt.iterable)
        self._push_scope("range")
        if stmt.op == ":=":
            self._declare_targets(stmt.targets, [], BindingKind.RANGE)
        else:
            for target in stmt.targets:
                self._check_target(target)
                self._walk_expr(target)
        self._check_block(stmt.body)
        self._pop_scope()

    def _check_switch(self, stmt: SwitchStmt) -> None:
        self._push_scope("switch")
        self._check_stmt(stmt.init)
        self._walk_expr(stmt.tag)
        for clause in stmt.clauses:
            self._check_case(stmt, clause)
        self._pop_scope()

    def _check_case(self, stmt: SwitchStmt, clause: CaseClause) -> None:
        self._walk_exprs(clause.exprs)
        self._push_scope("case")
        if stmt.binding is not None:
            type_ref = None
            if len(clause.types) == 1:
                type_ref = self._imports.type_ref(clause.types[0])
            self._define(stmt.binding.name, BindingKind.VARIABLE, type_ref, stmt.binding.span)
        self._check_stmts(clause.body)
        self._pop_scope()

    def _check_select(self, stmt: SelectStmt) -> None:
        for clause in stmt.clauses:
            self._check_comm(clause)

    def _check_comm(self, clause: CommClause) -> None:
        self._push_scope("select case")
        self._check_stmt(clause.comm)
        self._check_stmts(clause.body)
        self._pop_scope()

    # ── Goroutines ──────────────────────────────────────────────

    def _check_go(self, stmt: GoStmt) -> None:
        call = stmt.call
        if not self.goroutines or not isinstance(call, CallExpr):
            self._walk_expr(call)
            return

        # Values handed to the goroutine when it starts.
        for arg in call.args:
            self._check_shared(arg)
        if isinstance(call.func, SelectorExpr):
            self._check_shared(call.func.operand)

        self._check_call(call)
        self._walk_task(call.func)
        for arg in call.args:
            self._walk_task(arg)

    def _walk_task(self, expr: Expr) -> None:
        if not isinstance(expr, FuncLit):
            self._walk_expr(expr)
            return
        self._tasks.append(_Task(depth=self._depth + 1))
        self._check_func_lit(expr)
        self._tasks.pop()

    def _check_shared(self, expr: Expr) -> None:
        """A mutable binding passed by value, or by ``&``, into a goroutine."""
        if isinstance(expr, UnaryExpr) and expr.op == "&":
            expr = expr.operand
        if not isinstance(expr, Ident):
            return
        binding = self.scope.lookup(expr.name)
        if binding is None or not self._is(binding.name, Mutability.MUTABLE):
            return
        # Running tasks that also see the binding must not report it again.
        for task in self._tasks:
            if binding.depth < task.depth:
                task.reported.add(binding)
        self._shared_with_goroutine(expr.name, expr.span)

    def _reference(self, ident: Ident) -> None:
        """Record a use of ``ident``; flags captures by running goroutines."""
        if not self._tasks:
            return
        binding = self.scope.lookup(ident.name)
        if binding is None or binding.depth == 0:
            return
        if not self._is(binding.name, Mutability.MUTABLE):
            return
        sharing = [t for t in self._tasks if binding.depth < t.depth]
        if not sharing or any(binding in t.reported for t in sharing):
            return
        for task in sharing:
            task.reported.add(binding)
        self._shared_with_goroutine(ident.name, ident.span)

    # ── Expressions ─────────────────────────────────────────────

    def _walk_exprs(self, exprs: list[Expr]) -> None:
        for expr in exprs:
            self._walk_expr(expr)

    def _walk_expr(self, expr: Expr | None) -> None:
        if expr is None:
            return
        if isinstance(expr, Ident):
            self._reference(expr)
        elif isinstance(expr, SelectorExpr):
            self._walk_expr(expr.operand)
        elif isinstance(expr, CallExpr):
            self._check_call(expr)
            self._walk_expr(expr.func)
            self._walk_exprs(expr.args)
        elif isinstance(expr, UnaryExpr):
            self._walk_expr(expr.operand)
        elif isinstance(expr, FuncLit):
            self._check_func_lit(expr)
        elif isinstance(expr, TypeAssertExpr):
            self._walk_expr(expr.operand)
        elif isinstance(expr, CompositeLit):
            self._walk_exprs(expr.elements)
        elif isinstance(expr, OtherExpr):
            self._walk_exprs(expr.children)
        else:
            raise TypeError(f"unhandled expression {type(expr).__name__}")

    def _check_call(self, call: CallExpr) -> None:
        """Pair identifier arguments with the parameters of the resolved callee."""
        qid = self.resolver.resolve(call, self._package_id, self._imports, self.scope)
        if qid is None:
            return
        params = self.index.params(qid)
        if params is None:
            return
        # zip stops at the shorter list: extra (variadic) arguments are not checked.
        for param, arg in zip(params, call.args):
            if not isinstance(arg, Ident) or arg.name in _PREDECLARED:
                continue
            if self._is(param, Mutability.MUTABLE) and self._is(arg.name, Mutability.IMMUTABLE):
                self._needs_prefix("M100", SubjectKind.ARGUMENT, arg.name, arg.span, arg.name)
