"""Go package loading: target patterns, go.mod discovery and tree-sitter lowering.

Source text is parsed with the tree-sitter Go grammar and lowered into the
frozen nodes of ``mutcheck.ast_nodes``. Nothing downstream sees tree-sitter.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path

import tree_sitter
import tree_sitter_go

from mutcheck.ast_nodes import (
    AssignStmt,
    Block,
    CallExpr,
    CaseClause,
    CommClause,
    CompositeLit,
    Decl,
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
    ImportSpec,
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
    TypeDecl,
    TypeName,
    UnaryExpr,
    VarDecl,
)
from mutcheck.errors import LoadError
from mutcheck.source import Span

logger = logging.getLogger(__name__)

GO_LANGUAGE = tree_sitter.Language(tree_sitter_go.language())

_SKIPPED_DIRS = frozenset({"vendor", "testdata"})

_STATEMENTS = frozenset({
    "expression_statement", "send_statement", "inc_statement", "dec_statement",
    "assignment_statement", "short_var_declaration", "var_declaration",
    "const_declaration", "type_declaration", "return_statement", "go_statement",
    "defer_statement", "if_statement", "for_statement",
    "expression_switch_statement", "type_switch_statement", "select_statement",
    "labeled_statement", "block", "break_statement", "continue_statement",
    "goto_statement", "fallthrough_statement", "empty_statement",
})

# Type syntax never holds variable references worth walking.
_TYPE_NODES = frozenset({
    "type_identifier", "qualified_type", "pointer_type", "generic_type",
    "slice_type", "array_type", "implicit_length_array_type", "map_type",
    "channel_type", "function_type", "struct_type", "interface_type",
    "parenthesized_type", "negated_type", "type_arguments", "parameter_list",
    "field_identifier", "package_identifier", "label_name",
})


# ── go.mod ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class GoModule:
    root: Path
    path: str


def read_module_path(go_mod: Path) -> str:
    """Return the module path declared by a go.mod file."""
    try:
        content = go_mod.read_text()
    except OSError as e:
        raise LoadError(f"cannot read go.mod: {e}", str(go_mod)) from e
    for line in content.splitlines():
        line = line.split("//", 1)[0].strip()
        if line.startswith("module"):
            parts = line.split(maxsplit=1)
            if len(parts) == 2 and parts[0] == "module":
                return parts[1].strip().strip('"`')
    raise LoadError("no module directive", str(go_mod))


def find_module(start: Path) -> GoModule:
    """Walk up from ``start`` to the nearest go.mod."""
    path = start.resolve()
    if path.is_file():
        path = path.parent
    while True:
        candidate = path / "go.mod"
        if candidate.is_file():
            return GoModule(root=path, path=read_module_path(candidate))
        if path.parent == path:
            raise LoadError(f"no go.mod found in {start} or any parent directory")
        path = path.parent


# ── Target patterns ──────────────────────────────────────────────


def _has_go_files(directory: Path, include_tests: bool) -> bool:
    return any(_go_files(directory, include_tests))


def _go_files(directory: Path, include_tests: bool) -> list[Path]:
    files = []
    try:
        entries = sorted(directory.iterdir())
    except OSError as e:
        raise LoadError(f"cannot list directory: {e.strerror or e}", str(directory)) from e
    for entry in entries:
        if not entry.is_file() or entry.suffix != ".go":
            continue
        if entry.name.startswith((".", "_")):
            continue
        if entry.name.endswith("_test.go") and not include_tests:
            continue
        files.append(entry)
    return files


def _walk_packages(base: Path, include_tests: bool) -> list[Path]:
    found = []
    for dirpath, dirnames, _ in os.walk(base):
        dirnames[:] = sorted(
            d for d in dirnames
            if d not in _SKIPPED_DIRS and not d.startswith((".", "_"))
        )
        directory = Path(dirpath)
        if _has_go_files(directory, include_tests):
            found.append(directory)
    return found


def expand_pattern(
    pattern: str, module: GoModule, cwd: Path, *, include_tests: bool = False,
) -> list[Path]:
    """Map one target pattern to the package directories it names."""
    pattern = pattern.strip()
    if not pattern:
        raise LoadError("empty target pattern")

    recursive = pattern == "..." or pattern.endswith("/...")
    base = pattern[:-3].rstrip("/") if recursive else pattern
    if "..." in base:
        raise LoadError(f"malformed target pattern {pattern!r}")
    if not base:
        base = "."

    if base.startswith((".", "/")) or (cwd / base).is_dir():
        directory = (cwd / base).resolve()
    elif base == module.path or base.startswith(module.path + "/"):
        directory = (module.root / base[len(module.path):].lstrip("/")).resolve()
    else:
        raise LoadError(f"pattern {pattern!r} is not in main module {module.path}")

    if not directory.is_dir():
        raise LoadError(f"directory not found for pattern {pattern!r}")
    if directory != module.root and module.root not in directory.parents:
        raise LoadError(f"pattern {pattern!r} is outside main module root {module.root}")

    if recursive:
        return _walk_packages(directory, include_tests)
    if not _has_go_files(directory, include_tests):
        raise LoadError(f"no Go files in {directory}")
    return [directory]


def package_id(module: GoModule, directory: Path) -> str:
    rel = directory.relative_to(module.root)
    if rel == Path("."):
        return module.path
    return f"{module.path}/{rel.as_posix()}"


# ── Loading ──────────────────────────────────────────────────────


def _is_ignored(source: bytes) -> bool:
    """True for files excluded by a ``//go:build ignore`` constraint."""
    for raw in source.splitlines():
        line = raw.strip()
        if line.startswith(b"package "):
            return False
        if line in (b"//go:build ignore", b"// +build ignore"):
            return True
    return False


def _display_path(path: Path, display_root: Path | None) -> str:
    if display_root is not None:
        try:
            return str(path.relative_to(display_root))
        except ValueError:
            pass
    return str(path)


def load_program(
    patterns: Iterable[str],
    *,
    cwd: Path | None = None,
    include_tests: bool = False,
    strict: bool = True,
    overlays: Mapping[str, str] | None = None,
    display_root: Path | None = None,
) -> list[Package]:
    """Resolve target patterns and load every matched package.

    ``overlays`` maps absolute file paths to in-memory contents that replace
    what is on disk. Raises LoadError on anything that prevents analysis.
    """
    cwd = (cwd or Path.cwd()).resolve()
    module = find_module(cwd)
    patterns = list(patterns) or ["."]
    overlays = {str(Path(k).resolve()): v for k, v in (overlays or {}).items()}
    if display_root is not None:
        display_root = display_root.resolve()

    directories: dict[Path, None] = {}
    for pattern in patterns:
        for directory in expand_pattern(pattern, module, cwd, include_tests=include_tests):
            directories.setdefault(directory, None)
    if not directories:
        raise LoadError(f"pattern(s) {', '.join(patterns)} matched no packages")

    parser = tree_sitter.Parser(GO_LANGUAGE)
    packages: list[Package] = []
    for directory in directories:
        packages.extend(_load_directory(
            parser, module, directory, include_tests=include_tests,
            strict=strict, overlays=overlays, display_root=display_root,
        ))
    packages.sort(key=lambda p: p.id)
    logger.info("loaded %d package(s) from module %s", len(packages), module.path)
    return packages


def _load_directory(
    parser: tree_sitter.Parser,
    module: GoModule,
    directory: Path,
    *,
    include_tests: bool,
    strict: bool,
    overlays: Mapping[str, str],
    display_root: Path | None,
) -> list[Package]:
    by_name: dict[str, list[SourceFile]] = {}
    for path in _go_files(directory, include_tests):
        key = str(path.resolve())
        if key in overlays:
            source = overlays[key].encode("utf-8")
        else:
            try:
                source = path.read_bytes()
            except OSError as e:
                raise LoadError(f"cannot read file: {e}", str(path)) from e
        if _is_ignored(source):
            continue
        file = parse_source(
            source, _display_path(path, display_root), strict=strict, parser=parser,
        )
        by_name.setdefault(file.package_name, []).append(file)

    if not by_name:
        return []

    pkg_id = package_id(module, directory)
    names = sorted(by_name)
    external_tests = [n for n in names if n.endswith("_test") and n[:-5] in by_name]
    primary = [n for n in names if n not in external_tests]
    if len(primary) > 1:
        message = f"found packages {' and '.join(primary)} in {directory}"
        if strict:
            raise LoadError(message)
        logger.warning("%s; keeping %s", message, primary[0])
        primary = primary[:1]

    packages = [Package(
        id=pkg_id, name=primary[0], directory=str(directory), files=by_name[primary[0]],
    )]
    for name in external_tests:
        packages.append(Package(
            id=f"{pkg_id}_test", name=name, directory=str(directory), files=by_name[name],
        ))
    return packages


def parse_source(
    source: bytes | str,
    path: str = "<source>",
    *,
    strict: bool = True,
    parser: tree_sitter.Parser | None = None,
) -> SourceFile:
    """Parse one Go file into a SourceFile."""
    if isinstance(source, str):
        source = source.encode("utf-8")
    parser = parser or tree_sitter.Parser(GO_LANGUAGE)
    tree = parser.parse(source)
    root = tree.root_node
    if root.has_error:
        bad = _first_error(root)
        line, col = (bad.start_point[0] + 1, bad.start_point[1] + 1) if bad else (1, 1)
        message = f"syntax error at {path}:{line}:{col}"
        if strict:
            raise LoadError(message)
        logger.warning("%s; analysing what parsed", message)
    return _Lowerer(path).lower_file(root)


def _first_error(node: tree_sitter.Node) -> tree_sitter.Node | None:
    if node.type == "ERROR" or node.is_missing:
        return node
    for child in node.children:
        if child.has_error or child.is_missing:
            found = _first_error(child)
            if found is not None:
                return found
    return None


# ── Lowering ─────────────────────────────────────────────────────


def _text(node: tree_sitter.Node) -> str:
    return node.text.decode("utf-8", errors="replace") if node.text else ""


def _named(node: tree_sitter.Node) -> list[tree_sitter.Node]:
    return [c for c in node.named_children if c.type != "comment"]


def _field_idents(node: tree_sitter.Node, name: str) -> list[tree_sitter.Node]:
    return [c for c in node.children_by_field_name(name) if c.type == "identifier"]


def _operator(node: tree_sitter.Node, choices: tuple[str, ...]) -> str | None:
    for child in node.children:
        if not child.is_named and child.type in choices:
            return child.type
    return None


class _Lowerer:
    """Turns a tree-sitter Go tree into ast_nodes for one file."""

    def __init__(self, path: str) -> None:
        self.path = path

    def span(self, node: tree_sitter.Node) -> Span:
        start_row, start_col = node.start_point
        end_row, end_col = node.end_point
        return Span(self.path, start_row + 1, start_col + 1, end_row + 1, end_col)

    # ── Files and declarations ──

    def lower_file(self, root: tree_sitter.Node) -> SourceFile:
        package_name = ""
        imports: list[ImportSpec] = []
        decls: list[Decl] = []
        for child in _named(root):
            kind = child.type
            if kind == "package_clause":
                names = _named(child)
                package_name = _text(names[0]) if names else ""
            elif kind == "import_declaration":
                imports.extend(self._imports(child))
            elif kind == "function_declaration":
                decls.append(self._func_decl(child, method=False))
            elif kind == "method_declaration":
                decls.append(self._func_decl(child, method=True))
            elif kind == "type_declaration":
                decls.extend(self._type_decls(child))
            elif kind in ("var_declaration", "const_declaration"):
                decls.extend(self._var_decls(child))
        return SourceFile(
            path=self.path, package_name=package_name, imports=imports, decls=decls,
        )

    def _imports(self, node: tree_sitter.Node) -> list[ImportSpec]:
        specs: list[ImportSpec] = []
        for child in _named(node):
            if child.type == "import_spec":
                nodes = [child]
            elif child.type == "import_spec_list":
                nodes = [c for c in _named(child) if c.type == "import_spec"]
            else:
                continue
            for spec in nodes:
                path = spec.child_by_field_name("path")
                if path is None:
                    continue
                name = spec.child_by_field_name("name")
                specs.append(ImportSpec(
                    path=_text(path).strip('"`'),
                    alias=_text(name) if name is not None else None,
                    span=self.span(spec),
                ))
        return specs

    def _func_decl(self, node: tree_sitter.Node, *, method: bool) -> FuncDecl:
        name = node.child_by_field_name("name")
        receiver = None
        if method:
            receivers = self._params(node.child_by_field_name("receiver"))
            receiver = receivers[0] if receivers else None
        body = node.child_by_field_name("body")
        return FuncDecl(
            name=_text(name) if name is not None else "",
            receiver=receiver,
            params=self._params(node.child_by_field_name("parameters")),
            results=self._results(node.child_by_field_name("result")),
            body=self._block(body) if body is not None else None,
            span=self.span(node),
        )

    def _params(self, node: tree_sitter.Node | None) -> list[Param]:
        if node is None:
            return []
        params: list[Param] = []
        for decl in _named(node):
            if decl.type not in ("parameter_declaration", "variadic_parameter_declaration"):
                continue
            type_name = self._type(decl.child_by_field_name("type"))
            names = _field_idents(decl, "name")
            if not names:
                params.append(Param(None, type_name, self.span(decl)))
            for name in names:
                params.append(Param(_text(name), type_name, self.span(name)))
        return params

    def _results(self, node: tree_sitter.Node | None) -> list[Param]:
        if node is None or node.type != "parameter_list":
            return []
        return self._params(node)

    def _type(self, node: tree_sitter.Node | None) -> TypeName | None:
        while node is not None and node.type in ("pointer_type", "parenthesized_type"):
            inner = _named(node)
            node = inner[0] if inner else None
        if node is None:
            return None
        if node.type == "generic_type":
            return self._type(node.child_by_field_name("type"))
        if node.type == "type_identifier":
            return TypeName(_text(node), None, self.span(node))
        if node.type == "qualified_type":
            package = node.child_by_field_name("package")
            name = node.child_by_field_name("name")
            if package is not None and name is not None:
                return TypeName(_text(name), _text(package), self.span(node))
        return None

    def _type_decls(self, node: tree_sitter.Node) -> list[TypeDecl]:
        decls = []
        for spec in _named(node):
            if spec.type not in ("type_spec", "type_alias"):
                continue
            name = spec.child_by_field_name("name")
            if name is not None:
                decls.append(TypeDecl(_text(name), self.span(spec)))
        return decls

    def _var_decls(self, node: tree_sitter.Node) -> list[VarDecl]:
        const = node.type == "const_declaration"
        decls = []
        for spec in self._specs(node):
            decls.append(VarDecl(
                names=[Ident(_text(n), self.span(n)) for n in _field_idents(spec, "name")],
                type_name=self._type(spec.child_by_field_name("type")),
                values=self._expr_list(spec.child_by_field_name("value")),
                span=self.span(spec),
                const=const,
            ))
        return decls

    def _specs(self, node: tree_sitter.Node) -> list[tree_sitter.Node]:
        specs = []
        for child in _named(node):
            if child.type in ("var_spec", "const_spec"):
                specs.append(child)
            elif child.type.endswith("_spec_list"):
                specs.extend(self._specs(child))
        return specs

    # ── Statements ──

    def _block(self, node: tree_sitter.Node) -> Block:
        return Block(self._stmts(node), self.span(node))

    def _stmts(
        self, node: tree_sitter.Node, skip: tree_sitter.Node | None = None,
    ) -> list[Stmt]:
        stmts: list[Stmt] = []
        for child in _named(node):
            if skip is not None and child.id == skip.id:
                continue
            if child.type == "statement_list":
                stmts.extend(self._stmts(child))
            elif child.type in _STATEMENTS:
                stmts.append(self._stmt(child))
        return stmts

    def _simple(self, node: tree_sitter.Node | None) -> Stmt | None:
        if node is None:
            return None
        return self._stmt(node)

    def _stmt(self, node: tree_sitter.Node) -> Stmt:
        kind = node.type
        span = self.span(node)

        if kind == "expression_statement":
            inner = _named(node)
            if inner:
                return ExprStmt(self._expr(inner[0]), span)
            return OtherStmt([], span)
        if kind == "short_var_declaration":
            return AssignStmt(
                self._expr_list(node.child_by_field_name("left")),
                self._expr_list(node.child_by_field_name("right")),
                ":=", span,
            )
        if kind == "assignment_statement":
            op = node.child_by_field_name("operator")
            return AssignStmt(
                self._expr_list(node.child_by_field_name("left")),
                self._expr_list(node.child_by_field_name("right")),
                _text(op) if op is not None else "=", span,
            )
        if kind in ("inc_statement", "dec_statement"):
            inner = _named(node)
            targets = [self._expr(inner[0])] if inner else []
            return AssignStmt(targets, [], "++" if kind == "inc_statement" else "--", span)
        if kind in ("var_declaration", "const_declaration"):
            return DeclStmt(self._var_decls(node), span)
        if kind == "send_statement":
            return SendStmt(
                self._opt_expr(node.child_by_field_name("channel")),
                self._opt_expr(node.child_by_field_name("value")),
                span,
            )
        if kind == "return_statement":
            inner = _named(node)
            return ReturnStmt(self._expr_list(inner[0]) if inner else [], span)
        if kind in ("go_statement", "defer_statement"):
            inner = _named(node)
            call = self._expr(inner[0]) if inner else OtherExpr("missing", [], span)
            return GoStmt(call, span) if kind == "go_statement" else DeferStmt(call, span)
        if kind == "if_statement":
            return self._if(node)
        if kind == "for_statement":
            return self._for(node)
        if kind == "expression_switch_statement":
            return self._switch(node)
        if kind == "type_switch_statement":
            return self._type_switch(node)
        if kind == "select_statement":
            return self._select(node)
        if kind == "labeled_statement":
            inner = [c for c in _named(node) if c.type in _STATEMENTS]
            if inner:
                return self._stmt(inner[-1])
            return OtherStmt([], span)
        if kind == "block":
            return self._block(node)
        return OtherStmt([], span)

    def _if(self, node: tree_sitter.Node) -> IfStmt:
        consequence = node.child_by_field_name("consequence")
        alternative = node.child_by_field_name("alternative")
        else_: Block | IfStmt | None = None
        if alternative is not None:
            else_ = self._if(alternative) if alternative.type == "if_statement" else self._block(alternative)
        return IfStmt(
            init=self._simple(node.child_by_field_name("initializer")),
            cond=self._opt_expr(node.child_by_field_name("condition")),
            then=self._block(consequence) if consequence is not None else Block([], self.span(node)),
            else_=else_,
            span=self.span(node),
        )

    def _for(self, node: tree_sitter.Node) -> ForStmt | RangeStmt:
        span = self.span(node)
        body_node = node.child_by_field_name("body")
        body = self._block(body_node) if body_node is not None else Block([], span)
        for child in _named(node):
            if child.type == "block":
                continue
            if child.type == "for_clause":
                return ForStmt(
                    init=self._simple(child.child_by_field_name("initializer")),
                    cond=self._opt_expr(child.child_by_field_name("condition")),
                    post=self._simple(child.child_by_field_name("update")),
                    body=body, span=span,
                )
            if child.type == "range_clause":
                return RangeStmt(
                    targets=self._expr_list(child.child_by_field_name("left")),
                    op=_operator(child, (":=", "=")),
                    iterable=self._opt_expr(child.child_by_field_name("right")),
                    body=body, span=span,
                )
            return ForStmt(None, self._expr(child), None, body, span)
        return ForStmt(None, None, None, body, span)

    def _switch(self, node: tree_sitter.Node) -> SwitchStmt:
        clauses = []
        for case in _named(node):
            if case.type in ("expression_case", "default_case"):
                clauses.append(CaseClause(
                    exprs=self._expr_list(case.child_by_field_name("value")),
                    body=self._stmts(case),
                    span=self.span(case),
                ))
        return SwitchStmt(
            init=self._simple(node.child_by_field_name("initializer")),
            tag=self._opt_expr(node.child_by_field_name("value")),
            binding=None,
            clauses=clauses,
            span=self.span(node),
        )

    def _type_switch(self, node: tree_sitter.Node) -> SwitchStmt:
        binding = None
        alias = node.child_by_field_name("alias")
        if alias is not None:
            names = [c for c in _named(alias) if c.type == "identifier"]
            if names:
                binding = Ident(_text(names[0]), self.span(names[0]))
        clauses = []
        for case in _named(node):
            if case.type in ("type_case", "default_case"):
                types = [c for c in case.children_by_field_name("type") if c.is_named]
                clauses.append(CaseClause(
                    exprs=[],
                    body=self._stmts(case),
                    span=self.span(case),
                    types=[self._type(t) for t in types],
                ))
        return SwitchStmt(
            init=self._simple(node.child_by_field_name("initializer")),
            tag=self._opt_expr(node.child_by_field_name("value")),
            binding=binding,
            clauses=clauses,
            span=self.span(node),
        )

    def _select(self, node: tree_sitter.Node) -> SelectStmt:
        clauses = []
        for case in _named(node):
            if case.type == "communication_case":
                comm = case.child_by_field_name("communication")
                clauses.append(CommClause(
                    self._comm(comm),
                    self._stmts(case, skip=comm),
                    self.span(case),
                ))
            elif case.type == "default_case":
                clauses.append(CommClause(None, self._stmts(case), self.span(case)))
        return SelectStmt(clauses, self.span(node))

    def _comm(self, node: tree_sitter.Node | None) -> Stmt | None:
        if node is None:
            return None
        if node.type != "receive_statement":
            return self._stmt(node)
        span = self.span(node)
        right = self._opt_expr(node.child_by_field_name("right"))
        left = node.child_by_field_name("left")
        if left is None:
            return ExprStmt(right, span)
        return AssignStmt(
            self._expr_list(left), [right], _operator(node, (":=", "=")) or "=", span,
        )

    # ── Expressions ──

    def _expr_list(self, node: tree_sitter.Node | None) -> list[Expr]:
        if node is None:
            return []
        if node.type != "expression_list":
            return [self._expr(node)]
        return [self._expr(c) for c in _named(node)]

    def _opt_expr(self, node: tree_sitter.Node | None) -> Expr | None:
        return self._expr(node) if node is not None else None

    def _expr(self, node: tree_sitter.Node) -> Expr:
        kind = node.type
        span = self.span(node)

        if kind in ("identifier", "blank_identifier"):
            return Ident(_text(node), span)
        if kind == "parenthesized_expression":
            inner = _named(node)
            return self._expr(inner[0]) if inner else OtherExpr(kind, [], span)
        if kind == "selector_expression":
            operand = node.child_by_field_name("operand")
            fld = node.child_by_field_name("field")
            if operand is not None and fld is not None:
                return SelectorExpr(
                    self._expr(operand), Ident(_text(fld), self.span(fld)), span,
                )
        elif kind == "call_expression":
            func = node.child_by_field_name("function")
            args = node.child_by_field_name("arguments")
            if func is not None:
                return CallExpr(
                    self._expr(func),
                    [self._expr(a) for a in _named(args)] if args is not None else [],
                    span,
                )
        elif kind == "unary_expression":
            op = node.child_by_field_name("operator")
            operand = node.child_by_field_name("operand")
            if operand is not None:
                return UnaryExpr(_text(op) if op is not None else "", self._expr(operand), span)
        elif kind == "func_literal":
            body = node.child_by_field_name("body")
            return FuncLit(
                params=self._params(node.child_by_field_name("parameters")),
                results=self._results(node.child_by_field_name("result")),
                body=self._block(body) if body is not None else Block([], span),
                span=span,
            )
        elif kind == "type_assertion_expression":
            operand = node.child_by_field_name("operand")
            if operand is not None:
                return TypeAssertExpr(
                    self._expr(operand), self._type(node.child_by_field_name("type")), span,
                )
        elif kind == "composite_literal":
            return CompositeLit(
                self._type(node.child_by_field_name("type")),
                self._elements(node.child_by_field_name("body")),
                span,
            )

        return OtherExpr(
            kind, [self._expr(c) for c in _named(node) if c.type not in _TYPE_NODES], span,
        )

    def _elements(self, node: tree_sitter.Node | None) -> list[Expr]:
        if node is None:
            return []
        elements = []
        for child in _named(node):
            if child.type == "keyed_element":
                value = child.child_by_field_name("value")
                if value is None:
                    inner = _named(child)
                    value = inner[-1] if inner else None
                if value is not None:
                    elements.append(self._element(value))
            else:
                elements.append(self._element(child))
        return elements

    def _element(self, node: tree_sitter.Node) -> Expr:
        if node.type == "literal_element":
            inner = _named(node)
            if not inner:
                return OtherExpr(node.type, [], self.span(node))
            node = inner[0]
        if node.type == "literal_value":
            return OtherExpr(node.type, self._elements(node), self.span(node))
        return self._expr(node)
