"""Tests for target patterns, package loading and lowering to ast_nodes."""

from __future__ import annotations

from pathlib import Path

import pytest

from mutcheck.ast_nodes import (
    AssignStmt,
    CallExpr,
    CompositeLit,
    ExprStmt,
    FuncDecl,
    FuncLit,
    GoStmt,
    Ident,
    RangeStmt,
    SelectorExpr,
    SelectStmt,
    SwitchStmt,
    TypeDecl,
    UnaryExpr,
    VarDecl,
)
from mutcheck.errors import LoadError
from mutcheck.loader import (
    GoModule,
    _go_files,
    expand_pattern,
    find_module,
    load_program,
    package_id,
    read_module_path,
)
from tests.helpers import MODULE, parse, write_module

MAIN = """\
    package main

    func main() {}
    """


@pytest.fixture
def tree(tmp_path):
    """A module with a root package, a nested package and ignored directories."""
    write_module(tmp_path, {
        "main.go": MAIN,
        "mod1/mod1.go": "package mod1\n\nfunc F(mutX int) {}\n",
        "mod1/inner/inner.go": "package inner\n",
        "vendor/dep/dep.go": "package dep\n",
        "testdata/data.go": "package data\n",
        ".hidden/h.go": "package h\n",
        "_skip/s.go": "package s\n",
        "docs/readme.txt": "no go here\n",
    })
    return tmp_path


class TestModule:
    def test_read_module_path(self, tmp_path):
        go_mod = tmp_path / "go.mod"
        go_mod.write_text('// comment\nmodule "example.com/quoted" // trailing\n\ngo 1.21\n')
        assert read_module_path(go_mod) == "example.com/quoted"

    def test_missing_module_directive(self, tmp_path):
        go_mod = tmp_path / "go.mod"
        go_mod.write_text("go 1.21\n")
        with pytest.raises(LoadError, match="no module directive"):
            read_module_path(go_mod)

    def test_find_module_walks_up(self, tree):
        module = find_module(tree / "mod1" / "inner")
        assert module.path == MODULE
        assert module.root == tree.resolve()

    def test_no_go_mod(self, tmp_path):
        with pytest.raises(LoadError, match="no go.mod"):
            find_module(tmp_path)

    def test_package_id(self, tree):
        module = GoModule(root=tree.resolve(), path=MODULE)
        assert package_id(module, tree.resolve()) == MODULE
        assert package_id(module, (tree / "mod1").resolve()) == f"{MODULE}/mod1"


class TestPatterns:
    def _module(self, tree: Path) -> GoModule:
        return find_module(tree)

    def test_single_directory(self, tree):
        dirs = expand_pattern(".", self._module(tree), tree)
        assert dirs == [tree.resolve()]

    def test_relative_directory(self, tree):
        dirs = expand_pattern("./mod1", self._module(tree), tree)
        assert dirs == [(tree / "mod1").resolve()]

    def test_recursive_skips_ignored_directories(self, tree):
        dirs = expand_pattern("./...", self._module(tree), tree)
        names = [d.relative_to(tree.resolve()).as_posix() for d in dirs]
        assert names == [".", "mod1", "mod1/inner"]

    def test_import_path_pattern(self, tree):
        dirs = expand_pattern(f"{MODULE}/mod1/...", self._module(tree), tree)
        names = [d.relative_to(tree.resolve()).as_posix() for d in dirs]
        assert names == ["mod1", "mod1/inner"]

    def test_empty_pattern(self, tree):
        with pytest.raises(LoadError, match="empty"):
            expand_pattern("  ", self._module(tree), tree)

    def test_malformed_pattern(self, tree):
        with pytest.raises(LoadError, match="malformed"):
            expand_pattern("./.../x", self._module(tree), tree)

    def test_outside_main_module(self, tree):
        with pytest.raises(LoadError, match="not in main module"):
            expand_pattern("github.com/other/pkg", self._module(tree), tree)

    def test_missing_directory(self, tree):
        with pytest.raises(LoadError, match="directory not found"):
            expand_pattern("./nope", self._module(tree), tree)

    def test_directory_without_go_files(self, tree):
        with pytest.raises(LoadError, match="no Go files"):
            expand_pattern("./docs", self._module(tree), tree)

    def test_unlistable_directory(self, tree):
        with pytest.raises(LoadError, match="cannot list directory"):
            _go_files(tree / "main.go", include_tests=False)


class TestLoadProgram:
    def test_packages_sorted_by_id(self, tree):
        packages = load_program(["./..."], cwd=tree)
        assert [p.id for p in packages] == [MODULE, f"{MODULE}/mod1", f"{MODULE}/mod1/inner"]
        assert packages[1].name == "mod1"

    def test_display_paths(self, tree):
        packages = load_program(["./mod1"], cwd=tree, display_root=tree)
        assert packages[0].files[0].path == str(Path("mod1") / "mod1.go")

    def test_absolute_paths_without_display_root(self, tree):
        packages = load_program(["./mod1"], cwd=tree)
        assert Path(packages[0].files[0].path).is_absolute()

    def test_duplicate_patterns_load_once(self, tree):
        packages = load_program([".", "./", f"{MODULE}"], cwd=tree)
        assert len(packages) == 1

    def test_test_files_excluded_by_default(self, tmp_path):
        write_module(tmp_path, {
            "main.go": MAIN,
            "main_test.go": "package main\n\nfunc helper() {}\n",
        })
        packages = load_program(["."], cwd=tmp_path)
        assert [Path(f.path).name for f in packages[0].files] == ["main.go"]

    def test_test_files_included(self, tmp_path):
        write_module(tmp_path, {
            "main.go": MAIN,
            "main_test.go": "package main\n\nfunc helper() {}\n",
            "ext_test.go": "package main_test\n\nfunc other() {}\n",
        })
        packages = load_program(["."], cwd=tmp_path, include_tests=True)
        assert [p.id for p in packages] == [MODULE, f"{MODULE}_test"]
        assert len(packages[0].files) == 2
        assert packages[1].name == "main_test"

    def test_build_ignore_files_skipped(self, tmp_path):
        write_module(tmp_path, {
            "main.go": MAIN,
            "gen.go": "//go:build ignore\n\npackage other\n",
        })
        packages = load_program(["."], cwd=tmp_path)
        assert len(packages) == 1
        assert len(packages[0].files) == 1

    def test_mixed_packages_strict(self, tmp_path):
        write_module(tmp_path, {"a.go": "package a\n", "b.go": "package b\n"})
        with pytest.raises(LoadError, match="found packages a and b"):
            load_program(["."], cwd=tmp_path)

    def test_mixed_packages_lenient(self, tmp_path):
        write_module(tmp_path, {"a.go": "package a\n", "b.go": "package b\n"})
        packages = load_program(["."], cwd=tmp_path, strict=False)
        assert [p.name for p in packages] == ["a"]

    def test_syntax_error_strict(self, tmp_path):
        write_module(tmp_path, {"main.go": "package main\n\nfunc main() {\n    x := \n}\n"})
        with pytest.raises(LoadError, match="syntax error"):
            load_program(["."], cwd=tmp_path)

    def test_syntax_error_lenient(self, tmp_path, caplog):
        write_module(tmp_path, {"main.go": "package main\n\nfunc main() {\n    x := \n}\n"})
        packages = load_program(["."], cwd=tmp_path, strict=False)
        assert len(packages) == 1
        assert "syntax error" in caplog.text

    def test_overlay_replaces_disk_contents(self, tmp_path):
        write_module(tmp_path, {"main.go": MAIN})
        overlay = "package main\n\nfunc fromOverlay() {}\n"
        packages = load_program(
            ["."], cwd=tmp_path, overlays={str(tmp_path / "main.go"): overlay},
        )
        decls = packages[0].files[0].decls
        assert [d.name for d in decls if isinstance(d, FuncDecl)] == ["fromOverlay"]

    def test_no_packages_matched(self, tmp_path):
        write_module(tmp_path, {"docs/readme.txt": "none\n"})
        with pytest.raises(LoadError, match="matched no packages"):
            load_program(["./..."], cwd=tmp_path)


class TestLowering:
    def test_imports(self):
        file = parse("""\
            package main

            import (
                "fmt"
                m "example.com/demo/mod1"
            )
            """)
        assert file.package_name == "main"
        assert [(i.path, i.alias) for i in file.imports] == [
            ("fmt", None), ("example.com/demo/mod1", "m"),
        ]

    def test_function_signature(self):
        file = parse("""\
            package main

            func f(a, b int, mutC *m.T, rest ...string) (n int, err error) { return }
            """)
        decl = file.decls[0]
        assert isinstance(decl, FuncDecl)
        assert decl.param_names == ["a", "b", "mutC", "rest"]
        assert decl.params[2].type_name.name == "T"
        assert decl.params[2].type_name.package == "m"
        assert [r.name for r in decl.results] == ["n", "err"]

    def test_method_receiver(self):
        file = parse("package main\n\nfunc (c *Counter) Add(mutAmount int) {}\n")
        decl = file.decls[0]
        assert decl.receiver.name == "c"
        assert decl.receiver.type_name.name == "Counter"

    def test_generic_receiver(self):
        file = parse("package main\n\nfunc (s *Stack[T]) Push(mutV T) {}\n")
        assert file.decls[0].receiver.type_name.name == "Stack"

    def test_type_and_var_declarations(self):
        file = parse("""\
            package main

            type (
                A struct{}
                B = A
            )

            var (
                x, y int
                mutZ = A{}
            )

            const c = 1
            """)
        types = [d.name for d in file.decls if isinstance(d, TypeDecl)]
        assert types == ["A", "B"]
        var_decls = [d for d in file.decls if isinstance(d, VarDecl)]
        assert [[n.name for n in d.names] for d in var_decls] == [["x", "y"], ["mutZ"], ["c"]]
        assert var_decls[2].const
        assert isinstance(var_decls[1].values[0], CompositeLit)

    def test_identifier_span(self):
        file = parse("package main\n\nfunc main() {\n\tf(value)\n}\n")
        stmt = file.decls[0].body.stmts[0]
        assert isinstance(stmt, ExprStmt)
        call = stmt.expr
        assert isinstance(call, CallExpr)
        arg = call.args[0]
        assert isinstance(arg, Ident)
        assert (arg.span.start_line, arg.span.start_col) == (4, 4)
        assert arg.span.end_col == 8

    def test_assignment_forms(self):
        file = parse("""\
            package main

            func main() {
                a := 1
                a = 2
                a += 3
                a++
                s.f = 4
            }
            """)
        stmts = file.decls[0].body.stmts
        assert [s.op for s in stmts] == [":=", "=", "+=", "++", "="]
        assert all(isinstance(s, AssignStmt) for s in stmts)
        assert stmts[0].declares
        assert stmts[3].values == []
        assert isinstance(stmts[4].targets[0], SelectorExpr)

    def test_go_statement_with_func_literal(self):
        file = parse("""\
            package main

            func main() {
                go func(n int) { use(n) }(x)
            }
            """)
        stmt = file.decls[0].body.stmts[0]
        assert isinstance(stmt, GoStmt)
        assert isinstance(stmt.call, CallExpr)
        assert isinstance(stmt.call.func, FuncLit)
        assert [p.name for p in stmt.call.func.params] == ["n"]

    def test_address_of(self):
        file = parse("package main\n\nfunc main() {\n    go worker(&mutX)\n}\n")
        arg = file.decls[0].body.stmts[0].call.args[0]
        assert isinstance(arg, UnaryExpr)
        assert arg.op == "&"
        assert arg.operand.name == "mutX"

    def test_range(self):
        file = parse("package main\n\nfunc main() {\n    for i, v := range xs { use(i, v) }\n}\n")
        stmt = file.decls[0].body.stmts[0]
        assert isinstance(stmt, RangeStmt)
        assert stmt.op == ":="
        assert [t.name for t in stmt.targets] == ["i", "v"]

    def test_type_switch_binding(self):
        file = parse("""\
            package main

            func main() {
                switch v := x.(type) {
                case *Counter:
                    use(v)
                default:
                }
            }
            """)
        stmt = file.decls[0].body.stmts[0]
        assert isinstance(stmt, SwitchStmt)
        assert stmt.binding.name == "v"
        assert stmt.clauses[0].types[0].name == "Counter"

    def test_select_send_is_not_repeated_in_body(self):
        file = parse("""\
            package main

            func main() {
                select {
                case ch <- v:
                    done()
                case got := <-in:
                    use(got)
                default:
                }
            }
            """)
        stmt = file.decls[0].body.stmts[0]
        assert isinstance(stmt, SelectStmt)
        send, receive, default = stmt.clauses
        assert len(send.body) == 1
        assert isinstance(receive.comm, AssignStmt)
        assert receive.comm.op == ":="
        assert default.comm is None

    def test_keyed_composite_values(self):
        file = parse("package main\n\nfunc main() {\n    u := User{name: first, age: 3}\n}\n")
        lit = file.decls[0].body.stmts[0].values[0]
        assert isinstance(lit, CompositeLit)
        assert lit.type_name.name == "User"
        assert isinstance(lit.elements[0], Ident)
        assert lit.elements[0].name == "first"
