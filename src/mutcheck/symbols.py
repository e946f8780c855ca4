"""Bindings, lexical scopes, import tables and the declaration index."""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from enum import Enum, auto

from mutcheck.ast_nodes import (
    CompositeLit,
    Expr,
    FuncDecl,
    ImportSpec,
    Package,
    SourceFile,
    TypeDecl,
    TypeName,
    UnaryExpr,
    VarDecl,
)
from mutcheck.source import Span

BLANK = "_"
DEFAULT_PREFIXES = ("mut", "Mut")

_MAJOR_VERSION = re.compile(r"v[0-9]+")
_GOPKG_SUFFIX = re.compile(r"(.+)\.v[0-9]+")


# ── Mutability tags ──────────────────────────────────────────────


class Mutability(Enum):
    MUTABLE = auto()
    IMMUTABLE = auto()
    EXEMPT = auto()


@dataclass(frozen=True)
class NamingPolicy:
    """Derives a mutability tag from a name, and nothing else."""

    prefixes: tuple[str, ...] = DEFAULT_PREFIXES
    exempt: frozenset[str] = frozenset()

    def classify(self, name: str) -> Mutability:
        if name == BLANK or name in self.exempt:
            return Mutability.EXEMPT
        if name.startswith(self.prefixes):
            return Mutability.MUTABLE
        return Mutability.IMMUTABLE

    def describe_prefixes(self) -> str:
        return " or ".join(f"'{p}'" for p in self.prefixes)

    def suggest(self, name: str) -> str:
        """Rename ``name`` with a marker prefix, keeping its exportedness."""
        upper = name[:1].isupper()
        prefix = next(
            (p for p in self.prefixes if p[:1].isupper() == upper),
            self.prefixes[0],
        )
        return prefix + name[:1].upper() + name[1:]


DEFAULT_POLICY = NamingPolicy()


# ── Bindings and scopes ──────────────────────────────────────────


class BindingKind(Enum):
    PARAMETER = auto()
    RECEIVER = auto()
    RESULT = auto()
    VARIABLE = auto()
    CONSTANT = auto()
    RANGE = auto()


@dataclass(frozen=True)
class TypeRef:
    """A declared type with its package alias already resolved.

    ``package`` is the import path, or None for a type named without
    qualification (declared in the current package, or a builtin).
    """

    package: str | None
    name: str


@dataclass(frozen=True)
class Binding:
    name: str
    kind: BindingKind
    type_ref: TypeRef | None
    span: Span
    depth: int  # 0 = package level, 1 = function body, 2+ = function literals


class Scope:
    """A single lexical scope level."""

    def __init__(self, parent: Scope | None = None, name: str = "") -> None:
        self.parent = parent
        self.name = name
        self._bindings: dict[str, Binding] = {}

    def define(self, binding: Binding) -> Binding | None:
        """Define a binding in this scope. Returns existing binding if duplicate."""
        existing = self._bindings.get(binding.name)
        if existing is not None:
            return existing
        self._bindings[binding.name] = binding
        return None

    def lookup(self, name: str) -> Binding | None:
        """Look up a name in this scope and all parent scopes."""
        binding = self._bindings.get(name)
        if binding is not None:
            return binding
        if self.parent is not None:
            return self.parent.lookup(name)
        return None

    def lookup_local(self, name: str) -> Binding | None:
        """Look up a name in this scope only (not parents)."""
        return self._bindings.get(name)

    def all_bindings(self) -> list[Binding]:
        return list(self._bindings.values())


# ── Import tables ────────────────────────────────────────────────


def default_alias(path: str, package_names: Mapping[str, str]) -> str:
    """The name a file uses for an import without an explicit alias."""
    if path in package_names:
        return package_names[path]
    segments = [s for s in path.split("/") if s]
    if not segments:
        return path
    last = segments[-1]
    if _MAJOR_VERSION.fullmatch(last) and len(segments) > 1:
        last = segments[-2]
    gopkg = _GOPKG_SUFFIX.fullmatch(last)
    if gopkg:
        last = gopkg.group(1)
    return last


class ImportTable:
    """Local alias -> import path for one file."""

    def __init__(self) -> None:
        self._aliases: dict[str, str] = {}
        self.dot_imports: list[str] = []

    @classmethod
    def build(
        cls, imports: Iterable[ImportSpec], package_names: Mapping[str, str],
    ) -> ImportTable:
        table = cls()
        for spec in imports:
            if spec.alias == BLANK:
                continue
            if spec.alias == ".":
                table.dot_imports.append(spec.path)
                continue
            alias = spec.alias or default_alias(spec.path, package_names)
            table._aliases[alias] = spec.path
        return table

    def __contains__(self, alias: str) -> bool:
        return alias in self._aliases

    def resolve(self, alias: str) -> str | None:
        return self._aliases.get(alias)

    def type_ref(self, type_name: TypeName | None) -> TypeRef | None:
        if type_name is None:
            return None
        if type_name.package is None:
            return TypeRef(None, type_name.name)
        path = self.resolve(type_name.package)
        if path is None:
            return None
        return TypeRef(path, type_name.name)

    def infer_type_ref(self, value: Expr | None) -> TypeRef | None:
        """Type of ``T{...}`` or ``&T{...}``; None for anything else."""
        if isinstance(value, UnaryExpr) and value.op == "&":
            value = value.operand
        if isinstance(value, CompositeLit):
            return self.type_ref(value.type_name)
        return None


# ── Qualified identifiers ────────────────────────────────────────


def qualify(package_id: str, name: str, receiver_type: str | None = None) -> str:
    """Build the key naming a function or method.

    The indexer and the resolver both go through here, so a call resolves to
    exactly the key its declaration was indexed under.
    """
    if receiver_type:
        return f"{package_id}.{receiver_type}.{name}"
    return f"{package_id}.{name}"


def declaration_id(package_id: str, decl: FuncDecl) -> str | None:
    if not decl.name:
        return None
    if decl.receiver is None:
        return qualify(package_id, decl.name)
    if decl.receiver.type_name is None:
        return None
    return qualify(package_id, decl.name, decl.receiver.type_name.name)


# ── Declaration index ────────────────────────────────────────────


class DeclarationIndex:
    """Qualified identifier -> ordered parameter names, for the whole program.

    Also records, per package, the declared type names and package-level
    variables, and the import table of every file. Read-only once built.
    """

    def __init__(self, package_names: Mapping[str, str] | None = None) -> None:
        self._package_names: dict[str, str] = dict(package_names or {})
        self._params: dict[str, list[str]] = {}
        self._types: dict[str, set[str]] = {}
        self._package_scopes: dict[str, Scope] = {}
        self._imports: dict[str, ImportTable] = {}

    @classmethod
    def build(cls, packages: Iterable[Package]) -> DeclarationIndex:
        packages = list(packages)
        index = cls({p.id: p.name for p in packages})
        for package in packages:
            for file in package.files:
                index.add_file(package, file)
        return index

    def add_file(self, package: Package, file: SourceFile) -> None:
        imports = ImportTable.build(file.imports, self._package_names)
        self._imports[file.path] = imports
        scope = self._package_scopes.setdefault(package.id, Scope(name=package.id))
        types = self._types.setdefault(package.id, set())

        for decl in file.decls:
            if isinstance(decl, FuncDecl):
                qid = declaration_id(package.id, decl)
                if qid is not None:
                    self._params[qid] = decl.param_names
            elif isinstance(decl, TypeDecl):
                types.add(decl.name)
            elif isinstance(decl, VarDecl):
                self._define_package_var(scope, imports, decl)

    def _define_package_var(
        self, scope: Scope, imports: ImportTable, decl: VarDecl,
    ) -> None:
        kind = BindingKind.CONSTANT if decl.const else BindingKind.VARIABLE
        for i, ident in enumerate(decl.names):
            if ident.name == BLANK:
                continue
            type_ref = imports.type_ref(decl.type_name)
            if type_ref is None and len(decl.values) == len(decl.names):
                type_ref = imports.infer_type_ref(decl.values[i])
            scope.define(Binding(
                name=ident.name, kind=kind, type_ref=type_ref,
                span=ident.span, depth=0,
            ))

    def __contains__(self, qid: str) -> bool:
        return qid in self._params

    def __len__(self) -> int:
        return len(self._params)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._params))

    def params(self, qid: str) -> list[str] | None:
        return self._params.get(qid)

    def declares_type(self, package_id: str, name: str) -> bool:
        return name in self._types.get(package_id, ())

    def package_scope(self, package_id: str) -> Scope:
        scope = self._package_scopes.get(package_id)
        if scope is None:
            scope = Scope(name=package_id)
        return scope

    def imports(self, file: SourceFile) -> ImportTable:
        table = self._imports.get(file.path)
        if table is None:
            table = ImportTable.build(file.imports, self._package_names)
        return table
