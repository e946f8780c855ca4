"""Call-site resolution to qualified identifiers.

Given a call expression and where it appears, reconstruct the key its target
declaration was indexed under:

    f(...)          -> <current package>.f
    alias.f(...)    -> <import path of alias>.f
    recv.m(...)     -> <package of recv's type>.<type>.m

Anything that cannot be determined from syntax alone resolves to None and
the call is left unchecked.
"""

from __future__ import annotations

from mutcheck.ast_nodes import CallExpr, Ident, SelectorExpr
from mutcheck.symbols import Binding, DeclarationIndex, ImportTable, Scope, qualify


class Resolver:
    def __init__(self, index: DeclarationIndex) -> None:
        self.index = index

    def resolve(
        self,
        call: CallExpr,
        package_id: str,
        imports: ImportTable,
        scope: Scope,
    ) -> str | None:
        func = call.func
        if isinstance(func, Ident):
            return self._resolve_name(func.name, package_id, imports, scope)
        if isinstance(func, SelectorExpr) and isinstance(func.operand, Ident):
            return self._resolve_selector(
                func.operand.name, func.field.name, package_id, imports, scope,
            )
        return None

    def _resolve_name(
        self, name: str, package_id: str, imports: ImportTable, scope: Scope,
    ) -> str | None:
        # A local or package-level variable holding a function value.
        if scope.lookup(name) is not None:
            return None
        local = qualify(package_id, name)
        if local in self.index:
            return local
        for path in imports.dot_imports:
            candidate = qualify(path, name)
            if candidate in self.index:
                return candidate
        return local

    def _resolve_selector(
        self,
        operand: str,
        name: str,
        package_id: str,
        imports: ImportTable,
        scope: Scope,
    ) -> str | None:
        binding = scope.lookup(operand)
        if binding is None:
            path = imports.resolve(operand)
            if path is None:
                return None
            return qualify(path, name)

        owner = self.receiver_type(binding, package_id)
        if owner is None:
            return None
        type_package, type_name = owner
        return qualify(type_package, name, type_name)

    def receiver_type(self, binding: Binding, package_id: str) -> tuple[str, str] | None:
        """(package id, type name) of a binding's declared type, if known."""
        ref = binding.type_ref
        if ref is None:
            return None
        if ref.package is not None:
            return ref.package, ref.name
        if self.index.declares_type(package_id, ref.name):
            return package_id, ref.name
        return None
