"""Declaration source backed by Python modules parsed with :mod:`ast`.

Annotation names are resolved the way the interpreter would see them at
module level: through the module's imports (absolute and relative), its own
top-level definitions and builtins. Classes from every added module are
linked together, so an implementation sees the markers carried by an
interface declared elsewhere.
"""

from __future__ import annotations

import ast
import builtins
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ..declarations import (
    GENERIC_FORM,
    NAME_FORM,
    OTHER_FORM,
    InterfaceReference,
    Marker,
    MarkerArgument,
    MethodDeclaration,
    ParameterDeclaration,
    TypeDeclaration,
    TypeReference,
)
from ..diagnostics import SourceLocation
from ..logging import get_logger

_BUILTIN_NAMES = frozenset(dir(builtins))
_AWAITABLE = "typing.Awaitable"
_ANY = TypeReference(text="Any", qualified_name="typing.Any", modules=("typing",))

logger = get_logger("sources.python")


class DeclarationSourceError(RuntimeError):
    """Raised when a module cannot be parsed into declarations."""

    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path


@dataclass
class _ModuleScope:
    module: str
    package: str
    path: str
    # local name -> (qualified name, defining module or None for builtins)
    names: Dict[str, Tuple[str, Optional[str]]] = field(default_factory=dict)
    imported_modules: Set[str] = field(default_factory=set)


@dataclass
class _ClassInfo:
    name: str
    namespace: str
    markers: Tuple[Marker, ...]
    methods: Tuple[MethodDeclaration, ...]
    bases: Tuple[str, ...]
    location: SourceLocation


def module_name_for(path: Path, root: Path) -> Tuple[str, bool]:
    """Return the dotted module name of ``path`` below ``root`` and whether it is a package."""
    relative = path.relative_to(root).with_suffix("")
    parts = list(relative.parts)
    is_package = bool(parts) and parts[-1] == "__init__"
    if is_package:
        parts = parts[:-1]
    return ".".join(parts), is_package


class PythonDeclarationSource:
    """Collects class declarations from Python modules."""

    def __init__(self) -> None:
        self._classes: Dict[str, _ClassInfo] = {}

    # ------------------------------------------------------------------
    # Public API

    def add_module(
        self,
        module: str,
        source: str,
        path: Optional[str] = None,
        *,
        is_package: bool = False,
    ) -> None:
        """Parse ``source`` as module ``module`` and record its classes."""
        display_path = path or f"<{module}>"
        try:
            tree = ast.parse(source, filename=display_path)
        except SyntaxError as exc:
            raise DeclarationSourceError(
                display_path, f"line {exc.lineno}: {exc.msg}"
            ) from exc

        package = module if is_package else module.rpartition(".")[0]
        scope = _ModuleScope(module=module, package=package, path=display_path)
        statements = list(_module_level_statements(tree.body))
        for statement in statements:
            self._bind(scope, statement)
        count = 0
        for statement in statements:
            if isinstance(statement, ast.ClassDef):
                info = self._class_info(scope, statement)
                self._classes[f"{module}.{statement.name}"] = info
                count += 1
        logger.debug("Parsed %d classes from %s", count, display_path)

    def add_file(self, path: Path, module: str, *, is_package: bool = False) -> None:
        try:
            source = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise DeclarationSourceError(str(path), f"unreadable: {exc}") from exc
        self.add_module(module, source, str(path), is_package=is_package)

    def declarations(self) -> List[TypeDeclaration]:
        return [
            TypeDeclaration(
                name=info.name,
                namespace=info.namespace,
                markers=info.markers,
                methods=info.methods,
                interfaces=self._interfaces(info),
                location=info.location,
            )
            for info in self._classes.values()
        ]

    # ------------------------------------------------------------------
    # Name binding

    def _bind(self, scope: _ModuleScope, statement: ast.stmt) -> None:
        if isinstance(statement, ast.Import):
            for alias in statement.names:
                if alias.asname:
                    scope.names[alias.asname] = (alias.name, alias.name)
                    scope.imported_modules.add(alias.name)
                    continue
                head = alias.name.split(".")[0]
                scope.names[head] = (head, head)
                parts = alias.name.split(".")
                for index in range(1, len(parts) + 1):
                    scope.imported_modules.add(".".join(parts[:index]))
        elif isinstance(statement, ast.ImportFrom):
            source_module = self._absolute_module(scope, statement.level, statement.module)
            for alias in statement.names:
                if alias.name == "*":
                    continue
                local = alias.asname or alias.name
                scope.names[local] = (f"{source_module}.{alias.name}", source_module)
        elif isinstance(statement, (ast.ClassDef, ast.FunctionDef, ast.AsyncFunctionDef)):
            scope.names[statement.name] = (f"{scope.module}.{statement.name}", scope.module)
        elif isinstance(statement, ast.Assign):
            for target in statement.targets:
                if isinstance(target, ast.Name):
                    scope.names[target.id] = (f"{scope.module}.{target.id}", scope.module)
        elif isinstance(statement, ast.AnnAssign):
            if isinstance(statement.target, ast.Name):
                name = statement.target.id
                scope.names[name] = (f"{scope.module}.{name}", scope.module)

    @staticmethod
    def _absolute_module(scope: _ModuleScope, level: int, module: Optional[str]) -> str:
        if level == 0:
            return module or ""
        parts = scope.package.split(".") if scope.package else []
        if level > 1:
            parts = parts[: max(len(parts) - (level - 1), 0)]
        if module:
            parts.append(module)
        return ".".join(parts)

    def _resolve_dotted(
        self, scope: _ModuleScope, node: ast.expr
    ) -> Optional[Tuple[str, Optional[str]]]:
        parts: List[str] = []
        current = node
        while isinstance(current, ast.Attribute):
            parts.append(current.attr)
            current = current.value
        if not isinstance(current, ast.Name):
            return None
        parts.append(current.id)
        parts.reverse()
        head, rest = parts[0], parts[1:]

        entry = scope.names.get(head)
        if entry is None:
            if not rest and head in _BUILTIN_NAMES:
                return head, None
            return None
        qualified, module = entry
        full = ".".join([qualified, *rest])
        if rest and module == qualified:
            # ``import a.b`` binds ``a``; the defining module is the longest imported prefix.
            prefixes = [name for name in scope.imported_modules if full.startswith(f"{name}.")]
            if prefixes:
                module = max(prefixes, key=len)
        return full, module

    # ------------------------------------------------------------------
    # Type references

    def _type_reference(self, scope: _ModuleScope, node: ast.expr) -> TypeReference:
        text = ast.unparse(node)
        if isinstance(node, ast.Constant):
            if node.value is None:
                return TypeReference(text=text, qualified_name="None", form=OTHER_FORM)
            if isinstance(node.value, str):
                try:
                    parsed = ast.parse(node.value, mode="eval").body
                except SyntaxError:
                    return TypeReference(text=text, form=OTHER_FORM)
                return replace(self._type_reference(scope, parsed), text=text)
            return TypeReference(text=text, form=OTHER_FORM)

        if isinstance(node, (ast.Name, ast.Attribute)):
            resolved = self._resolve_dotted(scope, node)
            if resolved is None:
                return TypeReference(text=text, form=NAME_FORM)
            qualified, module = resolved
            return TypeReference(
                text=text,
                qualified_name=qualified,
                form=NAME_FORM,
                modules=(module,) if module else (),
            )

        if isinstance(node, ast.Subscript):
            origin = self._type_reference(scope, node.value)
            elements = node.slice.elts if isinstance(node.slice, ast.Tuple) else [node.slice]
            arguments = [self._type_reference(scope, element) for element in elements]
            form = GENERIC_FORM if origin.form == NAME_FORM and len(arguments) == 1 else OTHER_FORM
            qualified = None
            if origin.resolved and all(argument.resolved for argument in arguments):
                joined = ", ".join(str(argument.qualified_name) for argument in arguments)
                qualified = f"{origin.qualified_name}[{joined}]"
            return TypeReference(
                text=text,
                qualified_name=qualified,
                form=form,
                modules=_merge_modules([origin, *arguments]),
            )

        if isinstance(node, ast.BinOp) and isinstance(node.op, ast.BitOr):
            left = self._type_reference(scope, node.left)
            right = self._type_reference(scope, node.right)
            qualified = None
            if left.resolved and right.resolved:
                qualified = f"{left.qualified_name} | {right.qualified_name}"
            return TypeReference(
                text=text,
                qualified_name=qualified,
                form=OTHER_FORM,
                modules=_merge_modules([left, right]),
            )

        if isinstance(node, ast.List):
            items = [self._type_reference(scope, element) for element in node.elts]
            qualified = None
            if all(item.resolved for item in items):
                qualified = "[" + ", ".join(str(item.qualified_name) for item in items) + "]"
            return TypeReference(
                text=text,
                qualified_name=qualified,
                form=OTHER_FORM,
                modules=_merge_modules(items),
            )

        return TypeReference(text=text, form=OTHER_FORM)

    # ------------------------------------------------------------------
    # Declarations

    def _location(self, scope: _ModuleScope, node: ast.AST) -> SourceLocation:
        return SourceLocation(
            path=scope.path,
            line=getattr(node, "lineno", 0),
            column=getattr(node, "col_offset", 0) + 1,
        )

    def _markers(
        self, scope: _ModuleScope, decorators: Sequence[ast.expr]
    ) -> Tuple[Marker, ...]:
        markers: List[Marker] = []
        for decorator in decorators:
            target = decorator.func if isinstance(decorator, ast.Call) else decorator
            resolved = self._resolve_dotted(scope, target)
            if resolved is None:
                # Decorators we cannot name are not markers.
                continue
            arguments: List[MarkerArgument] = []
            if isinstance(decorator, ast.Call):
                for argument in decorator.args:
                    arguments.append(_marker_argument(argument))
                for keyword in decorator.keywords:
                    value = _marker_argument(keyword.value)
                    label = f"{keyword.arg}=" if keyword.arg else "**"
                    arguments.append(replace(value, text=f"{label}{value.text}"))
            markers.append(
                Marker(
                    name=resolved[0],
                    arguments=tuple(arguments),
                    location=self._location(scope, decorator),
                )
            )
        return tuple(markers)

    def _parameter(
        self, scope: _ModuleScope, argument: ast.arg, prefix: str = ""
    ) -> ParameterDeclaration:
        location = self._location(scope, argument)
        if prefix:
            written = f"{prefix}{argument.arg}"
            if argument.annotation is not None:
                written = f"{written}: {ast.unparse(argument.annotation)}"
            return ParameterDeclaration(
                name=argument.arg,
                type=TypeReference(text=written, form=OTHER_FORM),
                location=location,
            )
        reference = (
            self._type_reference(scope, argument.annotation)
            if argument.annotation is not None
            else None
        )
        return ParameterDeclaration(name=argument.arg, type=reference, location=location)

    def _return_type(
        self, scope: _ModuleScope, node: ast.FunctionDef | ast.AsyncFunctionDef
    ) -> Optional[TypeReference]:
        if isinstance(node, ast.FunctionDef):
            if node.returns is None:
                return None
            return self._type_reference(scope, node.returns)

        inner = _ANY if node.returns is None else self._type_reference(scope, node.returns)
        qualified = (
            f"{_AWAITABLE}[{inner.qualified_name}]" if inner.resolved else None
        )
        return TypeReference(
            text=inner.text,
            qualified_name=qualified,
            form=GENERIC_FORM,
            modules=inner.modules,
        )

    def _method(
        self, scope: _ModuleScope, node: ast.FunctionDef | ast.AsyncFunctionDef
    ) -> MethodDeclaration:
        markers = self._markers(scope, node.decorator_list)
        arguments = node.args
        positional = [*arguments.posonlyargs, *arguments.args]
        if positional and not _is_staticmethod(node):
            positional = positional[1:]
        parameters = [self._parameter(scope, argument) for argument in positional]
        if arguments.vararg is not None:
            parameters.append(self._parameter(scope, arguments.vararg, prefix="*"))
        parameters.extend(self._parameter(scope, argument) for argument in arguments.kwonlyargs)
        if arguments.kwarg is not None:
            parameters.append(self._parameter(scope, arguments.kwarg, prefix="**"))
        return MethodDeclaration(
            name=node.name,
            parameters=tuple(parameters),
            return_type=self._return_type(scope, node),
            markers=markers,
            location=self._location(scope, node),
        )

    def _class_info(self, scope: _ModuleScope, node: ast.ClassDef) -> _ClassInfo:
        bases: List[str] = []
        for base in node.bases:
            target = base.value if isinstance(base, ast.Subscript) else base
            resolved = self._resolve_dotted(scope, target)
            if resolved is not None:
                bases.append(resolved[0])
        methods = tuple(
            self._method(scope, statement)
            for statement in node.body
            if isinstance(statement, (ast.FunctionDef, ast.AsyncFunctionDef))
        )
        return _ClassInfo(
            name=node.name,
            namespace=scope.module,
            markers=self._markers(scope, node.decorator_list),
            methods=methods,
            bases=tuple(bases),
            location=self._location(scope, node),
        )

    def _interfaces(self, info: _ClassInfo) -> Tuple[InterfaceReference, ...]:
        found: List[InterfaceReference] = []
        seen: Set[str] = set()
        queue = list(info.bases)
        while queue:
            qualified = queue.pop(0)
            if qualified in seen:
                continue
            seen.add(qualified)
            base = self._classes.get(qualified)
            if base is None:
                continue
            found.append(
                InterfaceReference(
                    name=base.name,
                    namespace=base.namespace,
                    markers=base.markers,
                    methods=base.methods,
                )
            )
            queue.extend(base.bases)
        return tuple(found)


def _module_level_statements(body: Iterable[ast.stmt]) -> Iterable[ast.stmt]:
    """Yield top-level statements, descending into ``if``/``try`` blocks (e.g. TYPE_CHECKING)."""
    for statement in body:
        if isinstance(statement, ast.If):
            yield from _module_level_statements(statement.body)
            yield from _module_level_statements(statement.orelse)
        elif isinstance(statement, ast.Try):
            yield from _module_level_statements(statement.body)
            for handler in statement.handlers:
                yield from _module_level_statements(handler.body)
            yield from _module_level_statements(statement.orelse)
            yield from _module_level_statements(statement.finalbody)
        else:
            yield statement


def _marker_argument(node: ast.expr) -> MarkerArgument:
    literal = node.value if isinstance(node, ast.Constant) and isinstance(node.value, str) else None
    return MarkerArgument(text=ast.unparse(node), literal=literal)


def _merge_modules(references: Iterable[TypeReference]) -> Tuple[str, ...]:
    merged: Set[str] = set()
    for reference in references:
        merged.update(reference.modules)
    return tuple(sorted(merged))


def _is_staticmethod(node: ast.FunctionDef | ast.AsyncFunctionDef) -> bool:
    return any(
        isinstance(decorator, ast.Name) and decorator.id == "staticmethod"
        for decorator in node.decorator_list
    )


__all__ = ["DeclarationSourceError", "PythonDeclarationSource", "module_name_for"]
