"""Static type information for Go identifiers.

This is a small type checker: it knows enough about
declarations, signatures and method sets to answer whether a variable's
type satisfies the `error` interface. Anything it cannot resolve comes
back as None, and callers treat None as "not an error".
"""

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple, Union

from .grammars import (
    ARM_NODES,
    BLOCK_NODE,
    FUNC_LITERAL_NODE,
    SHORT_VAR_NODE,
    STATEMENT_LIST_NODE,
    VAR_DECLARATION_NODE,
    node_text,
)
from .source import SourceFile

if TYPE_CHECKING:
    from .loader import PackageLoader

logger = logging.getLogger(__name__)

# Recursion guard for chains like `a := b; b := c; ...` and alias cycles
MAX_DEPTH = 16

UNIVERSE_TYPES = {
    "any",
    "bool",
    "byte",
    "comparable",
    "complex64",
    "complex128",
    "error",
    "float32",
    "float64",
    "int",
    "int8",
    "int16",
    "int32",
    "int64",
    "rune",
    "string",
    "uint",
    "uint8",
    "uint16",
    "uint32",
    "uint64",
    "uintptr",
}

SCOPE_NODES = frozenset({BLOCK_NODE, STATEMENT_LIST_NODE}) | ARM_NODES
FUNCTION_NODES = frozenset({"function_declaration", "method_declaration", FUNC_LITERAL_NODE})
HEADER_NODES = frozenset({"if_statement", "expression_switch_statement", "type_switch_statement"})


@dataclass(eq=False)
class NamedType:
    package: Optional["PackageInfo"]  # None for predeclared types
    name: str


@dataclass(eq=False)
class PointerType:
    elem: "TypeDesc"


@dataclass(eq=False)
class InterfaceType:
    node: Optional[Any]  # None for the predeclared error interface
    scope: Optional["FileScope"]


@dataclass(eq=False)
class OpaqueType:
    text: str


TypeDesc = Union[NamedType, PointerType, InterfaceType, OpaqueType]

ERROR_INTERFACE = InterfaceType(node=None, scope=None)


@dataclass(eq=False)
class FileScope:
    """Per-file name resolution context: the package plus the file's imports."""

    package: "PackageInfo"
    imports: Dict[str, str] = field(default_factory=dict)  # local name -> import path
    unnamed_imports: List[str] = field(default_factory=list)


@dataclass(eq=False)
class Symbol:
    node: Any
    scope: FileScope
    index: int = 0  # position among the names of a var spec


def _default_import_name(import_path: str) -> str:
    parts = import_path.rstrip("/").split("/")
    last = parts[-1]
    if len(parts) > 1 and re.fullmatch(r"v\d+", last):
        last = parts[-2]

    # gopkg.in/yaml.v3, go-cmp
    last = last.split(".")[0]
    if last.startswith("go-"):
        last = last[3:]
    return last.replace("-", "_")


def _string_literal_value(node: Any) -> str:
    return node_text(node).strip('"`')


def _receiver_type_name(receiver: Any) -> Optional[str]:
    for param in receiver.named_children:
        type_node = param.child_by_field_name("type")
        while type_node is not None and type_node.type in ("pointer_type", "generic_type", "parenthesized_type"):
            if type_node.type == "generic_type":
                type_node = type_node.child_by_field_name("type")
            else:
                type_node = type_node.named_children[0] if type_node.named_children else None
        if type_node is not None and type_node.type == "type_identifier":
            return node_text(type_node)
    return None


def _specs(node: Any, spec_type: str) -> List[Any]:
    specs = []
    for child in node.named_children:
        if child.type == spec_type:
            specs.append(child)
        elif child.type.endswith("_list"):
            specs.extend(c for c in child.named_children if c.type == spec_type)
    return specs


class PackageInfo:
    """Package-level declarations of one Go package."""

    def __init__(self, key: str, name: str):
        """Initialize an empty package.

        Args:
            key: Directory the package was loaded from
            name: Package name from the package clause
        """
        self.key = key
        self.name = name
        self.types: Dict[str, Symbol] = {}
        self.functions: Dict[str, Symbol] = {}
        self.methods: Dict[str, Dict[str, Symbol]] = {}
        self.variables: Dict[str, Symbol] = {}
        self.scopes: Dict[str, FileScope] = {}

    @classmethod
    def from_sources(cls, key: str, name: str, sources: List[SourceFile]) -> "PackageInfo":
        package = cls(key, name)
        for source in sources:
            package.add_file(source)
        logger.debug(
            f"Indexed package {name} ({key}): {len(package.types)} types, "
            f"{len(package.functions)} functions, {len(package.variables)} variables"
        )
        return package

    def add_file(self, source: SourceFile) -> FileScope:
        """Index the top-level declarations of one file."""
        scope = FileScope(package=self)
        self.scopes[source.path] = scope

        for node in source.root.named_children:
            if node.type == "import_declaration":
                self._add_imports(node, scope)

            elif node.type == "function_declaration":
                name = node.child_by_field_name("name")
                if name is not None:
                    self.functions.setdefault(node_text(name), Symbol(node, scope))

            elif node.type == "method_declaration":
                self._add_method(node, scope)

            elif node.type == "type_declaration":
                for spec in _specs(node, "type_spec") + _specs(node, "type_alias"):
                    name = spec.child_by_field_name("name")
                    if name is not None:
                        self.types.setdefault(node_text(name), Symbol(spec, scope))

            elif node.type == VAR_DECLARATION_NODE:
                for spec in _specs(node, "var_spec"):
                    for index, name in enumerate(spec.children_by_field_name("name")):
                        self.variables.setdefault(node_text(name), Symbol(spec, scope, index))

        return scope

    @staticmethod
    def _add_imports(node: Any, scope: FileScope) -> None:
        for spec in _specs(node, "import_spec"):
            path_node = spec.child_by_field_name("path")
            if path_node is None:
                continue

            path = _string_literal_value(path_node)
            name_node = spec.child_by_field_name("name")
            if name_node is None:
                scope.imports.setdefault(_default_import_name(path), path)
                scope.unnamed_imports.append(path)
            elif name_node.type == "package_identifier":
                scope.imports[node_text(name_node)] = path

    def _add_method(self, node: Any, scope: FileScope) -> None:
        receiver = node.child_by_field_name("receiver")
        name = node.child_by_field_name("name")
        if receiver is None or name is None:
            return

        type_name = _receiver_type_name(receiver)
        if type_name is None:
            return

        self.methods.setdefault(type_name, {}).setdefault(node_text(name), Symbol(node, scope))

    def method(self, type_name: str, method_name: str) -> Optional[Symbol]:
        return self.methods.get(type_name, {}).get(method_name)


def _is_string_result(result: Optional[Any]) -> bool:
    if result is None:
        return False
    if result.type == "type_identifier":
        return node_text(result) == "string"
    if result.type == "parameter_list":
        params = [p for p in result.named_children if p.type == "parameter_declaration"]
        if len(params) != 1 or len(params[0].children_by_field_name("name")) > 1:
            return False
        return _is_string_result(params[0].child_by_field_name("type"))
    return False


def _has_no_parameters(node: Any) -> bool:
    params = node.child_by_field_name("parameters")
    if params is None:
        return False
    return not any(
        p.type in ("parameter_declaration", "variadic_parameter_declaration")
        for p in params.named_children
    )


def is_error_method(node: Any) -> bool:
    """Check for the signature `Error() string` on a method or interface element."""
    name = node.child_by_field_name("name")
    if name is None or node_text(name) != "Error":
        return False
    return _has_no_parameters(node) and _is_string_result(node.child_by_field_name("result"))


class TypeResolver:
    """Resolves expressions and type nodes to type descriptors."""

    def __init__(self, loader: Optional["PackageLoader"] = None):
        self.loader = loader

    # Type expressions

    def resolve_type(self, node: Optional[Any], scope: FileScope, depth: int = 0) -> Optional[TypeDesc]:
        """Resolve a type node written in the given file."""
        if node is None or depth > MAX_DEPTH:
            return None

        kind = node.type
        if kind == "type_identifier":
            return self._named(scope.package, node_text(node), depth)

        if kind == "qualified_type":
            package = self.imported_package(node.child_by_field_name("package"), scope)
            name = node.child_by_field_name("name")
            if package is None or name is None:
                return None
            return self._named(package, node_text(name), depth)

        if kind == "pointer_type":
            if not node.named_children:
                return None
            elem = self.resolve_type(node.named_children[0], scope, depth + 1)
            return PointerType(elem) if elem is not None else None

        if kind == "parenthesized_type":
            inner = node.named_children[0] if node.named_children else None
            return self.resolve_type(inner, scope, depth + 1)

        if kind == "generic_type":
            return self.resolve_type(node.child_by_field_name("type"), scope, depth + 1)

        if kind == "interface_type":
            return InterfaceType(node=node, scope=scope)

        return OpaqueType(node_text(node))

    def _named(self, package: "PackageInfo", name: str, depth: int) -> Optional[TypeDesc]:
        declaration = package.types.get(name)
        if declaration is None:
            if name in UNIVERSE_TYPES:
                return NamedType(package=None, name=name)
            return None

        # Aliases denote the aliased type itself
        if declaration.node.type == "type_alias":
            return self.resolve_type(
                declaration.node.child_by_field_name("type"), declaration.scope, depth + 1
            )
        return NamedType(package=package, name=name)

    def imported_package(self, alias_node: Optional[Any], scope: FileScope) -> Optional["PackageInfo"]:
        if alias_node is None or self.loader is None:
            return None

        alias = node_text(alias_node)
        path = scope.imports.get(alias)
        if path is not None:
            package = self.loader.load_import(path, scope.package.key)
            if package is not None and (package.name == alias or path not in scope.unnamed_imports):
                return package

        # The package clause, not the import path, decides the name
        for candidate in scope.unnamed_imports:
            package = self.loader.load_import(candidate, scope.package.key)
            if package is not None and package.name == alias:
                return package
        return None

    def underlying(self, desc: Optional[TypeDesc], depth: int = 0) -> Optional[TypeDesc]:
        """Follow named types down to their type literal."""
        while isinstance(desc, NamedType) and depth <= MAX_DEPTH:
            if desc.package is None:
                return ERROR_INTERFACE if desc.name == "error" else OpaqueType(desc.name)

            declaration = desc.package.types.get(desc.name)
            if declaration is None:
                return None

            desc = self.resolve_type(
                declaration.node.child_by_field_name("type"), declaration.scope, depth + 1
            )
            depth += 1
        return desc

    # The describe-failure capability

    def satisfies_error(self, desc: Optional[TypeDesc], depth: int = 0) -> bool:
        """Check whether a type, or a pointer to it, implements `error`."""
        if desc is None or depth > MAX_DEPTH:
            return False

        if isinstance(desc, PointerType):
            elem = desc.elem
            if not isinstance(elem, NamedType) or elem.package is None:
                return False
            if isinstance(self.underlying(elem), InterfaceType):
                return False
            return self._has_error_method(elem, depth)

        if isinstance(desc, NamedType):
            underlying = self.underlying(desc)
            if isinstance(underlying, InterfaceType):
                return self._interface_has_error(underlying, depth + 1)
            return desc.package is not None and self._has_error_method(desc, depth)

        if isinstance(desc, InterfaceType):
            return self._interface_has_error(desc, depth + 1)

        return False

    def _has_error_method(self, desc: NamedType, depth: int) -> bool:
        """Check a named type's declared methods, then those its struct embeds."""
        if desc.package is None:
            return False

        # Value and pointer receivers both count
        method = desc.package.method(desc.name, "Error")
        if method is not None and is_error_method(method.node):
            return True

        declaration = desc.package.types.get(desc.name)
        if declaration is None:
            return False

        struct = declaration.node.child_by_field_name("type")
        if struct is None or struct.type != "struct_type":
            return False

        fields = [
            child
            for field_list in struct.named_children
            if field_list.type == "field_declaration_list"
            for child in field_list.named_children
            if child.type == "field_declaration"
        ]
        for embedded in fields:
            if embedded.child_by_field_name("name") is not None:
                continue

            field_type = self.resolve_type(embedded.child_by_field_name("type"), declaration.scope, depth + 1)
            if field_type is not None and any(child.type == "*" for child in embedded.children):
                field_type = PointerType(field_type)
            if self.satisfies_error(field_type, depth + 1):
                return True
        return False

    def _interface_has_error(self, iface: InterfaceType, depth: int) -> bool:
        if iface.node is None:
            return True

        for element in iface.node.named_children:
            if element.type in ("method_elem", "method_spec"):
                if is_error_method(element):
                    return True
                continue

            embedded = element
            if element.type in ("type_elem", "constraint_elem"):
                if len(element.named_children) != 1:
                    continue
                embedded = element.named_children[0]

            if embedded.type in ("type_identifier", "qualified_type", "generic_type"):
                if self.satisfies_error(self.resolve_type(embedded, iface.scope), depth + 1):
                    return True
        return False

    # Expressions

    def type_of(self, expr: Any, scope: FileScope, depth: int = 0) -> Optional[TypeDesc]:
        """Infer the static type of a single-valued expression."""
        if depth > MAX_DEPTH:
            return None

        kind = expr.type
        if kind == "identifier":
            return self._identifier_type(expr, scope, depth + 1)

        if kind == "parenthesized_expression":
            inner = expr.named_children[0] if expr.named_children else None
            return self.type_of(inner, scope, depth + 1) if inner is not None else None

        if kind == "composite_literal":
            return self.resolve_type(expr.child_by_field_name("type"), scope, depth + 1)

        if kind == "unary_expression":
            operator = expr.child_by_field_name("operator")
            operand = expr.child_by_field_name("operand")
            if operator is not None and operator.type == "&" and operand is not None:
                if operand.type == "composite_literal":
                    elem = self.type_of(operand, scope, depth + 1)
                    return PointerType(elem) if elem is not None else None
            return None

        if kind == "type_assertion_expression":
            return self.resolve_type(expr.child_by_field_name("type"), scope, depth + 1)

        if kind == "call_expression":
            results = self.call_results(expr, scope, depth + 1)
            if results is not None and len(results) == 1:
                return results[0]
            return None

        return None

    def value_type(self, values: List[Any], index: int, count: int, scope: FileScope, depth: int = 0) -> Optional[TypeDesc]:
        """Type of the index-th name in `a, b, c = values`."""
        if len(values) == count and index < len(values):
            return self.type_of(values[index], scope, depth + 1)

        if len(values) == 1 and values[0].type == "call_expression":
            results = self.call_results(values[0], scope, depth + 1)
            if results is not None and index < len(results):
                return results[index]
        return None

    def signature_results(self, node: Any, scope: FileScope, depth: int = 0) -> List[Optional[TypeDesc]]:
        """Result types of a function, method, literal or interface method."""
        result = node.child_by_field_name("result")
        if result is None:
            return []

        if result.type != "parameter_list":
            return [self.resolve_type(result, scope, depth + 1)]

        results: List[Optional[TypeDesc]] = []
        for param in result.named_children:
            if param.type != "parameter_declaration":
                continue
            desc = self.resolve_type(param.child_by_field_name("type"), scope, depth + 1)
            results.extend([desc] * max(1, len(param.children_by_field_name("name"))))
        return results

    def call_results(self, call: Any, scope: FileScope, depth: int = 0) -> Optional[List[Optional[TypeDesc]]]:
        if depth > MAX_DEPTH:
            return None

        function = call.child_by_field_name("function")
        while function is not None and function.type == "parenthesized_expression":
            function = function.named_children[0] if function.named_children else None
        if function is None:
            return None

        if function.type == FUNC_LITERAL_NODE:
            return self.signature_results(function, scope, depth)

        if function.type == "identifier":
            name = node_text(function)
            found, _ = self._local_binding(function, name, scope, depth)
            if found:
                return None
            return self._member_results(scope.package, name, depth)

        if function.type == "selector_expression":
            operand = function.child_by_field_name("operand")
            member = function.child_by_field_name("field")
            if operand is None or member is None:
                return None

            member_name = node_text(member)
            if operand.type == "identifier":
                operand_name = node_text(operand)
                shadowed = self._local_binding(operand, operand_name, scope, depth)[0]
                if not shadowed and operand_name not in scope.package.variables:
                    package = self.imported_package(operand, scope)
                    if package is not None:
                        return self._member_results(package, member_name, depth)

            return self._method_results(self.type_of(operand, scope, depth + 1), member_name, depth)

        return None

    def _member_results(self, package: "PackageInfo", name: str, depth: int) -> Optional[List[Optional[TypeDesc]]]:
        declaration = package.functions.get(name)
        if declaration is not None:
            return self.signature_results(declaration.node, declaration.scope, depth)

        # Conversion to a named type
        if name in package.types:
            return [self._named(package, name, depth)]
        if package.types.get(name) is None and name in UNIVERSE_TYPES:
            return [NamedType(package=None, name=name)]
        return None

    def _method_results(self, receiver: Optional[TypeDesc], name: str, depth: int) -> Optional[List[Optional[TypeDesc]]]:
        if isinstance(receiver, PointerType):
            receiver = receiver.elem
        if not isinstance(receiver, NamedType):
            return None

        if receiver.package is None:
            if receiver.name == "error" and name == "Error":
                return [NamedType(package=None, name="string")]
            return None

        method = receiver.package.method(receiver.name, name)
        if method is not None:
            return self.signature_results(method.node, method.scope, depth)

        underlying = self.underlying(receiver)
        if isinstance(underlying, InterfaceType) and underlying.node is not None:
            for element in underlying.node.named_children:
                element_name = element.child_by_field_name("name")
                if element_name is not None and node_text(element_name) == name:
                    return self.signature_results(element, underlying.scope, depth)
        return None

    # Identifier bindings

    def _identifier_type(self, ident: Any, scope: FileScope, depth: int) -> Optional[TypeDesc]:
        name = node_text(ident)
        found, desc = self._local_binding(ident, name, scope, depth)
        if found:
            return desc

        declaration = scope.package.variables.get(name)
        if declaration is not None:
            return self._var_spec_type(declaration.node, declaration.index, declaration.scope, depth)
        return None

    def _local_binding(self, ident: Any, name: str, scope: FileScope, depth: int) -> Tuple[bool, Optional[TypeDesc]]:
        """Find the innermost declaration of name visible at ident.

        Returns (found, type). A binding that exists but whose type is
        unknown still shadows outer declarations.
        """
        child = ident
        parent = ident.parent
        while parent is not None and parent.type != "source_file":
            found, desc = self._binding_in(parent, child, name, scope, depth)
            if found:
                return found, desc
            child, parent = parent, parent.parent
        return False, None

    def _binding_in(self, parent: Any, child: Any, name: str, scope: FileScope, depth: int) -> Tuple[bool, Optional[TypeDesc]]:
        kind = parent.type

        if kind in SCOPE_NODES:
            preceding = [s for s in parent.named_children if s.end_byte <= child.start_byte]
            for statement in reversed(preceding):
                found, desc = self._declared_by(statement, name, scope, depth)
                if found:
                    return found, desc

            if kind == "type_case":
                return self._type_case_binding(parent, name, scope, depth)

            if kind == "communication_case":
                communication = parent.child_by_field_name("communication")
                if communication is not None and communication.type == "receive_statement":
                    left = communication.child_by_field_name("left")
                    if left is not None and name in [node_text(n) for n in left.named_children]:
                        return True, None
            return False, None

        if kind in HEADER_NODES:
            initializer = parent.child_by_field_name("initializer")
            if initializer is not None and initializer.end_byte <= child.start_byte:
                return self._declared_by(initializer, name, scope, depth)
            return False, None

        if kind == "for_statement":
            for clause in parent.named_children:
                if clause is child or clause.end_byte > child.start_byte:
                    continue

                if clause.type == "for_clause":
                    initializer = clause.child_by_field_name("initializer")
                    if initializer is not None:
                        return self._declared_by(initializer, name, scope, depth)

                elif clause.type == "range_clause":
                    left = clause.child_by_field_name("left")
                    if left is not None and name in [node_text(n) for n in left.named_children]:
                        return True, None
            return False, None

        if kind in FUNCTION_NODES:
            for field_name in ("receiver", "parameters", "result"):
                params = parent.child_by_field_name(field_name)
                if params is None or params.type != "parameter_list":
                    continue

                for param in params.named_children:
                    names = [node_text(n) for n in param.children_by_field_name("name")]
                    if name not in names:
                        continue
                    if param.type == "variadic_parameter_declaration":
                        return True, OpaqueType("variadic")
                    return True, self.resolve_type(param.child_by_field_name("type"), scope, depth + 1)
            return False, None

        return False, None

    def _type_case_binding(self, case: Any, name: str, scope: FileScope, depth: int) -> Tuple[bool, Optional[TypeDesc]]:
        switch = case.parent
        alias = switch.child_by_field_name("alias") if switch is not None else None
        if alias is None or name not in [node_text(n) for n in alias.named_children]:
            return False, None

        types = case.children_by_field_name("type")
        if len(types) == 1:
            return True, self.resolve_type(types[0], scope, depth + 1)
        return True, None

    def _declared_by(self, statement: Any, name: str, scope: FileScope, depth: int) -> Tuple[bool, Optional[TypeDesc]]:
        if statement.type == SHORT_VAR_NODE:
            left = statement.child_by_field_name("left")
            right = statement.child_by_field_name("right")
            if left is None:
                return False, None

            names = [node_text(n) for n in left.named_children]
            if name not in names:
                return False, None

            # Redeclaration picks the last occurrence, `_` never matches
            index = len(names) - 1 - names[::-1].index(name)
            values = right.named_children if right is not None else []
            return True, self.value_type(values, index, len(names), scope, depth)

        if statement.type == VAR_DECLARATION_NODE:
            for spec in _specs(statement, "var_spec"):
                names = [node_text(n) for n in spec.children_by_field_name("name")]
                if name in names:
                    return True, self._var_spec_type(spec, names.index(name), scope, depth)

        if statement.type == "const_declaration":
            for spec in _specs(statement, "const_spec"):
                if name in [node_text(n) for n in spec.children_by_field_name("name")]:
                    return True, self.resolve_type(spec.child_by_field_name("type"), scope, depth + 1)

        return False, None

    def _var_spec_type(self, spec: Any, index: int, scope: FileScope, depth: int) -> Optional[TypeDesc]:
        type_node = spec.child_by_field_name("type")
        if type_node is not None:
            return self.resolve_type(type_node, scope, depth + 1)

        value = spec.child_by_field_name("value")
        if value is None:
            return None

        count = len(spec.children_by_field_name("name"))
        return self.value_type(value.named_children, index, count, scope, depth)


class TypeInfo:
    """Type queries for the nodes of one analyzed file."""

    def __init__(self, resolver: TypeResolver, scope: FileScope):
        self.resolver = resolver
        self.scope = scope

    def type_of(self, expr: Any) -> Optional[TypeDesc]:
        return self.resolver.type_of(expr, self.scope)

    def satisfies_error(self, desc: Optional[TypeDesc]) -> bool:
        return self.resolver.satisfies_error(desc)
