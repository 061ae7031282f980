"""Tree-sitter powered extraction of C# assembly attributes."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional, Sequence, Set, Tuple

import tree_sitter_c_sharp
from tree_sitter import Language, Node, Parser

from ..errors import AttributeCompileError
from ..logging import get_logger
from ..models import AttributeEntry, SourceText
from .base import AttributeCompiler

_LANGUAGE = Language(tree_sitter_c_sharp.language())

_TARGET_PATTERN = re.compile(r"^\[\s*(\w+)\s*:")
_NAME_SEPARATOR = re.compile(r"::|\.")
_DIRECTIVE_PATTERN = re.compile(r"#\s*(define|undef)\s+(\w+)")
_ATTRIBUTE_SUFFIX = "Attribute"

_STRING_LITERALS = {"string_literal", "verbatim_string_literal", "raw_string_literal"}
_CONSTANT_REFERENCES = {"identifier", "member_access_expression", "qualified_name"}
_CONTAINER_TYPES = {
    "class_declaration",
    "struct_declaration",
    "interface_declaration",
    "record_declaration",
    "record_struct_declaration",
    "namespace_declaration",
}
_ALTERNATIVE_BRANCHES = {"preproc_elif", "preproc_else"}

_ESCAPE_PATTERN = re.compile(
    r"\\(u[0-9a-fA-F]{4}|U[0-9a-fA-F]{8}|x[0-9a-fA-F]{1,4}|.)", re.DOTALL
)
_SIMPLE_ESCAPES = {
    "'": "'",
    '"': '"',
    "\\": "\\",
    "0": "\0",
    "a": "\a",
    "b": "\b",
    "e": "\x1b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "v": "\v",
}


@dataclass(frozen=True)
class _ParsedSource:
    source: SourceText
    source_bytes: bytes
    root: Node
    symbols: FrozenSet[str]

    def text(self, node: Node) -> str:
        return self.source_bytes[node.start_byte : node.end_byte].decode(
            "utf-8", errors="replace"
        )


class _ConstantTable:
    """``const`` fields declared across a compilation, keyed by qualified name."""

    def __init__(self) -> None:
        self._entries: Dict[str, List[Tuple[_ParsedSource, Node]]] = {}

    def add(self, name: str, parsed: _ParsedSource, value: Node) -> None:
        self._entries.setdefault(name, []).append((parsed, value))

    def lookup(self, reference: str, scope: str = "") -> Optional[Tuple[str, _ParsedSource, Node]]:
        while scope:
            found = self._unique(f"{scope}.{reference}")
            if found is not None:
                return found
            scope = scope.rpartition(".")[0]
        found = self._unique(reference)
        if found is not None:
            return found
        keys = [key for key in self._entries if key.endswith(f".{reference}")]
        if len(keys) != 1:
            return None
        return self._unique(keys[0])

    def _unique(self, key: str) -> Optional[Tuple[str, _ParsedSource, Node]]:
        entries = self._entries.get(key, [])
        if len(entries) != 1:
            return None
        parsed, value = entries[0]
        return key, parsed, value

    def __len__(self) -> int:
        return len(self._entries)


class CSharpAttributeCompiler(AttributeCompiler):
    """Parses C# sources and reports their ``[assembly: ...]`` attributes.

    Each source is parsed as its own syntax tree, but ``const`` fields are
    shared across all of them. Conditional compilation is evaluated with only
    the symbols each file ``#define``s, so ``#else`` and ``#if !SYMBOL``
    branches are compiled. Constructor arguments are reduced to string
    constants where the expression is a string literal (regular, verbatim or
    raw), a reference to a ``const`` field, or a ``+`` concatenation of them;
    any other expression yields ``None``.
    """

    def __init__(self) -> None:
        self.logger = get_logger("attributes.csharp")

    def compile(self, sources: Sequence[SourceText], unit_name: str) -> List[AttributeEntry]:
        parser = Parser(_LANGUAGE)
        parsed_sources: List[_ParsedSource] = []
        for source in sources:
            source_bytes = source.text.encode("utf-8")
            root = parser.parse(source_bytes).root_node
            if root.has_error:
                raise AttributeCompileError(self._describe_error(source, root, unit_name))
            parsed = _ParsedSource(source, source_bytes, root, _defined_symbols(root, source_bytes))
            parsed_sources.append(parsed)

        constants = _ConstantTable()
        for parsed in parsed_sources:
            self._collect_constants(parsed, constants)

        attributes: List[AttributeEntry] = []
        for parsed in parsed_sources:
            attributes.extend(self._collect_attributes(parsed, constants))
        self.logger.debug(
            "Compiled %d source file(s) for %s into %d assembly attribute(s), %d constant(s)",
            len(sources),
            unit_name,
            len(attributes),
            len(constants),
        )
        return attributes

    def _collect_constants(self, parsed: _ParsedSource, constants: _ConstantTable) -> None:
        for node in _active_descendants(parsed.root, parsed):
            if node.type != "field_declaration" or not _is_const(node, parsed):
                continue
            for declaration in node.named_children:
                if declaration.type != "variable_declaration":
                    continue
                for declarator in declaration.named_children:
                    if declarator.type != "variable_declarator":
                        continue
                    name = _declarator_name(declarator)
                    value = _declarator_value(declarator)
                    if name is None or value is None:
                        continue
                    constants.add(_qualified_name(node, parsed, parsed.text(name)), parsed, value)

    def _collect_attributes(
        self, parsed: _ParsedSource, constants: _ConstantTable
    ) -> Iterable[AttributeEntry]:
        for child in _active_children(parsed.root, parsed):
            if not child.type.startswith("global_attribute"):
                continue
            target = _TARGET_PATTERN.match(parsed.text(child))
            if target is None or target.group(1) != "assembly":
                continue
            for node in self._attribute_nodes(child, parsed):
                entry = self._build_entry(node, parsed, constants)
                if entry is not None:
                    yield entry

    def _attribute_nodes(self, node: Node, parsed: _ParsedSource) -> Iterable[Node]:
        for child in _active_children(node, parsed):
            if child.type == "attribute":
                yield child
            else:
                yield from self._attribute_nodes(child, parsed)

    def _build_entry(
        self, node: Node, parsed: _ParsedSource, constants: _ConstantTable
    ) -> Optional[AttributeEntry]:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            named = [child for child in node.named_children if child.type != "comment"]
            name_node = named[0] if named else None
        if name_node is None:
            return None
        name = _short_name(parsed.text(name_node))
        arguments = tuple(
            self._evaluate(expression, parsed, constants)
            for expression in self._positional_arguments(node)
        )
        return AttributeEntry(
            name=name,
            arguments=arguments,
            source=parsed.source.path,
            line=node.start_point[0] + 1,
        )

    def _positional_arguments(self, node: Node) -> Iterable[Node]:
        argument_list = next(
            (child for child in node.named_children if child.type == "attribute_argument_list"),
            None,
        )
        if argument_list is None:
            return
        for argument in argument_list.named_children:
            if argument.type != "attribute_argument":
                continue
            # Named arguments (Name = value, name: value) are not constructor arguments.
            if any(child.type in {"=", ":"} for child in argument.children):
                continue
            expressions = [child for child in argument.named_children if child.type != "comment"]
            if not expressions or expressions[-1].type == "assignment_expression":
                continue
            yield expressions[-1]

    def _evaluate(
        self,
        node: Node,
        parsed: _ParsedSource,
        constants: _ConstantTable,
        scope: str = "",
        resolving: FrozenSet[str] = frozenset(),
    ) -> Optional[str]:
        kind = node.type
        if kind in _STRING_LITERALS:
            return _decode_string_literal(parsed.text(node))
        if kind == "parenthesized_expression":
            inner = [child for child in node.named_children if child.type != "comment"]
            if len(inner) != 1:
                return None
            return self._evaluate(inner[0], parsed, constants, scope, resolving)
        if kind == "binary_expression":
            left, operator, right = _binary_parts(node)
            if left is None or right is None or operator is None:
                return None
            if parsed.text(operator) != "+":
                return None
            lhs = self._evaluate(left, parsed, constants, scope, resolving)
            rhs = self._evaluate(right, parsed, constants, scope, resolving)
            if lhs is None or rhs is None:
                return None
            return lhs + rhs
        if kind in _CONSTANT_REFERENCES:
            reference = _normalise_reference(parsed.text(node))
            found = constants.lookup(reference, scope)
            if found is None:
                self.logger.debug(
                    "Unresolved constant %r at line %d", reference, node.start_point[0] + 1
                )
                return None
            key, declaring, value = found
            if key in resolving:
                self.logger.debug("Circular constant %r", key)
                return None
            return self._evaluate(
                value, declaring, constants, key.rpartition(".")[0], resolving | {key}
            )
        self.logger.debug(
            "Unsupported attribute argument %r at line %d",
            parsed.text(node),
            node.start_point[0] + 1,
        )
        return None

    def _describe_error(self, source: SourceText, root: Node, unit_name: str) -> str:
        node = _first_error(root)
        row, column = node.start_point[0] + 1, node.start_point[1] + 1
        return f"{source.path}:{row}:{column}: syntax error while compiling {unit_name}"


def _defined_symbols(root: Node, source_bytes: bytes) -> FrozenSet[str]:
    symbols: Set[str] = set()
    for child in root.named_children:
        if child.type not in {"preproc_define", "preproc_undef"}:
            continue
        text = source_bytes[child.start_byte : child.end_byte].decode("utf-8", errors="replace")
        match = _DIRECTIVE_PATTERN.match(text.strip())
        if match is None:
            continue
        if match.group(1) == "define":
            symbols.add(match.group(2))
        else:
            symbols.discard(match.group(2))
    return frozenset(symbols)


def _active_children(node: Node, parsed: _ParsedSource) -> Iterator[Node]:
    """Yield named children, replacing ``#if`` blocks with their compiled branch."""
    for child in node.named_children:
        if child.type.startswith("preproc_if"):
            yield from _compiled_branch(child, parsed)
        else:
            yield child


def _active_descendants(node: Node, parsed: _ParsedSource) -> Iterator[Node]:
    for child in _active_children(node, parsed):
        yield child
        yield from _active_descendants(child, parsed)


def _compiled_branch(node: Node, parsed: _ParsedSource) -> Iterator[Node]:
    branch: Optional[Node] = node
    while branch is not None:
        if branch.type == "preproc_else" or _condition_holds(branch, parsed):
            condition = _branch_condition(branch)
            for child in _active_children(branch, parsed):
                if child.type in _ALTERNATIVE_BRANCHES or _same_node(child, condition):
                    continue
                yield child
            return
        branch = _branch_alternative(branch)


def _branch_condition(branch: Node) -> Optional[Node]:
    if branch.type == "preproc_else":
        return None
    condition = branch.child_by_field_name("condition")
    if condition is None and branch.named_children:
        condition = branch.named_children[0]
    return condition


def _branch_alternative(branch: Node) -> Optional[Node]:
    alternative = branch.child_by_field_name("alternative")
    if alternative is not None:
        return alternative
    return next(
        (child for child in branch.named_children if child.type in _ALTERNATIVE_BRANCHES),
        None,
    )


def _condition_holds(branch: Node, parsed: _ParsedSource) -> bool:
    condition = _branch_condition(branch)
    return condition is not None and _evaluate_condition(condition, parsed)


def _evaluate_condition(node: Node, parsed: _ParsedSource) -> bool:
    kind = node.type
    text = parsed.text(node).strip()
    if text in {"true", "false"}:
        return text == "true"
    if kind == "identifier":
        return text in parsed.symbols
    if kind == "parenthesized_expression":
        inner = [child for child in node.named_children if child.type != "comment"]
        return len(inner) == 1 and _evaluate_condition(inner[0], parsed)
    if kind in {"unary_expression", "prefix_unary_expression"}:
        operand = node.child_by_field_name("argument")
        if operand is None and node.named_children:
            operand = node.named_children[-1]
        return operand is not None and not _evaluate_condition(operand, parsed)
    if kind == "binary_expression":
        left, operator, right = _binary_parts(node)
        if left is None or right is None or operator is None:
            return False
        symbol = parsed.text(operator)
        lhs = _evaluate_condition(left, parsed)
        rhs = _evaluate_condition(right, parsed)
        if symbol == "&&":
            return lhs and rhs
        if symbol == "||":
            return lhs or rhs
        if symbol == "==":
            return lhs == rhs
        if symbol == "!=":
            return lhs != rhs
    return False


def _binary_parts(node: Node) -> Tuple[Optional[Node], Optional[Node], Optional[Node]]:
    left = node.child_by_field_name("left")
    right = node.child_by_field_name("right")
    operator = node.child_by_field_name("operator")
    if operator is None and len(node.children) == 3:
        operator = node.children[1]
    return left, operator, right


def _same_node(node: Node, other: Optional[Node]) -> bool:
    return (
        other is not None
        and node.start_byte == other.start_byte
        and node.end_byte == other.end_byte
        and node.type == other.type
    )


def _is_const(node: Node, parsed: _ParsedSource) -> bool:
    return any(
        child.type == "const" or (child.type == "modifier" and parsed.text(child) == "const")
        for child in node.children
    )


def _declarator_name(declarator: Node) -> Optional[Node]:
    name = declarator.child_by_field_name("name")
    if name is None:
        name = next((child for child in declarator.named_children if child.type == "identifier"), None)
    return name


def _declarator_value(declarator: Node) -> Optional[Node]:
    for child in declarator.named_children:
        if child.type == "equals_value_clause" and child.named_children:
            return child.named_children[-1]
    after_equals = False
    for child in declarator.children:
        if after_equals and child.is_named and child.type != "comment":
            return child
        if child.type == "=":
            after_equals = True
    return None


def _qualified_name(node: Node, parsed: _ParsedSource, name: str) -> str:
    parts = [name]
    parent = node.parent
    while parent is not None:
        if parent.type in _CONTAINER_TYPES:
            container = parent.child_by_field_name("name")
            if container is not None:
                parts.append(_normalise_reference(parsed.text(container)))
        parent = parent.parent
    return ".".join(reversed(parts))


def _normalise_reference(text: str) -> str:
    reference = re.sub(r"\s+", "", text)
    if reference.startswith("global::"):
        reference = reference[len("global::") :]
    return reference.replace("::", ".")


def _first_error(node: Node) -> Node:
    if node.type == "ERROR" or node.is_missing:
        return node
    for child in node.children:
        if child.has_error or child.is_missing:
            return _first_error(child)
    return node


def _short_name(qualified: str) -> str:
    name = _NAME_SEPARATOR.split(qualified.strip())[-1].strip()
    if name.endswith(_ATTRIBUTE_SUFFIX) and len(name) > len(_ATTRIBUTE_SUFFIX):
        name = name[: -len(_ATTRIBUTE_SUFFIX)]
    return name


def _decode_string_literal(text: str) -> Optional[str]:
    if text.endswith("u8"):
        text = text[:-2]
    if text.startswith('@"'):
        return text[2:-1].replace('""', '"')
    if text.startswith('"""'):
        return _decode_raw_string(text)
    if text.startswith('"'):
        return _ESCAPE_PATTERN.sub(_unescape, text[1:-1])
    return None


def _decode_raw_string(text: str) -> str:
    quotes = len(text) - len(text.lstrip('"'))
    body = text[quotes:-quotes]
    if "\n" not in body:
        return body
    lines = [line.rstrip("\r") for line in body.split("\n")]
    indentation = lines[-1]
    content = lines[1:-1]
    return "\n".join(
        line[len(indentation) :] if line.startswith(indentation) else line.lstrip()
        for line in content
    )


def _unescape(match: re.Match[str]) -> str:
    token = match.group(1)
    if token[0] in "uUx" and len(token) > 1:
        return chr(int(token[1:], 16))
    return _SIMPLE_ESCAPES.get(token, "\\" + token)


__all__ = ["CSharpAttributeCompiler"]
