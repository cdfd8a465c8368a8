"""Evaluate ARM-style template expressions such as "[parameters('location')]".

A string is an expression when it is wrapped in square brackets. A leading
"[[" escapes a literal bracket. Literal functions (parameters, variables,
concat, ...) evaluate at load time; resourceId() and reference() produce
Reference values that stay unresolved until planning.
"""

import base64
import hashlib
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple, Union
from .models import Reference, ResourceId
from ..utils.errors import ParseError
from ..utils.logging import get_logger

logger = get_logger("ingest.expressions")

_TOKEN_RE = re.compile(
    r"\s*(?:"
    r"(?P<string>'(?:[^']|'')*')"
    r"|(?P<number>-?\d+)"
    r"|(?P<ident>[A-Za-z_][A-Za-z0-9_]*)"
    r"|(?P<punct>[(),.\[\]])"
    r")"
)


@dataclass
class _Literal:
    value: Any


@dataclass
class _Call:
    name: str
    args: List[Any] = field(default_factory=list)


@dataclass
class _Access:
    base: Any
    key: Union[str, int, Any]


@dataclass
class _PendingReference:
    """Result of reference(): needs an attribute path before it is a Reference."""
    target: ResourceId
    path: Tuple[str, ...] = ()


def is_expression(value: Any) -> bool:
    return isinstance(value, str) and value.startswith("[") and value.endswith("]") and not value.startswith("[[")


def unique_string(scope_id: str, *values: str) -> str:
    """Deterministic 13-char lowercase base32 hash of scope_id and values."""
    digest = hashlib.sha256("|".join((scope_id,) + values).encode("utf-8")).digest()
    return base64.b32encode(digest).decode("ascii").lower()[:13]


def _tokenize(text: str) -> List[Tuple[str, str]]:
    tokens = []
    pos = 0
    while pos < len(text):
        if text[pos:].strip() == "":
            break
        match = _TOKEN_RE.match(text, pos)
        if not match or match.end() == pos:
            raise ParseError(f"Unexpected character {text[pos:].lstrip()[:1]!r} in expression [{text}]")
        kind = match.lastgroup
        tokens.append((kind, match.group(kind)))
        pos = match.end()
    return tokens


class _Parser:
    """Recursive descent over the token list."""

    def __init__(self, text: str):
        self.text = text
        self.tokens = _tokenize(text)
        self.pos = 0

    def parse(self) -> Any:
        if not self.tokens:
            raise ParseError("Empty expression []")
        node = self._expression()
        if self.pos != len(self.tokens):
            raise ParseError(f"Unexpected trailing input {self.tokens[self.pos][1]!r} in expression [{self.text}]")
        return node

    def _peek(self) -> Optional[Tuple[str, str]]:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _take(self, value: Optional[str] = None) -> Tuple[str, str]:
        token = self._peek()
        if token is None:
            raise ParseError(f"Unexpected end of expression [{self.text}]")
        if value is not None and token[1] != value:
            raise ParseError(f"Expected {value!r} but found {token[1]!r} in expression [{self.text}]")
        self.pos += 1
        return token

    def _expression(self) -> Any:
        node = self._primary()
        while self._peek() is not None and self._peek()[1] in (".", "["):
            if self._take()[1] == ".":
                kind, name = self._take()
                if kind != "ident":
                    raise ParseError(f"Expected property name after '.' in expression [{self.text}]")
                node = _Access(node, name)
            else:
                key = self._expression()
                self._take("]")
                node = _Access(node, key)
        return node

    def _primary(self) -> Any:
        kind, value = self._take()
        if kind == "string":
            return _Literal(value[1:-1].replace("''", "'"))
        if kind == "number":
            return _Literal(int(value))
        if kind == "ident":
            if value in ("true", "false") and (self._peek() is None or self._peek()[1] != "("):
                return _Literal(value == "true")
            self._take("(")
            args = []
            if self._peek() is not None and self._peek()[1] == ")":
                self._take(")")
                return _Call(value, args)
            while True:
                args.append(self._expression())
                separator = self._take()[1]
                if separator == ")":
                    break
                if separator != ",":
                    raise ParseError(f"Expected ',' or ')' in call to {value}() in expression [{self.text}]")
            return _Call(value, args)
        raise ParseError(f"Unexpected token {value!r} in expression [{self.text}]")


class ExpressionEvaluator:
    """Evaluate template values against parameters, variables and scope."""

    def __init__(
        self,
        scope_id: str,
        parameters: Optional[Dict[str, Any]] = None,
        variables: Optional[Dict[str, Any]] = None,
    ):
        self.scope_id = scope_id
        self.parameters = parameters or {}
        self._raw_variables = variables or {}
        self._variables: Dict[str, Any] = {}
        self._evaluating: List[str] = []
        self._variable_parameters: Dict[str, set] = {}
        # parameter names read since the last reset; used to flag sensitive paths
        self.used_parameters: set = set()
        self._functions: Dict[str, Tuple[Callable[..., Any], int, Optional[int]]] = {
            "parameters": (self._fn_parameters, 1, 1),
            "variables": (self._fn_variables, 1, 1),
            "concat": (self._fn_concat, 1, None),
            "tolower": (self._fn_to_lower, 1, 1),
            "toupper": (self._fn_to_upper, 1, 1),
            "format": (self._fn_format, 1, None),
            "uniquestring": (self._fn_unique_string, 1, None),
            "resourceid": (self._fn_resource_id, 2, None),
            "reference": (self._fn_reference, 1, 1),
        }

    def evaluate(self, value: Any) -> Any:
        """Evaluate a template value recursively (dicts, lists, expression strings)."""
        if isinstance(value, dict):
            return {key: self.evaluate(item) for key, item in value.items()}
        if isinstance(value, list):
            return [self.evaluate(item) for item in value]
        if isinstance(value, str):
            if value.startswith("[["):
                return value[1:]
            if is_expression(value):
                result = self._eval(_Parser(value[1:-1]).parse())
                if isinstance(result, _PendingReference):
                    if not result.path:
                        raise ParseError(f"reference() needs an attribute path, e.g. reference(...).properties.x: {value}")
                    return Reference(target=result.target, attribute=".".join(result.path))
                return result
        return value

    def variable(self, name: str) -> Any:
        """Evaluate one variable (memoized, cycle-checked)."""
        if name in self._variables:
            self.used_parameters |= self._variable_parameters[name]
            return self._variables[name]
        if name not in self._raw_variables:
            raise ParseError(f"Unknown variable: {name}")
        if name in self._evaluating:
            chain = " -> ".join(self._evaluating + [name])
            raise ParseError(f"Circular variable definition: {chain}")
        outer_used = self.used_parameters
        self.used_parameters = set()
        self._evaluating.append(name)
        try:
            value = self.evaluate(self._raw_variables[name])
        finally:
            self._evaluating.pop()
            inner_used = self.used_parameters
            self.used_parameters = outer_used | inner_used
        self._variables[name] = value
        self._variable_parameters[name] = inner_used
        return value

    def evaluate_variables(self) -> Dict[str, Any]:
        return {name: self.variable(name) for name in self._raw_variables}

    def _eval(self, node: Any) -> Any:
        if isinstance(node, _Literal):
            return node.value
        if isinstance(node, _Call):
            entry = self._functions.get(node.name.lower())
            if entry is None:
                raise ParseError(f"Unknown template function: {node.name}()")
            func, min_args, max_args = entry
            if len(node.args) < min_args or (max_args is not None and len(node.args) > max_args):
                raise ParseError(f"Wrong number of arguments for {node.name}(): {len(node.args)}")
            return func(*[self._eval(arg) for arg in node.args])
        if isinstance(node, _Access):
            return self._access(self._eval(node.base), self._eval(node.key) if not isinstance(node.key, str) else node.key)
        raise ParseError(f"Cannot evaluate expression node: {node!r}")

    def _access(self, base: Any, key: Any) -> Any:
        if isinstance(key, bool) or not isinstance(key, (str, int)):
            raise ParseError(f"Property or index key must be a string or integer, got {type(key).__name__}")
        if isinstance(base, _PendingReference):
            return _PendingReference(base.target, base.path + (str(key),))
        if isinstance(base, Reference):
            raise ParseError(f"Cannot read '{key}' from resourceId(); use reference(resourceId(...)).{key}")
        if isinstance(base, dict):
            if key not in base:
                raise ParseError(f"Property '{key}' not found")
            return base[key]
        if isinstance(base, list) and isinstance(key, int):
            if not -len(base) <= key < len(base):
                raise ParseError(f"Index {key} out of range")
            return base[key]
        raise ParseError(f"Cannot access '{key}' on {type(base).__name__}")

    @staticmethod
    def _literal_args(name: str, args: Tuple[Any, ...]) -> None:
        for arg in args:
            if isinstance(arg, (Reference, _PendingReference)):
                raise ParseError(f"{name}() cannot take a resource reference; references must be the outermost expression")

    def _fn_parameters(self, name: Any) -> Any:
        self._literal_args("parameters", (name,))
        if not isinstance(name, str):
            raise ParseError("parameters() takes a parameter name")
        if name not in self.parameters:
            raise ParseError(f"Unknown parameter: {name}")
        self.used_parameters.add(name)
        return self.parameters[name]

    def _fn_variables(self, name: Any) -> Any:
        self._literal_args("variables", (name,))
        if not isinstance(name, str):
            raise ParseError("variables() takes a variable name")
        return self.variable(name)

    def _fn_concat(self, *args: Any) -> Any:
        self._literal_args("concat", args)
        if all(isinstance(arg, list) for arg in args):
            return [item for arg in args for item in arg]
        return "".join(_to_text(arg) for arg in args)

    def _fn_to_lower(self, value: Any) -> str:
        self._literal_args("toLower", (value,))
        return _to_text(value).lower()

    def _fn_to_upper(self, value: Any) -> str:
        self._literal_args("toUpper", (value,))
        return _to_text(value).upper()

    def _fn_format(self, template: Any, *args: Any) -> str:
        self._literal_args("format", (template,) + args)
        try:
            return _to_text(template).format(*[_to_text(arg) for arg in args])
        except (IndexError, KeyError, ValueError) as e:
            raise ParseError(f"Invalid format() call: {e}")

    def _fn_unique_string(self, *args: Any) -> str:
        self._literal_args("uniqueString", args)
        return unique_string(self.scope_id, *[_to_text(arg) for arg in args])

    def _fn_resource_id(self, resource_type: Any, *names: Any) -> Reference:
        self._literal_args("resourceId", (resource_type,) + names)
        if not isinstance(resource_type, str) or not all(isinstance(n, str) and n for n in names):
            raise ParseError("resourceId() takes a type and one or more non-empty names")
        return Reference(target=ResourceId(type=resource_type, name="/".join(names)), attribute="id")

    def _fn_reference(self, target: Any) -> _PendingReference:
        if not isinstance(target, Reference) or target.attribute != "id":
            raise ParseError("reference() takes a resourceId(...) argument")
        return _PendingReference(target.target)


def _to_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
