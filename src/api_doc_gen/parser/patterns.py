"""Route-registration call shapes.

Each shape is a small pattern object matched structurally against a
tree-sitter ``call_expression`` node. Supporting a new way of registering
routes means adding a pattern to ``PATTERNS``; the extractor never branches
on shapes itself.
"""

import re
from dataclasses import dataclass, field

from tree_sitter import Node

from api_doc_gen.model.routes import HttpMethod

DEFAULT_ROUTER_PATTERN = r"routes?|\w*(?:[Rr]outer|[Aa]pp|[Ss]erver)"

_JS_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "b": "\b", "f": "\f", "v": "\v", "0": "\0"}


@dataclass
class RouteMatch:
    """A call site that looks like a route registration.

    ``path`` is None when the path argument is not a static literal.
    """

    pattern: str
    method: HttpMethod
    path: str | None
    line: int
    column: int
    handlers: list[str] = field(default_factory=list)
    anchors: list[int] = field(default_factory=list)


def node_text(node: Node) -> str:
    return node.text.decode("utf-8")


def call_arguments(call: Node) -> list[Node]:
    args = call.child_by_field_name("arguments")
    if args is None or args.type != "arguments":
        return []
    return [child for child in args.named_children if child.type != "comment"]


def member_parts(node: Node | None) -> tuple[Node, str] | None:
    """Split ``obj.prop`` into (obj node, "prop")."""
    if node is None or node.type != "member_expression":
        return None
    obj = node.child_by_field_name("object")
    prop = node.child_by_field_name("property")
    if obj is None or prop is None:
        return None
    return obj, node_text(prop)


def is_router_like(node: Node, router_re: re.Pattern) -> bool:
    """``router``, ``app``, ``this.router``, ``v1.usersRouter`` ..."""
    if node.type == "identifier":
        return bool(router_re.fullmatch(node_text(node)))
    parts = member_parts(node)
    if parts is not None:
        return bool(router_re.fullmatch(parts[1]))
    return False


def unescape_js(body: str) -> str:
    return re.sub(r"\\(.)", lambda m: _JS_ESCAPES.get(m.group(1), m.group(1)), body, flags=re.DOTALL)


def literal_path(node: Node) -> str | None:
    """Value of a string literal or substitution-free template literal."""
    if node.type == "string":
        return unescape_js(node_text(node)[1:-1])
    if node.type == "template_string":
        if any(child.type == "template_substitution" for child in node.children):
            return None
        return unescape_js(node_text(node)[1:-1])
    return None


def handler_names(nodes: list[Node]) -> list[str]:
    names = []
    for node in nodes:
        if node.type in ("identifier", "member_expression"):
            names.append(node_text(node))
        elif node.type == "call_expression":
            function = node.child_by_field_name("function")
            if function is not None and function.type in ("identifier", "member_expression"):
                names.append(node_text(function))
    return names


class RoutePattern:
    name = ""

    def match(self, call: Node, router_re: re.Pattern) -> RouteMatch | None:
        raise NotImplementedError


class DirectRegistration(RoutePattern):
    """``router.get('/path', ...handlers)``"""

    name = "direct"

    def match(self, call, router_re):
        parts = member_parts(call.child_by_field_name("function"))
        if parts is None:
            return None
        receiver, method_name = parts
        method = HttpMethod.parse(method_name)
        if method is None or not is_router_like(receiver, router_re):
            return None
        args = call_arguments(call)
        # app.get('setting') is a settings lookup, not a route
        if len(args) < 2:
            return None
        return RouteMatch(
            pattern=self.name,
            method=method,
            path=literal_path(args[0]),
            line=call.start_point[0] + 1,
            column=call.start_point[1],
            handlers=handler_names(args[1:]),
            anchors=[call.start_point[0] + 1],
        )


class ChainedRoute(RoutePattern):
    """``router.route('/path').get(...handlers).post(...handlers)``"""

    name = "chained"

    def match(self, call, router_re):
        function = call.child_by_field_name("function")
        parts = member_parts(function)
        if parts is None:
            return None
        receiver, method_name = parts
        method = HttpMethod.parse(method_name)
        if method is None:
            return None
        route_call = self._find_route_call(receiver, router_re)
        if route_call is None:
            return None
        route_args = call_arguments(route_call)
        if not route_args:
            return None
        prop = function.child_by_field_name("property")
        return RouteMatch(
            pattern=self.name,
            method=method,
            path=literal_path(route_args[0]),
            line=prop.start_point[0] + 1,
            column=prop.start_point[1],
            handlers=handler_names(call_arguments(call)),
            anchors=[prop.start_point[0] + 1, route_call.start_point[0] + 1],
        )

    def _find_route_call(self, node: Node, router_re) -> Node | None:
        # Skip over sibling method calls earlier in the chain
        while node.type == "call_expression":
            parts = member_parts(node.child_by_field_name("function"))
            if parts is None:
                return None
            receiver, name = parts
            if name == "route":
                return node if is_router_like(receiver, router_re) else None
            if HttpMethod.parse(name) is None:
                return None
            node = receiver
        return None


PATTERNS: tuple[RoutePattern, ...] = (DirectRegistration(), ChainedRoute())


def match_call(call: Node, router_re: re.Pattern) -> RouteMatch | None:
    for pattern in PATTERNS:
        found = pattern.match(call, router_re)
        if found is not None:
            return found
    return None
