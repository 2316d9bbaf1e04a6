"""Recover node positions from Graphviz DOT output and apply them to a graph.

The engine answers with a full DOT statement list: graph attributes, default
attribute statements, node statements, edge statements, maybe comments and
subgraphs. Only node statements whose identifier is an integer and whose
attribute lists carry ``pos`` matter here; everything else is skipped.

Parsing is split into small rules instead of one pattern:
- ``tokenize`` turns text into tokens (strings may span lines)
- ``NUMBER`` / ``INTEGER_ID`` / ``parse_point`` handle numeric notation
- ``iter_position_records`` walks statements and yields one event per
  candidate record (a ``PositionRecord`` or a ``ParseSkip``)
- ``apply_positions`` writes records into the host graph

Malformed input never raises. A record that cannot be used becomes a
``ParseSkip`` and scanning resumes at the next statement.
"""

import logging
import math
import re
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple, Union

import networkx as nx

from src.layout.graph_view import build_node_index, set_node_position
from src.models.layout_metadata import (
    ApplyReport,
    NodePosition,
    ParseSkip,
    PositionRecord,
    SkipReason,
)

logger = logging.getLogger(__name__)

# Numeric grammar: optional sign, optional fraction, optional exponent.
_SIGN = r"[-+]?"
_MANTISSA = r"(?:\d+(?:\.\d*)?|\.\d+)"
_EXPONENT = r"(?:[eE][-+]?\d+)"

NUMBER = re.compile(rf"{_SIGN}{_MANTISSA}{_EXPONENT}?")
INTEGER_ID = re.compile(rf"{_SIGN}\d+")

_POINT_SEPARATOR = re.compile(r"\s*,\s*|\s+")
_PINNED_MARKER = "!"

_TOKEN_RULES = [
    ("comment", r"/\*.*?\*/|//[^\n]*|^[ \t]*\#[^\n]*"),
    ("string", r'"(?:[^"\\]|\\.)*"'),
    ("html", r"<"),
    ("edgeop", r"->|--"),
    ("numeral", rf"{_SIGN}{_MANTISSA}{_EXPONENT}?"),
    ("name", r"[^\W\d]\w*"),
    ("punct", r"[\[\]{};,=:+]"),
    ("newline", r"\n"),
    ("space", r"[ \t\r\f\v]+"),
    ("other", r"."),
]
_TOKEN_PATTERN = re.compile(
    "|".join(f"(?P<{name}>{rule})" for name, rule in _TOKEN_RULES),
    re.DOTALL | re.MULTILINE,
)
_IGNORED_KINDS = frozenset({"comment", "newline", "space"})
_ID_KINDS = frozenset({"name", "numeral", "string", "html"})

# Statement heads that set defaults or open a (sub)graph, never node records.
_KEYWORDS = frozenset({"graph", "digraph", "subgraph", "node", "edge", "strict"})

_LINE_CONTINUATION = re.compile(r"\\\r?\n")

PositionEvent = Union[PositionRecord, ParseSkip]


@dataclass(frozen=True)
class Token:
    kind: str
    text: str
    line: int


def _html_end(text: str, start: int) -> int:
    """Index just past the ``>`` that closes the HTML string opened at start."""
    depth = 0
    for index in range(start, len(text)):
        char = text[index]
        if char == "<":
            depth += 1
        elif char == ">":
            depth -= 1
            if depth == 0:
                return index + 1
    return len(text)


def tokenize(text: str) -> Iterator[Token]:
    """Split DOT text into tokens, dropping whitespace and comments."""
    position = 0
    line = 1
    while position < len(text):
        match = _TOKEN_PATTERN.match(text, position)
        kind = match.lastgroup
        end = match.end()
        if kind == "html":
            end = _html_end(text, position)
        value = text[position:end]
        if kind not in _IGNORED_KINDS:
            yield Token(kind, value, line)
        line += value.count("\n")
        position = end


def unquote(token: Token) -> str:
    """Value of an identifier token, with DOT string escapes resolved."""
    if token.kind == "string":
        body = _LINE_CONTINUATION.sub("", token.text[1:-1])
        return body.replace('\\"', '"')
    if token.kind == "html":
        return token.text[1:-1]
    return token.text


def parse_number(text: str) -> Optional[float]:
    """Parse a permissive decimal number, or None if text is not one."""
    text = text.strip()
    if not NUMBER.fullmatch(text):
        return None
    value = float(text)
    if not math.isfinite(value):
        return None
    return value


def parse_point(value: str) -> Optional[Tuple[float, float]]:
    """Parse a ``pos`` value into (x, y).

    The two numbers may be separated by a comma, whitespace, or both. A
    trailing ``!`` (pinned position) is ignored. Returns None unless there are
    exactly two numeric components.
    """
    text = value.strip()
    if text.endswith(_PINNED_MARKER):
        text = text[:-1].rstrip()
    parts = _POINT_SEPARATOR.split(text)
    if len(parts) != 2:
        return None
    x, y = parse_number(parts[0]), parse_number(parts[1])
    if x is None or y is None:
        return None
    return x, y


class _StatementScanner:
    """Cursor over a token list that knows how to step over DOT constructs."""

    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.index = 0

    def peek(self, offset: int = 0) -> Optional[Token]:
        position = self.index + offset
        if position < len(self.tokens):
            return self.tokens[position]
        return None

    def at(self, text: str, offset: int = 0) -> bool:
        token = self.peek(offset)
        return token is not None and token.kind == "punct" and token.text == text

    def skip_port(self) -> None:
        # node_id ':' port (':' compass)?
        while self.at(":") and self.peek(1) is not None and self.peek(1).kind in _ID_KINDS:
            self.index += 2

    def skip_block(self) -> None:
        """Step over a ``{ ... }`` block, nested blocks included."""
        depth = 0
        while self.peek() is not None:
            if self.at("{"):
                depth += 1
            elif self.at("}"):
                depth -= 1
                if depth <= 0:
                    self.index += 1
                    return
            self.index += 1

    def read_value(self) -> Optional[str]:
        """Read an attribute value, joining ``"a" + "b"`` concatenations."""
        token = self.peek()
        if token is None or token.kind not in _ID_KINDS:
            return None
        self.index += 1
        value = unquote(token)
        while self.at("+") and self.peek(1) is not None and self.peek(1).kind == "string":
            value += unquote(self.peek(1))
            self.index += 2
        return value

    def read_attribute_lists(self) -> Dict[str, str]:
        """Read ``[a=b, c=d][e=f]``; later duplicates overwrite earlier ones."""
        attributes: Dict[str, str] = {}
        while self.at("["):
            self.index += 1
            while self.peek() is not None and not self.at("]"):
                key_token = self.peek()
                if key_token.kind not in _ID_KINDS:
                    self.index += 1
                    continue
                self.index += 1
                if not self.at("="):
                    continue
                self.index += 1
                value = self.read_value()
                if value is not None:
                    attributes[unquote(key_token)] = value
            if self.at("]"):
                self.index += 1
        return attributes

    def skip_edge_chain(self) -> None:
        """Step over ``-> operand (-> operand)* [attrs]`` from an edge operator."""
        while self.peek() is not None and self.peek().kind == "edgeop":
            self.index += 1
            if self.at("{"):
                self.skip_block()
            elif self.peek() is not None and self.peek().kind in _ID_KINDS:
                self.index += 1
                self.skip_port()
        self.read_attribute_lists()


def _classify(head: Token, pos_value: str) -> PositionEvent:
    identifier = unquote(head).strip()
    if not INTEGER_ID.fullmatch(identifier):
        return ParseSkip(
            reason=SkipReason.NON_INTEGER_ID,
            node_id=identifier,
            value=pos_value,
            line=head.line,
        )
    point = parse_point(pos_value)
    if point is None:
        return ParseSkip(
            reason=SkipReason.MALFORMED_POS,
            node_id=identifier,
            value=pos_value,
            line=head.line,
        )
    return PositionRecord(node_id=int(identifier), x=point[0], y=point[1], line=head.line)


def iter_position_records(text: str) -> Iterator[PositionEvent]:
    """Yield one event per node statement that carries a ``pos`` attribute.

    Statements without ``pos``, edge statements, attribute defaults, graph
    attribute assignments and anything unrecognised are stepped over without
    an event.
    """
    scanner = _StatementScanner(list(tokenize(text)))
    while scanner.peek() is not None:
        head = scanner.peek()

        if head.kind == "edgeop":
            scanner.skip_edge_chain()
            continue
        if head.kind not in _ID_KINDS:
            scanner.index += 1
            continue

        scanner.index += 1
        scanner.skip_port()

        if scanner.peek() is not None and scanner.peek().kind == "edgeop":
            scanner.skip_edge_chain()
        elif scanner.at("="):
            scanner.index += 1
            scanner.read_value()
        elif scanner.at("["):
            attributes = scanner.read_attribute_lists()
            if head.kind == "name" and head.text.lower() in _KEYWORDS:
                continue
            if "pos" in attributes:
                yield _classify(head, attributes["pos"])


def _record_skip(report: ApplyReport, skip: ParseSkip) -> None:
    logger.debug(f"Skipping position record: {skip.message}")
    report.skips.append(skip)


def apply_positions(graph: nx.Graph, output_text: str) -> ApplyReport:
    """Write every node position found in engine output into the graph.

    Args:
        graph: Host graph; matching nodes get their ``pos`` overwritten
        output_text: Engine stdout (DOT statement list)

    Returns:
        ApplyReport with the number of distinct nodes updated and the skips.
        When a node appears more than once, the last record wins.
    """
    index = build_node_index(graph)
    report = ApplyReport()

    for event in iter_position_records(output_text):
        if isinstance(event, ParseSkip):
            _record_skip(report, event)
            continue

        node = index.get(event.node_id)
        if node is None:
            _record_skip(
                report,
                ParseSkip(
                    reason=SkipReason.UNKNOWN_NODE,
                    node_id=str(event.node_id),
                    line=event.line,
                ),
            )
            continue

        set_node_position(graph, node, event.x, event.y)
        report.positions[event.node_id] = NodePosition(x=event.x, y=event.y)
        report.record_count += 1

    report.updated_count = len(report.positions)
    if report.skips:
        logger.info(
            f"Applied {report.record_count} position records, "
            f"skipped {report.skipped_count}"
        )
    return report


__all__ = [
    "NUMBER",
    "INTEGER_ID",
    "Token",
    "tokenize",
    "unquote",
    "parse_number",
    "parse_point",
    "iter_position_records",
    "apply_positions",
]
