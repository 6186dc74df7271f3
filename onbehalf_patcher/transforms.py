# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Target-key removal transform.

Walks a JavaScript syntax tree and plans the removal of two constructs
keyed by TARGET_KEY:

- computed member assignments: ``headers["x-onbehalf-extension-id"] = value``
- object properties: ``{"x-onbehalf-extension-id": value}``

Each match is excised at the smallest node that keeps the surrounding code
valid. Matches whose removal would leave a required operand empty (ternary
branches, binary operands, return values, ...) are skipped and recorded.
"""

import logging
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Tuple

from onbehalf_patcher.protocol import (
    TARGET_KEY,
    CodeEdit,
    NodeKind,
    RemovalKind,
    SkippedMatch,
    TransformPlan,
)
from onbehalf_patcher.tree_sitter_manager import run_query

if TYPE_CHECKING:
    from tree_sitter import Node, Tree

logger = logging.getLogger(__name__)

ASSIGNMENT_TYPES = {"assignment_expression", "augmented_assignment_expression"}

# Parents whose children form a statement list
STATEMENT_CONTAINERS = {"program", "statement_block", "switch_case", "switch_default"}

# Parents whose children are comma-separated expressions
LIST_CONTAINERS = {"sequence_expression", "arguments", "array"}

# Optional expression slots of a for statement
FOR_OPTIONAL_FIELDS = ("initializer", "increment")

# Statements that end in a closing brace no following text can extend
BLOCK_STATEMENTS = {
    "statement_block",
    "function_declaration",
    "generator_function_declaration",
    "class_declaration",
    "switch_statement",
    "empty_statement",
}

# Statements that end with a nested statement or clause
COMPOUND_STATEMENTS = {
    "if_statement",
    "else_clause",
    "for_statement",
    "for_in_statement",
    "while_statement",
    "with_statement",
    "labeled_statement",
    "try_statement",
    "catch_clause",
    "finally_clause",
}

# Every node that could be a target-key construct; classify() decides.
# TARGET_KEY is hyphenated, so identifier and shorthand keys never spell it.
CANDIDATES_QUERY = """
(assignment_expression left: (subscript_expression)) @candidate
(augmented_assignment_expression left: (subscript_expression)) @candidate
(pair) @candidate
"""

TARGET_CONSTRUCTS_QUERY = """
(assignment_expression left: (subscript_expression index: (string) @key))
(augmented_assignment_expression left: (subscript_expression index: (string) @key))
(pair key: (string) @key)
(pair key: (computed_property_name) @key)
"""

SINGLE_CHAR_ESCAPES = {
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "v": "\v",
}

LINE_TERMINATORS = ("\n", "\r", "\u2028", "\u2029")


def decode_escape(text: str) -> str:
    """Decode one JavaScript escape sequence such as ``\\x2d`` or ``\\u{2d}``.

    Identity escapes (``\\-``) stand for the escaped character and line
    continuations stand for nothing. Unknown forms are returned as written.
    """
    body = text[1:]
    try:
        if body.startswith("u{") and body.endswith("}"):
            return chr(int(body[2:-1], 16))
        if body[:1] in ("u", "x") and len(body) > 1:
            return chr(int(body[1:], 16))
        if body and all(c in "01234567" for c in body):
            return chr(int(body, 8))
    except ValueError:
        return text

    if body in SINGLE_CHAR_ESCAPES:
        return SINGLE_CHAR_ESCAPES[body]
    if body.startswith(LINE_TERMINATORS):
        return ""
    return body


def string_value(node: Optional["Node"]) -> Optional[str]:
    """Return the value of a string literal node, or None for other nodes."""
    while node is not None and node.type == "parenthesized_expression":
        node = node.named_children[0] if node.named_children else None
    if node is None or node.type != "string":
        return None

    parts = []
    for child in node.named_children:
        text = child.text.decode("utf-8")
        if child.type == "escape_sequence":
            text = decode_escape(text)
        parts.append(text)
    return "".join(parts)


def key_name(node: "Node") -> Optional[str]:
    """Return the name a string object key spells, bare (``"k"``) or computed (``["k"]``)."""
    if node.type == "computed_property_name":
        node = node.named_children[0] if node.named_children else None
    return string_value(node)


def find_target_keys(tree: "Tree") -> List["Node"]:
    """Find every key node that still spells TARGET_KEY in a recognized shape."""
    captures = run_query(tree, TARGET_CONSTRUCTS_QUERY)
    return [node for node in captures.get("key", []) if key_name(node) == TARGET_KEY]


def _same_node(a: Optional["Node"], b: Optional["Node"]) -> bool:
    if a is None or b is None:
        return False
    return (a.type, a.start_byte, a.end_byte) == (b.type, b.start_byte, b.end_byte)


def _is_field(parent: "Node", field_name: str, node: "Node") -> bool:
    return _same_node(parent.child_by_field_name(field_name), node)


def _inside_error(node: "Node") -> bool:
    parent = node.parent
    while parent is not None:
        if parent.is_error:
            return True
        parent = parent.parent
    return False


def _line_range(start: int, end: int, source: bytes) -> Tuple[int, int]:
    """Widen a range to its whole line when nothing else shares that line."""
    line_start = source.rfind(b"\n", 0, start) + 1
    if source[line_start:start].strip():
        return start, end

    line_end = source.find(b"\n", end)
    if line_end == -1:
        line_end = len(source)
    if source[end:line_end].strip():
        return start, end

    return line_start, min(line_end + 1, len(source))


def _list_element_range(node: "Node") -> Tuple[int, int]:
    """Range covering a comma-separated element plus one adjacent comma.

    The following comma is preferred, together with the whitespace up to the
    next token. A last element takes its preceding comma instead, and a sole
    element is removed alone.
    """
    siblings = node.parent.children
    index = next(i for i, sibling in enumerate(siblings) if _same_node(sibling, node))

    after = index + 1
    while after < len(siblings) and siblings[after].type == "comment":
        after += 1
    if after < len(siblings) and siblings[after].type == ",":
        following = after + 1
        end = siblings[following].start_byte if following < len(siblings) else siblings[after].end_byte
        return node.start_byte, end

    before = index - 1
    while before >= 0 and siblings[before].type == "comment":
        before -= 1
    if before >= 0 and siblings[before].type == ",":
        return siblings[before].start_byte, node.end_byte

    return node.start_byte, node.end_byte


def _last_statement_part(node: "Node") -> "Node":
    while node.type in COMPOUND_STATEMENTS:
        parts = [child for child in node.named_children if child.type != "comment"]
        if not parts:
            break
        node = parts[-1]
    return node


def _is_terminated(node: "Node", source: bytes) -> bool:
    """Whether text placed right after a statement starts a new statement."""
    node = _last_statement_part(node)
    if node.type in BLOCK_STATEMENTS:
        return True
    return source[node.end_byte - 1 : node.end_byte] == b";"


def _follows_open_statement(statement: "Node", source: bytes) -> bool:
    """Whether the preceding statement relies on a line break to end.

    Deleting the statement in between would join the preceding one to
    whatever comes next, e.g. ``a = b`` followed by ``(f)()`` becomes the
    call ``a = b(f)()``.
    """
    previous = statement.prev_sibling
    while previous is not None and previous.type == "comment":
        previous = previous.prev_sibling
    if previous is None or not previous.is_named:
        return False
    return not _is_terminated(previous, source)


def _outside_parentheses(node: "Node") -> Tuple["Node", Optional["Node"]]:
    """Return the outermost parenthesized wrapper of a node and its parent."""
    target = node
    parent = node.parent
    while parent is not None and parent.type == "parenthesized_expression":
        target = parent
        parent = parent.parent
    return target, parent


class TargetKeyTransform:
    """Visitor over node kinds {Assignment, PropertyDefinition, Other}.

    Produces a TransformPlan of non-overlapping edits; the tree itself is
    never touched. Apply the plan with tree_sitter_manager.apply_edits.
    """

    def __init__(self) -> None:
        self._visitors: Dict[NodeKind, Callable[["Node", bytes, TransformPlan], None]] = {
            NodeKind.ASSIGNMENT: self._visit_assignment,
            NodeKind.PROPERTY: self._visit_property,
        }

    def classify(self, node: "Node") -> NodeKind:
        """Tag a node with the variant the visitor dispatches on."""
        if node.type in ASSIGNMENT_TYPES:
            left = node.child_by_field_name("left")
            if left is not None and left.type == "subscript_expression":
                if string_value(left.child_by_field_name("index")) == TARGET_KEY:
                    return NodeKind.ASSIGNMENT
            return NodeKind.OTHER

        if node.type == "pair":
            parent = node.parent
            key = node.child_by_field_name("key")
            if parent is not None and parent.type == "object" and key is not None:
                if key_name(key) == TARGET_KEY:
                    return NodeKind.PROPERTY

        return NodeKind.OTHER

    def _removable(self, node: "Node") -> bool:
        """A target assignment, or a sequence made only of them."""
        while node.type == "parenthesized_expression" and node.named_children:
            node = node.named_children[0]
        if node.type == "sequence_expression":
            elements = [child for child in node.named_children if child.type != "comment"]
            return bool(elements) and all(self._removable(child) for child in elements)
        return self.classify(node) == NodeKind.ASSIGNMENT

    def plan(self, tree: "Tree", source: bytes) -> TransformPlan:
        """Collect removals for every target-key construct in the tree.

        Args:
            tree: Syntax tree parsed from source
            source: The exact bytes the tree was parsed from

        Returns:
            TransformPlan with merged, non-overlapping edits
        """
        plan = TransformPlan()
        seen = set()
        for node in run_query(tree, CANDIDATES_QUERY).get("candidate", []):
            identity = (node.type, node.start_byte, node.end_byte)
            if identity in seen:
                continue
            seen.add(identity)
            visitor = self._visitors.get(self.classify(node))
            if visitor is not None:
                visitor(node, source, plan)
        return self._merge(plan)

    def _visit_assignment(self, node: "Node", source: bytes, plan: TransformPlan) -> None:
        line = node.start_point[0] + 1
        if _inside_error(node):
            self._skip(plan, node, node.parent, "match lies inside a syntax error region")
            return

        # Parentheses are transparent: remove the outermost parenthesized node.
        # A sequence made only of matches goes as a whole.
        target, parent = _outside_parentheses(node)
        while parent is not None and parent.type == "sequence_expression" and self._removable(parent):
            target, parent = _outside_parentheses(parent)

        if parent is None:
            self._skip(plan, node, None, "assignment has no enclosing node")
            return

        if parent.type == "expression_statement":
            container = parent.parent
            if container is not None and container.type == "for_statement" and _is_field(
                container, "condition", parent
            ):
                self._skip(plan, node, container, "removal would empty a for-loop condition")
            else:
                plan.edits.append(self._remove_statement(parent, source, line))
            return

        if parent.type in LIST_CONTAINERS:
            start, end = _list_element_range(target)
            logger.debug(f"Removing assignment from {parent.type} at line {line}")
            plan.edits.append(
                CodeEdit(start, end, "", RemovalKind.LIST_ELEMENT, line, f"assignment in {parent.type}")
            )
            return

        if parent.type == "for_statement" and any(
            _is_field(parent, name, target) for name in FOR_OPTIONAL_FIELDS
        ):
            logger.debug(f"Removing assignment from for-loop header at line {line}")
            plan.edits.append(
                CodeEdit(
                    target.start_byte,
                    target.end_byte,
                    "",
                    RemovalKind.EXPRESSION,
                    line,
                    "assignment in for-loop header",
                )
            )
            return

        self._skip(plan, node, parent, f"removal would leave {parent.type} without an operand")

    def _remove_statement(self, statement: "Node", source: bytes, line: int) -> CodeEdit:
        """Delete an assignment statement, or leave ``;`` where deleting it is unsafe.

        An empty statement stays in single-statement slots (if branch, loop
        body, label, for initializer) and after a statement that ends without
        a semicolon.
        """
        container = statement.parent
        if container is not None and container.type in STATEMENT_CONTAINERS:
            if not _follows_open_statement(statement, source):
                start, end = _line_range(statement.start_byte, statement.end_byte, source)
                logger.debug(f"Removing assignment statement at line {line}")
                return CodeEdit(start, end, "", RemovalKind.STATEMENT, line, "assignment statement")
            description = "assignment statement after an unterminated statement"
        else:
            description = f"assignment statement in {container.type if container else 'unknown'}"

        logger.debug(f"Replacing assignment statement with ';' at line {line}")
        return CodeEdit(
            statement.start_byte,
            statement.end_byte,
            ";",
            RemovalKind.EMPTY_STATEMENT,
            line,
            description,
        )

    def _visit_property(self, node: "Node", source: bytes, plan: TransformPlan) -> None:
        line = node.start_point[0] + 1
        if _inside_error(node):
            self._skip(plan, node, node.parent, "match lies inside a syntax error region")
            return

        start, end = _list_element_range(node)
        logger.debug(f"Removing object property at line {line}")
        plan.edits.append(CodeEdit(start, end, "", RemovalKind.PROPERTY, line, "object property"))

    def _skip(
        self,
        plan: TransformPlan,
        node: "Node",
        parent: Optional["Node"],
        reason: str,
    ) -> None:
        line = node.start_point[0] + 1
        parent_type = parent.type if parent is not None else ""
        logger.warning(f"Cannot safely remove {node.type} at line {line} (parent: {parent_type}): {reason}")
        plan.skipped.append(
            SkippedMatch(
                line=line,
                node_type=node.type,
                parent_type=parent_type,
                reason=reason,
                start_byte=node.start_byte,
                end_byte=node.end_byte,
            )
        )

    def _merge(self, plan: TransformPlan) -> TransformPlan:
        """Drop nested edits and fuse overlapping deletions.

        A match nested inside a larger removal (a property inside a removed
        statement, say) disappears with it. Adjacent properties can claim the
        same comma; their deletions are fused into one range.
        """
        merged: List[CodeEdit] = []
        skipped = list(plan.skipped)
        removals = 0

        for edit in sorted(plan.edits, key=lambda e: (e.start_byte, -e.end_byte)):
            if merged and merged[-1].contains(edit):
                removals += 1
                continue
            if merged and merged[-1].overlaps(edit):
                previous = merged[-1]
                if previous.is_deletion and edit.is_deletion:
                    previous.end_byte = max(previous.end_byte, edit.end_byte)
                    previous.description = f"{previous.description}; {edit.description}"
                    removals += 1
                    continue
                logger.warning(f"Removal at line {edit.line} overlaps another removal; skipping")
                skipped.append(
                    SkippedMatch(
                        line=edit.line,
                        node_type=edit.kind.value,
                        parent_type="",
                        reason="removal overlaps another removal",
                        start_byte=edit.start_byte,
                        end_byte=edit.end_byte,
                    )
                )
                continue
            merged.append(edit)
            removals += 1

        # Skipped matches inside a planned removal go away with it
        remaining = [
            s
            for s in skipped
            if not any(e.start_byte <= s.start_byte and s.end_byte <= e.end_byte for e in merged)
        ]
        return TransformPlan(edits=merged, skipped=remaining, removals=removals)
