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

"""tree-sitter parser and printer for extension bundles.

tree-sitter trees are immutable, so printing a transformed tree means
splicing the planned edits into the source bytes it was parsed from.
"""

from typing import TYPE_CHECKING, Dict, Iterable, List

from tree_sitter import Language, Parser, Query, QueryCursor

from onbehalf_patcher.protocol import CodeEdit

if TYPE_CHECKING:
    from tree_sitter import Node, Tree


# Format: "language_name": ("module_name", "function_name")
# Install with: pip install tree-sitter-<language>
LANGUAGE_MODULES: Dict[str, tuple] = {
    "javascript": ("tree_sitter_javascript", "language"),
}

DEFAULT_LANGUAGE = "javascript"

_language_cache: Dict[str, Language] = {}
_parser_cache: Dict[str, Parser] = {}


def get_language(language: str = DEFAULT_LANGUAGE) -> Language:
    """Load a tree-sitter Language from its pre-compiled grammar package."""
    if language in _language_cache:
        return _language_cache[language]

    module_info = LANGUAGE_MODULES.get(language)
    if not module_info:
        raise ValueError(f"Unsupported language for tree-sitter: {language}")

    module_name, func_name = module_info

    try:
        language_module = __import__(module_name)
        lang_obj = getattr(language_module, func_name)()
    except ImportError:
        raise ImportError(
            f"Language package '{module_name}' not installed. "
            f"Install it with: pip install {module_name.replace('_', '-')}"
        )
    except AttributeError:
        raise AttributeError(
            f"Language module '{module_name}' does not have function '{func_name}'. "
            f"Check the tree-sitter package version and update LANGUAGE_MODULES."
        )

    # Grammar packages hand back a PyCapsule that still needs wrapping
    lang = Language(lang_obj) if not isinstance(lang_obj, Language) else lang_obj
    _language_cache[language] = lang
    return lang


def get_parser(language: str = DEFAULT_LANGUAGE) -> Parser:
    """Return a cached tree-sitter Parser for the language."""
    if language in _parser_cache:
        return _parser_cache[language]

    parser = Parser(get_language(language))
    _parser_cache[language] = parser
    return parser


def parse_source(source: bytes, language: str = DEFAULT_LANGUAGE) -> "Tree":
    """Parse source bytes into a syntax tree.

    tree-sitter never aborts on malformed input: recoverable syntax errors
    surface as ERROR and MISSING nodes in an otherwise complete tree.
    """
    return get_parser(language).parse(source)


def run_query(tree: "Tree", query_src: str, language: str = DEFAULT_LANGUAGE) -> Dict[str, List["Node"]]:
    """Run a tree-sitter query and return nodes grouped by capture name.

    Example:
        >>> tree = parse_source(b'h["k"] = 1;')
        >>> captures = run_query(tree, "(subscript_expression index: (string) @key)")
        >>> captures["key"][0].text
        b'"k"'
    """
    query = Query(get_language(language), query_src)
    cursor = QueryCursor(query)
    return cursor.captures(tree.root_node)


def count_syntax_errors(tree: "Tree") -> int:
    """Count ERROR and MISSING nodes in a tree."""
    if not tree.root_node.has_error:
        return 0

    count = 0
    stack = [tree.root_node]
    while stack:
        node = stack.pop()
        if node.is_error or node.is_missing:
            count += 1
        if node.has_error:
            stack.extend(node.children)
    return count


def apply_edits(source: bytes, edits: Iterable[CodeEdit]) -> bytes:
    """Print a transformed tree by splicing edits into its source bytes.

    Edits must not overlap; offsets refer to the original source.
    """
    chunks: List[bytes] = []
    position = 0
    for edit in sorted(edits, key=lambda e: (e.start_byte, e.end_byte)):
        if edit.start_byte < position:
            raise ValueError(f"Overlapping edit at byte {edit.start_byte}")
        chunks.append(source[position : edit.start_byte])
        chunks.append(edit.new_text.encode("utf-8"))
        position = edit.end_byte
    chunks.append(source[position:])
    return b"".join(chunks)
