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

"""Tests for the target-key removal transform."""

from pathlib import Path

import pytest

from onbehalf_patcher.protocol import TARGET_KEY, NodeKind, RemovalKind
from onbehalf_patcher.transforms import (
    CANDIDATES_QUERY,
    TargetKeyTransform,
    find_target_keys,
    string_value,
)
from onbehalf_patcher.tree_sitter_manager import (
    apply_edits,
    count_syntax_errors,
    parse_source,
    run_query,
)

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def transform(text: str):
    """Plan and apply removals; return the printed text and the plan."""
    source = text.encode("utf-8")
    plan = TargetKeyTransform().plan(parse_source(source), source)
    return apply_edits(source, plan.edits).decode("utf-8"), plan


def assert_clean(text: str):
    tree = parse_source(text.encode("utf-8"))
    assert count_syntax_errors(tree) == 0
    assert find_target_keys(tree) == []


class TestAssignmentRemoval:
    """Computed member assignments keyed by the target key."""

    def test_statement_is_removed(self):
        result, plan = transform(f'const h = {{}}; h["{TARGET_KEY}"] = "v";')

        assert plan.removals == 1
        assert plan.edits[0].kind == RemovalKind.STATEMENT
        assert result.strip() == "const h = {};"
        assert_clean(result)

    def test_statement_on_own_line_removes_line(self):
        result, _ = transform(f'const h = {{}};\nh["{TARGET_KEY}"] = "v";\nh.other = 1;\n')

        assert result == "const h = {};\nh.other = 1;\n"

    def test_single_quoted_key(self):
        result, plan = transform(f"h['{TARGET_KEY}'] = 1;\n")

        assert plan.removals == 1
        assert TARGET_KEY not in result

    def test_escaped_key_matches(self):
        result, plan = transform('h["x-onbehalf-extension\\x2did"] = 1;\n')

        assert plan.removals == 1
        assert result == ""

    def test_augmented_assignment(self):
        result, plan = transform(f'h["{TARGET_KEY}"] += "suffix";\nkeep();\n')

        assert plan.removals == 1
        assert result == "keep();\n"

    def test_other_keys_untouched(self):
        text = 'h["other-header"] = "v";\nh.x = 1;\n'
        result, plan = transform(text)

        assert not plan.modified
        assert result == text

    def test_dot_access_is_not_a_match(self):
        text = "h.xOnbehalf = 1;\n"
        result, plan = transform(text)

        assert not plan.modified
        assert result == text

    def test_sequence_element(self):
        result, plan = transform(f'a = 1, h["{TARGET_KEY}"] = 2;')

        assert plan.edits[0].kind == RemovalKind.LIST_ELEMENT
        assert result == "a = 1;"
        assert_clean(result)

    def test_call_argument(self):
        result, _ = transform(f'f(h["{TARGET_KEY}"] = 2, b);')

        assert result == "f(b);"
        assert_clean(result)

    def test_if_branch_becomes_empty_statement(self):
        result, plan = transform(f'if (ok) h["{TARGET_KEY}"] = 1;\nnext();\n')

        assert plan.edits[0].kind == RemovalKind.EMPTY_STATEMENT
        assert result == "if (ok) ;\nnext();\n"
        assert_clean(result)

    def test_parenthesized_statement(self):
        result, _ = transform(f'(h["{TARGET_KEY}"] = 1);\n')

        assert result == ""

    def test_ternary_operand_is_skipped(self):
        text = f'const v = c ? (h["{TARGET_KEY}"] = 1) : 0;\n'
        result, plan = transform(text)

        assert not plan.modified
        assert len(plan.skipped) == 1
        assert plan.skipped[0].parent_type == "ternary_expression"
        assert plan.skipped[0].line == 1
        assert result == text

    def test_skip_does_not_stop_other_removals(self):
        text = f'const v = c ? (h["{TARGET_KEY}"] = 1) : 0;\nh["{TARGET_KEY}"] = 2;\n'
        result, plan = transform(text)

        assert plan.removals == 1
        assert len(plan.skipped) == 1
        assert result == f'const v = c ? (h["{TARGET_KEY}"] = 1) : 0;\n'

    def test_nested_match_removed_with_statement(self):
        result, plan = transform(f'h["{TARGET_KEY}"] = {{"{TARGET_KEY}": 1}};\n')

        assert len(plan.edits) == 1
        assert plan.removals == 2
        assert result == ""

    def test_statement_after_unterminated_statement_leaves_semicolon(self):
        result, plan = transform(f'let a = b\nh["{TARGET_KEY}"] = 1;\n(function(){{}})()\n')

        assert plan.edits[0].kind == RemovalKind.EMPTY_STATEMENT
        assert result == "let a = b\n;\n(function(){})()\n"
        assert_clean(result)
        last = parse_source(result.encode("utf-8")).root_node.named_children[-1]
        assert last.type == "expression_statement"
        assert last.text == b"(function(){})()"

    def test_statement_after_block_is_deleted(self):
        result, _ = transform(f'if (a) {{ go() }}\nh["{TARGET_KEY}"] = 1;\n(f)()\n')

        assert result == "if (a) { go() }\n(f)()\n"

    def test_statement_after_function_expression_leaves_semicolon(self):
        result, _ = transform(f'const g = function () {{}}\nh["{TARGET_KEY}"] = 1;\n[1].map(g)\n')

        assert result == "const g = function () {}\n;\n[1].map(g)\n"

    def test_sequence_of_matches_removes_statement(self):
        result, plan = transform(f'h["{TARGET_KEY}"] = 1, h["{TARGET_KEY}"] = 2;\nnext();\n')

        assert plan.removals == 2
        assert len(plan.edits) == 1
        assert plan.edits[0].kind == RemovalKind.STATEMENT
        assert result == "next();\n"

    def test_sequence_of_matches_in_operand_is_skipped(self):
        text = f'x = (h["{TARGET_KEY}"] = 1, h["{TARGET_KEY}"] = 2);\n'
        result, plan = transform(text)

        assert not plan.modified
        assert len(plan.skipped) == 2
        assert result == text

    def test_array_element(self):
        result, plan = transform(f'a = [h["{TARGET_KEY}"] = 1, 2];')

        assert plan.edits[0].kind == RemovalKind.LIST_ELEMENT
        assert result == "a = [2];"
        assert_clean(result)

    def test_for_initializer(self):
        result, _ = transform(f'for (h["{TARGET_KEY}"] = 1; i<3; i++) {{}}')

        assert result == "for (; i<3; i++) {}"
        assert_clean(result)

    def test_for_increment(self):
        result, plan = transform(f'for (;; h["{TARGET_KEY}"] = 1) {{}}')

        assert plan.edits[0].kind == RemovalKind.EXPRESSION
        assert result == "for (;; ) {}"
        assert_clean(result)

    def test_for_condition_is_skipped(self):
        text = f'for (; h["{TARGET_KEY}"] = 1; ) {{}}'
        result, plan = transform(text)

        assert not plan.modified
        assert plan.skipped[0].parent_type == "for_statement"
        assert result == text

    def test_while_body_becomes_empty_statement(self):
        result, _ = transform(f'while (x) h["{TARGET_KEY}"] = 1;')

        assert result == "while (x) ;"
        assert_clean(result)

    def test_labeled_statement_becomes_empty_statement(self):
        result, _ = transform(f'label: h["{TARGET_KEY}"] = 1;')

        assert result == "label: ;"
        assert_clean(result)

    @pytest.mark.parametrize(
        "text, parent_type",
        [
            (f'const v = h["{TARGET_KEY}"] = 1;\n', "variable_declarator"),
            (f'function f() {{ return h["{TARGET_KEY}"] = 1; }}\n', "return_statement"),
            (f'const g = () => h["{TARGET_KEY}"] = 1;\n', "arrow_function"),
        ],
    )
    def test_value_positions_are_skipped(self, text, parent_type):
        result, plan = transform(text)

        assert not plan.modified
        assert [s.parent_type for s in plan.skipped] == [parent_type]
        assert result == text


class TestPropertyRemoval:
    """Object properties keyed by the target key."""

    def test_middle_property_keeps_order(self):
        result, _ = transform(f'const c = {{"a":1, "{TARGET_KEY}": "x", "b":2}};')

        assert result == 'const c = {"a":1, "b":2};'

    def test_first_property(self):
        result, _ = transform(f'const c = {{"{TARGET_KEY}": "x", "a": 1}};')

        assert result == 'const c = {"a": 1};'

    def test_last_property(self):
        result, _ = transform(f'const c = {{"a": 1, "{TARGET_KEY}": "x"}};')

        assert result == 'const c = {"a": 1};'

    def test_sole_property_leaves_empty_object(self):
        result, plan = transform(f'const c = {{ "{TARGET_KEY}": "x" }};')

        assert plan.removals == 1
        assert result == "const c = {  };"
        assert_clean(result)

    def test_multiline_object(self):
        text = (
            "const c = {\n"
            '    "name": "n",\n'
            f'    "{TARGET_KEY}": `a/b`,\n'
            '    "version": "1"\n'
            "};\n"
        )
        result, _ = transform(text)

        assert result == 'const c = {\n    "name": "n",\n    "version": "1"\n};\n'

    def test_adjacent_properties_are_fused(self):
        result, plan = transform(f'const c = {{a: 1, "{TARGET_KEY}": 2, "{TARGET_KEY}": 3}};')

        assert plan.removals == 2
        assert len(plan.edits) == 1
        assert result == "const c = {a: 1, };"
        assert_clean(result)

    def test_spread_object_in_return(self):
        text = f'function g(){{ return {{...E.getExtraHeaders?.()??{{}}, "{TARGET_KEY}": `${{o}}/${{l}}`}}; }}'
        result, _ = transform(text)

        assert result == "function g(){ return {...E.getExtraHeaders?.()??{}}; }"
        assert_clean(result)

    def test_destructuring_pattern_untouched(self):
        text = f'const {{ "{TARGET_KEY}": id }} = headers;\n'
        result, plan = transform(text)

        assert not plan.modified
        assert result == text

    def test_computed_string_key(self):
        result, plan = transform(f'const c = {{["{TARGET_KEY}"]: 1, a: 2}};')

        assert plan.removals == 1
        assert result == "const c = {a: 2};"
        assert_clean(result)

    def test_computed_key_is_reported_as_remaining(self):
        tree = parse_source(f'const c = {{["{TARGET_KEY}"]: 1}};'.encode())

        assert [node.type for node in find_target_keys(tree)] == ["computed_property_name"]


class TestClassify:
    """Node variant tagging."""

    @pytest.fixture
    def kinds(self):
        source = f'h["{TARGET_KEY}"] = 1; const o = {{"{TARGET_KEY}": 2, other: 3}}; h.x = 4;'.encode()
        transform = TargetKeyTransform()
        tree = parse_source(source)
        candidates = run_query(tree, CANDIDATES_QUERY)["candidate"]
        return [(node.type, transform.classify(node)) for node in candidates]

    def test_assignment_tagged(self, kinds):
        tagged = [t for t, kind in kinds if kind == NodeKind.ASSIGNMENT]
        assert tagged == ["assignment_expression"]

    def test_property_tagged(self, kinds):
        tagged = [t for t, kind in kinds if kind == NodeKind.PROPERTY]
        assert tagged == ["pair"]

    def test_unrelated_pair_is_other(self, kinds):
        tagged = [t for t, kind in kinds if kind == NodeKind.OTHER]
        assert tagged == ["pair"]

    def test_identifier_keys_are_not_candidates(self):
        tree = parse_source(b"const o = {name, other: 1};")
        candidates = run_query(tree, CANDIDATES_QUERY).get("candidate", [])
        assert [node.type for node in candidates] == ["pair"]


class TestStringValue:
    def test_non_string_returns_none(self):
        tree = parse_source(b"x;")
        assert string_value(tree.root_node) is None

    def test_empty_string(self):
        tree = parse_source(b'x = "";')
        strings = run_query(tree, "(string) @string")["string"]
        assert string_value(strings[0]) == ""

    @pytest.mark.parametrize(
        "literal",
        [
            r'"x-onbehalf-extension\x2did"',
            r'"x-onbehalf-extension\u002did"',
            r'"x-onbehalf-extension\u{2d}id"',
            r'"x-onbehalf-extension\-id"',
        ],
    )
    def test_escape_spellings_of_key(self, literal):
        tree = parse_source(f"x = {literal};".encode())
        strings = run_query(tree, "(string) @string")["string"]
        assert string_value(strings[0]) == TARGET_KEY

    def test_line_continuation_is_dropped(self):
        tree = parse_source(b'x = "x-onbehalf-\\\nextension-id";')
        strings = run_query(tree, "(string) @string")["string"]
        assert string_value(strings[0]) == TARGET_KEY


class TestSampleBundle:
    """End-to-end transform of the sample bundle."""

    @pytest.fixture
    def result(self):
        text = (FIXTURES_DIR / "extension_sample.js").read_text(encoding="utf-8")
        return transform(text)

    def test_every_construct_removed(self, result):
        text, plan = result
        assert plan.removals == 11
        assert plan.skipped == []
        assert_clean(text)

    def test_unrelated_code_preserved(self, result):
        text, _ = result
        assert 'headers["other-header"] = "other-value";' in text
        assert 'console.log("This function should remain unchanged.");' in text
        assert 'const unrelated = { key: "value" };' in text
        assert "testFunction();" in text
        assert 'S==="acquireTokenizer"? /* other trap */ true : false' in text

    def test_single_line_objects(self, result):
        text, _ = result
        assert 'const config4 = { "name": "test4", "version": "4.0.0" };' in text
        assert 'const config5 = { "name": "test5", "version": "5.0.0" };' in text
        assert "const config6 = {  };" in text

    def test_spread_merge_kept(self, result):
        text, _ = result
        assert "return{...f.getExtraHeaders?.()??{}}" in text
        assert "return {...E.getExtraHeaders?.()??{}};" in text
