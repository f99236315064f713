"""
Tests for the text flattener, the match locator and the pattern models.

Run: python3 -m pytest test_locator.py   (or: python3 test_locator.py)
From: python/
"""

import re
import sys

from spanwrap import Container, FindPattern, InvalidPatternError, TextLeaf, WrapRequest, get_text
from spanwrap.splice.locator import locate_matches, resolve_pattern
from spanwrap.tree.nodes import iter_tree, next_in_order


def _tree():
    return Container(
        tag="div",
        children=[
            TextLeaf("ab"),
            Container(tag="i", children=[TextLeaf(""), Container(tag="b", children=[TextLeaf("cd")])]),
            Container(tag="span"),
            TextLeaf("ef"),
        ],
    )


# ---------------------------------------------------------------------------
# Flattener / tree walking
# ---------------------------------------------------------------------------

def test_get_text_document_order():
    assert get_text(_tree()) == "abcdef"
    assert get_text(TextLeaf("solo")) == "solo"
    assert get_text(Container(tag="div")) == ""
    print("PASS: test_get_text_document_order")


def test_iter_tree_and_next_in_order_agree():
    root = _tree()
    walked = list(iter_tree(root))

    stepped = [root]
    node = next_in_order(root, root)
    while node is not None:
        stepped.append(node)
        node = next_in_order(node, root)

    assert len(walked) == len(stepped) == 8
    assert all(a is b for a, b in zip(walked, stepped))
    print("PASS: test_iter_tree_and_next_in_order_agree")


def test_next_in_order_stays_inside_root():
    outer = _tree()
    inner = outer.children[1]
    assert next_in_order(inner.children[1].children[0], inner) is None
    print("PASS: test_next_in_order_stays_inside_root")


def test_single_parent_invariant():
    a = Container(tag="a")
    b = Container(tag="b")
    leaf = a.append(TextLeaf("x"))
    b.append(leaf)

    assert leaf.parent is b
    assert a.children == []
    assert b.children[0] is leaf
    print("PASS: test_single_parent_invariant")


def test_identity_not_equality_for_siblings():
    first = TextLeaf("same")
    second = TextLeaf("same")
    root = Container(tag="div", children=[first, second])
    assert second.index == 1 and second.previous_sibling is first
    assert first.next_sibling is second and root.first_child is first
    root.remove_child(second)
    assert root.children[0] is first
    assert second.index == -1 and first.next_sibling is None
    assert second.parent is None
    print("PASS: test_identity_not_equality_for_siblings")


# ---------------------------------------------------------------------------
# Locator
# ---------------------------------------------------------------------------

def test_all_matches_non_overlapping_in_order():
    spans = locate_matches("aaaa", "aa", all_matches=True)
    assert [(s.start, s.end) for s in spans] == [(0, 2), (2, 4)]
    assert [s.text for s in spans] == ["aa", "aa"]
    print("PASS: test_all_matches_non_overlapping_in_order")


def test_first_match_only():
    spans = locate_matches("one two two", "two")
    assert [(s.start, s.end) for s in spans] == [(4, 7)]
    print("PASS: test_first_match_only")


def test_payload_carries_groups():
    spans = locate_matches("id=42; id=7", r"id=(\d+)", all_matches=True)
    assert [s.match.group(1) for s in spans] == ["42", "7"]
    print("PASS: test_payload_carries_groups")


def test_no_match_returns_empty():
    assert locate_matches("abc", "z") == []
    assert locate_matches("abc", "z", all_matches=True) == []
    print("PASS: test_no_match_returns_empty")


def test_zero_length_rejected():
    for pattern, mode in (("", False), ("", True), ("b*", False), (r"\b", True)):
        try:
            locate_matches("abc", pattern, all_matches=mode)
            assert False, f"Expected InvalidPatternError for {pattern!r}"
        except InvalidPatternError:
            pass
    print("PASS: test_zero_length_rejected")


def test_bad_regex_is_invalid_pattern():
    try:
        locate_matches("abc", "(unclosed")
        assert False, "Expected InvalidPatternError"
    except InvalidPatternError as e:
        assert isinstance(e.__cause__, re.error)
    print("PASS: test_bad_regex_is_invalid_pattern")


def test_find_pattern_flags_and_mode():
    pattern = FindPattern(pattern="^test", all_matches=True, ignore_case=True, multiline=True)
    regex, all_matches = resolve_pattern(pattern, all_matches=False)
    assert all_matches is True
    assert regex.flags & re.IGNORECASE and regex.flags & re.MULTILINE

    spans = locate_matches("Test one\ntest two", pattern)
    assert [s.text for s in spans] == ["Test", "test"]

    dot = FindPattern(pattern="a.b", dotall=True)
    assert [s.text for s in locate_matches("a\nb", dot)] == ["a\nb"]
    print("PASS: test_find_pattern_flags_and_mode")


def test_unsupported_pattern_type():
    try:
        resolve_pattern(42)
        assert False, "Expected TypeError"
    except TypeError:
        pass
    print("PASS: test_unsupported_pattern_type")


def test_wrap_request_prototype():
    proto = WrapRequest(tag="span", attributes={"data-k": "v"}, css_class="hit").prototype()
    assert proto.tag == "span"
    assert proto.attrib == {"data-k": "v", "class": "hit"}
    assert proto.children == []

    copy = proto.clone()
    copy.attrib["x"] = "y"
    assert "x" not in proto.attrib
    print("PASS: test_wrap_request_prototype")


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    tests = [obj for name, obj in list(globals().items()) if name.startswith("test_") and callable(obj)]

    passed = 0
    failed = 0
    for t in tests:
        try:
            t()
            passed += 1
        except Exception as e:
            print(f"FAIL: {t.__name__} — {e}")
            failed += 1

    print(f"\n{'=' * 50}")
    print(f"Results: {passed} passed, {failed} failed out of {len(tests)} tests")
    if failed > 0:
        sys.exit(1)
    else:
        print("All tests passed!")
