"""Property-based tests for placeholder resolution."""

import json

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from flowexpr.expression import CollectingDiagnosticSink, ExpressionEngine, resolve_path, scan_placeholders

ENGINE = ExpressionEngine(diagnostics=CollectingDiagnosticSink())

# Text that can never contain a placeholder, a brace or a percent escape
PLAIN_TEXT = st.text(alphabet=st.characters(blacklist_characters="{}%"), max_size=200)
KEYS = st.from_regex(r"^[a-z][a-z0-9_]{0,9}$", fullmatch=True)
SMALL_INTS = st.integers(min_value=-(2**31), max_value=2**31)


# =============================================================================
# Test Classes
# =============================================================================


@pytest.mark.property
class TestPassThrough:
    """Values without placeholders are never altered."""

    @given(PLAIN_TEXT)
    @settings(max_examples=200)
    def test_plain_text_unchanged(self, text):
        assert ENGINE.resolve_value(text, {"a": 1}) == text

    @given(st.one_of(st.integers(), st.floats(allow_nan=False), st.booleans(), st.none()))
    @settings(max_examples=100)
    def test_non_strings_returned_as_is(self, value):
        assert ENGINE.resolve_value(value, {"a": 1}) is value

    @given(st.text(max_size=200))
    @settings(max_examples=200)
    def test_never_raises(self, text):
        assert isinstance(ENGINE.resolve_value(text, {"a": 1}), str)


@pytest.mark.property
class TestSubstitution:
    """Resolved placeholders carry the referenced value."""

    @given(KEYS, PLAIN_TEXT)
    @settings(max_examples=200)
    def test_string_value(self, key, value):
        assert ENGINE.resolve_value(f"{{{{ $json.{key} }}}}", {key: value}) == value

    @given(KEYS, PLAIN_TEXT, PLAIN_TEXT, PLAIN_TEXT)
    @settings(max_examples=100)
    def test_surrounding_text_kept(self, key, value, prefix, suffix):
        template = f"{prefix}{{{{ $json.{key} }}}}{suffix}"
        assert ENGINE.resolve_value(template, {key: value}) == f"{prefix}{value}{suffix}"

    @given(st.dictionaries(KEYS, st.one_of(SMALL_INTS, PLAIN_TEXT, st.booleans(), st.none()), max_size=5))
    @settings(max_examples=100)
    def test_objects_are_compact_json(self, obj):
        expected = json.dumps(obj, separators=(",", ":"), ensure_ascii=False)
        assert ENGINE.resolve_value("{{ $json.obj }}", {"obj": obj}) == expected

    @given(KEYS)
    @settings(max_examples=100)
    def test_missing_reference_preserved(self, key):
        template = f"before {{{{ $json.{key} }}}} after"
        assert ENGINE.resolve_value(template, {}) == template


@pytest.mark.property
class TestArithmetic:
    """Integer arithmetic matches Python for safe integers."""

    @given(SMALL_INTS, SMALL_INTS)
    @settings(max_examples=200)
    def test_addition(self, a, b):
        assert ENGINE.resolve_value(f"{{{{ {a} + {b} }}}}", {}) == str(a + b)

    @given(SMALL_INTS, SMALL_INTS)
    @settings(max_examples=200)
    def test_subtraction(self, a, b):
        assert ENGINE.resolve_value(f"{{{{ {a} - {b} }}}}", {}) == str(a - b)

    @given(
        st.integers(min_value=-(2**20), max_value=2**20),
        st.integers(min_value=-(2**20), max_value=2**20),
    )
    @settings(max_examples=200)
    def test_multiplication(self, a, b):
        assert ENGINE.resolve_value(f"{{{{ $json.a * $json.b }}}}", {"a": a, "b": b}) == str(a * b)

    @given(SMALL_INTS, SMALL_INTS)
    @settings(max_examples=100)
    def test_max(self, a, b):
        assert ENGINE.evaluate(f"Math.max({a}, {b})") == max(a, b)


@pytest.mark.property
class TestIdempotence:
    """Resolving an already-resolved string changes nothing."""

    @given(st.dictionaries(KEYS, PLAIN_TEXT, max_size=5), KEYS)
    @settings(max_examples=200)
    def test_resolve_twice(self, item, missing):
        keys = list(item) + [missing]
        template = " | ".join(f"{{{{ $json.{key} }}}}" for key in keys)
        once = ENGINE.resolve_value(template, item)
        assert ENGINE.resolve_value(once, item) == once


@pytest.mark.property
class TestScanner:
    """Scanner output is ordered and consistent with the input."""

    @given(st.text(alphabet="{}ab $'\"", max_size=100))
    @settings(max_examples=300)
    def test_placeholders_ordered_and_exact(self, text):
        previous_end = 0
        for placeholder in scan_placeholders(text):
            assert placeholder.start >= previous_end
            assert text[placeholder.start : placeholder.end] == placeholder.text
            assert placeholder.text.startswith("{{")
            assert placeholder.text.endswith("}}")
            previous_end = placeholder.end


@pytest.mark.property
class TestPaths:
    """resolve_path walks exactly the segments it is given."""

    @given(st.lists(KEYS, min_size=1, max_size=6), st.integers())
    @settings(max_examples=200)
    def test_nested_dicts(self, keys, leaf):
        root: dict = {}
        current = root
        for key in keys[:-1]:
            current = current.setdefault(key, {})
        current[keys[-1]] = leaf
        assert resolve_path(root, ".".join(keys)) == leaf

    @given(st.lists(st.integers(), min_size=1, max_size=20), st.data())
    @settings(max_examples=100)
    def test_list_index(self, values, data):
        index = data.draw(st.integers(min_value=0, max_value=len(values) - 1))
        root = {"items": [{"value": value} for value in values]}
        assert resolve_path(root, f"items[{index}].value") == values[index]
        assert resolve_path(root, f"items[{len(values)}].value", "missing") == "missing"

    @given(st.dictionaries(KEYS, st.integers(), max_size=5), KEYS)
    @settings(max_examples=100)
    def test_missing_key_gives_default(self, root, key):
        expected = root[key] if key in root else "fallback"
        assert resolve_path(root, key, "fallback") == expected
