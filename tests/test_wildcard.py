"""Testes para o casamento curinga."""

import re
import time

from hypothesis import given
from hypothesis import strategies as st

from envpocket.wildcard import compile_pattern, has_wildcards


def test_asterisk():
    matcher = compile_pattern("test-*")
    assert matcher.matches("test-1")
    assert matcher.matches("test-anything")
    assert matcher.matches("test-")
    assert not matcher.matches("prod-1")
    assert not matcher.matches("my-test-1")


def test_question_mark():
    matcher = compile_pattern("v?")
    assert matcher.matches("v1")
    assert matcher.matches("v2")
    assert not matcher.matches("v10")
    assert not matcher.matches("v")


def test_combined_pattern():
    matcher = compile_pattern("app-*-?")
    assert matcher.matches("app-dev-1")
    assert matcher.matches("app-prod-x")
    assert not matcher.matches("app-dev-10")


def test_regex_metacharacters_are_literal():
    """Testa que metacaracteres de regex são tratados literalmente."""
    assert compile_pattern("a.b").matches("a.b")
    assert not compile_pattern("a.b").matches("axb")
    assert compile_pattern("(x)+[y]").matches("(x)+[y]")
    assert not compile_pattern("x+").matches("xx")
    assert compile_pattern("^$|\\").matches("^$|\\")
    assert compile_pattern("{1}*").matches("{1}abc")


def test_case_sensitive_and_anchored():
    assert not compile_pattern("DB-*").matches("db-url")
    assert not compile_pattern("url").matches("db-url")


def test_star_matches_everything():
    matcher = compile_pattern("*")
    assert matcher.matches("")
    assert matcher.matches("anything\nwith newline")


def test_empty_pattern_matches_only_empty():
    assert compile_pattern("").matches("")
    assert not compile_pattern("").matches("a")


def test_has_wildcards():
    assert has_wildcards("test-*")
    assert has_wildcards("v?")
    assert not has_wildcards("db-url")


@given(text=st.text(alphabet=st.characters(exclude_characters="*?", exclude_categories=("Cs",))))
def test_literal_pattern_matches_only_itself(text):
    matcher = compile_pattern(text)
    assert matcher.matches(text)
    assert not matcher.matches(text + "x")


def test_many_stars_against_long_key_is_linear():
    """Testa que vários '*' contra uma chave longa sem casamento terminam rápido."""
    matcher = compile_pattern("*a*a*a*a*a*a*a*a*b")
    started = time.monotonic()
    assert not matcher.matches("a" * 2000)
    assert not compile_pattern("*" * 50 + "b").matches("a" * 2000)
    assert matcher.matches("a" * 2000 + "b")
    assert time.monotonic() - started < 2.0


def test_star_backtracks_to_last_star():
    assert compile_pattern("*ab*cd").matches("aabxcdcd")
    assert compile_pattern("a*?b").matches("axxb")
    assert not compile_pattern("a*?b").matches("ab")
    assert compile_pattern("**x**").matches("x")


def _reference(pattern: str, text: str) -> bool:
    regex = "".join(".*" if c == "*" else "." if c == "?" else re.escape(c) for c in pattern)
    return re.fullmatch(regex, text, re.DOTALL) is not None


@given(
    pattern=st.text(alphabet="ab*?", max_size=8),
    text=st.text(alphabet="ab", max_size=10),
)
def test_agrees_with_regex_translation(pattern, text):
    assert compile_pattern(pattern).matches(text) == _reference(pattern, text)
