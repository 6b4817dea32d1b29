import re

import pytest

from fleetlib.naming import sanitize, session_id


NAMES = [
    "My-Bot! 01",
    "alpha",
    "",
    "___",
    "ünïcødé bot",
    "../../etc/passwd",
    "name with spaces\tand\ttabs",
    "emoji🤖bot_2",
    "a;rm -rf /",
]


def test_sanitize_example():
    assert sanitize("My-Bot! 01") == "MyBot01"


@pytest.mark.parametrize("name", NAMES)
def test_sanitize_output_only_contains_safe_characters(name):
    assert re.fullmatch(r"[A-Za-z0-9_]*", sanitize(name))


@pytest.mark.parametrize("name", NAMES)
def test_sanitize_is_deterministic_and_idempotent(name):
    once = sanitize(name)
    assert sanitize(name) == once
    assert sanitize(once) == once


def test_sanitize_keeps_underscores_and_digits():
    assert sanitize("bot_01") == "bot_01"


def test_sanitize_may_return_empty_string():
    assert sanitize("!!!---") == ""


def test_path_traversal_is_neutralised():
    assert sanitize("../../etc/passwd") == "etcpasswd"


def test_session_id_prefix():
    assert session_id("alpha") == "levanter_alpha"
