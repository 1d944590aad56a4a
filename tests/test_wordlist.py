"""Tests for wordlist loading."""

from pathlib import Path

import pytest

from app.errors import SessionFailure, WordlistError
from app.services.wordlist import DEFAULT_WORDLIST, load_wordlist


def test_embedded_wordlist_is_large_and_deduplicated() -> None:
    words = load_wordlist()
    assert len(words) >= 300
    assert len(words) == len(set(words))
    assert words[0] == "www"
    assert {"admin", "api", "staging", "vpn", "cpanel"} <= set(words)
    assert len(words) <= len(DEFAULT_WORDLIST)


def test_loads_external_file_ignoring_comments_and_blanks(tmp_path: Path) -> None:
    path = tmp_path / "words.txt"
    path.write_text("# infra\nwww\n\nAPI\napi\n  mail  \n")

    assert load_wordlist(str(path)) == ["www", "api", "mail"]


def test_missing_file_is_a_session_failure(tmp_path: Path) -> None:
    with pytest.raises(SessionFailure, match="not found"):
        load_wordlist(str(tmp_path / "missing.txt"))


def test_empty_file_raises(tmp_path: Path) -> None:
    path = tmp_path / "empty.txt"
    path.write_text("# nothing but comments\n\n")

    with pytest.raises(WordlistError, match="empty"):
        load_wordlist(str(path))
