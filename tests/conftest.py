"""Pytest fixtures for church ledger tests."""

import pytest

from church.account import AccountStateDeriver
from church.config import ScoringPolicy
from church.ledger import Ledger


@pytest.fixture
def ledger():
    """Empty in-memory ledger."""
    return Ledger()


@pytest.fixture
def policy():
    """Default scoring policy."""
    return ScoringPolicy()


@pytest.fixture
def deriver(policy):
    """AccountStateDeriver using the default policy."""
    return AccountStateDeriver(policy)


@pytest.fixture
def ledger_file(tmp_path, monkeypatch):
    """Path for a JSONL ledger inside a temporary repo root.

    Changes cwd into the temp dir so repo-local config lookup stays
    isolated from the real checkout.
    """
    repo_root = tmp_path / "repo"
    repo_root.mkdir()
    (repo_root / "pyproject.toml").write_text("[project]\nname = 'tmp'\n")
    monkeypatch.chdir(repo_root)
    for var in ("CHURCH_LEDGER_PATH", "CHURCH_MINT_THRESHOLD", "CHURCH_FORGIVENESS_QUORUM"):
        monkeypatch.delenv(var, raising=False)
    return repo_root / "church_ledger.jsonl"
