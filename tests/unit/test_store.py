# tests/unit/test_store.py
# -*- coding: utf-8 -*-

import os
import stat
import sys

import pytest

from dcchain.pki.store import CHAIN_FILE_NAME, OutputStore, atomic_write_bytes
from dcchain.pki.tiers import Tier


def test_file_names(tmp_path):
    store = OutputStore(tmp_path)
    assert store.key_path(Tier.ROOT).name == "ca.key"
    assert store.cnf_path(Tier.ROOT).name == "ca.cnf"
    assert store.csr_path(Tier.ROOT) is None
    assert store.cert_path(Tier.ROOT).name == "ca.self-signed.pem"
    assert store.key_path(Tier.INTERMEDIATE).name == "intermediate.key"
    assert store.csr_path(Tier.INTERMEDIATE).name == "intermediate.csr"
    assert store.cert_path(Tier.INTERMEDIATE).name == "intermediate.signed.pem"
    assert store.cnf_path(Tier.LEAF).name == "leaf.cnf"
    assert store.cert_path(Tier.LEAF).name == "leaf.signed.pem"
    assert store.chain_path == tmp_path / CHAIN_FILE_NAME


def test_default_out_dir_is_cwd(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert OutputStore().out_dir.resolve() == tmp_path.resolve()


def test_cleanup_removes_only_managed_files(tmp_path):
    managed = ["ca.key", "ca.srl", "intermediate.signed.pem", "leaf.cnf", "certificate_chain"]
    kept = ["notes.txt", "cakey", "leafy.pem", "certificate_chain.bak"]
    for name in managed + kept:
        (tmp_path / name).write_text("x")
    (tmp_path / "leaf.dir").mkdir()

    removed = OutputStore(tmp_path).cleanup()

    assert sorted(p.name for p in removed) == sorted(managed)
    assert sorted(p.name for p in tmp_path.iterdir()) == sorted(kept + ["leaf.dir"])


def test_cleanup_of_missing_dir_is_noop(tmp_path):
    assert OutputStore(tmp_path / "absent").cleanup() == []


def test_atomic_write_overwrites(tmp_path):
    target = tmp_path / "sub" / "file.bin"
    atomic_write_bytes(target, b"one")
    atomic_write_bytes(target, b"two")
    assert target.read_bytes() == b"two"
    assert [p.name for p in target.parent.iterdir()] == ["file.bin"]


@pytest.mark.skipif(sys.platform.startswith("win"), reason="POSIX permissions")
def test_private_key_mode(tmp_path, leaf_key):
    path = OutputStore(tmp_path).write_key(Tier.LEAF, leaf_key)
    assert stat.S_IMODE(os.stat(path).st_mode) == 0o600
    assert path.read_bytes() == leaf_key.private_pem()
