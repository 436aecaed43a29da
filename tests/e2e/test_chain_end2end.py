# tests/e2e/test_chain_end2end.py
# -*- coding: utf-8 -*-
"""
Full run of make-dc-chain into a fresh directory, then the documented
verification steps against the files it wrote.
"""

import shutil
import subprocess

import pytest
from cryptography import x509
from cryptography.x509.oid import NameOID

from dcchain.cli import main as cli
from dcchain.pki.chainfile import ChainFile
from dcchain.pki.dnq import DNQualifierDeriver
from dcchain.pki.keys import load_private_key_pem
from dcchain.pki.policy import effective_path_length
from dcchain.pki.verify import ChainValidator, load_pem_bundle


@pytest.fixture(scope="module")
def run_dir(tmp_path_factory):
    out = tmp_path_factory.mktemp("e2e")
    (out / "ca.key").write_text("left over from an earlier run")
    rc = cli.main(["--out-dir", str(out)])
    assert rc == 0
    return out


def _cert(run_dir, name):
    return x509.load_pem_x509_certificate((run_dir / name).read_bytes())


def test_report_is_printed(tmp_path, capsys):
    assert cli.main(["--out-dir", str(tmp_path)]) == 0
    out = capsys.readouterr().out
    assert "Self-signed CA certificate (issuer == subject) (ca.self-signed.pem):" in out
    assert "Intermediate certificate (intermediate.signed.pem):" in out
    assert "Leaf certificate (leaf.signed.pem):" in out
    assert out.count("   signed by\n issuer=/O=example.com/OU=csc.example.com/CN=dcstore.") == 3


def test_chain_verification_steps(run_dir):
    chain = load_pem_bundle(run_dir / "certificate_chain")
    root = _cert(run_dir, "ca.self-signed.pem")
    inter = _cert(run_dir, "intermediate.signed.pem")
    leaf = _cert(run_dir, "leaf.signed.pem")
    validator = ChainValidator()

    assert validator.verify([root], root).ok
    assert validator.verify([root], inter).ok
    assert validator.verify(chain, leaf).ok
    assert not validator.verify([root], leaf).ok
    assert ChainFile.load(run_dir / "certificate_chain").certificates == [root, inter, leaf]


def test_path_lengths_and_serials(run_dir):
    certs = [_cert(run_dir, n) for n in ("ca.self-signed.pem", "intermediate.signed.pem", "leaf.signed.pem")]
    assert [effective_path_length(c) for c in certs] == [3, 2, 0]
    assert [c.serial_number for c in certs] == [5, 6, 7]


def test_keys_and_qualifiers_match_certificates(run_dir):
    deriver = DNQualifierDeriver()
    for prefix, cert_name in (("ca", "ca.self-signed.pem"), ("intermediate", "intermediate.signed.pem"), ("leaf", "leaf.signed.pem")):
        key = load_private_key_pem((run_dir / f"{prefix}.key").read_bytes())
        cert = _cert(run_dir, cert_name)
        assert key.matches(cert.public_key())
        dnq = cert.subject.get_attributes_for_oid(NameOID.DN_QUALIFIER)[0].value
        assert dnq == deriver.derive_raw(key.public_key)


@pytest.mark.skipif(shutil.which("openssl") is None, reason="openssl binary not available")
def test_openssl_agrees(run_dir):
    def _verify(ca_file, cert):
        return subprocess.run(
            ["openssl", "verify", "-CAfile", str(run_dir / ca_file), str(run_dir / cert)],
            capture_output=True,
            text=True,
        )

    assert _verify("ca.self-signed.pem", "ca.self-signed.pem").returncode == 0
    assert _verify("ca.self-signed.pem", "intermediate.signed.pem").returncode == 0
    assert _verify("certificate_chain", "leaf.signed.pem").returncode == 0
    assert _verify("ca.self-signed.pem", "leaf.signed.pem").returncode != 0
