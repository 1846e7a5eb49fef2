import hashlib
import json

import pytest
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

SECRET = "0123456789abcdef0123456789abcdef"  # 32 bytes, aes-256
CFG = "confstore-test-cfg.json"


@pytest.fixture
def secret():
    return SECRET


@pytest.fixture
def warnings():
    """Collects messages passed to on_warning."""
    return []


@pytest.fixture
def tree(tmp_path):
    """tmp/a/b/c plus an empty tmp/default directory."""
    deep = tmp_path / "a" / "b" / "c"
    deep.mkdir(parents=True)
    (tmp_path / "default").mkdir()
    return tmp_path


def legacy_envelope(value, secret=SECRET, alg="aes-256-ctr"):
    """
    Envelope as written by older tools: key and IV derived from the secret
    with EVP_BytesToKey (MD5, no salt) and no ``iv`` field.
    """
    password = secret.encode("utf-8")
    d1 = hashlib.md5(password).digest()
    d2 = hashlib.md5(d1 + password).digest()
    d3 = hashlib.md5(d2 + password).digest()
    key, iv = (d1 + d2)[:32], d3

    encryptor = Cipher(algorithms.AES(key), modes.CTR(iv)).encryptor()
    plaintext = json.dumps(value, separators=(",", ":")).encode("utf-8")
    ciphertext = encryptor.update(plaintext) + encryptor.finalize()
    return {"alg": alg, "value": ciphertext.hex()}


def write_json(path, document, bom=False):
    text = json.dumps(document, indent=2)
    if bom:
        text = "\ufeff" + text
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def _no_secret_env(monkeypatch):
    monkeypatch.delenv("CONFSTORE_SECRET", raising=False)
