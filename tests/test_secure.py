"""
Secure envelope tests
"""

import hashlib
import importlib
import json
from warnings import catch_warnings, simplefilter

import pytest
from cryptography.utils import CryptographyDeprecationWarning

from confstore import DecryptionError, EncryptionError, SecureEnvelope, open_document, seal
import confstore.secure as secure_module
from confstore.secure import CIPHERS, LEGACY_WARNING, evp_bytes_to_key
from conftest import SECRET, legacy_envelope

DOCUMENT = {
    "database": {"host": "localhost", "port": 5432, "replicas": ["a", "b"]},
    "debug": False,
    "name": "señor ☃",
    "ratio": 0.25,
    "nothing": None,
}


class TestSealOpen:
    """Round trips"""

    def test_round_trip(self):
        envelope = SecureEnvelope("aes-256-ctr", SECRET)

        assert envelope.open(envelope.seal(DOCUMENT)) == DOCUMENT

    def test_round_trip_through_text(self):
        """seal -> stringify -> parse -> open"""
        text = json.dumps(seal(DOCUMENT, "aes-256-ctr", SECRET), indent=2)

        assert open_document(json.loads(text), "aes-256-ctr", SECRET) == DOCUMENT

    def test_envelope_shape(self):
        sealed = seal({"token": "abc"}, "aes-256-ctr", SECRET)

        entry = sealed["token"]
        assert set(entry) == {"alg", "value", "iv"}
        assert entry["alg"] == "aes-256-ctr"
        assert len(bytes.fromhex(entry["iv"])) == 16
        assert bytes.fromhex(entry["value"])

    def test_keys_and_order_preserved(self):
        sealed = seal(DOCUMENT, "aes-256-ctr", SECRET)

        assert list(sealed) == list(DOCUMENT)

    def test_fresh_iv_per_seal(self):
        first = seal({"k": "v"}, "aes-256-ctr", SECRET)
        second = seal({"k": "v"}, "aes-256-ctr", SECRET)

        assert first["k"]["iv"] != second["k"]["iv"]
        assert first["k"]["value"] != second["k"]["value"]

    @pytest.mark.parametrize("alg", sorted(CIPHERS))
    def test_every_algorithm_round_trips(self, alg):
        key = "k" * CIPHERS[alg].key_size

        assert open_document(seal(DOCUMENT, alg, key), alg, key) == DOCUMENT

    def test_algorithm_name_is_case_insensitive(self):
        sealed = seal({"k": 1}, "AES-256-CTR", SECRET)

        assert open_document(sealed, "aes-256-ctr", SECRET) == {"k": 1}

    def test_yaml_inner_format(self):
        envelope = SecureEnvelope("aes-256-cbc", SECRET, "yaml")

        assert envelope.open(envelope.seal(DOCUMENT)) == DOCUMENT

    def test_empty_document(self):
        assert open_document(seal({}, "aes-256-ctr", SECRET), "aes-256-ctr", SECRET) == {}


class TestLegacyEnvelopes:
    """Envelopes without iv"""

    def test_legacy_entry_decrypts(self, warnings):
        document = {"token": legacy_envelope("s3cr3t"), "port": legacy_envelope(8080)}

        opened = open_document(document, "aes-256-ctr", SECRET, on_warning=warnings.append)

        assert opened == {"token": "s3cr3t", "port": 8080}

    def test_warning_emitted_once_per_document(self, warnings):
        document = {"a": legacy_envelope(1), "b": legacy_envelope(2), "c": legacy_envelope(3)}

        open_document(document, "aes-256-ctr", SECRET, on_warning=warnings.append)

        assert warnings == [LEGACY_WARNING]

    def test_mixed_document(self, warnings):
        document = seal({"fresh": [1, 2]}, "aes-256-ctr", SECRET)
        document["old"] = legacy_envelope({"nested": True})

        opened = open_document(document, "aes-256-ctr", SECRET, on_warning=warnings.append)

        assert opened == {"fresh": [1, 2], "old": {"nested": True}}
        assert len(warnings) == 1

    def test_no_warning_for_current_format(self, warnings):
        open_document(
            seal(DOCUMENT, "aes-256-ctr", SECRET), "aes-256-ctr", SECRET, on_warning=warnings.append
        )

        assert warnings == []

    def test_legacy_secret_length_is_free(self, warnings):
        """Derived keys do not depend on the secret's length"""
        document = {"k": legacy_envelope("v", secret="short")}

        assert open_document(document, "aes-256-ctr", "short", on_warning=warnings.append) == {
            "k": "v"
        }

    def test_evp_bytes_to_key(self):
        password = b"password"
        d1 = hashlib.md5(password).digest()
        d2 = hashlib.md5(d1 + password).digest()
        d3 = hashlib.md5(d2 + password).digest()

        key, iv = evp_bytes_to_key(password, 32, 16)

        assert key == d1 + d2
        assert iv == d3

    def test_evp_bytes_to_key_short_key(self):
        key, iv = evp_bytes_to_key(b"pw", 16, 16)

        assert len(key) == 16
        assert len(iv) == 16
        assert key == hashlib.md5(b"pw").digest()


class TestFailures:
    """Errors"""

    def test_wrong_secret(self):
        sealed = seal({"k": "a fairly long plaintext value"}, "aes-256-cbc", SECRET)

        with pytest.raises(DecryptionError) as exc_info:
            open_document(sealed, "aes-256-cbc", "f" * 32)

        assert exc_info.value.context["key"] == "k"

    def test_invalid_key_length_on_seal(self):
        with pytest.raises(EncryptionError, match="Invalid key length"):
            seal({"k": "v"}, "aes-256-ctr", "too-short")

    def test_invalid_key_length_on_open(self):
        sealed = seal({"k": "v"}, "aes-256-ctr", SECRET)

        with pytest.raises(DecryptionError, match="Invalid key length"):
            open_document(sealed, "aes-256-ctr", "too-short")

    def test_unknown_algorithm_on_seal(self):
        with pytest.raises(EncryptionError, match="Unsupported cipher"):
            seal({"k": "v"}, "rot13", SECRET)

    def test_unknown_algorithm_in_envelope(self):
        sealed = seal({"k": "v"}, "aes-256-ctr", SECRET)
        sealed["k"]["alg"] = "des-ede3"

        with pytest.raises(DecryptionError, match="Unsupported cipher"):
            open_document(sealed, "aes-256-ctr", SECRET)

    def test_corrupted_hex(self):
        sealed = seal({"k": "v"}, "aes-256-ctr", SECRET)
        sealed["k"]["value"] = "not-hex"

        with pytest.raises(DecryptionError, match="Cannot decrypt 'k'"):
            open_document(sealed, "aes-256-ctr", SECRET)

    def test_entry_is_not_an_envelope(self):
        with pytest.raises(DecryptionError, match="not an encrypted envelope"):
            open_document({"plain": "value"}, "aes-256-ctr", SECRET)

    def test_document_is_not_a_mapping(self):
        with pytest.raises(DecryptionError, match="must be a mapping"):
            open_document(["a"], "aes-256-ctr", SECRET)

    def test_one_bad_entry_names_its_key(self):
        sealed = seal({"good": 1, "bad": 2}, "aes-256-ctr", SECRET)
        sealed["bad"]["value"] = ""

        with pytest.raises(DecryptionError) as exc_info:
            open_document(sealed, "aes-256-ctr", SECRET)

        assert exc_info.value.context["key"] == "bad"

    def test_unserializable_value_names_its_key(self):
        with pytest.raises(EncryptionError, match="Cannot serialize 'tags'") as exc_info:
            seal({"ok": 1, "tags": {"a", "b"}}, "aes-256-ctr", SECRET)

        assert exc_info.value.context == {"key": "tags", "alg": "aes-256-ctr"}
        assert isinstance(exc_info.value.__cause__, TypeError)


class TestCipherRegistry:
    """Cipher modes"""

    def test_import_has_no_deprecation_warnings(self):
        with catch_warnings():
            simplefilter("error", CryptographyDeprecationWarning)
            importlib.reload(secure_module)

    @pytest.mark.parametrize("mode_name", ["cfb", "ofb"])
    def test_stream_modes_registered(self, mode_name):
        assert f"aes-256-{mode_name}" in secure_module.CIPHERS
