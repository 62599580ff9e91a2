import base64
import struct

import pytest

from beaconcache.codec.fallback import DecodeAttempt, FallbackDecoder, signature_text
from beaconcache.models import Beacon


@pytest.fixture
def decoder() -> FallbackDecoder:
    return FallbackDecoder()


def test_attempt_order():
    assert list(DecodeAttempt) == [
        DecodeAttempt.EXACT_TEXT,
        DecodeAttempt.METADATA_TEXT,
        DecodeAttempt.CONTENT_FIELD,
        DecodeAttempt.BASE64_CONTENT,
        DecodeAttempt.SIGNATURE_TEXT,
        DecodeAttempt.HEURISTIC_SCAN,
    ]


def test_metadata_original_text(decoder):
    assert decoder.decode({"metadata": '{"originalText":"hello"}'}) == "hello"


def test_length_prefixed_signature(decoder):
    assert decoder.decode({"signature": bytes([2, 0, 0, 0]) + b"hi"}) == "hi"
    assert decoder.decode({"signature": [2, 0, 0, 0, ord("h"), ord("i")]}) == "hi"


def test_signature_with_trailing_identity_bytes():
    sig = struct.pack("<I", 5) + b"hello" + b'{"primary":[2,3]}'
    assert signature_text(sig) == "hello"


def test_plain_text_signature_fallback():
    assert signature_text(b"plain old signature text") == "plain old signature text"


def test_signature_rejections():
    assert signature_text(b"\x02\x00\x00") is None
    assert signature_text(b"\x00\x00\x00\x00") is None
    # declared length longer than the payload and bytes not printable
    assert signature_text(b"\x09\x00\x00\x00\xff\xfe") is None
    assert signature_text(None) is None
    assert signature_text("aGk=") is None


def test_priority_order(decoder):
    record = {
        "originalText": "exact",
        "metadata": '{"originalText": "meta"}',
        "content": "content",
        "signature": b"\x03\x00\x00\x00sig",
    }
    assert decoder.decode(record) == "exact"
    record.pop("originalText")
    assert decoder.decode(record) == "meta"
    record.pop("metadata")
    assert decoder.decode(record) == "content"
    record.pop("content")
    assert decoder.decode(record) == "sig"


def test_empty_strings_fall_through(decoder):
    assert decoder.decode({"originalText": "", "content": "", "data": "from data"}) == "from data"


def test_base64_content(decoder):
    encoded = base64.b64encode(b"hello there").decode()
    assert decoder.decode({"content_base64": encoded}) == "hello there"
    assert decoder.decode({"content_base64": base64.b64encode(b"   ").decode()}) is None


def test_heuristic_scan_accepts_sentences_and_json(decoder):
    assert decoder.decode({"caption": "a caption with spaces"}) == "a caption with spaces"
    assert decoder.decode({"payload": '{"k": 1}'}) == '{"k": 1}'
    assert decoder.decode({"payload": "[1, 2]"}) == "[1, 2]"


def test_heuristic_scan_rejections(decoder):
    assert decoder.decode({"slug": "simple_identifier_name"}) is None
    assert decoder.decode({"hash": "0123456789abcdef0123456789abcdef"}) is None
    assert decoder.decode({"short": "a b"}) is None
    assert decoder.decode({"nospaces": "ThisHasNoSeparators"}) is None
    assert decoder.decode({"payload": "{not json}"}) is None


def test_heuristic_scan_skips_structural_fields(decoder):
    record = {
        "beacon_id": "an id with spaces in it",
        "user_id": "a user id with spaces",
        "type": "type: with colon here",
        "created_at": "2024-01-01T00:00:00Z",
    }
    assert decoder.decode(record) is None


def test_beacon_instance_input(decoder):
    beacon = Beacon(beacon_id="x", metadata={"originalText": "from a model"})
    assert decoder.decode(beacon) == "from a model"


def test_non_mapping_input(decoder):
    assert decoder.decode(None) is None
    assert decoder.decode("hello") is None
    assert decoder.decode(42) is None
