import base64
import json

import numpy as np
import pytest

from beaconcache.serialization import bytes_to_base64, deserialize, serialize, to_bytes


def test_serialize_returns_utf8_json_bytes():
    obj = {"a": 1, "b": "text", "c": [1, 2, 3]}
    b = serialize(obj)
    assert isinstance(b, bytes)
    assert b.decode("utf-8") == json.dumps(obj, separators=(",", ":"))


def test_serialize_handles_numpy_bytes_and_tuples():
    out = deserialize(serialize({"v": np.float64(0.5), "arr": np.arange(3), "raw": b"\x01\x02", "t": (1, 2)}))
    assert out == {"v": 0.5, "arr": [0, 1, 2], "raw": "AQI=", "t": [1, 2]}


def test_serialize_rejects_opaque_objects():
    with pytest.raises(TypeError):
        serialize({"handle": object()})


def test_deserialize_none_returns_none():
    assert deserialize(None) is None


def test_deserialize_invalid_bytes_raises_valueerror():
    with pytest.raises(ValueError):
        deserialize(b"\x80\x04\x95\x00\x00")
    with pytest.raises(ValueError):
        deserialize(b"{not json")


@pytest.mark.parametrize(
    "value",
    [
        b"\x01\x02\x03",
        bytearray([1, 2, 3]),
        [1, 2, 3],
        (1, 2, 3),
        {"type": "Buffer", "data": [1, 2, 3]},
        base64.b64encode(b"\x01\x02\x03").decode(),
        np.array([1, 2, 3], dtype=np.uint8),
    ],
)
def test_to_bytes_accepts_every_wire_shape(value):
    assert to_bytes(value) == b"\x01\x02\x03"


@pytest.mark.parametrize("value", [None, "", "%%% not base64", {"type": "Other"}, 12, ["x"]])
def test_to_bytes_degrades_to_empty(value):
    assert to_bytes(value) == b""


def test_bytes_to_base64():
    assert bytes_to_base64(b"hi") == "aGk="
