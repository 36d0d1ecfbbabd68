from __future__ import annotations

import pytest

from broadside.errors import ConfigurationError
from broadside.infra.json_codec import dumps_bytes, dumps_text, loads_object


def test_dumps_options() -> None:
    assert dumps_bytes({"b": 1, "a": 2}, sort_keys=True) == b'{"a":2,"b":1}'
    assert "\n" in dumps_text({"a": [1, 2]}, pretty=True)


def test_loads_object_accepts_text_and_bytes() -> None:
    assert loads_object('{"a": 1}') == {"a": 1}
    assert loads_object(b'{"a": 1}') == {"a": 1}


@pytest.mark.parametrize("text", ["{", "[]", "3", ""])
def test_loads_object_rejects_non_objects(text: str) -> None:
    with pytest.raises(ConfigurationError):
        loads_object(text)
