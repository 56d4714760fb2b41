from __future__ import annotations

from typing import Mapping, Optional, Union
from urllib.parse import quote

Scalar = Optional[Union[str, int]]

# Characters encodeURIComponent leaves alone besides alphanumerics.
_UNRESERVED = "-_.!~*'()"


def encode_component(value: object) -> str:
    return quote(str(value), safe=_UNRESERVED)


def stringify(fields: Mapping[str, Scalar]) -> str:
    """
    Render a descriptor as an application/x-www-form-urlencoded body.

    Fields whose value is None are skipped entirely; empty strings are kept
    (``Key=``). Iteration order of ``fields`` is preserved.
    """
    parts = []
    for key, value in fields.items():
        if value is None:
            continue
        parts.append(f"{encode_component(key)}={encode_component(value)}")
    return "&".join(parts)


def encode_query(params: Mapping[str, str]) -> str:
    # The decision service expects the pairs appended to the path as-is:
    # no leading "?" and no "&" between pairs.
    return "".join(
        f"{encode_component(k)}={encode_component(v)}" for k, v in params.items()
    )
