from __future__ import annotations

import re
import time
from typing import Callable, Dict, Mapping, Optional

from starlette.requests import Request

from botgate.config import Settings
from botgate.validation.encoding import Scalar, encode_query

ValidationDescriptor = Dict[str, Scalar]

# Static assets never reach the decision service.
_EXCLUDED_PATH = re.compile(
    r"\.(avi|flv|mka|mkv|mov|mp4|mpeg|mpg|mp3|flac|ogg|ogm|opus|wav|webm|webp"
    r"|bmp|gif|ico|jpeg|jpg|png|svg|svgz|swf|eot|otf|ttf|woff|woff2|css|less|js)$",
    re.IGNORECASE,
)

_LOOPBACK = "127.0.0.1"


def is_excluded_path(path: str) -> bool:
    return bool(_EXCLUDED_PATH.search(path or ""))


def client_ip(headers: Mapping[str, str]) -> str:
    """
    First hop of X-Forwarded-For, else loopback.

    The header is client-controlled unless a trusted proxy overwrites it, so
    this is the address the edge saw, not necessarily the real client.
    """
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return _LOOPBACK


def cookies_length(cookies: Mapping[str, str]) -> int:
    return sum(len(value) for value in cookies.values())


def authorization_length(headers: Mapping[str, str]) -> Optional[int]:
    # None (absent) and 0 (empty header) are deliberately different.
    value = headers.get("authorization")
    if value is None:
        return None
    return len(value)


def headers_list(raw_names) -> str:
    names = dict.fromkeys(str(name).lower() for name in raw_names)
    return ",".join(names)


def time_request(clock: Callable[[], float] = time.time) -> int:
    # Millisecond wall clock expressed in microsecond units.
    return int(clock() * 1000) * 1000


def build_descriptor(
    request: Request,
    settings: Settings,
    *,
    clock: Callable[[], float] = time.time,
) -> ValidationDescriptor:
    headers = request.headers
    path = request.url.path
    host = headers.get("host")

    return {
        "Key": settings.SERVER_KEY,
        "RequestModuleName": settings.MODULE_NAME,
        "ModuleVersion": settings.MODULE_VERSION,
        "ServerName": settings.SERVER_NAME,
        "IP": client_ip(headers),
        "Port": 0,
        "TimeRequest": time_request(clock),
        "Protocol": headers.get("x-forwarded-proto"),
        "Method": request.method,
        "ServerHostname": host,
        "Request": path + encode_query(dict(request.query_params)),
        "HeadersList": headers_list(headers.keys()),
        "Host": host,
        "UserAgent": headers.get("user-agent"),
        "Referer": headers.get("referer"),
        # Blocking responses must always come back as JSON.
        "Accept": "application/json",
        "AcceptEncoding": headers.get("accept-encoding"),
        "AcceptLanguage": headers.get("accept-language"),
        "AcceptCharset": headers.get("accept-charset"),
        "Origin": headers.get("origin"),
        "XForwardedForIP": headers.get("x-forwarded-for"),
        "Connection": headers.get("connection"),
        "Pragma": headers.get("pragma"),
        "CacheControl": headers.get("cache-control"),
        "ContentType": headers.get("content-type"),
        "From": headers.get("from"),
        "Via": headers.get("via"),
        "CookiesLen": cookies_length(request.cookies),
        "AuthorizationLen": authorization_length(headers),
        "PostParamLen": headers.get("content-length"),
        "ClientID": request.cookies.get(settings.CLIENT_ID_COOKIE),
        "ServerRegion": settings.SERVER_REGION,
    }
