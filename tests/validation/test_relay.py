import httpx

from botgate.validation.relay import fix_cookie_domain, parse_manifest, relay_headers


def _relay(headers: httpx.Headers, host: str = "shop.example.com"):
    return relay_headers(
        headers,
        manifest_header="x-datadome-headers",
        request_host=host,
        rejected_cookie_domain=".vercel.app",
    )


def test_parse_manifest_tolerates_missing_and_garbled_values() -> None:
    assert parse_manifest(None) == []
    assert parse_manifest("") == []
    assert parse_manifest("   ") == []
    assert parse_manifest("x-a  x-b x-A") == ["x-a", "x-b"]


def test_relays_listed_headers_in_manifest_order() -> None:
    headers = httpx.Headers(
        {
            "x-datadome-headers": "x-dd-b x-dd-a",
            "x-dd-a": "1",
            "x-dd-b": "2",
            "x-not-listed": "3",
        }
    )
    assert _relay(headers) == [("x-dd-b", "2"), ("x-dd-a", "1")]


def test_missing_manifest_relays_nothing() -> None:
    assert _relay(httpx.Headers({"x-dd-a": "1"})) == []


def test_listed_header_without_value_is_skipped() -> None:
    headers = httpx.Headers({"x-datadome-headers": "x-dd-a x-missing", "x-dd-a": "1"})
    assert _relay(headers) == [("x-dd-a", "1")]


def test_rejected_cookie_domain_is_rewritten_to_request_host() -> None:
    headers = httpx.Headers(
        [
            ("x-datadome-headers", "set-cookie"),
            ("set-cookie", "datadome=abc; Max-Age=31536000; DOMAIN=.vercel.app; Path=/"),
        ]
    )
    assert _relay(headers) == [
        ("set-cookie", "datadome=abc; Max-Age=31536000; Domain=shop.example.com; Path=/")
    ]


def test_other_cookie_domains_pass_through_unchanged() -> None:
    cookie = "datadome=abc; Domain=.example.com; Path=/"
    headers = httpx.Headers([("x-datadome-headers", "Set-Cookie"), ("set-cookie", cookie)])
    assert _relay(headers) == [("Set-Cookie", cookie)]


def test_each_set_cookie_value_is_relayed_separately() -> None:
    headers = httpx.Headers(
        [
            ("x-datadome-headers", "set-cookie"),
            ("set-cookie", "a=1; Domain=.vercel.app"),
            ("set-cookie", "b=2; Path=/"),
        ]
    )
    assert _relay(headers) == [
        ("set-cookie", "a=1; Domain=shop.example.com"),
        ("set-cookie", "b=2; Path=/"),
    ]


def test_fix_cookie_domain_matches_whole_attribute_only() -> None:
    cookie = "a=1; Domain=.vercel.application"
    assert fix_cookie_domain(cookie, ".vercel.app", "shop.example.com") == cookie
    assert fix_cookie_domain("a=1; domain=.Vercel.App", ".vercel.app", "h.test") == "a=1; Domain=h.test"
    assert fix_cookie_domain("a=1; Domain=.vercel.app", ".vercel.app", None) == "a=1; Domain=.vercel.app"


def test_non_cookie_headers_are_copied_verbatim() -> None:
    headers = httpx.Headers(
        {"x-datadome-headers": "x-dd-cid", "x-dd-cid": "Domain=.vercel.app"}
    )
    assert _relay(headers) == [("x-dd-cid", "Domain=.vercel.app")]


def test_fix_cookie_domain_ignores_lookalikes_inside_the_value() -> None:
    cookie = "pref=subdomain=.vercel.app; Path=/"
    assert fix_cookie_domain(cookie, ".vercel.app", "shop.example.com") == cookie
    assert (
        fix_cookie_domain("a=1;Domain=.vercel.app;Path=/", ".vercel.app", "h.test")
        == "a=1;Domain=h.test;Path=/"
    )


def test_framing_and_hop_by_hop_headers_are_never_relayed() -> None:
    headers = httpx.Headers(
        {
            "x-datadome-headers": "Content-Length transfer-encoding connection x-dd-b content-type",
            "content-length": "500",
            "transfer-encoding": "chunked",
            "connection": "close",
            "x-dd-b": "1",
            "content-type": "text/html",
        }
    )
    assert _relay(headers) == [("x-dd-b", "1"), ("content-type", "text/html")]
