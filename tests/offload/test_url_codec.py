import pytest

from domain.offload.credentials import StorageCredentials
from infrastructure.external.storage.urls import UrlCodec


def _codec(**kwargs) -> UrlCodec:
    return UrlCodec(StorageCredentials(access_key="k", storage_zone="myzone", **kwargs))


def test_storage_api_url():
    assert _codec().build_storage_api_url("a/b.jpg") == "https://storage.bunnycdn.com/myzone/a/b.jpg"


def test_default_cdn_url_uses_zone_hostname():
    assert _codec().build_cdn_url("a/b.jpg") == "https://myzone.b-cdn.net/a/b.jpg"


@pytest.mark.parametrize(
    "hostname, expected",
    [
        ("cdn.example.com", "https://cdn.example.com/x.png"),
        ("cdn.example.com/", "https://cdn.example.com/x.png"),
        ("http://cdn.example.com", "http://cdn.example.com/x.png"),
        ("https://cdn.example.com/", "https://cdn.example.com/x.png"),
    ],
)
def test_custom_hostname(hostname, expected):
    assert _codec(custom_hostname=hostname).build_cdn_url("x.png") == expected


@pytest.mark.parametrize("key", ["photo_1.jpg", "2024/05/photo-1.webp", "a/b/c/d~e_f.pdf"])
def test_parse_recovers_built_key(key):
    codec = _codec()
    assert codec.parse_remote_key(codec.build_cdn_url(key)) == key


@pytest.mark.parametrize("url", [None, "", "https://myzone.b-cdn.net", "https://myzone.b-cdn.net/", "http://[::1"])
def test_parse_rejects_urls_without_a_key(url):
    assert UrlCodec.parse_remote_key(url) is None
