import pytest

from urlfetcher.security.validator import (
    PRIVATE_IP_ERROR,
    SUSPICIOUS_CHARS_ERROR,
    UrlValidator,
    canonicalize_url,
    is_cloud_metadata_host,
    is_private_ipv4,
    normalize_ipv4_host,
)


@pytest.fixture()
def validator() -> UrlValidator:
    return UrlValidator()


@pytest.mark.unit
class TestValidateUrl:
    def test_accepts_public_url_with_canonical_form(self, validator: UrlValidator) -> None:
        result = validator.validate_url("http://example.com")
        assert result.is_valid is True
        assert result.sanitized_url == "http://example.com/"
        assert result.error is None

    def test_strips_fragment(self, validator: UrlValidator) -> None:
        result = validator.validate_url("https://example.com/page?q=1#section")
        assert result.sanitized_url == "https://example.com/page?q=1"

    def test_scheme_is_case_insensitive(self, validator: UrlValidator) -> None:
        result = validator.validate_url("HTTPS://Example.COM/Path")
        assert result.is_valid is True
        assert result.sanitized_url == "https://example.com/Path"

    def test_rejects_ftp_protocol(self, validator: UrlValidator) -> None:
        result = validator.validate_url("ftp://x.com")
        assert result.is_valid is False
        assert "Protocol 'ftp:'" in (result.error or "")

    def test_rejects_javascript_protocol(self, validator: UrlValidator) -> None:
        result = validator.validate_url("javascript:alert(1)")
        assert result.is_valid is False
        assert "Protocol" in (result.error or "")

    @pytest.mark.parametrize(
        "url",
        [
            "http://localhost",
            "http://LOCALHOST:8080/admin",
            "http://127.0.0.1",
            "http://0.0.0.0",
            "http://[::1]/",
            "http://metadata.google.internal/computeMetadata/v1/",
            "http://169.254.169.254/latest/meta-data/",
            "http://169.254.170.2/v2/credentials",
        ],
    )
    def test_rejects_blocked_hostnames(self, validator: UrlValidator, url: str) -> None:
        result = validator.validate_url(url)
        assert result.is_valid is False
        assert "is not allowed" in (result.error or "")

    @pytest.mark.parametrize(
        "url",
        [
            "http://192.168.1.1",
            "http://10.0.0.1",
            "http://172.16.0.1",
            "http://172.31.255.255",
            "http://169.254.1.1",
            "http://127.0.0.2",
        ],
    )
    def test_rejects_private_ipv4(self, validator: UrlValidator, url: str) -> None:
        result = validator.validate_url(url)
        assert result.is_valid is False
        assert result.error == PRIVATE_IP_ERROR

    def test_allows_public_ipv4_next_to_private_range(self, validator: UrlValidator) -> None:
        assert validator.validate_url("http://172.32.0.1").is_valid is True
        assert validator.validate_url("http://8.8.8.8").is_valid is True

    @pytest.mark.parametrize(
        "url",
        ["http://metadata.example.com", "http://db.internal", "http://printer.local"],
    )
    def test_rejects_cloud_metadata_patterns(self, validator: UrlValidator, url: str) -> None:
        result = validator.validate_url(url)
        assert result.is_valid is False
        assert result.error == "Cloud metadata servers are not allowed."

    @pytest.mark.parametrize(
        "url",
        ["http://example%0a.com", "http://a@b.com", "http://a\\b.com", "ftp://%41"],
    )
    def test_rejects_suspicious_characters_before_parsing(
        self, validator: UrlValidator, url: str
    ) -> None:
        result = validator.validate_url(url)
        assert result.is_valid is False
        assert result.error == SUSPICIOUS_CHARS_ERROR

    @pytest.mark.parametrize("url", ["not a url", "http://", "example.com", "http://example.com:99999"])
    def test_rejects_unparseable(self, validator: UrlValidator, url: str) -> None:
        result = validator.validate_url(url)
        assert result.is_valid is False
        assert (result.error or "").startswith("Invalid URL format")

    @pytest.mark.parametrize(
        ("url", "error"),
        [
            ("http://2130706433/", "Hostname '127.0.0.1' is not allowed."),
            ("http://0x7f000001/", "Hostname '127.0.0.1' is not allowed."),
            ("http://0x7f.0.0.1/", "Hostname '127.0.0.1' is not allowed."),
            ("http://0177.0.0.1/", "Hostname '127.0.0.1' is not allowed."),
            ("http://127.0.0.1./", "Hostname '127.0.0.1' is not allowed."),
            ("http://0/", "Hostname '0.0.0.0' is not allowed."),
            ("http://127.1/", "Hostname '127.0.0.1' is not allowed."),
            ("http://127.2/", PRIVATE_IP_ERROR),
            ("http://10.1/", PRIVATE_IP_ERROR),
            ("http://192.168.257/", PRIVATE_IP_ERROR),
            ("http://0xa9.254.169.254/", "Hostname '169.254.169.254' is not allowed."),
        ],
    )
    def test_numeric_host_forms_are_normalized_before_checks(
        self, validator: UrlValidator, url: str, error: str
    ) -> None:
        result = validator.validate_url(url)
        assert result.is_valid is False
        assert result.error == error

    @pytest.mark.parametrize(
        "url",
        [
            "http://999.1.1.1",
            "http://1.2.3.4.5",
            "http://4294967296",
            "http://1.2.3.08",
            "http://foo.09",
        ],
    )
    def test_rejects_malformed_numeric_hosts(self, validator: UrlValidator, url: str) -> None:
        result = validator.validate_url(url)
        assert result.is_valid is False
        assert result.error == "Invalid URL format: Invalid IPv4 address"

    def test_public_numeric_host_is_canonicalized_to_dotted_quad(
        self, validator: UrlValidator
    ) -> None:
        result = validator.validate_url("http://134744072:8080/dns?q=1")
        assert result.is_valid is True
        assert result.sanitized_url == "http://8.8.8.8:8080/dns?q=1"

    def test_dns_names_skip_ip_check(self, validator: UrlValidator) -> None:
        # Known gap: no resolution, so a name pointing at a private IP passes.
        assert validator.validate_url("http://internal-service.example.com").is_valid is True


@pytest.mark.unit
class TestValidateUrls:
    def test_partitions_every_input(self, validator: UrlValidator) -> None:
        urls = [
            "http://example.com",
            "http://localhost",
            "https://example.org/a#b",
            "ftp://x.com",
            "http://a@b.com",
        ]
        batch = validator.validate_urls(urls)
        assert len(batch.valid_urls) + len(batch.invalid_urls) == len(urls)
        assert batch.valid_urls == ["http://example.com/", "https://example.org/a"]
        assert [item["url"] for item in batch.invalid_urls] == [
            "http://localhost",
            "ftp://x.com",
            "http://a@b.com",
        ]
        assert batch.has_invalid is True

    def test_all_valid(self, validator: UrlValidator) -> None:
        batch = validator.validate_urls(["https://example.com", "https://python.org"])
        assert batch.has_invalid is False
        assert len(batch.valid_urls) == 2

    def test_duplicates_are_kept(self, validator: UrlValidator) -> None:
        batch = validator.validate_urls(["http://example.com", "http://example.com"])
        assert batch.valid_urls == ["http://example.com/", "http://example.com/"]


@pytest.mark.unit
class TestHelpers:
    def test_is_private_ipv4_ignores_hostnames(self) -> None:
        assert is_private_ipv4("example.com") is False
        assert is_private_ipv4("10.1.2.3") is True

    def test_is_cloud_metadata_host(self) -> None:
        assert is_cloud_metadata_host("169.254.169.254") is True
        assert is_cloud_metadata_host("example.com") is False

    def test_canonicalize_url(self) -> None:
        assert canonicalize_url("  https://example.com#top ") == "https://example.com/"

    @pytest.mark.parametrize(
        ("hostname", "expected"),
        [
            ("example.com", None),
            ("::1", None),
            ("8.8.8.8", "8.8.8.8"),
            ("0x08.0x08.0x08.0x08", "8.8.8.8"),
            ("010.0.0.1", "8.0.0.1"),
            ("1.0x", "1.0.0.0"),
        ],
    )
    def test_normalize_ipv4_host(self, hostname: str, expected: str | None) -> None:
        assert normalize_ipv4_host(hostname) == expected
