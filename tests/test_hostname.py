"""Tests for hostname utilities."""

from storefront_domains.utils.hostname import (
    is_under_zone,
    normalize_host_header,
    normalize_hostname,
    validate_hostname,
)


class TestNormalizeHostname:
    def test_lowercases_and_strips(self):
        assert normalize_hostname("  Example.COM ") == "example.com"

    def test_drops_trailing_dot(self):
        assert normalize_hostname("example.com.") == "example.com"

    def test_empty(self):
        assert normalize_hostname("") == ""


class TestNormalizeHostHeader:
    def test_strips_port(self):
        assert normalize_host_header("Shop.Example.com:8443") == "shop.example.com"

    def test_slug_unchanged(self):
        assert normalize_host_header("nightmare-manor") == "nightmare-manor"


class TestValidateHostname:
    def test_valid_domain(self):
        is_valid, error = validate_hostname("nightmaremanor.com")
        assert is_valid is True
        assert error is None

    def test_valid_nested_subdomain(self):
        is_valid, _ = validate_hostname("tickets.scary-place.co.uk")
        assert is_valid is True

    def test_single_char_labels(self):
        is_valid, _ = validate_hostname("a.b.io")
        assert is_valid is True

    def test_empty(self):
        is_valid, error = validate_hostname("")
        assert is_valid is False
        assert "required" in error.lower()

    def test_no_tld(self):
        is_valid, _ = validate_hostname("localhost")
        assert is_valid is False

    def test_numeric_tld(self):
        is_valid, _ = validate_hostname("example.123")
        assert is_valid is False

    def test_single_letter_tld(self):
        is_valid, _ = validate_hostname("example.c")
        assert is_valid is False

    def test_leading_hyphen(self):
        is_valid, _ = validate_hostname("-bad.example.com")
        assert is_valid is False

    def test_trailing_hyphen(self):
        is_valid, _ = validate_hostname("bad-.example.com")
        assert is_valid is False

    def test_underscore(self):
        is_valid, _ = validate_hostname("bad_label.example.com")
        assert is_valid is False

    def test_empty_label(self):
        is_valid, _ = validate_hostname("double..dot.com")
        assert is_valid is False

    def test_label_too_long(self):
        is_valid, _ = validate_hostname("a" * 64 + ".com")
        assert is_valid is False

    def test_too_long(self):
        hostname = ".".join(["a" * 60] * 5) + ".com"
        is_valid, error = validate_hostname(hostname)
        assert is_valid is False
        assert "too long" in error.lower()


class TestIsUnderZone:
    def test_subdomain_of_zone(self):
        assert is_under_zone("spooky.hauntplatform.com", "hauntplatform.com") is True

    def test_zone_itself(self):
        assert is_under_zone("hauntplatform.com", "hauntplatform.com") is True

    def test_lookalike_domain(self):
        assert is_under_zone("nothauntplatform.com", "hauntplatform.com") is False
