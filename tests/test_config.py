"""Tests for settings validation."""

import pytest
from pydantic import ValidationError

from storefront_domains.config import Settings


class TestSettings:
    def test_bypass_refused_in_production(self):
        with pytest.raises(ValidationError):
            Settings(DNS_VERIFICATION_BYPASS=True, ENVIRONMENT="production")

    def test_bypass_allowed_outside_production(self):
        config = Settings(DNS_VERIFICATION_BYPASS=True, ENVIRONMENT="staging")
        assert config.DNS_VERIFICATION_BYPASS is True

    def test_nameservers_list(self):
        config = Settings(DNS_NAMESERVERS=" 9.9.9.9, ,149.112.112.112 ")
        assert config.nameservers_list == ["9.9.9.9", "149.112.112.112"]

    def test_retry_attempts_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(DNS_RETRY_ATTEMPTS=0)
