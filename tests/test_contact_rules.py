"""
Tests for Contact Validation Rules

- Mobile numbers (normalize_mobile)
- Email addresses (check_email, DomainReachabilityCache, DnsOverHttpsLookup)
"""

import httpx
import pytest

from patronclean.exceptions import DomainLookupError, LookupFailure
from patronclean.services.contact_rules import (
    check_email,
    extract_digits,
    extract_domain,
    normalize_mobile,
    strip_mobile_prefix,
    validate_email_format,
)
from patronclean.services.domain_cache import (
    DnsOverHttpsLookup,
    DomainReachabilityCache,
    LookupFailurePolicy,
)
from patronclean.services.outcomes import UNCHANGED, Invalid, Normalized


# ============================================================================
# MOBILE HELPER TESTS
# ============================================================================

class TestExtractDigits:
    def test_strips_formatting(self):
        assert extract_digits("+91 (987) 654-3210") == "919876543210"

    def test_integral_float(self):
        assert extract_digits(9876543210.0) == "9876543210"

    def test_no_digits(self):
        assert extract_digits("n/a") == ""


class TestStripMobilePrefix:
    def test_country_code(self):
        assert strip_mobile_prefix("919876543210") == "9876543210"

    def test_trunk_prefix(self):
        assert strip_mobile_prefix("09876543210") == "9876543210"

    def test_country_code_needs_twelve_digits(self):
        assert strip_mobile_prefix("91987654321") == "91987654321"

    def test_plain_number_untouched(self):
        assert strip_mobile_prefix("9876543210") == "9876543210"


class TestNormalizeMobile:
    def test_already_normalized(self):
        assert normalize_mobile("9876543210") == UNCHANGED

    def test_country_code_removed(self):
        assert normalize_mobile("919876543210") == Normalized("9876543210")

    def test_formatted_with_plus(self):
        assert normalize_mobile("+91 98765-43210") == Normalized("9876543210")

    def test_trunk_prefix_removed(self):
        assert normalize_mobile("09876543210") == Normalized("9876543210")

    def test_leading_five_rejected(self):
        assert isinstance(normalize_mobile("5876543210"), Invalid)

    def test_short_number_rejected(self):
        assert isinstance(normalize_mobile("98765"), Invalid)

    def test_text_rejected(self):
        assert isinstance(normalize_mobile("call me"), Invalid)

    def test_numeric_cell_equal_to_digits(self):
        assert normalize_mobile(9876543210) == UNCHANGED
        assert normalize_mobile(9876543210.0) == UNCHANGED

    def test_empty_skipped(self):
        assert normalize_mobile("") == UNCHANGED
        assert normalize_mobile(None) == UNCHANGED

    @pytest.mark.parametrize("number", ["6000000000", "7123456789", "8999999999", "9876543210"])
    def test_idempotent_and_prefix_insensitive(self, number):
        assert normalize_mobile(number) == UNCHANGED
        assert normalize_mobile("+91" + number) == Normalized(number)


# ============================================================================
# EMAIL HELPER TESTS
# ============================================================================

class TestValidateEmailFormat:
    def test_valid(self):
        assert validate_email_format("reader@library.org.in")

    def test_case_insensitive(self):
        assert validate_email_format("Reader@Library.ORG")

    def test_missing_at(self):
        assert not validate_email_format("not-an-email")

    def test_short_suffix(self):
        assert not validate_email_format("a@b.c")

    def test_whitespace(self):
        assert not validate_email_format("a b@c.com")

    def test_double_at(self):
        assert not validate_email_format("a@b@c.com")


class TestExtractDomain:
    def test_lowercases(self):
        assert extract_domain("Reader@Library.ORG") == "library.org"


class TestDomainReachabilityCache:
    def test_lookup_once_per_domain(self, mx_lookup):
        cache = DomainReachabilityCache(mx_lookup, always_reachable=[])
        assert cache.is_reachable("library.org")
        assert cache.is_reachable("LIBRARY.org")
        assert mx_lookup.calls == ["library.org"]
        assert cache.lookups_performed == 1

    def test_always_reachable_skips_lookup(self, mx_lookup):
        cache = DomainReachabilityCache(mx_lookup, always_reachable=["gmail.com"])
        assert cache.is_reachable("gmail.com")
        assert mx_lookup.calls == []

    def test_default_always_reachable_is_gmail(self, mx_lookup):
        cache = DomainReachabilityCache(mx_lookup)
        assert cache.is_reachable("gmail.com")
        assert mx_lookup.calls == []

    def test_unreachable_cached(self, mx_lookup):
        mx_lookup.answers["nowhere.invalid"] = False
        cache = DomainReachabilityCache(mx_lookup, always_reachable=[])
        assert not cache.is_reachable("nowhere.invalid")
        assert not cache.is_reachable("nowhere.invalid")
        assert len(mx_lookup.calls) == 1

    def test_failure_assumes_valid_by_default(self, mx_lookup):
        mx_lookup.failing.add("flaky.org")
        cache = DomainReachabilityCache(mx_lookup, always_reachable=[])
        assert cache.is_reachable("flaky.org")
        assert cache.is_reachable("flaky.org")
        assert mx_lookup.calls == ["flaky.org"]

    def test_failure_assume_invalid(self, mx_lookup):
        mx_lookup.failing.add("flaky.org")
        cache = DomainReachabilityCache(
            mx_lookup, always_reachable=[], on_failure=LookupFailurePolicy.ASSUME_INVALID,
        )
        assert not cache.is_reachable("flaky.org")

    def test_failure_reject(self, mx_lookup):
        mx_lookup.failing.add("flaky.org")
        cache = DomainReachabilityCache(mx_lookup, always_reachable=[], on_failure="reject")
        with pytest.raises(DomainLookupError) as exc_info:
            cache.is_reachable("flaky.org")
        assert exc_info.value.domain == "flaky.org"


class TestCheckEmail:
    def test_bad_syntax_makes_no_lookup(self, mx_lookup):
        cache = DomainReachabilityCache(mx_lookup)
        outcome = check_email("not-an-email", cache)
        assert outcome == Invalid("invalid syntax")
        assert mx_lookup.calls == []

    def test_gmail_without_lookup(self, mx_lookup):
        cache = DomainReachabilityCache(mx_lookup)
        assert check_email("user@gmail.com", cache) == UNCHANGED
        assert mx_lookup.calls == []

    def test_unreachable_domain(self, mx_lookup):
        mx_lookup.answers["nomail.example"] = False
        cache = DomainReachabilityCache(mx_lookup)
        assert check_email("someone@nomail.example", cache) == Invalid("invalid domain (no MX record)")

    def test_value_is_never_rewritten(self, mx_lookup):
        cache = DomainReachabilityCache(mx_lookup)
        assert check_email("  Reader@Library.ORG ", cache) == UNCHANGED

    def test_non_string_skipped(self, mx_lookup):
        cache = DomainReachabilityCache(mx_lookup)
        assert check_email(12345, cache) == UNCHANGED
        assert check_email("   ", cache) == UNCHANGED

    def test_domain_queried_once_per_pass(self, mx_lookup):
        cache = DomainReachabilityCache(mx_lookup)
        check_email("a@library.org", cache)
        check_email("b@Library.org", cache)
        assert mx_lookup.calls == ["library.org"]


# ============================================================================
# DNS-OVER-HTTPS LOOKUP TESTS
# ============================================================================

def _lookup_with(handler):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return DnsOverHttpsLookup(base_url="https://dns.example/resolve", client=client)


class TestDnsOverHttpsLookup:
    def test_answer_means_reachable(self):
        seen = {}

        def handler(request):
            seen["name"] = request.url.params["name"]
            seen["type"] = request.url.params["type"]
            return httpx.Response(200, json={"Status": 0, "Answer": [{"data": "10 mx.library.org."}]})

        assert _lookup_with(handler).has_mx("library.org")
        assert seen == {"name": "library.org", "type": "MX"}

    def test_no_answer_means_unreachable(self):
        lookup = _lookup_with(lambda request: httpx.Response(200, json={"Status": 0}))
        assert not lookup.has_mx("library.org")

    def test_nxdomain_means_unreachable(self):
        lookup = _lookup_with(lambda request: httpx.Response(200, json={"Status": 3, "Answer": []}))
        assert not lookup.has_mx("nowhere.invalid")

    def test_http_error_raises_lookup_failure(self):
        lookup = _lookup_with(lambda request: httpx.Response(503, text="busy"))
        with pytest.raises(LookupFailure):
            lookup.has_mx("library.org")

    def test_malformed_json_raises_lookup_failure(self):
        lookup = _lookup_with(lambda request: httpx.Response(200, content=b"<html>"))
        with pytest.raises(LookupFailure):
            lookup.has_mx("library.org")

    def test_transport_error_raises_lookup_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(LookupFailure):
            _lookup_with(handler).has_mx("library.org")

    def test_transport_error_fails_open_through_cache(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        cache = DomainReachabilityCache(_lookup_with(handler), always_reachable=[])
        assert cache.is_reachable("library.org")
