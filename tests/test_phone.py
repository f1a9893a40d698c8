"""Tests for tenant phone parsing and E.164 formatting."""

import pytest

from lease_sync.core.phone import (
    normalize_tenant_phones,
    split_and_format_phones,
    split_concatenated,
    split_on_whitespace,
    to_e164,
)


class TestToE164:
    """Tests for digit run formatting."""

    def test_ten_digits_get_us_prefix(self):
        assert to_e164("2036718335") == "+12036718335"

    def test_eleven_digits_with_leading_one(self):
        assert to_e164("12036718335") == "+12036718335"

    def test_international_length_kept(self):
        assert to_e164("442071234567") == "+442071234567"

    def test_too_short_is_empty(self):
        assert to_e164("671833") == ""

    def test_too_long_is_empty(self):
        assert to_e164("1" * 16) == ""


class TestSplitAndFormatPhones:
    """Tests for splitting a raw phone field into primary and secondary."""

    def test_single_formatted_number(self):
        """Test that punctuation and spaces inside one number are ignored."""
        assert split_and_format_phones("(203) 671-8335") == ("+12036718335", None)

    def test_slash_delimited_pair(self):
        assert split_and_format_phones("8567805758 / 6097744077") == ("+18567805758", "+16097744077")

    @pytest.mark.parametrize("raw", ["8567805758;6097744077", "8567805758,6097744077", "8567805758 | 6097744077"])
    def test_other_hard_delimiters(self, raw):
        assert split_and_format_phones(raw) == ("+18567805758", "+16097744077")

    def test_whitespace_separated_pair_with_country_code(self):
        """Test that a whitespace pair that also splits as a concatenated run keeps both numbers."""
        assert split_and_format_phones("18567805758 6097744077") == ("+18567805758", "+16097744077")

    def test_undelimited_pair(self):
        assert split_and_format_phones("85678057586097744077") == ("+18567805758", "+16097744077")

    def test_undelimited_pair_first_has_country_code(self):
        assert split_and_format_phones("185678057586097744077") == ("+18567805758", "+16097744077")

    @pytest.mark.parametrize(
        ("raw", "primary"),
        [
            ("2036718335 6718335", "+12036718335"),
            ("8567805758 12345", "+18567805758"),
            ("8567805758 609774407", "+18567805758"),
        ],
    )
    def test_whitespace_separates_number_from_invalid_tail(self, raw, primary):
        """Test that a short second number after a space is dropped, not glued on."""
        assert split_and_format_phones(raw) == (primary, None)

    def test_whitespace_separated_grouped_secondary(self):
        assert split_and_format_phones("8567805758 609 774 4077") == ("+18567805758", "+16097744077")

    def test_grouped_international_number_stays_whole(self):
        assert split_and_format_phones("+44 20 7123 4567") == ("+442071234567", None)

    def test_unsplittable_long_run_is_truncated(self):
        """Test that a long run with no safe split keeps the first 15 digits."""
        assert split_and_format_phones("185678057586097") == ("+185678057586097", None)
        assert split_and_format_phones("999999999999999999") == ("+999999999999999", None)

    def test_invalid_secondary_is_dropped(self):
        assert split_and_format_phones("2036718335 / 12") == ("+12036718335", None)

    @pytest.mark.parametrize("raw", [None, "", "abc", "12", "   /  "])
    def test_unparseable_gives_empty_primary(self, raw):
        assert split_and_format_phones(raw) == ("", None)

    def test_non_string_input(self):
        assert split_and_format_phones(2036718335) == ("+12036718335", None)


class TestSplitConcatenated:
    """Tests for the undelimited pair splitter."""

    def test_rejects_when_halves_are_not_national(self):
        assert split_concatenated("999999999999999999") is None

    def test_prefers_offset_ten(self):
        assert split_concatenated("20367183356097744077") == ("2036718335", "6097744077")


class TestSplitOnWhitespace:
    """Tests for the whitespace pair splitter."""

    def test_first_national_prefix_is_the_primary(self):
        assert split_on_whitespace("2036718335 6718335") == ("2036718335", "6718335")

    def test_grouped_first_number(self):
        assert split_on_whitespace("(203) 671-8335 671 8335") == ("2036718335", "6718335")

    def test_no_national_prefix(self):
        assert split_on_whitespace("+44 20 7123 4567") is None

    def test_single_piece(self):
        assert split_on_whitespace("203671833567183") is None


class TestNormalizeTenantPhones:
    """Tests for the tenant_phone column shapes."""

    def test_string_value(self):
        assert normalize_tenant_phones("203-671-8335") == ("+12036718335", None)

    def test_list_uses_second_entry_as_secondary(self):
        assert normalize_tenant_phones(["2036718335", "6097744077"]) == ("+12036718335", "+16097744077")

    def test_list_prefers_secondary_extracted_from_first_entry(self):
        result = normalize_tenant_phones(["8567805758 / 6097744077", "2036718335"])
        assert result == ("+18567805758", "+16097744077")

    def test_empty_list(self):
        assert normalize_tenant_phones([]) == ("", None)

    def test_unsupported_type(self):
        assert normalize_tenant_phones({"phone": "2036718335"}) == ("", None)

    def test_none(self):
        assert normalize_tenant_phones(None) == ("", None)
