import pytest

from sf_informal_review.normalize import address_tokens, parse_address, query_terms


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("0000 1625 PACIFIC             AV0007", "1625 PACIFIC AV #7"),
        ("0000 0990 GREEN                ST0000", "990 GREEN ST"),
        ("0000 2001 POLK                ST0405", "2001 POLK ST #405"),
        ("0000 0100 SEA CLIFF           AV0000", "100 SEA CLIFF AV"),
        ("0000 0560 20TH                ST0000", "560 20TH ST"),
        ("1139D1139BGREEN               ST0000", "1139 GREEN ST"),
    ],
)
def test_parse_address_positional_format(raw, expected):
    assert parse_address(raw) == expected


def test_parse_address_output_has_no_double_spaces_or_leading_zeros():
    out = parse_address("0000   0042    LOCKSLEY         AV   0003")
    assert "  " not in out
    assert not out.startswith("0")


def test_street_name_starting_with_suffix_letters_is_not_split():
    assert parse_address("0000 0700 STANYAN             ST0000") == "700 STANYAN ST"


def test_full_width_name_without_space_before_suffix():
    assert parse_address("0000 1001 SOUTH VAN NESSAV0000") == "1001 SOUTH VAN NESS AV"
    assert parse_address("0000 0200 STANYANBLVD0012") == "200 STANYAN BLVD #12"


def test_trailing_text_after_unit_stays_in_unit():
    assert parse_address("0000 0990 GREEN ST 0000 REAR") == "990 GREEN ST #REAR"


def test_parse_address_fallback_never_raises():
    assert parse_address("0042 SOMEWHERE UNKNOWN") == "42 SOMEWHERE UNKNOWN"
    assert parse_address("   ") == ""
    assert parse_address(None) == ""
    # Junk still returns a string.
    assert isinstance(parse_address("###"), str)


def test_query_terms_drop_suffixes_region_and_zip():
    assert query_terms("1625 Pacific Ave, San Francisco, CA 94109") == ["1625", "PACIFIC"]


def test_query_terms_rejoin_spaced_ordinals():
    assert query_terms("560 20 th Street") == ["560", "20TH"]
    # "20 ST" is a street number then a suffix, not an ordinal.
    assert query_terms("20 st") == ["20"]


def test_query_terms_strip_like_wildcards():
    # "%" and "_" would act as wildcards in a SoQL like clause.
    assert query_terms("1625 Pacific_Ave 100%") == ["1625", "PACIFIC", "100"]
    assert query_terms("%_%") == []


def test_query_terms_only_suffixes_is_empty():
    assert query_terms("Street Ave, SF") == []


def test_address_tokens_match_across_raw_and_canonical():
    raw = "0000 1625 PACIFIC             AV0007"
    assert address_tokens(raw) == address_tokens("1625 PACIFIC AV #7")
    assert "AV" not in address_tokens(raw)
