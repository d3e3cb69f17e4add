"""
Unit tests for toolchain identity parsing and formatting.
"""

import pytest

from interpkit.core.exceptions import (
    InvalidFormatError,
    ToolchainParseError,
    UnknownImplementationError,
)
from interpkit.toolchain.identity import ToolchainId, ToolchainRequest


class TestToolchainIdParse:
    """Tests for ToolchainId.parse."""

    def test_full_form(self):
        tc = ToolchainId.parse("cpython@3.11.4")

        assert tc.implementation == "cpython"
        assert tc.version == (3, 11, 4)
        assert tc.variant is None

    def test_missing_patch_defaults_to_zero(self):
        assert ToolchainId.parse("pypy@3.10").version == (3, 10, 0)

    def test_bare_version_implies_cpython(self):
        assert ToolchainId.parse("3.12.1") == ToolchainId("cpython", (3, 12, 1))

    def test_variant(self):
        tc = ToolchainId.parse("cpython@3.12.1+debug")

        assert tc.variant == "debug"
        assert str(tc) == "cpython@3.12.1+debug"

    def test_implementation_is_case_insensitive(self):
        assert ToolchainId.parse("CPython@3.11.4").implementation == "cpython"

    def test_custom_name(self):
        assert ToolchainId.parse("custom-corp@3.11.2").implementation == "custom-corp"

    @pytest.mark.parametrize(
        "text",
        ["cpython@3", "cpython@3.x", "cpython@3.11.4.1", "3", "", "cpython@", "a@b@3.11"],
    )
    def test_invalid_format(self, text):
        with pytest.raises(InvalidFormatError):
            ToolchainId.parse(text)

    @pytest.mark.parametrize("text", ["jython@2.7.3", "corp@3.11.2"])
    def test_unknown_implementation(self, text):
        with pytest.raises(UnknownImplementationError) as exc_info:
            ToolchainId.parse(text)

        assert isinstance(exc_info.value, ToolchainParseError)

    def test_invalid_variant(self):
        with pytest.raises(InvalidFormatError, match="variant"):
            ToolchainId.parse("cpython@3.11.4+")


class TestToolchainIdFormat:
    """Tests for formatting, ordering and the parse/format round trip."""

    @pytest.mark.parametrize(
        "tc",
        [
            ToolchainId("cpython", (3, 11, 4)),
            ToolchainId("pypy", (3, 10, 14)),
            ToolchainId("cpython", (3, 12, 0), "freethreaded"),
            ToolchainId("custom-corp", (2, 7, 18)),
        ],
    )
    def test_round_trip(self, tc):
        assert ToolchainId.parse(str(tc)) == tc

    def test_relaxed(self):
        assert ToolchainId.parse("cpython@3.11.4").relaxed() == "cpython@3.11"
        assert ToolchainId.parse("pypy@3.10.14+jit").relaxed() == "pypy@3.10+jit"

    def test_version_ordering_is_numeric(self):
        older = ToolchainId.parse("cpython@3.9.18")
        newer = ToolchainId.parse("cpython@3.11.2")

        assert older.sort_key() < newer.sort_key()

    def test_listing_key_puts_newest_first(self):
        ids = [
            ToolchainId.parse("pypy@3.10.14"),
            ToolchainId.parse("cpython@3.9.18"),
            ToolchainId.parse("cpython@3.11.2"),
        ]

        ordered = sorted(ids, key=lambda t: t.listing_key())

        assert [str(t) for t in ordered] == [
            "cpython@3.11.2",
            "cpython@3.9.18",
            "pypy@3.10.14",
        ]

    def test_hashable(self):
        assert len({ToolchainId.parse("3.11.4"), ToolchainId.parse("cpython@3.11.4")}) == 1

    def test_rejects_short_version_tuple(self):
        with pytest.raises(ValueError):
            ToolchainId("cpython", (3, 11))

    @pytest.mark.parametrize("variant", ["free threaded", "+debug", ""])
    def test_rejects_variant_that_cannot_round_trip(self, variant):
        with pytest.raises(ValueError, match="invalid variant"):
            ToolchainId("cpython", (3, 13, 9), variant)


class TestToolchainRequest:
    """Tests for ToolchainRequest."""

    def test_bare_version_leaves_implementation_open(self):
        request = ToolchainRequest.parse("3.11")

        assert request.implementation is None
        assert (request.major, request.minor, request.patch) == (3, 11, None)

    def test_bare_implementation(self):
        request = ToolchainRequest.parse("pypy")

        assert request.implementation == "pypy"
        assert request.major is None

    def test_major_only(self):
        request = ToolchainRequest.parse("cpython@3")

        assert request.major == 3
        assert request.minor is None

    def test_missing_version_after_at(self):
        with pytest.raises(InvalidFormatError, match="missing version"):
            ToolchainRequest.parse("cpython@")

    def test_unknown_bare_word(self):
        with pytest.raises(UnknownImplementationError):
            ToolchainRequest.parse("jython")

    def test_matches(self):
        request = ToolchainRequest.parse("3.11")

        assert request.matches(ToolchainId.parse("cpython@3.11.4"))
        assert request.matches(ToolchainId.parse("pypy@3.11.0"))
        assert not request.matches(ToolchainId.parse("cpython@3.12.1"))

    def test_matches_variant_exactly(self):
        request = ToolchainRequest.parse("cpython@3.12+debug")

        assert request.matches(ToolchainId.parse("cpython@3.12.1+debug"))
        assert not request.matches(ToolchainId.parse("cpython@3.12.1"))

    def test_exact_request_to_id(self):
        request = ToolchainRequest.parse("cpython@3.11.4")

        assert request.is_exact
        assert request.to_id() == ToolchainId.parse("cpython@3.11.4")

    def test_partial_request_to_id_fails(self):
        with pytest.raises(ValueError):
            ToolchainRequest.parse("3.11").to_id()

    def test_str_keeps_original_text(self):
        assert str(ToolchainRequest.parse(" cpython@3.11 ")) == "cpython@3.11"
        assert str(ToolchainRequest(implementation="pypy", major=3)) == "pypy@3"
