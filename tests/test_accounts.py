"""
Test suite for account identifiers
"""

import pytest

from token_ledger.accounts import (
    ZERO_ADDRESS, is_hex_address, normalize_account, is_zero_account
)


class TestAccounts:
    """Test account normalisation"""

    def test_zero_address(self):
        """Test the reserved zero account"""
        assert ZERO_ADDRESS == "0x0000000000000000000000000000000000000000"
        assert is_zero_account(ZERO_ADDRESS)
        assert is_zero_account("0X" + "0" * 40)
        assert not is_zero_account("0x" + "0" * 39 + "1")

    def test_hex_addresses_lowercased(self):
        """Test that checksum casing collapses to one identifier"""
        checksummed = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"
        assert is_hex_address(checksummed)
        assert normalize_account(checksummed) == checksummed.lower()

    def test_opaque_identifiers_kept(self):
        """Test that non-address identifiers are used verbatim"""
        assert normalize_account("Alice") == "Alice"
        assert normalize_account("0x1234") == "0x1234"
        assert not is_hex_address("0x1234")

    def test_invalid_identifiers(self):
        """Test rejection of empty or non-string identifiers"""
        for value in ("", "   ", None, 42, b"0x00"):
            with pytest.raises(ValueError):
                normalize_account(value)

        with pytest.raises(ValueError, match="spender"):
            normalize_account("", "spender")
