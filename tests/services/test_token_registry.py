"""Tests for TokenRegistryService: dense slots, limits and membership."""

import pytest

from payroll_kernel.domain.disbursement import NATIVE_ASSET
from payroll_kernel.exceptions import (
    InvalidArgumentError,
    TokenAlreadyExistsError,
    TokenLimitExceededError,
    TokenNotFoundError,
    UnauthorizedError,
)
from payroll_kernel.services.token_registry import TokenRegistryService
from tests.conftest import ALICE, OWNER


@pytest.fixture
def registry(session, clock):
    return TokenRegistryService(session, clock)


def _slots(registry):
    return [(t.address, t.slot) for t in registry.list_tokens()]


class TestAddToken:

    def test_tokens_fill_slots_in_order(self, registry):
        assert registry.add_token(OWNER, "0xa", 100).slot == 0
        assert registry.add_token(OWNER, "0xb", 200).slot == 1
        assert _slots(registry) == [("0xa", 0), ("0xb", 1)]
        assert registry.get_token("0xb").usd_rate_cents == 200

    def test_only_owner(self, registry):
        with pytest.raises(UnauthorizedError) as exc_info:
            registry.add_token(ALICE, "0xa", 100)
        assert exc_info.value.required_role == "owner"
        assert registry.token_count() == 0

    def test_duplicate_rejected(self, registry):
        registry.add_token(OWNER, "0xa", 100)
        with pytest.raises(TokenAlreadyExistsError):
            registry.add_token(OWNER, "0xa", 300)
        assert registry.get_token("0xa").usd_rate_cents == 100

    def test_native_asset_name_rejected(self, registry):
        with pytest.raises(InvalidArgumentError) as exc_info:
            registry.add_token(OWNER, NATIVE_ASSET, 100)
        assert exc_info.value.argument == "address"
        assert not registry.is_token_handled(NATIVE_ASSET)
        assert registry.token_count() == 0

    def test_limit_plus_one_rejected(self, registry):
        registry.set_limit(OWNER, 2)
        registry.add_token(OWNER, "0xa", 1)
        registry.add_token(OWNER, "0xb", 1)
        with pytest.raises(TokenLimitExceededError) as exc_info:
            registry.add_token(OWNER, "0xc", 1)
        assert exc_info.value.limit == 2
        assert registry.token_count() == 2

    def test_default_limit_is_twenty(self, registry):
        for i in range(20):
            registry.add_token(OWNER, f"0x{i:02d}", 1)
        with pytest.raises(TokenLimitExceededError):
            registry.add_token(OWNER, "0xextra", 1)

    @pytest.mark.parametrize("address,rate", [("", 1), ("0xa", -1)])
    def test_invalid_arguments(self, registry, address, rate):
        with pytest.raises(InvalidArgumentError):
            registry.add_token(OWNER, address, rate)


class TestRemoveToken:

    @pytest.fixture
    def three(self, registry):
        for address in ("0xa", "0xb", "0xc"):
            registry.add_token(OWNER, address, 1)
        return registry

    def test_last_token_moves_into_vacated_slot(self, three):
        three.remove_token(OWNER, "0xa")
        assert _slots(three) == [("0xc", 0), ("0xb", 1)]
        assert not three.is_token_handled("0xa")

    def test_removing_the_last_slot_just_shrinks(self, three):
        three.remove_token(OWNER, "0xc")
        assert _slots(three) == [("0xa", 0), ("0xb", 1)]

    def test_removed_address_can_be_added_again(self, three):
        three.remove_token(OWNER, "0xb")
        assert three.add_token(OWNER, "0xb", 5).slot == 2
        assert three.token_count() == 3

    def test_removing_sole_token_leaves_it_unhandled(self, registry):
        registry.add_token(OWNER, "0xa", 1)
        registry.remove_token(OWNER, "0xa")
        assert registry.token_count() == 0
        assert not registry.is_token_handled("0xa")

    def test_empty_registry(self, registry):
        with pytest.raises(TokenNotFoundError):
            registry.remove_token(OWNER, "0xa")

    def test_unknown_token(self, three):
        with pytest.raises(TokenNotFoundError) as exc_info:
            three.remove_token(OWNER, "0xz")
        assert exc_info.value.address == "0xz"
        assert three.token_count() == 3

    def test_only_owner(self, three):
        with pytest.raises(UnauthorizedError):
            three.remove_token(ALICE, "0xa")


class TestLimitAndQueries:

    def test_limit_cannot_drop_below_count(self, registry):
        registry.add_token(OWNER, "0xa", 1)
        registry.add_token(OWNER, "0xb", 1)
        with pytest.raises(InvalidArgumentError):
            registry.set_limit(OWNER, 1)
        registry.set_limit(OWNER, 2)
        assert registry.get_limit() == 2

    def test_negative_limit_rejected(self, registry):
        with pytest.raises(InvalidArgumentError):
            registry.set_limit(OWNER, -1)

    def test_set_limit_only_owner(self, registry):
        with pytest.raises(UnauthorizedError):
            registry.set_limit(ALICE, 5)

    def test_empty_registry_handles_nothing(self, registry):
        assert registry.is_token_handled("0xa") is False

    def test_is_token_handled_is_repeatable(self, registry):
        registry.add_token(OWNER, "0xa", 1)
        results = [registry.is_token_handled("0xa") for _ in range(3)]
        assert results == [True, True, True]
        assert registry.token_count() == 1
        assert _slots(registry) == [("0xa", 0)]

    def test_get_unknown_token(self, registry):
        with pytest.raises(TokenNotFoundError):
            registry.get_token("0xa")

    def test_rates_by_address(self, registry):
        registry.add_token(OWNER, "0xa", 1)
        registry.add_token(OWNER, "0xb", 7)
        assert registry.rates_by_address() == {"0xa": 1, "0xb": 7}
