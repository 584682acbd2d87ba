"""
Tests for vndc_core.tiers — the fixed lock-tier table.

Covers:
  - Default tier durations and base APYs
  - Lookup of unknown / malformed tier ids
  - Table immutability and iteration order
  - Custom tables and validation
"""

import pytest

from vndc_core.errors import InvalidTier, StakingError
from vndc_core.tiers import (
    DEFAULT_TIERS,
    SECONDS_PER_DAY,
    StakeTier,
    Tier,
    TierTable,
)


@pytest.fixture
def table():
    return TierTable()


class TestDefaultTiers:
    def test_tier_1(self, table):
        t = table.get_tier(1)
        assert t.lock_duration == 30 * SECONDS_PER_DAY
        assert t.base_apy_bps == 800

    def test_tier_2(self, table):
        t = table.get_tier(StakeTier.DAYS_90)
        assert t.lock_duration == 90 * SECONDS_PER_DAY
        assert t.base_apy_bps == 1200

    def test_tier_3(self, table):
        t = table.get_tier(3)
        assert t.lock_days == 180
        assert t.apy == 1800

    def test_ids_sorted(self, table):
        assert table.ids() == [1, 2, 3]
        assert [t.tier_id for t in table] == [1, 2, 3]
        assert len(table) == 3

    def test_contains(self, table):
        assert 2 in table
        assert 0 not in table
        assert 4 not in table


class TestInvalidTier:
    @pytest.mark.parametrize("tier_id", [0, 4, -1, 99])
    def test_unknown_ids_rejected(self, table, tier_id):
        with pytest.raises(InvalidTier) as exc:
            table.get_tier(tier_id)
        assert "StakingContract: Invalid tier" in str(exc.value)

    def test_non_numeric_rejected(self, table):
        with pytest.raises(InvalidTier):
            table.get_tier("gold")

    def test_none_rejected(self, table):
        with pytest.raises(InvalidTier):
            table.get_tier(None)

    def test_invalid_tier_is_staking_error(self, table):
        with pytest.raises(StakingError):
            table.get_tier(7)

    def test_invalid_tier_is_value_error(self, table):
        with pytest.raises(ValueError):
            table.get_tier(7)


class TestImmutability:
    def test_tier_is_frozen(self, table):
        t = table.get_tier(1)
        with pytest.raises(AttributeError):
            t.base_apy_bps = 5000

    def test_mapping_is_read_only(self, table):
        with pytest.raises(TypeError):
            table._tiers[4] = Tier(4, 1, 1)

    def test_repeated_lookups_identical(self, table):
        assert table.get_tier(1) == table.get_tier(1)


class TestCustomTable:
    def test_custom_tiers(self):
        table = TierTable((Tier(1, 7 * SECONDS_PER_DAY, 500),))
        assert table.get_tier(1).lock_days == 7
        with pytest.raises(InvalidTier):
            table.get_tier(2)

    def test_duplicate_ids_rejected(self):
        with pytest.raises(ValueError):
            TierTable((Tier(1, 10, 100), Tier(1, 20, 200)))

    def test_negative_parameters_rejected(self):
        with pytest.raises(ValueError):
            TierTable((Tier(1, -10, 100),))

    def test_default_constant_matches_table(self):
        assert tuple(TierTable()) == DEFAULT_TIERS

    def test_to_dict(self):
        d = TierTable().get_tier(2).to_dict()
        assert d == {
            "tier": 2,
            "lock_duration": 90 * SECONDS_PER_DAY,
            "lock_days": 90,
            "base_apy_bps": 1200,
        }
