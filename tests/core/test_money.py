from decimal import Decimal

from src.shared.utils.money import percent_of, round_money, sum_money


class TestRoundMoney:
    """Tests for round_money function."""

    def test_half_up_on_fee_amounts(self):
        assert round_money("1499.995") == Decimal("1500.00")
        assert round_money(Decimal("2500.125")) == Decimal("2500.13")
        assert round_money("2500.124") == Decimal("2500.12")

    def test_int_and_float_inputs(self):
        assert round_money(5000) == Decimal("5000.00")
        assert round_money(0.1 + 0.2) == Decimal("0.30")

    def test_always_two_places(self):
        assert str(round_money(10)) == "10.00"
        assert str(round_money("7.5")) == "7.50"


class TestSumMoney:
    """Tests for sum_money function."""

    def test_sums_mixed_inputs_and_skips_none(self):
        assert sum_money([Decimal("1000.10"), "250.20", 100, None]) == Decimal("1350.30")

    def test_empty_is_zero(self):
        assert sum_money([]) == Decimal("0.00")


class TestPercentOf:
    """Tests for percent_of function."""

    def test_collection_rate(self):
        assert percent_of(Decimal("7500"), Decimal("10000")) == 75

    def test_rounds_half_up(self):
        assert percent_of(Decimal("1"), Decimal("8")) == 13  # 12.5
        assert percent_of(Decimal("1"), Decimal("3")) == 33

    def test_zero_whole(self):
        assert percent_of(Decimal("0"), Decimal("0")) == 0
        assert percent_of(Decimal("5"), Decimal("0")) == 0
