from decimal import Decimal

import pytest

from stocktaxcalc.brackets import build_brackets, evaluate, validate_brackets
from stocktaxcalc.errors import InvalidInputError
from stocktaxcalc.schemas import TaxBracket


class TestEvaluate:
    @pytest.mark.parametrize(
        "income, tax, rate",
        [
            ("0", "0", "0.15"),
            ("50000", "7500", "0.15"),
            ("70000", "10500", "0.15"),
            ("70000.01", "10500.002", "0.20"),
            ("150000", "26500", "0.20"),
            ("550000", "134500", "0.27"),
            ("1900000", "607000", "0.35"),
            ("2000000", "647000", "0.40"),
        ],
    )
    def test_tr_2025_schedule(self, brackets, income, tax, rate):
        res = evaluate(Decimal(income), brackets)
        assert res.tax == Decimal(tax)
        assert res.marginal_rate == Decimal(rate)

    def test_limit_belongs_to_lower_bracket(self, brackets):
        res = evaluate(Decimal("70000"), brackets)
        assert res.bracket_index == 0
        assert res.upper_limit == Decimal("70000")

    def test_top_bracket_is_open_ended(self, brackets):
        res = evaluate(Decimal("10000000"), brackets)
        assert res.bracket_index == len(brackets) - 1
        assert res.upper_limit is None
        assert res.lower_bound == Decimal("1900000")

    def test_continuous_at_every_limit(self, brackets):
        for i, b in enumerate(brackets[:-1]):
            assert evaluate(b.upper_limit, brackets).tax == brackets[i + 1].tax_at_lower_bound

    def test_built_schedule_continuous_at_every_limit(self):
        rows = build_brackets([("1000.50", "0.1"), ("2500.25", "0.175"), ("9999.99", "0.3"), (None, "0.45")])
        for i, b in enumerate(rows[:-1]):
            assert evaluate(b.upper_limit, rows).tax == rows[i + 1].tax_at_lower_bound

    def test_monotonic(self, brackets):
        points = [Decimal(x) for x in ("0", "1", "69999", "70000", "100000", "550001", "3000000")]
        taxes = [evaluate(p, brackets).tax for p in points]
        assert taxes == sorted(taxes)

    def test_negative_income_rejected(self, brackets):
        with pytest.raises(InvalidInputError):
            evaluate(Decimal("-0.01"), brackets)


class TestValidate:
    def test_empty(self):
        with pytest.raises(InvalidInputError):
            validate_brackets([])

    def test_not_open_ended(self):
        rows = [TaxBracket(upper_limit=Decimal("100"), marginal_rate=Decimal("0.1"))]
        with pytest.raises(InvalidInputError, match="open-ended"):
            validate_brackets(rows)

    def test_discontinuous(self):
        rows = [
            TaxBracket(upper_limit=Decimal("100"), marginal_rate=Decimal("0.1")),
            TaxBracket(upper_limit=None, marginal_rate=Decimal("0.2"), tax_at_lower_bound=Decimal("11")),
        ]
        with pytest.raises(InvalidInputError, match="continuity"):
            validate_brackets(rows)

    def test_decreasing_rate(self):
        with pytest.raises(InvalidInputError, match="decreases"):
            build_brackets([(Decimal("100"), Decimal("0.2")), (None, Decimal("0.1"))])

    def test_limits_not_increasing(self):
        with pytest.raises(InvalidInputError, match="increasing"):
            build_brackets([(Decimal("100"), Decimal("0.1")), (Decimal("100"), Decimal("0.2")), (None, Decimal("0.3"))])

    def test_open_ended_in_the_middle(self):
        rows = [
            TaxBracket(upper_limit=None, marginal_rate=Decimal("0.1")),
            TaxBracket(upper_limit=None, marginal_rate=Decimal("0.2")),
        ]
        with pytest.raises(InvalidInputError):
            validate_brackets(rows)

    def test_first_row_must_start_at_zero(self):
        rows = [TaxBracket(upper_limit=None, marginal_rate=Decimal("0.1"), tax_at_lower_bound=Decimal("5"))]
        with pytest.raises(InvalidInputError, match="zero"):
            validate_brackets(rows)

    def test_build_accrues_lower_bound_tax(self):
        rows = build_brackets([(100, "0.1"), (300, "0.2"), (None, "0.5")])
        assert [r.tax_at_lower_bound for r in rows] == [Decimal("0"), Decimal("10"), Decimal("50")]
        assert evaluate(Decimal("400"), rows).tax == Decimal("100")

    def test_single_flat_bracket(self):
        rows = build_brackets([(None, "0.25")])
        assert evaluate(Decimal("1000"), rows).tax == Decimal("250")
