import datetime
from decimal import Decimal

import pytest

from stocktaxcalc.errors import InvalidInputError
from stocktaxcalc.schemas import Dividend
from stocktaxcalc.summary import summarize

from conftest import make_event

LIMIT = Decimal("18000")


def _dividend(gross: str, withholding: str = "0", rate: str = "1") -> Dividend:
    return Dividend(
        id=f"div-{gross}",
        ticker="MSFT",
        date=datetime.date(2024, 5, 1),
        gross_amount_foreign=Decimal(gross),
        withholding_foreign=Decimal(withholding),
        conversion_rate=Decimal(rate),
    )


class TestDividendCliff:
    def test_at_limit_is_exempt(self, brackets):
        s = summarize([], [_dividend("18000", "2700")], LIMIT, brackets)
        assert s.dividends_exempt
        assert s.total_dividend_income == Decimal("18000")
        assert s.total_taxable_income == Decimal("0")
        assert s.computed_tax == Decimal("0")
        assert s.foreign_tax_credit == Decimal("0")
        assert s.final_payable == Decimal("0")

    def test_one_cent_above_taxes_everything(self, brackets):
        s = summarize([], [_dividend("18000.01", "2700")], LIMIT, brackets)
        assert not s.dividends_exempt
        assert s.total_taxable_income == Decimal("18000.01")
        assert s.computed_tax == Decimal("18000.01") * Decimal("0.15")
        assert s.foreign_tax_credit == Decimal("2700")

    def test_dividends_converted_at_their_own_rate(self, brackets):
        s = summarize([], [_dividend("600", "90", "32.00"), _dividend("10", "0", "35")], LIMIT, brackets)
        assert s.total_dividend_income == Decimal("19550")
        assert s.total_withholding_local == Decimal("2880")


class TestCapitalGains:
    def test_gains_and_losses_net(self, brackets):
        s = summarize([make_event("5000"), make_event("-2000")], [], LIMIT, brackets)
        assert s.total_capital_gain == Decimal("3000")
        assert s.total_taxable_income == Decimal("3000")
        assert s.computed_tax == Decimal("450")

    def test_net_loss_floors_at_zero(self, brackets):
        s = summarize([make_event("-5000")], [_dividend("20000")], LIMIT, brackets)
        assert s.total_capital_gain == Decimal("-5000")
        assert s.taxable_capital_gain == Decimal("0")
        # the loss does not offset dividend income
        assert s.total_taxable_income == Decimal("20000")

    def test_nothing_at_all(self, brackets):
        s = summarize([], [], LIMIT, brackets)
        assert s.total_taxable_income == Decimal("0")
        assert s.final_payable == Decimal("0")
        assert s.marginal_rate_percent == Decimal("15")


class TestForeignTaxCredit:
    def test_credit_capped_at_computed_tax(self, brackets):
        s = summarize([], [_dividend("20000", "5000")], LIMIT, brackets)
        assert s.computed_tax == Decimal("3000")
        assert s.foreign_tax_credit == Decimal("3000")
        assert s.final_payable == Decimal("0")

    def test_no_credit_when_exempt(self, brackets):
        s = summarize([make_event("100000")], [_dividend("1000", "150")], LIMIT, brackets)
        assert s.dividends_exempt
        assert s.foreign_tax_credit == Decimal("0")
        assert s.final_payable == s.computed_tax

    def test_final_payable_never_negative(self, brackets):
        s = summarize([make_event("-100")], [_dividend("18001", "18001")], LIMIT, brackets)
        assert s.final_payable >= 0
        assert s.foreign_tax_credit <= s.computed_tax


def test_marginal_rate_reported_as_percent(brackets):
    s = summarize([make_event("100000")], [], LIMIT, brackets)
    assert s.marginal_rate_percent == Decimal("20")
    assert s.marginal_rate == Decimal("0.2")


def test_summarize_is_pure(brackets):
    events = [make_event("12345.67")]
    divs = [_dividend("19000", "100")]
    assert summarize(events, divs, LIMIT, brackets) == summarize(events, divs, LIMIT, brackets)


def test_negative_limit_rejected(brackets):
    with pytest.raises(InvalidInputError):
        summarize([], [], Decimal("-1"), brackets)


def test_invalid_dividend_rejected(brackets):
    bad = Dividend.model_construct(
        id="bad",
        ticker="MSFT",
        date=datetime.date(2024, 5, 1),
        gross_amount_foreign=Decimal("0"),
        withholding_foreign=Decimal("0"),
        conversion_rate=Decimal("1"),
    )
    with pytest.raises(InvalidInputError, match="gross_amount_foreign"):
        summarize([], [bad], LIMIT, brackets)
