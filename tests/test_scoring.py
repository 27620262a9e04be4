"""Tests for the similarity scorer."""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from ledger_recon.config import SignConvention, build_config
from ledger_recon.matching.scoring import SimilarityScorer, amount_gap, edit_similarity


class TestEditSimilarity:
    """Tests for normalized edit similarity."""

    def test_identical_ignores_case_and_whitespace(self):
        assert edit_similarity(" INV-1 ", "inv-1") == 1.0

    def test_missing_value(self):
        assert edit_similarity(None, "INV-1") == 0.0
        assert edit_similarity("INV-1", "") == 0.0

    def test_partial(self):
        assert edit_similarity("kitten", "sitting") == pytest.approx(4 / 7)

    def test_completely_different(self):
        assert edit_similarity("X1", "Y9") == 0.0


class TestAmountGap:
    def test_opposite_sign(self):
        assert amount_gap(Decimal("100"), Decimal("-100"), SignConvention.OPPOSITE) == 0
        assert amount_gap(Decimal("100"), Decimal("-95"), SignConvention.OPPOSITE) == 5

    def test_absolute(self):
        assert amount_gap(Decimal("100"), Decimal("100"), SignConvention.ABSOLUTE) == 0
        assert amount_gap(Decimal("100"), Decimal("-95"), SignConvention.ABSOLUTE) == 5


class TestSimilarityScorer:
    """Tests for SimilarityScorer."""

    @pytest.mark.parametrize(
        "amount_b, expected",
        [
            ("-100", 1.0),
            ("-100.005", 1.0),
            ("-99.50", 0.9),
            ("-95", 0.7),
            ("-50", 0.3),
        ],
    )
    def test_amount_bands(self, scorer, make_a, make_b, amount_b, expected):
        assert scorer.amount_similarity(make_a("a1", 100), make_b("b1", amount_b)) == expected

    def test_amount_absolute_convention(self, make_a, make_b):
        config = build_config({"matching": {"sign_convention": "absolute"}})
        scorer = SimilarityScorer(config.matching)
        assert scorer.amount_similarity(make_a("a1", 100), make_b("b1", 100)) == 1.0

    @pytest.mark.parametrize(
        "days, expected",
        [
            (0, 1.0),
            (1, 0.9),
            (4, 0.7),
            (7, 0.5),
            (8, 0.2),
            (30, 0.2),
            (31, 0.0),
        ],
    )
    def test_date_proximity(self, scorer, make_a, make_b, days, expected):
        issued = date(2024, 1, 1)
        a = make_a("a1", 100, issue_date=issued)
        b = make_b("b1", -100, issue_date=issued + timedelta(days=days))
        assert scorer.date_proximity(a, b) == pytest.approx(expected)

    def test_date_proximity_missing_date(self, scorer, make_a, make_b):
        a = make_a("a1", 100, issue_date=date(2024, 1, 1))
        assert scorer.date_proximity(a, make_b("b1", -100)) == 0.0

    def test_identifier_uses_best_of_number_and_reference(self, scorer, make_a, make_b):
        a = make_a("a1", 100, "INV-1", reference="PO-778")
        b = make_b("b1", -100, "BILL-X", reference="PO-778")
        assert scorer.identifier_similarity(a, b) == 1.0

    def test_invoice_profile_ignores_dates(self, scorer, make_a, make_b):
        issued = date(2024, 1, 1)
        a = make_a("a1", 100, "INV-1", issue_date=issued)
        b = make_b("b1", -100, "INV-1", issue_date=issued)

        breakdown = scorer.breakdown(a, b)
        assert breakdown.date == 0.0
        assert breakdown.total == pytest.approx(0.8)

    def test_ledger_profile_counts_dates(self, ledger_config, make_a, make_b):
        scorer = SimilarityScorer(ledger_config.matching)
        issued = date(2024, 1, 1)
        a = make_a("a1", 100, "INV-1", issue_date=issued, counterparty_name="Acme")
        b = make_b("b1", -100, "INV-1", issue_date=issued, counterparty_name="Other")

        breakdown = scorer.breakdown(a, b)
        assert breakdown.vendor == 0.0
        assert breakdown.total == pytest.approx(1.0)

    def test_typo_in_number(self, scorer, make_a, make_b):
        """A one-character typo with matching amount and similar vendor clears the threshold."""
        a = make_a("a1", 500, "INV-2024-001", counterparty_name="Acme")
        b = make_b("b1", -500, "INV-2024-0O1", counterparty_name="Acme Corp")

        breakdown = scorer.breakdown(a, b)
        assert breakdown.identifier == pytest.approx(11 / 12)
        assert breakdown.amount == 1.0
        assert breakdown.vendor == pytest.approx(4 / 9)
        assert breakdown.total == pytest.approx(0.5 * 11 / 12 + 0.3 + 0.2 * 4 / 9)
        assert breakdown.total > 0.7

    def test_unrelated_records(self, scorer, make_a, make_b):
        assert scorer.score(make_a("a1", 10, "X1"), make_b("b1", 9999, "Y9")) == pytest.approx(0.09)

    def test_explicit_weights_override_profile(self, make_a, make_b):
        config = build_config(
            {"matching": {"weights": {"identifier": 0.0, "amount": 1.0, "date": 0.0, "vendor": 0.0}}}
        )
        scorer = SimilarityScorer(config.matching)
        assert scorer.score(make_a("a1", 10, "X1"), make_b("b1", -10, "Y9")) == 1.0

    def test_score_is_bounded(self, scorer, make_a, make_b):
        a = make_a("a1", 100, "INV-1", reference="R", counterparty_name="Acme")
        b = make_b("b1", -100, "INV-1", reference="R", counterparty_name="Acme")
        assert 0.0 <= scorer.score(a, b) <= 1.0
