"""End-to-end tests for the reconciliation engine."""

from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
import json

import pytest

from ledger_recon.config import build_config
from ledger_recon.matching.engine import ReconciliationEngine
from ledger_recon.models.report import InsightKind
from ledger_recon.models.transaction import MatchStatus, MatchType
from ledger_recon.utils.exceptions import (
    InputTooLargeError,
    ReconciliationCancelled,
    ReconciliationError,
)


@pytest.fixture
def mixed_rows():
    """A realistic pair of exports with exact, fuzzy, discrepant and orphan rows."""
    rows_a = [
        {"invoice_number": "INV-100", "amount": "1000.00", "invoice_date": "2024-01-10", "customer": "Acme"},
        {"invoice_number": "INV-101", "amount": "250.00", "invoice_date": "2024-01-11", "customer": "Globex"},
        {"invoice_number": "INV-2024-001", "amount": "500", "customer": "Initech"},
        {"invoice_number": "INV-300", "amount": "75.00", "customer": "Umbrella"},
        {"invoice_number": "INV-404"},
    ]
    rows_b = [
        {"invoice_number": "INV-101", "amount": "-240.00", "invoice_date": "2024-01-11"},
        {"invoice_number": "INV-100", "amount": "-1000.00", "invoice_date": "2024-01-10"},
        {"invoice_number": "INV-2024-0O1", "amount": "-500", "supplier": "Initech Corp"},
        {"invoice_number": "ZZ-9", "amount": "-12345.00"},
    ]
    return rows_a, rows_b


class TestCoreScenarios:
    """Single-pair scenarios covering each outcome."""

    def test_exact_clean_match(self, engine):
        report = engine.reconcile_rows(
            [{"num": "INV1", "amount": 100, "date": "2024-01-01"}],
            [{"num": "INV1", "amount": -100, "date": "2024-01-01"}],
        )

        assert len(report.matched) == 1
        result = report.matched[0]
        assert result.pair.match_type is MatchType.EXACT
        assert result.status is MatchStatus.MATCHED
        assert result.discrepancies == ()
        assert result.pair.confidence == 1.0

    def test_exact_match_with_amount_discrepancy(self, engine):
        report = engine.reconcile_rows(
            [{"num": "INV1", "amount": 100, "date": "2024-01-01"}],
            [{"num": "INV1", "amount": -95, "date": "2024-01-01"}],
        )

        result = report.matched[0]
        assert result.pair.match_type is MatchType.EXACT
        assert result.status is MatchStatus.DISCREPANCY
        assert [(d.field, d.value_a, d.value_b) for d in result.discrepancies] == [
            ("amount", Decimal("100"), Decimal("-95"))
        ]

    def test_fuzzy_match_on_typo(self, engine):
        report = engine.reconcile_rows(
            [{"num": "INV-2024-001", "amount": 500, "vendor": "Acme"}],
            [{"num": "INV-2024-0O1", "amount": -500, "vendor": "Acme Corp"}],
        )

        assert len(report.matched) == 1
        result = report.matched[0]
        assert result.pair.match_type is MatchType.FUZZY
        assert result.pair.confidence > 0.7
        assert result.status is MatchStatus.MATCHED

    def test_unrelated_records_stay_unmatched(self, engine):
        report = engine.reconcile_rows(
            [{"num": "X1", "amount": 10}],
            [{"num": "Y9", "amount": 9999}],
        )

        assert report.matched == ()
        assert [r.transaction_number for r in report.unmatched_a] == ["X1"]
        assert [r.transaction_number for r in report.unmatched_b] == ["Y9"]


class TestInvariants:
    """Properties that hold for every run."""

    def test_conservation(self, engine, mixed_rows):
        report = engine.reconcile_rows(*mixed_rows)
        summary = report.summary

        assert summary.total_a == 4
        assert summary.total_b == 4
        assert summary.rejected_a == 1
        assert len(report.matched) + len(report.unmatched_a) == summary.total_a
        assert len(report.matched) + len(report.unmatched_b) == summary.total_b

    def test_no_double_matching(self, engine, mixed_rows):
        report = engine.reconcile_rows(*mixed_rows)
        ids_a = [r.record_a.id for r in report.matched]
        ids_b = [r.record_b.id for r in report.matched]

        assert len(ids_a) == len(set(ids_a))
        assert len(ids_b) == len(set(ids_b))
        assert not set(ids_a) & {r.id for r in report.unmatched_a}
        assert not set(ids_b) & {r.id for r in report.unmatched_b}

    def test_mixed_outcome(self, engine, mixed_rows):
        report = engine.reconcile_rows(*mixed_rows)
        pairs = {(r.record_a.transaction_number, r.record_b.transaction_number): r for r in report.matched}

        assert pairs[("INV-100", "INV-100")].status is MatchStatus.MATCHED
        assert pairs[("INV-101", "INV-101")].status is MatchStatus.DISCREPANCY
        assert pairs[("INV-2024-001", "INV-2024-0O1")].pair.match_type is MatchType.FUZZY
        assert [r.transaction_number for r in report.unmatched_a] == ["INV-300"]
        assert [r.transaction_number for r in report.unmatched_b] == ["ZZ-9"]

        summary = report.summary
        assert summary.matched_count == 2
        assert summary.discrepancy_count == 1
        assert summary.exact_count == 2
        assert summary.fuzzy_count == 1
        assert summary.match_rate == pytest.approx(0.5)

    def test_exact_pairs_emitted_before_fuzzy(self, engine, mixed_rows):
        report = engine.reconcile_rows(*mixed_rows)
        types = [r.pair.match_type for r in report.matched]
        assert types == sorted(types, key=lambda t: t is MatchType.FUZZY)

    def test_exact_takes_precedence(self, engine):
        """An identical number wins even when another record agrees better on amount."""
        report = engine.reconcile_rows(
            [{"num": "INV-100", "amount": 100}],
            [{"num": "INV-10O", "amount": -100}, {"num": "INV-100", "amount": -50}],
        )

        assert len(report.matched) == 1
        result = report.matched[0]
        assert result.pair.match_type is MatchType.EXACT
        assert result.record_b.amount == Decimal("-50")
        assert [r.transaction_number for r in report.unmatched_b] == ["INV-10O"]

    def test_confidence_bounds(self, engine, mixed_rows):
        report = engine.reconcile_rows(*mixed_rows)
        min_confidence = engine.config.matching.min_confidence
        for result in report.matched:
            if result.pair.match_type is MatchType.EXACT:
                assert result.pair.confidence == 1.0
            else:
                assert min_confidence < result.pair.confidence <= 1.0

    def test_idempotent(self, engine, mixed_rows):
        first = engine.reconcile_rows(*mixed_rows)
        second = engine.reconcile_rows(*mixed_rows)
        assert first.to_dict() == second.to_dict()

    def test_concurrent_runs_share_engine(self, engine, mixed_rows):
        with ThreadPoolExecutor(max_workers=4) as pool:
            reports = list(pool.map(lambda _: engine.reconcile_rows(*mixed_rows), range(4)))
        assert all(r.to_dict() == reports[0].to_dict() for r in reports)


class TestEdgeCases:
    """Tests for empty inputs, limits and faults."""

    def test_empty_inputs(self, engine):
        report = engine.reconcile_rows([], [])

        assert report.matched == ()
        assert report.summary.total_a == 0
        assert report.summary.match_rate == 0.0

    def test_one_side_empty(self, engine):
        report = engine.reconcile_rows([{"num": "INV1", "amount": 1}], [])
        assert len(report.unmatched_a) == 1
        assert report.unmatched_b == ()

    def test_size_cap(self, run_date):
        config = build_config({"matching": {"max_records_per_side": 1}})
        engine = ReconciliationEngine(config, today=run_date)

        with pytest.raises(InputTooLargeError):
            engine.reconcile_rows([{"amount": 1}, {"amount": 2}], [{"amount": -1}])

    def test_wrong_side_rejected(self, engine, make_a, make_b):
        with pytest.raises(ReconciliationError):
            engine.reconcile([make_b("b1", 1)], [make_b("b2", 1)])

    def test_scoring_fault_leaves_records_unmatched(self, engine, monkeypatch):
        def boom(record_a, record_b):
            raise RuntimeError("scorer exploded")

        monkeypatch.setattr(engine.scorer, "score", boom)
        report = engine.reconcile_rows(
            [{"num": "INV1", "amount": 1}, {"num": "INV-2024-001", "amount": 500}],
            [{"num": "INV1", "amount": -1}, {"num": "INV-2024-0O1", "amount": -500}],
        )

        assert len(report.matched) == 1
        assert report.matched[0].pair.match_type is MatchType.EXACT
        assert len(report.unmatched_a) == 1

    def test_cancellation(self, engine):
        with pytest.raises(ReconciliationCancelled):
            engine.reconcile_rows(
                [{"num": "X1", "amount": 10}],
                [{"num": "Y9", "amount": 9999}],
                should_cancel=lambda: True,
            )

    def test_date_format_per_side(self, engine):
        report = engine.reconcile_rows(
            [{"num": "INV1", "amount": 1, "date": "15/03/2024"}],
            [{"num": "INV1", "amount": -1, "date": "03/15/2024"}],
            date_format_a="DD/MM/YYYY",
            date_format_b="MM/DD/YYYY",
        )
        assert report.matched[0].status is MatchStatus.MATCHED

    def test_report_is_json_serializable(self, engine, mixed_rows):
        payload = json.loads(json.dumps(engine.reconcile_rows(*mixed_rows).to_dict()))

        assert set(payload) == {"matched", "unmatched_a", "unmatched_b", "summary", "insights"}
        assert set(payload["matched"][0]) == {
            "record_a",
            "record_b",
            "confidence",
            "match_type",
            "status",
            "historical",
            "discrepancies",
        }
        assert payload["summary"]["total_amount_a"] == "1825.00"


class TestSummary:
    """Tests for summary counts and totals."""

    def test_paired_count(self, engine, mixed_rows):
        report = engine.reconcile_rows(*mixed_rows)
        assert report.summary.paired_count == len(report.matched) == 3
        assert report.summary.paired_count == len(report.discrepancies) + report.summary.matched_count

    def test_variance_nets_opposite_legs(self, engine):
        """Negative legs on side A net to zero just like negative legs on side B."""
        report = engine.reconcile_rows(
            [{"num": "INV1", "amount": -100}, {"num": "INV2", "amount": -50}],
            [{"num": "INV1", "amount": 100}, {"num": "INV2", "amount": 50}],
        )
        assert report.summary.amount_variance == 0

    def test_variance_opposite(self, engine, mixed_rows):
        summary = engine.reconcile_rows(*mixed_rows).summary
        assert summary.amount_variance == abs(summary.total_amount_a + summary.total_amount_b)
        assert summary.to_dict()["amount_variance"] == "12260.00"

    def test_variance_absolute(self, run_date):
        config = build_config({"matching": {"sign_convention": "absolute"}})
        engine = ReconciliationEngine(config, today=run_date)

        report = engine.reconcile_rows([{"num": "INV1", "amount": 100}], [{"num": "INV1", "amount": -95}])
        assert report.summary.amount_variance == Decimal("5")


class TestHistoricalHints:
    """Engine-level behaviour of historical hints."""

    ROWS_A = [{"num": "INV-1000", "amount": 100}]
    # Two digits apart: identifier 6/8, exact amount, no vendor -> 0.675
    ROWS_B = [{"num": "INV-1099", "amount": -100}]
    HINTS = [{"invoice_number": "INV-1000", "matched_invoice_number": "INV-1099"}]

    def test_borderline_pair_lifted(self, engine, make_a, make_b):
        raw = engine.scorer.score(make_a("a1", 100, "INV-1000"), make_b("b1", -100, "INV-1099"))
        assert raw == pytest.approx(0.675)

        without = engine.reconcile_rows(self.ROWS_A, self.ROWS_B)
        lifted = engine.reconcile_rows(self.ROWS_A, self.ROWS_B, hint_rows=self.HINTS)

        assert without.matched == ()
        assert len(without.unmatched_a) == 1
        assert len(lifted.matched) == 1
        result = lifted.matched[0]
        assert result.pair.match_type is MatchType.FUZZY
        assert result.pair.historical is True
        assert result.pair.confidence == pytest.approx(0.725)

    def test_unrelated_hint_does_not_lift(self, engine):
        hints = [{"invoice_number": "INV-1000", "matched_invoice_number": "INV-5555"}]
        report = engine.reconcile_rows(self.ROWS_A, self.ROWS_B, hint_rows=hints)
        assert report.matched == ()

    def test_disabled_hints_ignored(self, run_date):
        config = build_config({"hints": {"enabled": False}})
        engine = ReconciliationEngine(config, today=run_date)

        report = engine.reconcile_rows(self.ROWS_A, self.ROWS_B, hint_rows=self.HINTS)
        assert report.matched == ()
        assert report.insights == ()

    def test_insights_for_unmatched_side_b(self, engine):
        report = engine.reconcile_rows(
            [{"num": "X1", "amount": 10}],
            [{"num": "BILL-77", "amount": -9999}],
            hint_rows=[{"invoice_number": "BILL-77", "status": "PAID", "paid_date": "2024-01-15"}],
        )

        assert len(report.insights) == 1
        insight = report.insights[0]
        assert insight.kind is InsightKind.ALREADY_PAID
        assert insight.record.transaction_number == "BILL-77"
        assert report.to_dict()["insights"][0]["kind"] == "already_paid"
