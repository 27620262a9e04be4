"""Pytest configuration and fixtures."""

from datetime import date
from decimal import Decimal
import logging

import pytest

from ledger_recon.config import build_config
from ledger_recon.matching.engine import ReconciliationEngine
from ledger_recon.matching.scoring import SimilarityScorer
from ledger_recon.models.transaction import Side, TransactionRecord
from ledger_recon.utils.logging_config import PACKAGE_LOGGER

RUN_DATE = date(2024, 6, 30)


@pytest.fixture
def config():
    """Default configuration (invoice profile)."""
    return build_config()


@pytest.fixture
def ledger_config():
    """Configuration using the ledger profile, where issue dates count."""
    return build_config({"matching": {"profile": "ledger"}})


@pytest.fixture
def engine(config):
    """Engine with a fixed run date."""
    return ReconciliationEngine(config, today=RUN_DATE)


@pytest.fixture
def scorer(config):
    return SimilarityScorer(config.matching)


def _make_record(side, record_id, amount, number="", **kwargs):
    return TransactionRecord(
        id=record_id,
        side=side,
        amount=Decimal(str(amount)),
        transaction_number=number,
        **kwargs,
    )


@pytest.fixture
def make_a():
    """Factory for side-A records: make_a("a1", 100, "INV1", issue_date=...)."""

    def factory(record_id, amount, number="", **kwargs):
        return _make_record(Side.A, record_id, amount, number, **kwargs)

    return factory


@pytest.fixture
def make_b():
    """Factory for side-B records."""

    def factory(record_id, amount, number="", **kwargs):
        return _make_record(Side.B, record_id, amount, number, **kwargs)

    return factory


@pytest.fixture
def run_date():
    return RUN_DATE


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Drop handlers installed by setup_logging so streams never outlive a test."""
    yield
    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers = []
    logger.setLevel(logging.NOTSET)
