"""Shared pytest fixtures for rentbook tests."""

import logging
import os
import tempfile

import pytest

from rentbook.database.factories import create_database
from rentbook.domain.account import BankAccountService, PropertyService
from rentbook.domain.ingestion import IngestionService
from rentbook.domain.matching_rule import MatchingRuleService
from rentbook.domain.reprocessing import ReprocessingService
from rentbook.domain.review import ReviewService
from rentbook.logging_config import PACKAGE_LOGGER


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Drop handlers the CLI attached to a runner's (now closed) stderr."""
    yield
    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_database(db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def account_service(temp_db):
    """Create a BankAccountService with a temporary database."""
    return BankAccountService(temp_db)


@pytest.fixture
def property_service(temp_db):
    """Create a PropertyService with a temporary database."""
    return PropertyService(temp_db)


@pytest.fixture
def ingestion_service(temp_db):
    """Create an IngestionService with a temporary database."""
    return IngestionService(temp_db)


@pytest.fixture
def reprocessing_service(temp_db):
    """Create a ReprocessingService with a temporary database."""
    return ReprocessingService(temp_db)


@pytest.fixture
def review_service(temp_db):
    """Create a ReviewService with a temporary database."""
    return ReviewService(temp_db)


@pytest.fixture
def rule_service(temp_db):
    """Create a MatchingRuleService with a temporary database."""
    return MatchingRuleService(temp_db)


@pytest.fixture
def sample_account(account_service):
    """Create a sample bank account for testing."""
    account_id = account_service.create_bank_account(name="Rent Account")
    return account_service.get_bank_account(account_id)


@pytest.fixture
def sample_property(property_service):
    """Create a sample property for testing."""
    property_id = property_service.create_property(name="12 High Street")
    return property_service.get_property(property_id)


@pytest.fixture
def make_record():
    """Build provider-native transaction dicts."""

    def _make(external_id, amount, description, created="2024-03-01T10:00:00Z", **extra):
        record = {
            "id": external_id,
            "account_id": "acc_001",
            "amount": amount,
            "currency": "GBP",
            "description": description,
            "created": created,
        }
        record.update(extra)
        return record

    return _make


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
