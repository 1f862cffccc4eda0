"""Shared pytest fixtures for bookit tests."""

import tempfile
import os
import pytest

from bookit.database.factories import create_sqlite_database
from bookit.domain.aggregation import PostingAggregationService
from bookit.domain.booking import BookingEngine
from bookit.domain.classifier import EntryClassifier
from bookit.domain.directory import (
    AccountService,
    ContactService,
    SavingsPlanService,
    SecurityService,
)
from bookit.domain.draft import DraftService
from bookit.domain.split import SplitLinker
from bookit.domain.validation import Validator
from bookit.logging_config import reset_logging
from helpers import OWNER, movement


@pytest.fixture(autouse=True)
def _reset_logging():
    """Keep logging configuration from leaking between tests."""
    yield
    reset_logging()


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    # Create database
    db = create_sqlite_database(database_path=db_path)
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
    """Create an AccountService with a temporary database."""
    return AccountService(temp_db)


@pytest.fixture
def contact_service(temp_db):
    """Create a ContactService with a temporary database."""
    return ContactService(temp_db)


@pytest.fixture
def savings_plan_service(temp_db):
    """Create a SavingsPlanService with a temporary database."""
    return SavingsPlanService(temp_db)


@pytest.fixture
def security_service(temp_db):
    """Create a SecurityService with a temporary database."""
    return SecurityService(temp_db)


@pytest.fixture
def draft_service(temp_db):
    """Create a DraftService with a temporary database."""
    return DraftService(temp_db)


@pytest.fixture
def classifier(temp_db):
    """Create an EntryClassifier with a temporary database."""
    return EntryClassifier(temp_db)


@pytest.fixture
def split_linker(temp_db):
    """Create a SplitLinker with a temporary database."""
    return SplitLinker(temp_db)


@pytest.fixture
def validator(temp_db):
    """Create a Validator with a temporary database."""
    return Validator(temp_db)


@pytest.fixture
def booking_engine(temp_db):
    """Create a BookingEngine with a temporary database."""
    return BookingEngine(temp_db)


@pytest.fixture
def aggregation_service(temp_db):
    """Create a PostingAggregationService with a temporary database."""
    return PostingAggregationService(temp_db)


@pytest.fixture
def sample_account(account_service):
    """Create a sample EUR account for testing."""
    account_id = account_service.create_account(
        OWNER, name="Test Account", bank_name="Test Bank", iban="DE89370400440532013000"
    )
    return account_service.get_account(account_id, OWNER)


@pytest.fixture
def sample_contact(contact_service):
    """Create a sample contact with an alias pattern."""
    contact_id = contact_service.create_contact(OWNER, "Market", aliases=("*market*",))
    return contact_service.get_contact(contact_id, OWNER)


@pytest.fixture
def sample_draft(draft_service, sample_account):
    """Create a draft on the sample account with one -45.00 entry."""
    draft_id = draft_service.create_draft(
        OWNER,
        "statement.csv",
        [movement("-45.00", subject="Groceries", recipient_name="Market")],
    )
    draft_service.set_account(draft_id, OWNER, sample_account.id)
    return draft_service.require_draft(draft_id, OWNER)


@pytest.fixture
def sample_entry(draft_service, sample_draft):
    """Return the only entry of the sample draft."""
    return draft_service.list_entries(sample_draft.id, OWNER)[0]


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
