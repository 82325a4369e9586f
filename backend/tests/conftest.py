"""
Pytest fixtures for contact ledger tests.

Provides test database setup, contact fixtures, and test client.
"""

import pytest
from contact_ledger import create_app
from contact_ledger.extensions import db
from contact_ledger.models import Customer, Supplier
from contact_ledger.models.ledger import CONTACT_CUSTOMER, TX_INVOICE
from contact_ledger.services import ledger_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LEDGER_BRANCH_SILOED': False,
        'LEDGER_RETRY_BACKOFF': 0,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()
        db.session.remove()


@pytest.fixture(scope='function')
def branch_siloed(app):
    """Run a test against a branch-siloed ledger."""
    app.config['LEDGER_BRANCH_SILOED'] = True
    yield
    app.config['LEDGER_BRANCH_SILOED'] = False


@pytest.fixture
def customer(db_session):
    """Customer with an empty ledger."""
    c = Customer(name="Ada Traders", phone="555-0100")
    db_session.add(c)
    db_session.commit()
    return c


@pytest.fixture
def other_customer(db_session):
    c = Customer(name="Bolt Retail")
    db_session.add(c)
    db_session.commit()
    return c


@pytest.fixture
def supplier(db_session):
    """Supplier with an empty ledger."""
    s = Supplier(name="Cobalt Wholesale", branch_id=1)
    db_session.add(s)
    db_session.commit()
    return s


@pytest.fixture
def post_invoice(db_session):
    """Post a customer INVOICE debit dated at the given day."""
    def _post(customer_id, amount, when, **kwargs):
        return ledger_service.post_entry(
            customer_id,
            CONTACT_CUSTOMER,
            transaction_date=when,
            transaction_type=TX_INVOICE,
            debit_amount=amount,
            **kwargs,
        )
    return _post

