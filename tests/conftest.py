from decimal import Decimal

import pytest

from gold_loan.schemes import default_schemes, find_scheme, parse_scheme
from gold_loan_web.app import create_app


@pytest.fixture
def schemes():
    return default_schemes()


@pytest.fixture
def scheme_1(schemes):
    return find_scheme(schemes, "scheme-1")


@pytest.fixture
def scheme_2(schemes):
    return find_scheme(schemes, "scheme-2")


@pytest.fixture
def scheme_4(schemes):
    return find_scheme(schemes, "scheme-4")


@pytest.fixture
def tiered_6():
    """Tiered scheme: 2% a month for six months, 3% afterwards."""
    return parse_scheme(
        {
            "slug": "tiered-6",
            "name": "Six month tiered",
            "interest_rate": "2",
            "calculation_type": "tiered",
            "scheme_config": {"validity_months": 6, "surcharge_rate": "3"},
        }
    )


@pytest.fixture
def flat_scheme():
    return parse_scheme(
        {"slug": "flat", "interest_rate": "1.5", "calculation_type": "flat"}
    )


@pytest.fixture
def principal():
    return Decimal("10000")


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'schemes.sqlite3'}"


@pytest.fixture
def app(database_url):
    app = create_app({"TESTING": True, "GOLD_LOAN_DATABASE_URL": database_url, "GOLD_LOAN_SEED_SCHEMES": True})
    yield app


@pytest.fixture
def client(app):
    return app.test_client()
