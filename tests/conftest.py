import sys
from pathlib import Path

import pytest

# Ensure 'src' and 'tests' are on sys.path for imports
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
TESTS = ROOT / "tests"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))
if str(TESTS) not in sys.path:
    sys.path.insert(0, str(TESTS))

from cgtledger.ledger import LedgerDatabase  # noqa: E402
from cgtledger.portfolio import Portfolio  # noqa: E402
from fixtures import StaticRates, sequential_ids  # noqa: E402


@pytest.fixture()
def database(tmp_path):
    db = LedgerDatabase(f"sqlite:///{tmp_path / 'ledger.db'}")
    db.create_schema()
    yield db
    db.dispose()


@pytest.fixture()
def rates():
    return StaticRates()


@pytest.fixture()
def portfolio(database, rates):
    return Portfolio(database, rates, id_factory=sequential_ids())
