import datetime as dt
import threading

from cgtledger.ledger import LedgerDatabase
from cgtledger.portfolio import Portfolio
from cgtledger.settlement.errors import AlreadySettled, InsufficientInventory
from fixtures import StaticRates


def _race(targets):
    barrier = threading.Barrier(len(targets))
    outcomes = []
    lock = threading.Lock()

    def run(fn):
        barrier.wait()
        try:
            value = fn()
        except Exception as exc:  # collected for assertions
            value = exc
        with lock:
            outcomes.append(value)

    threads = [threading.Thread(target=run, args=(fn,)) for fn in targets]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)
    return outcomes


def _open(tmp_path):
    db = LedgerDatabase(f"sqlite:///{tmp_path / 'race.db'}")
    db.create_schema()
    return db


def test_competing_sales_never_over_allocate(tmp_path):
    db = _open(tmp_path)
    try:
        setup = Portfolio(db, StaticRates())
        setup.record_acquisition(dt.date(2023, 1, 10), "GOOG", 10, 10000)
        a = setup.record_disposal(dt.date(2023, 6, 1), 7, 10500)
        b = setup.record_disposal(dt.date(2023, 6, 2), 7, 10500)

        # Each worker gets its own Portfolio and sessions over the same file.
        p1 = Portfolio(db, StaticRates())
        p2 = Portfolio(db, StaticRates())
        outcomes = _race([lambda: p1.settle(a.id), lambda: p2.settle(b.id)])

        successes = [o for o in outcomes if isinstance(o, list)]
        failures = [o for o in outcomes if isinstance(o, Exception)]
        assert len(successes) == 1
        assert len(failures) == 1
        assert isinstance(failures[0], InsufficientInventory)
        assert failures[0].short_by == 4

        assert sum(x.quantity for x in setup.allocations()) == 7
        assert [s.settled for s in setup.disposals()].count(True) == 1
    finally:
        db.dispose()


def test_same_sale_settled_concurrently_only_once(tmp_path):
    db = _open(tmp_path)
    try:
        setup = Portfolio(db, StaticRates())
        setup.record_acquisition(dt.date(2023, 1, 10), "GOOG", 10, 10000)
        sale = setup.record_disposal(dt.date(2023, 6, 1), 5, 10500)

        outcomes = _race([lambda: setup.settle(sale.id)] * 2)

        successes = [o for o in outcomes if isinstance(o, list)]
        failures = [o for o in outcomes if isinstance(o, Exception)]
        assert len(successes) == 1
        assert len(failures) == 1
        assert isinstance(failures[0], AlreadySettled)
        assert sum(x.quantity for x in setup.allocations(sale.id)) == 5
        assert len(setup.settlement_history()) == 1
    finally:
        db.dispose()
