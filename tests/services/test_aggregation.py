from arap.models.account import PaymentStatus
from arap.models.money import Money
from arap.services.aggregation import compute_status_breakdown, compute_totals


def test_totals_over_creditors(make_creditor):
    snapshot = (
        make_creditor(account_id="c1", balance_cents=120000, due_in_days=-5),
        make_creditor(account_id="c2", balance_cents=50000, due_in_days=15),
        make_creditor(account_id="c3", balance_cents=0),
    )

    totals = compute_totals(snapshot)

    assert totals.outstanding_total == Money(170000)
    assert totals.overdue_total == Money(120000)
    assert totals.count == 3


def test_totals_over_debtors_use_total_debt(make_debtor):
    snapshot = (
        make_debtor(account_id="d1", sales=((1000, 0, -1), (500, 0, 10))),
        make_debtor(account_id="d2", sales=((2000, 500, 10),)),
        make_debtor(account_id="d3", sales=()),
    )

    totals = compute_totals(snapshot)

    assert totals.outstanding_total == Money(3000)
    assert totals.overdue_total == Money(1500)
    assert totals.count == 3
    assert totals.overdue_total <= totals.outstanding_total


def test_totals_of_empty_snapshot():
    totals = compute_totals(())
    assert totals.outstanding_total == Money.zero()
    assert totals.overdue_total == Money.zero()
    assert totals.count == 0


def test_totals_serialize_as_minor_units(make_creditor):
    totals = compute_totals((make_creditor(),))
    assert totals.model_dump() == {
        "outstanding_total": 120000,
        "overdue_total": 120000,
        "count": 1,
    }


def test_status_breakdown(make_creditor):
    snapshot = (
        make_creditor(account_id="c1", balance_cents=1000, due_in_days=-5),
        make_creditor(account_id="c2", balance_cents=2000, due_in_days=-1),
        make_creditor(account_id="c3", balance_cents=4000, due_in_days=5),
        make_creditor(account_id="c4", balance_cents=0),
    )

    breakdown = compute_status_breakdown(snapshot)

    assert breakdown[PaymentStatus.OVERDUE.value].count == 2
    assert breakdown[PaymentStatus.OVERDUE.value].total == Money(3000)
    assert breakdown[PaymentStatus.PENDING.value].total == Money(4000)
    assert breakdown[PaymentStatus.PAID.value].count == 1
    assert breakdown[PaymentStatus.PAID.value].total == Money.zero()
