"""Dashboard KPI service."""

from collections import Counter
from decimal import Decimal

from schoolpay.domain.entities import DashboardReport
from schoolpay.domain.ledger import LedgerService, is_successful
from schoolpay.storage.base import SnapshotStore
from schoolpay.utils.amount_parser import parse_amount

UNNAMED = "-"


class DashboardService:
    """Service for computing dashboard figures from the stored snapshots."""

    def __init__(self, store: SnapshotStore):
        """Initialize dashboard service.

        Args:
            store: Snapshot store instance
        """
        self.store = store

    def build_report(self) -> DashboardReport:
        """Compute the KPI cards and chart series.

        Collected amounts (total, per item, per month) count successful
        transactions only. Transaction counts, the online/offline split and
        the payment method breakdown count every transaction. A transaction
        is online when the gateway recorded a provider for it.

        Returns:
            DashboardReport; monthly keys are "YYYY-MM" in ascending order
        """
        transactions = LedgerService(self.store).load_transactions()
        school = self.store.load_school()

        total_collected = Decimal("0")
        revenue_by_item: dict[str, Decimal] = {}
        monthly_amounts: dict[str, Decimal] = {}
        monthly_counts: Counter[str] = Counter()
        methods: Counter[str] = Counter()
        online = 0

        for txn in transactions:
            if txn.provider.strip():
                online += 1
            methods[txn.method.strip() or UNNAMED] += 1

            month = txn.date_value.strftime("%Y-%m") if txn.date_value else None
            if month:
                monthly_counts[month] += 1
                monthly_amounts.setdefault(month, Decimal("0"))

            if not is_successful(txn):
                continue
            amount = parse_amount(txn.total)
            total_collected += amount
            item = txn.item_name.strip() or UNNAMED
            revenue_by_item[item] = revenue_by_item.get(item, Decimal("0")) + amount
            if month:
                monthly_amounts[month] += amount

        return DashboardReport(
            total_collected=total_collected,
            transaction_count=len(transactions),
            parent_count=len(school.parents),
            student_count=len(school.students),
            online_count=online,
            offline_count=len(transactions) - online,
            revenue_by_item=dict(sorted(revenue_by_item.items(), key=lambda kv: kv[1], reverse=True)),
            payment_methods=dict(methods.most_common()),
            monthly={month: (monthly_amounts[month], monthly_counts[month]) for month in sorted(monthly_counts)},
        )
