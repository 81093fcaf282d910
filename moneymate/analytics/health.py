"""
Financial Health Scorer

Collapses income, expenses, budgets and recent spending into a single
0-100 score made of five sub-scores:

    savings rate          30
    budget adherence      25
    emergency fund        20
    spending consistency  15
    debt ratio            10

Debt is not tracked, so the debt sub-score is always full.
"""

import statistics
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Mapping, Optional

from moneymate.models.health import BreakdownDetail, HealthBreakdown, HealthScore
from moneymate.models.transaction import (
    Number,
    Transaction,
    TransactionType,
    normalize_category,
    to_decimal,
)


CONSISTENCY_WINDOW_DAYS = 30
MIN_CONSISTENCY_POINTS = 5
DEBT_RATIO_SCORE = 10

GRADE_BANDS = [
    (90, "A+"),
    (80, "A"),
    (70, "B+"),
    (60, "B"),
    (50, "C+"),
    (40, "C"),
    (30, "D"),
]

MESSAGE_BANDS = [
    (90, "Excellent! Your financial health is outstanding!"),
    (80, "Great job! You're managing your finances very well!"),
    (70, "Good work! Keep up the positive habits!"),
    (60, "You're on the right track. A few improvements will help!"),
    (50, "Fair. Focus on building better financial habits."),
    (40, "Needs improvement. Let's work on your finances!"),
]
FALLBACK_MESSAGE = "Time to take control of your finances! Start small."

SCORE_COLORS = {
    "green": "#10b981",
    "orange": "#f59e0b",
    "red": "#ef4444",
}


class FinancialHealthScorer:
    """
    Computes a HealthScore from ledger aggregates.

    The scorer remembers the breakdown of its last calculation so the
    UI can render `breakdown_details()` without recomputing.

    Usage:
        scorer = FinancialHealthScorer()
        result = scorer.calculate(income, expense, budgets, spend, txs)
        rows = scorer.breakdown_details()
    """

    def __init__(self):
        self.breakdown = HealthBreakdown()

    def calculate(
        self,
        income: Number,
        expense: Number,
        budgets: Mapping[str, Number],
        spend_by_category: Mapping[str, Number],
        transactions: Iterable[Transaction],
        savings_balance: Number = 0,
        today: Optional[date] = None,
    ) -> HealthScore:
        income = to_decimal(income)
        expense = to_decimal(expense)
        today = today or date.today()

        self.breakdown = HealthBreakdown(
            savings_rate=self.savings_rate_score(income, expense),
            budget_adherence=self.budget_adherence_score(budgets, spend_by_category),
            emergency_fund=self.emergency_fund_score(to_decimal(savings_balance), expense),
            spending_consistency=self.spending_consistency_score(transactions, today),
            debt_ratio=DEBT_RATIO_SCORE,
        )
        score = self.breakdown.total
        return HealthScore(
            score=score,
            breakdown=self.breakdown,
            grade=self.grade_for(score),
            message=self.message_for(score),
        )

    # -------------------------------------------------------------------------
    # Sub-scores
    # -------------------------------------------------------------------------

    @staticmethod
    def savings_rate_score(income: Decimal, expense: Decimal) -> int:
        if income <= 0:
            return 0
        rate = (income - expense) / income * 100
        if rate >= 30:
            return 30
        if rate >= 20:
            return 25
        if rate >= 10:
            return 20
        if rate >= 5:
            return 15
        if rate > 0:
            return 10
        return 0

    @staticmethod
    def budget_adherence_score(
        budgets: Mapping[str, Number],
        spend_by_category: Mapping[str, Number],
    ) -> int:
        """Share of budgeted categories where spent <= limit."""
        if not budgets:
            return 0
        spend = {normalize_category(k): to_decimal(v) for k, v in spend_by_category.items()}
        within = sum(
            1
            for category, limit in budgets.items()
            if spend.get(normalize_category(category), Decimal("0")) <= to_decimal(limit)
        )
        adherence = within / len(budgets) * 100
        if adherence == 100:
            return 25
        if adherence >= 80:
            return 20
        if adherence >= 60:
            return 15
        if adherence >= 40:
            return 10
        if adherence >= 20:
            return 5
        return 0

    @staticmethod
    def emergency_fund_score(savings: Decimal, expense: Decimal) -> int:
        if expense <= 0:
            return 20
        months = savings / expense
        if months >= 6:
            return 20
        if months >= 3:
            return 15
        if months >= 1:
            return 10
        if months >= Decimal("0.5"):
            return 5
        return 0

    @staticmethod
    def spending_consistency_score(transactions: Iterable[Transaction], today: date) -> int:
        """
        Coefficient of variation of recent expense amounts.

        Uses expenses dated within the last 30 days. With fewer than five
        data points there is not enough to judge, so the full score is given.
        """
        cutoff = today - timedelta(days=CONSISTENCY_WINDOW_DAYS)
        amounts = [
            float(tx.amount)
            for tx in transactions
            if tx.type == TransactionType.EXPENSE and tx.date >= cutoff
        ]
        if len(amounts) < MIN_CONSISTENCY_POINTS:
            return 15

        mean = statistics.fmean(amounts)
        cv = statistics.pstdev(amounts) / mean * 100 if mean > 0 else 100.0
        if cv <= 20:
            return 15
        if cv <= 40:
            return 12
        if cv <= 60:
            return 9
        if cv <= 80:
            return 6
        if cv <= 100:
            return 3
        return 0

    # -------------------------------------------------------------------------
    # Presentation
    # -------------------------------------------------------------------------

    @staticmethod
    def grade_for(score: int) -> str:
        for floor, grade in GRADE_BANDS:
            if score >= floor:
                return grade
        return "F"

    @staticmethod
    def message_for(score: int) -> str:
        for floor, message in MESSAGE_BANDS:
            if score >= floor:
                return message
        return FALLBACK_MESSAGE

    @staticmethod
    def score_color(score: int) -> str:
        """Traffic-light colour for a score."""
        if score >= 80:
            return SCORE_COLORS["green"]
        if score >= 60:
            return SCORE_COLORS["orange"]
        return SCORE_COLORS["red"]

    def breakdown_details(self, breakdown: Optional[HealthBreakdown] = None) -> list[BreakdownDetail]:
        b = breakdown or self.breakdown
        return [
            BreakdownDetail(
                name="Savings Rate",
                score=b.savings_rate,
                max_score=30,
                tip="Aim to save at least 20% of your income",
            ),
            BreakdownDetail(
                name="Budget Adherence",
                score=b.budget_adherence,
                max_score=25,
                tip="Stay within your set budgets for each category",
            ),
            BreakdownDetail(
                name="Emergency Fund",
                score=b.emergency_fund,
                max_score=20,
                tip="Build an emergency fund covering 3-6 months of expenses",
            ),
            BreakdownDetail(
                name="Spending Consistency",
                score=b.spending_consistency,
                max_score=15,
                tip="Maintain consistent spending patterns to avoid surprises",
            ),
            BreakdownDetail(
                name="Debt Management",
                score=b.debt_ratio,
                max_score=10,
                tip="Keep debt payments below 30% of income",
            ),
        ]
