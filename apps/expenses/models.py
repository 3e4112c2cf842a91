# ==========================================
# apps/expenses/models.py
# ==========================================

from decimal import Decimal

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone
import uuid


class SplitType(models.TextChoices):
    EQUAL = 'equal', 'Equal'
    EXACT = 'exact', 'Exact'
    PERCENTAGE = 'percentage', 'Percentage'


class Expense(models.Model):
    """A payment made by one member on behalf of a group."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )

    paid_by = models.ForeignKey(
        'groups.Member',
        on_delete=models.PROTECT,
        related_name='expenses_paid'
    )
    group = models.ForeignKey(
        'groups.Group',
        on_delete=models.CASCADE,
        related_name='expenses'
    )

    split_type = models.CharField(
        max_length=20,
        choices=SplitType.choices,
        default=SplitType.EQUAL
    )
    date = models.DateTimeField(default=timezone.now)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'expenses'
        indexes = [
            models.Index(fields=['group', 'date']),
            models.Index(fields=['paid_by', 'date']),
            models.Index(fields=['date']),
        ]
        ordering = ['-date', '-created_at']

    def __str__(self):
        return f"{self.title} - {self.amount} ({self.group.name})"


class ExpenseSplit(models.Model):
    """One participant's share of an expense."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    expense = models.ForeignKey(
        Expense,
        on_delete=models.CASCADE,
        related_name='splits'
    )
    member = models.ForeignKey(
        'groups.Member',
        on_delete=models.PROTECT,
        related_name='expense_splits'
    )

    amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        validators=[
            MinValueValidator(Decimal('0.00')),
            MaxValueValidator(Decimal('100.00')),
        ]
    )
    # Input position, so reads return rows in the order they were given
    position = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = 'expense_splits'
        unique_together = [['expense', 'member']]
        indexes = [
            models.Index(fields=['member']),
            models.Index(fields=['expense', 'position']),
        ]
        ordering = ['position']

    def __str__(self):
        return f"{self.member.name} owes {self.amount} for {self.expense.title}"
