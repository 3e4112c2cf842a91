# ==========================================
# apps/groups/models.py
# ==========================================

from decimal import Decimal

from django.db import models
from django.db.models import Sum
import uuid


class Member(models.Model):
    """A person who can belong to groups and take part in expense splits."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    email = models.EmailField(unique=True, max_length=255, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'members'
        indexes = [
            models.Index(fields=['email']),
            models.Index(fields=['name']),
        ]
        ordering = ['name']

    def __str__(self):
        return f"{self.name} <{self.email}>"


class Group(models.Model):
    """Collection of members sharing expenses."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=100)
    description = models.TextField(blank=True)
    members = models.ManyToManyField(
        Member,
        through='GroupMembership',
        related_name='expense_groups',
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'groups'
        indexes = [
            models.Index(fields=['name']),
            models.Index(fields=['created_at']),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return self.name

    @property
    def member_count(self):
        return self.memberships.count()

    @property
    def total_expenses(self):
        """Sum of all expense amounts in the group, computed on read."""
        total = self.expenses.aggregate(total=Sum('amount'))['total']
        return total if total is not None else Decimal('0.00')

    def has_member(self, member_id):
        return self.memberships.filter(member_id=member_id).exists()


class GroupMembership(models.Model):
    """Member's membership in a group."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    member = models.ForeignKey(Member, on_delete=models.CASCADE, related_name='memberships')
    group = models.ForeignKey(Group, on_delete=models.CASCADE, related_name='memberships')
    joined_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'group_members'
        unique_together = [['member', 'group']]
        indexes = [
            models.Index(fields=['group', 'joined_at']),
            models.Index(fields=['member', 'joined_at']),
        ]
        ordering = ['joined_at']

    def __str__(self):
        return f"{self.member.name} in {self.group.name}"
