# ==========================================
# apps/expenses/admin.py
# ==========================================

from django.contrib import admin
from apps.expenses.models import Expense, ExpenseSplit


class ExpenseSplitInline(admin.TabularInline):
    """Split rows are written by the service layer only."""
    model = ExpenseSplit
    extra = 0
    fields = ['member', 'amount', 'percentage']
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Expense)
class ExpenseAdmin(admin.ModelAdmin):
    """Admin interface for Expenses."""

    list_display = ['title', 'amount', 'paid_by', 'group', 'split_type', 'date']
    list_filter = ['split_type', 'date']
    search_fields = ['title', 'description', 'group__name', 'paid_by__name', 'paid_by__email']
    readonly_fields = ['amount', 'paid_by', 'group', 'split_type', 'created_at', 'updated_at']
    list_select_related = ['paid_by', 'group']
    inlines = [ExpenseSplitInline]
    date_hierarchy = 'date'
    ordering = ['-date']

    fieldsets = (
        ('Expense', {
            'fields': ('title', 'description', 'date')
        }),
        ('Money', {
            'fields': ('amount', 'paid_by', 'group', 'split_type')
        }),
        ('Metadata', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )
