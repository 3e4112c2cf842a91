from rest_framework import serializers
from .models import Expense, ExpenseSplit, SplitType


class ExpenseSplitSerializer(serializers.ModelSerializer):
    """Stored split row."""

    userId = serializers.UUIDField(source='member_id', read_only=True)
    userName = serializers.CharField(source='member.name', read_only=True)

    class Meta:
        model = ExpenseSplit
        fields = ['userId', 'userName', 'amount', 'percentage']
        read_only_fields = fields


class ExpenseSerializer(serializers.ModelSerializer):
    """Expense with payer and split rows."""

    paidBy = serializers.UUIDField(source='paid_by_id', read_only=True)
    paidByName = serializers.CharField(source='paid_by.name', read_only=True)
    groupId = serializers.UUIDField(source='group_id', read_only=True)
    splitType = serializers.CharField(source='split_type', read_only=True)
    splits = ExpenseSplitSerializer(many=True, read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = Expense
        fields = [
            'id', 'title', 'description', 'amount', 'paidBy', 'paidByName',
            'groupId', 'splitType', 'date', 'splits', 'createdAt', 'updatedAt',
        ]
        read_only_fields = fields


class SplitShareInputSerializer(serializers.Serializer):
    """
    One ``splits`` item of a request.

    Money values stay raw here; the split calculator parses them so
    that every numeric rule lives in one place.
    """

    userId = serializers.CharField()
    amount = serializers.JSONField(required=False)
    percentage = serializers.JSONField(required=False)


class ExpenseCreateSerializer(serializers.Serializer):
    """Input for recording an expense."""

    title = serializers.CharField(allow_blank=True, trim_whitespace=False)
    amount = serializers.JSONField()
    paidBy = serializers.UUIDField()
    groupId = serializers.UUIDField()
    splitType = serializers.CharField(default=SplitType.EQUAL)
    date = serializers.DateTimeField(required=False, allow_null=True)
    description = serializers.CharField(required=False, allow_blank=True, default='')
    participants = serializers.ListField(
        child=serializers.CharField(), required=False, allow_empty=True
    )
    splits = SplitShareInputSerializer(many=True, required=False)


class ExpenseUpdateSerializer(serializers.Serializer):
    """Input for updating an expense; every field optional."""

    title = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)
    amount = serializers.JSONField(required=False)
    paidBy = serializers.UUIDField(required=False)
    splitType = serializers.CharField(required=False)
    date = serializers.DateTimeField(required=False)
    description = serializers.CharField(required=False, allow_blank=True)
    participants = serializers.ListField(
        child=serializers.CharField(), required=False, allow_empty=True
    )
    splits = SplitShareInputSerializer(many=True, required=False)


class CalculateSplitSerializer(serializers.Serializer):
    """Input for a stateless split calculation."""

    amount = serializers.JSONField()
    splitType = serializers.CharField(default=SplitType.EQUAL)
    participants = serializers.ListField(
        child=serializers.CharField(), required=False, allow_empty=True
    )
    splits = SplitShareInputSerializer(many=True, required=False)
