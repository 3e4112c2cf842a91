from datetime import datetime, time, timezone

from django.utils.dateparse import parse_date, parse_datetime
from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.pagination import PageNumberPagination
from drf_spectacular.utils import extend_schema, OpenApiParameter

from config.views import error_response

from .serializers import (
    CalculateSplitSerializer,
    ExpenseCreateSerializer,
    ExpenseSerializer,
    ExpenseUpdateSerializer,
)

from apps.expenses.services import (
    build_split,
    calculate_split,
    create_expense,
    delete_expense,
    get_expense_by_id,
    list_expenses,
    list_expenses_by_date_range,
    list_group_expenses,
    list_member_expenses,
    search_expenses,
    update_expense,
    # Exceptions
    ExpenseNotFoundError,
    ExpenseValidationError,
)
from apps.groups.services import GroupNotFoundError, MemberNotFoundError

NOT_FOUND_ERRORS = (ExpenseNotFoundError, GroupNotFoundError, MemberNotFoundError)

# Request field -> service keyword
UPDATE_FIELDS = {
    'title': 'title',
    'amount': 'amount',
    'paidBy': 'paid_by_id',
    'splitType': 'split_type',
    'date': 'date',
    'description': 'description',
    'participants': 'participants',
    'splits': 'shares',
}


class ExpensePagination(PageNumberPagination):
    """Custom pagination for expenses."""
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


def _parse_boundary(value, field, end=False):
    """Parse a ``start_date`` / ``end_date`` query value."""
    try:
        parsed = parse_datetime(value)
        day = None if parsed else parse_date(value)
    except ValueError:
        parsed = day = None

    if parsed is not None:
        return parsed
    if day is None:
        raise ExpenseValidationError(
            f"{field} must be an ISO 8601 date", field=field, value=value
        )
    return datetime.combine(day, time.max if end else time.min, tzinfo=timezone.utc)


class ExpenseViewSet(viewsets.ViewSet):
    """
    Expense CRUD and split calculation.

    All business logic is handled by services.
    Views are thin HTTP handlers only.
    """

    pagination_class = ExpensePagination

    def _filtered_expenses(self, params):
        group_id = params.get('group')
        member_id = params.get('member')
        search = params.get('search')
        start_date = params.get('start_date')
        end_date = params.get('end_date')

        if search:
            queryset = search_expenses(query=search, group_id=group_id)
        elif start_date or end_date:
            if not (start_date and end_date):
                raise ExpenseValidationError(
                    "Both start_date and end_date are required",
                    field='start_date' if not start_date else 'end_date',
                    value=None,
                )
            queryset = list_expenses_by_date_range(
                start_date=_parse_boundary(start_date, 'start_date'),
                end_date=_parse_boundary(end_date, 'end_date', end=True),
                group_id=group_id,
            )
        elif group_id:
            queryset = list_group_expenses(group_id=group_id)
        else:
            queryset = list_expenses()

        if member_id:
            member_expenses = list_member_expenses(member_id=member_id)
            queryset = queryset.filter(id__in=member_expenses.values('id'))
        return queryset

    @extend_schema(
        parameters=[
            OpenApiParameter('group', str, description='Group ID'),
            OpenApiParameter('member', str, description='Member ID (payer or participant)'),
            OpenApiParameter('search', str, description='Search title and description'),
            OpenApiParameter('start_date', str, description='ISO 8601 lower bound'),
            OpenApiParameter('end_date', str, description='ISO 8601 upper bound'),
        ],
        responses=ExpenseSerializer(many=True),
    )
    def list(self, request):
        """List expenses, newest first."""
        try:
            expenses = self._filtered_expenses(request.query_params)
        except NOT_FOUND_ERRORS as e:
            return error_response(e, status.HTTP_404_NOT_FOUND)
        except ExpenseValidationError as e:
            return error_response(e, status.HTTP_400_BAD_REQUEST)

        paginator = self.pagination_class()
        page = paginator.paginate_queryset(expenses, request, view=self)
        serializer = ExpenseSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    @extend_schema(request=ExpenseCreateSerializer, responses={201: ExpenseSerializer})
    def create(self, request):
        """Record an expense and its splits."""
        serializer = ExpenseCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            expense = create_expense(
                title=data['title'],
                amount=data['amount'],
                paid_by_id=data['paidBy'],
                group_id=data['groupId'],
                split_type=data['splitType'],
                date=data.get('date'),
                description=data.get('description', ''),
                participants=data.get('participants'),
                shares=data.get('splits'),
            )
        except NOT_FOUND_ERRORS as e:
            return error_response(e, status.HTTP_404_NOT_FOUND)
        except ExpenseValidationError as e:
            return error_response(e, status.HTTP_400_BAD_REQUEST)

        expense = get_expense_by_id(expense_id=expense.id)
        return Response(ExpenseSerializer(expense).data, status=status.HTTP_201_CREATED)

    @extend_schema(responses=ExpenseSerializer)
    def retrieve(self, request, pk=None):
        """Get an expense with its splits."""
        try:
            expense = get_expense_by_id(expense_id=pk)
        except ExpenseNotFoundError as e:
            return error_response(e, status.HTTP_404_NOT_FOUND)

        return Response(ExpenseSerializer(expense).data)

    @extend_schema(request=ExpenseUpdateSerializer, responses=ExpenseSerializer)
    def update(self, request, pk=None):
        """Update an expense; splits are recomputed when money fields change."""
        serializer = ExpenseUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        changes = {
            UPDATE_FIELDS[key]: value
            for key, value in serializer.validated_data.items()
        }

        try:
            expense = update_expense(expense_id=pk, **changes)
        except NOT_FOUND_ERRORS as e:
            return error_response(e, status.HTTP_404_NOT_FOUND)
        except ExpenseValidationError as e:
            return error_response(e, status.HTTP_400_BAD_REQUEST)

        expense = get_expense_by_id(expense_id=expense.id)
        return Response(ExpenseSerializer(expense).data)

    @extend_schema(request=ExpenseUpdateSerializer, responses=ExpenseSerializer)
    def partial_update(self, request, pk=None):
        return self.update(request, pk=pk)

    def destroy(self, request, pk=None):
        """Delete an expense and its splits."""
        try:
            delete_expense(expense_id=pk)
        except ExpenseNotFoundError as e:
            return error_response(e, status.HTTP_404_NOT_FOUND)

        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(request=CalculateSplitSerializer)
    @action(detail=False, methods=['post'], url_path='calculate-split', url_name='calculate-split')
    def preview_split(self, request):
        """Preview a split without saving anything."""
        serializer = CalculateSplitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            split = build_split(
                data['splitType'],
                participants=data.get('participants'),
                shares=data.get('splits'),
            )
            rows = calculate_split(amount=data['amount'], split=split)
        except ExpenseValidationError as e:
            return error_response(e, status.HTTP_400_BAD_REQUEST)

        return Response({
            'amount': str(sum(row.amount for row in rows)),
            'splitType': split.split_type.value,
            'splits': [row.as_dict() for row in rows],
        })
