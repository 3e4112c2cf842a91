from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.pagination import PageNumberPagination
from drf_spectacular.utils import extend_schema, OpenApiParameter

from config.views import error_response

from .serializers import (
    AddMemberSerializer,
    EqualSplitRequestSerializer,
    GroupCreateSerializer,
    GroupListSerializer,
    GroupMemberSerializer,
    GroupSerializer,
    GroupUpdateSerializer,
    MemberCreateSerializer,
    MemberSerializer,
)

from apps.groups.services import (
    create_group,
    update_group,
    delete_group,
    get_group_by_id,
    list_groups,
    create_member,
    get_member_by_id,
    list_members,
    list_groups_for_member,
    add_member,
    remove_member,
    get_group_members,
    # Exceptions
    GroupNotFoundError,
    MemberNotFoundError,
    DuplicateMemberError,
    AlreadyMemberError,
    NotMemberError,
    InvalidGroupDataError,
)
from apps.expenses.serializers import ExpenseSerializer
from apps.expenses.services import (
    calculate_equal_split_for_group,
    compute_group_balances,
    get_group_expense_stats,
    get_member_summaries,
    list_group_expenses,
    suggest_settlements,
    ExpenseValidationError,
)

NOT_FOUND_ERRORS = (GroupNotFoundError, MemberNotFoundError)
BAD_REQUEST_ERRORS = (
    InvalidGroupDataError,
    ExpenseValidationError,
    AlreadyMemberError,
    NotMemberError,
)


class GroupPagination(PageNumberPagination):
    """Custom pagination for groups."""
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


class GroupViewSet(viewsets.ViewSet):
    """
    Group CRUD, membership and balance endpoints.

    All business logic is handled by services.
    Views are thin HTTP handlers only.
    """

    pagination_class = GroupPagination

    @extend_schema(
        parameters=[OpenApiParameter('search', str, description='Filter by name or description')],
        responses=GroupListSerializer(many=True),
    )
    def list(self, request):
        """List groups, newest first."""
        try:
            groups = list_groups(search=request.query_params.get('search'))
        except InvalidGroupDataError as e:
            return error_response(e, status.HTTP_400_BAD_REQUEST)

        paginator = self.pagination_class()
        page = paginator.paginate_queryset(groups, request, view=self)
        serializer = GroupListSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    @extend_schema(request=GroupCreateSerializer, responses={201: GroupSerializer})
    def create(self, request):
        """Create a new group."""
        serializer = GroupCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            group = create_group(
                name=serializer.validated_data['name'],
                description=serializer.validated_data.get('description', ''),
                member_ids=serializer.validated_data.get('memberIds', []),
            )
        except InvalidGroupDataError as e:
            return error_response(e, status.HTTP_400_BAD_REQUEST)
        except MemberNotFoundError as e:
            return error_response(e, status.HTTP_404_NOT_FOUND)

        return Response(GroupSerializer(group).data, status=status.HTTP_201_CREATED)

    @extend_schema(responses=GroupSerializer)
    def retrieve(self, request, pk=None):
        """Get group details with members and total expenses."""
        try:
            group = get_group_by_id(group_id=pk)
        except GroupNotFoundError as e:
            return error_response(e, status.HTTP_404_NOT_FOUND)

        return Response(GroupSerializer(group).data)

    @extend_schema(request=GroupUpdateSerializer, responses=GroupSerializer)
    def update(self, request, pk=None):
        """Update a group's name or description."""
        serializer = GroupUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            group = update_group(group_id=pk, **serializer.validated_data)
        except GroupNotFoundError as e:
            return error_response(e, status.HTTP_404_NOT_FOUND)
        except InvalidGroupDataError as e:
            return error_response(e, status.HTTP_400_BAD_REQUEST)

        return Response(GroupSerializer(group).data)

    @extend_schema(request=GroupUpdateSerializer, responses=GroupSerializer)
    def partial_update(self, request, pk=None):
        return self.update(request, pk=pk)

    def destroy(self, request, pk=None):
        """Delete a group with its memberships and expenses."""
        try:
            delete_group(group_id=pk)
        except GroupNotFoundError as e:
            return error_response(e, status.HTTP_404_NOT_FOUND)

        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(methods=['GET'], responses=GroupMemberSerializer(many=True))
    @extend_schema(methods=['POST'], request=AddMemberSerializer, responses={201: GroupMemberSerializer})
    @action(detail=True, methods=['get', 'post'])
    def members(self, request, pk=None):
        """List members, or add one by id or by name and email."""
        if request.method == 'GET':
            try:
                memberships = get_group_members(group_id=pk)
            except GroupNotFoundError as e:
                return error_response(e, status.HTTP_404_NOT_FOUND)
            return Response(GroupMemberSerializer(memberships, many=True).data)

        serializer = AddMemberSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            membership = add_member(
                group_id=pk,
                member_id=serializer.validated_data.get('memberId'),
                name=serializer.validated_data.get('name'),
                email=serializer.validated_data.get('email'),
            )
        except NOT_FOUND_ERRORS as e:
            return error_response(e, status.HTTP_404_NOT_FOUND)
        except BAD_REQUEST_ERRORS as e:
            return error_response(e, status.HTTP_400_BAD_REQUEST)

        return Response(GroupMemberSerializer(membership).data, status=status.HTTP_201_CREATED)

    @action(
        detail=True,
        methods=['delete'],
        url_path=r'members/(?P<member_id>[^/.]+)',
        url_name='remove-member',
    )
    def delete_member(self, request, pk=None, member_id=None):
        """Remove a member from the group."""
        try:
            remove_member(group_id=pk, member_id=member_id)
        except GroupNotFoundError as e:
            return error_response(e, status.HTTP_404_NOT_FOUND)
        except NotMemberError as e:
            return error_response(e, status.HTTP_400_BAD_REQUEST)

        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(responses=ExpenseSerializer(many=True))
    @action(detail=True, methods=['get'])
    def expenses(self, request, pk=None):
        """Expenses of the group, newest first."""
        try:
            expenses = list_group_expenses(group_id=pk)
        except GroupNotFoundError as e:
            return error_response(e, status.HTTP_404_NOT_FOUND)

        paginator = self.pagination_class()
        page = paginator.paginate_queryset(expenses, request, view=self)
        serializer = ExpenseSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    @action(detail=True, methods=['get'])
    def balances(self, request, pk=None):
        """Net balance per member, plus transfers that would settle them."""
        try:
            result = compute_group_balances(group_id=pk)
        except GroupNotFoundError as e:
            return error_response(e, status.HTTP_404_NOT_FOUND)

        data = result.as_dict()
        data['groupId'] = str(pk)
        data['settlements'] = [s.as_dict() for s in suggest_settlements(result.balances)]
        return Response(data)

    @action(detail=True, methods=['get'])
    def summary(self, request, pk=None):
        """Paid, owed and net totals for every member."""
        try:
            summaries = get_member_summaries(group_id=pk)
        except GroupNotFoundError as e:
            return error_response(e, status.HTTP_404_NOT_FOUND)

        return Response({
            'groupId': str(pk),
            'members': [s.as_dict() for s in summaries],
        })

    @action(detail=True, methods=['get'])
    def stats(self, request, pk=None):
        """Totals, averages and balances for the group."""
        try:
            stats = get_group_expense_stats(group_id=pk)
        except GroupNotFoundError as e:
            return error_response(e, status.HTTP_404_NOT_FOUND)

        stats['groupId'] = str(pk)
        return Response(stats)

    @extend_schema(request=EqualSplitRequestSerializer)
    @action(detail=True, methods=['post'], url_path='calculate-split', url_name='calculate-split')
    def calculate_split(self, request, pk=None):
        """Equal split of an amount among the group's members."""
        serializer = EqualSplitRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            rows = calculate_equal_split_for_group(
                group_id=pk,
                amount=serializer.validated_data['amount'],
                participant_ids=serializer.validated_data.get('participants'),
            )
        except GroupNotFoundError as e:
            return error_response(e, status.HTTP_404_NOT_FOUND)
        except ExpenseValidationError as e:
            return error_response(e, status.HTTP_400_BAD_REQUEST)

        return Response({
            'groupId': str(pk),
            'amount': str(sum(row.amount for row in rows)),
            'splitType': 'equal',
            'splits': [row.as_dict() for row in rows],
        })


class MemberViewSet(viewsets.ViewSet):
    """Members exist on their own and can join many groups."""

    pagination_class = GroupPagination

    @extend_schema(
        parameters=[OpenApiParameter('search', str, description='Filter by name or email')],
        responses=MemberSerializer(many=True),
    )
    def list(self, request):
        members = list_members(search=request.query_params.get('search'))
        paginator = self.pagination_class()
        page = paginator.paginate_queryset(members, request, view=self)
        return paginator.get_paginated_response(MemberSerializer(page, many=True).data)

    @extend_schema(request=MemberCreateSerializer, responses={201: MemberSerializer})
    def create(self, request):
        serializer = MemberCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            member = create_member(**serializer.validated_data)
        except (InvalidGroupDataError, DuplicateMemberError) as e:
            return error_response(e, status.HTTP_400_BAD_REQUEST)

        return Response(MemberSerializer(member).data, status=status.HTTP_201_CREATED)

    @extend_schema(responses=MemberSerializer)
    def retrieve(self, request, pk=None):
        try:
            member = get_member_by_id(member_id=pk)
        except MemberNotFoundError as e:
            return error_response(e, status.HTTP_404_NOT_FOUND)

        return Response(MemberSerializer(member).data)

    @extend_schema(responses=GroupListSerializer(many=True))
    @action(detail=True, methods=['get'])
    def groups(self, request, pk=None):
        """Groups the member belongs to."""
        try:
            groups = list_groups_for_member(member_id=pk)
        except MemberNotFoundError as e:
            return error_response(e, status.HTTP_404_NOT_FOUND)

        return Response(GroupListSerializer(groups, many=True).data)
