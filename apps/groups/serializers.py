from rest_framework import serializers
from .models import Group, GroupMembership, Member


class MemberSerializer(serializers.ModelSerializer):
    """Member details."""

    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = Member
        fields = ['id', 'name', 'email', 'createdAt']
        read_only_fields = ['id', 'createdAt']


class MemberCreateSerializer(serializers.Serializer):
    """Input for registering a member."""

    name = serializers.CharField(max_length=255)
    email = serializers.EmailField(max_length=255)


class GroupMemberSerializer(serializers.ModelSerializer):
    """A membership, flattened to the member's details plus join time."""

    id = serializers.UUIDField(source='member.id', read_only=True)
    name = serializers.CharField(source='member.name', read_only=True)
    email = serializers.EmailField(source='member.email', read_only=True)
    joinedAt = serializers.DateTimeField(source='joined_at', read_only=True)

    class Meta:
        model = GroupMembership
        fields = ['id', 'name', 'email', 'joinedAt']
        read_only_fields = fields


class GroupListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for group lists."""

    memberCount = serializers.IntegerField(source='member_count', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = Group
        fields = ['id', 'name', 'description', 'memberCount', 'createdAt']
        read_only_fields = fields


class GroupSerializer(serializers.ModelSerializer):
    """Full group details with members and derived totals."""

    members = serializers.SerializerMethodField()
    memberCount = serializers.IntegerField(source='member_count', read_only=True)
    totalExpenses = serializers.DecimalField(
        source='total_expenses', max_digits=12, decimal_places=2, read_only=True
    )
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = Group
        fields = [
            'id', 'name', 'description', 'members', 'memberCount',
            'totalExpenses', 'createdAt', 'updatedAt',
        ]
        read_only_fields = [
            'id', 'members', 'memberCount', 'totalExpenses', 'createdAt', 'updatedAt',
        ]

    def get_members(self, obj):
        memberships = obj.memberships.select_related('member').order_by('joined_at', 'id')
        return GroupMemberSerializer(memberships, many=True).data


class GroupCreateSerializer(serializers.Serializer):
    """Input for creating a group."""

    name = serializers.CharField(allow_blank=True, trim_whitespace=False)
    description = serializers.CharField(required=False, allow_blank=True, default='')
    memberIds = serializers.ListField(
        child=serializers.UUIDField(), required=False, default=list
    )


class GroupUpdateSerializer(serializers.Serializer):
    """Input for updating a group; every field optional."""

    name = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)
    description = serializers.CharField(required=False, allow_blank=True)


class AddMemberSerializer(serializers.Serializer):
    """Add an existing member by id, or a new one by name and email."""

    memberId = serializers.UUIDField(required=False)
    name = serializers.CharField(required=False, allow_blank=True, max_length=255)
    email = serializers.EmailField(required=False, max_length=255)

    def validate(self, data):
        if not data.get('memberId') and not data.get('email'):
            raise serializers.ValidationError(
                "Either memberId or name and email are required"
            )
        if not data.get('memberId') and not (data.get('name') or '').strip():
            raise serializers.ValidationError({'name': "Name is required for a new member"})
        return data


class EqualSplitRequestSerializer(serializers.Serializer):
    """Input for an equal split among a group's members."""

    amount = serializers.JSONField()
    participants = serializers.ListField(
        child=serializers.UUIDField(), required=False, allow_empty=True
    )
