"""
Serializers for the lending marketplace API.
"""

from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from .models import History, Item, Meeting, MeetingProposal, Trade, Transaction
from .validators import TRADE_DURATIONS, TRADE_TYPES

User = get_user_model()


class EmailTokenObtainPairSerializer(TokenObtainPairSerializer):
    """
    Token serializer that authenticates with email instead of username.
    """
    username_field = 'email'

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        if 'username' in self.fields:
            del self.fields['username']
        if 'email' not in self.fields:
            self.fields['email'] = serializers.EmailField()


class UserRegistrationSerializer(serializers.ModelSerializer):
    """
    Serializer for trader registration.

    Fields:
    - email: Required, unique (case-insensitive)
    - password: Required, must pass Django's password validators
    - confirm_password: Required, must match password
    - home_city: Optional

    New accounts always start with status 'normal' and zero credit.
    """

    password = serializers.CharField(
        write_only=True,
        required=True,
        style={'input_type': 'password'}
    )
    confirm_password = serializers.CharField(
        write_only=True,
        required=True,
        style={'input_type': 'password'}
    )

    class Meta:
        model = User
        fields = ['id', 'email', 'password', 'confirm_password', 'home_city', 'status', 'credit', 'created_at']
        read_only_fields = ['id', 'status', 'credit', 'created_at']
        extra_kwargs = {
            'email': {'required': True},
        }

    def validate_email(self, value):
        value = value.strip().lower()

        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError(
                "A user with that email already exists."
            )

        return value

    def validate_password(self, value):
        try:
            validate_password(value)
        except DjangoValidationError as e:
            raise serializers.ValidationError(list(e.messages))

        return value

    def validate(self, attrs):
        if attrs.get('password') != attrs.get('confirm_password'):
            raise serializers.ValidationError({
                'confirm_password': 'Password confirmation does not match.'
            })

        return attrs

    def create(self, validated_data):
        """
        Create the user with a hashed password inside an atomic block so
        concurrent registrations with one email fail on the unique index.
        """
        validated_data.pop('confirm_password', None)
        password = validated_data.pop('password')

        email = validated_data['email']
        base = email.split('@')[0][:30]
        username = base
        suffix = 1
        while User.objects.filter(username=username).exists():
            suffix += 1
            username = f"{base}{suffix}"

        with transaction.atomic():
            user = User(username=username, **validated_data)
            user.set_password(password)
            user.save()

        return user


class UserSummarySerializer(serializers.ModelSerializer):
    """Public view of a user as seen by trading partners and admins."""

    class Meta:
        model = User
        fields = ['id', 'username', 'email', 'status', 'credit', 'home_city']
        read_only_fields = fields


class ItemSerializer(serializers.ModelSerializer):
    """Read-only representation of an item."""

    owner = serializers.PrimaryKeyRelatedField(read_only=True)
    holder = serializers.PrimaryKeyRelatedField(read_only=True)

    class Meta:
        model = Item
        fields = [
            'id',
            'name',
            'description',
            'owner',
            'holder',
            'price',
            'for_sale',
            'is_visible',
            'is_soft_deleted',
            'is_reserved',
            'created_at',
        ]
        read_only_fields = fields


class ItemCreateSerializer(serializers.ModelSerializer):
    """
    Serializer for listing a new item.

    Fields:
    - name: Required, max 200 characters
    - description: Optional free text
    - price: Required, non-negative integer
    - for_sale: Optional, defaults to False

    The owner is taken from the authenticated user and the item stays
    invisible until an admin approves it.
    """

    class Meta:
        model = Item
        fields = ['name', 'description', 'price', 'for_sale']
        extra_kwargs = {
            'name': {'required': True},
            'price': {'required': True},
        }

    def validate_name(self, value):
        """
        Validate name is not empty or whitespace-only.

        Raises:
            ValidationError: If name is empty or whitespace
        """
        if not value or not value.strip():
            raise serializers.ValidationError("Name cannot be empty.")
        return value.strip()


class TradeSerializer(serializers.ModelSerializer):
    items = serializers.PrimaryKeyRelatedField(many=True, read_only=True)

    class Meta:
        model = Trade
        fields = ['id', 'lender', 'borrower', 'items', 'is_complete', 'is_sell']
        read_only_fields = fields


class MeetingProposalSerializer(serializers.ModelSerializer):
    class Meta:
        model = MeetingProposal
        fields = ['date', 'location', 'editor', 'created_at']
        read_only_fields = fields


class MeetingSerializer(serializers.ModelSerializer):
    """A meeting with its current proposal and full edit history."""

    date = serializers.DateField(read_only=True)
    location = serializers.CharField(read_only=True)
    last_editor = serializers.IntegerField(source='last_editor_id', read_only=True)
    is_complete = serializers.SerializerMethodField()
    can_edit = serializers.SerializerMethodField()
    edits_exhausted = serializers.SerializerMethodField()
    confirmed_by = serializers.PrimaryKeyRelatedField(many=True, read_only=True)
    proposals = MeetingProposalSerializer(many=True, read_only=True)

    class Meta:
        model = Meeting
        fields = [
            'id',
            'date',
            'location',
            'last_editor',
            'is_agreed',
            'is_second_meeting',
            'is_complete',
            'can_edit',
            'edits_exhausted',
            'confirmed_by',
            'proposals',
        ]
        read_only_fields = fields

    def get_is_complete(self, obj):
        return obj.is_complete()

    def get_can_edit(self, obj):
        return obj.id in self.context.get('edit_permissions', ())

    def get_edits_exhausted(self, obj):
        return obj.id in self.context.get('edits_exhausted', ())


class TransactionSerializer(serializers.ModelSerializer):
    trades = TradeSerializer(many=True, read_only=True)
    meetings = MeetingSerializer(many=True, read_only=True)
    is_one_way = serializers.SerializerMethodField()
    is_permanent = serializers.SerializerMethodField()

    class Meta:
        model = Transaction
        fields = ['id', 'trades', 'meetings', 'is_one_way', 'is_permanent', 'created_at']
        read_only_fields = fields

    def get_is_one_way(self, obj):
        return obj.is_one_way()

    def get_is_permanent(self, obj):
        return obj.is_permanent()


class InitiateTransactionSerializer(serializers.Serializer):
    """
    Serializer for starting a transaction as the borrower.

    Fields:
    - borrow_item_id: Item the requesting user wants to receive
    - lend_item_id: Item offered in return (required for twoWay)
    - trade_type: oneWay, twoWay or sell
    - trade_duration: permanent or temporary
    - meeting_date: Date of the first meeting (today or later)
    - meeting_location: Location of the first meeting
    - meeting_location2: Location of the return meeting (required for temporary)

    Validation ensures:
    - The requested item is available and not owned by the borrower
    - The offered item belongs to the borrower and is available
    - Only items for sale can be sold
    """

    borrow_item_id = serializers.IntegerField()
    lend_item_id = serializers.IntegerField(required=False, allow_null=True)
    trade_type = serializers.ChoiceField(choices=TRADE_TYPES)
    trade_duration = serializers.ChoiceField(choices=TRADE_DURATIONS)
    meeting_date = serializers.DateField()
    meeting_location = serializers.CharField(max_length=255)
    meeting_location2 = serializers.CharField(max_length=255, required=False, allow_blank=True, allow_null=True)

    def validate_meeting_date(self, value):
        if value < timezone.localdate():
            raise serializers.ValidationError("Meeting date cannot be in the past.")
        return value

    def validate(self, attrs):
        user = self.context['request'].user

        borrow_item = Item.objects.available().filter(pk=attrs['borrow_item_id']).first()
        if borrow_item is None:
            raise serializers.ValidationError({'borrow_item_id': 'Item is not available.'})
        if borrow_item.owner_id == user.id:
            raise serializers.ValidationError({'borrow_item_id': 'You cannot borrow your own item.'})
        attrs['lender_id'] = borrow_item.owner_id

        if attrs['trade_type'] == 'sell' and not borrow_item.for_sale:
            raise serializers.ValidationError({'trade_type': 'This item is not for sale.'})

        if attrs['trade_type'] == 'twoWay':
            lend_item_id = attrs.get('lend_item_id')
            lend_item = Item.objects.available().filter(pk=lend_item_id, owner=user).first()
            if lend_item is None:
                raise serializers.ValidationError(
                    {'lend_item_id': 'A two-way trade needs one of your available items.'}
                )
        else:
            attrs['lend_item_id'] = None

        if attrs['trade_duration'] == 'temporary' and not attrs.get('meeting_location2'):
            raise serializers.ValidationError(
                {'meeting_location2': 'A temporary trade needs a return meeting location.'}
            )
        if attrs['trade_duration'] == 'permanent':
            attrs['meeting_location2'] = None

        return attrs


class MeetingEditSerializer(serializers.Serializer):
    """New proposal for a meeting. The date is ignored for return meetings."""

    location = serializers.CharField(max_length=255)
    date = serializers.DateField(required=False)

    def validate_date(self, value):
        if value < timezone.localdate():
            raise serializers.ValidationError("Meeting date cannot be in the past.")
        return value


class HistorySerializer(serializers.ModelSerializer):
    """History row with whether it can be undone right now."""

    can_undo = serializers.SerializerMethodField()

    class Meta:
        model = History
        fields = ['id', 'action_name', 'data', 'display_string', 'is_undone', 'created_at', 'can_undo']
        read_only_fields = fields

    def get_can_undo(self, obj):
        return self.context.get('undo_permissions', {}).get(obj.id, False)


class ConfigUpdateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    value = serializers.IntegerField(min_value=0)


class SelfStatusSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=['vacation', 'unvacation', 'request_unfreeze'])


class AdminStatusSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=['freeze', 'unfreeze', 'promote', 'demo'])
