"""
API views for the lending marketplace.

Views validate input and turn trading exceptions into HTTP responses. All
trading behaviour lives in ``trading.services``.
"""

import logging
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import generics, status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.views import TokenObtainPairView

from .exceptions import CommandExecutionException, PolicyViolation
from .models import History, Item, Meeting, Transaction
from .permissions import IsNotFrozen, IsTradingAdmin, IsTransactionParticipant
from .serializers import (
    AdminStatusSerializer,
    ConfigUpdateSerializer,
    EmailTokenObtainPairSerializer,
    HistorySerializer,
    InitiateTransactionSerializer,
    ItemCreateSerializer,
    ItemSerializer,
    MeetingEditSerializer,
    MeetingSerializer,
    SelfStatusSerializer,
    TransactionSerializer,
    UserRegistrationSerializer,
    UserSummarySerializer,
)
from .services.system import TradingSystem

User = get_user_model()
logger = logging.getLogger(__name__)


class TradingAPIView(APIView):
    """Base view giving every request its own TradingSystem."""

    permission_classes = [IsAuthenticated]

    def get_client_ip(self, request):
        """
        Get client IP address from request.
        Handles proxy headers for accurate IP detection.
        """
        x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
        if x_forwarded_for:
            return x_forwarded_for.split(',')[0]
        return request.META.get('REMOTE_ADDR')

    def get_system(self):
        if not hasattr(self, '_system'):
            self._system = TradingSystem()
        return self._system

    def policy_error(self, request, exc):
        logger.warning(
            f"Trading request rejected: {exc.message}, "
            f"User: {request.user.email}, IP: {self.get_client_ip(request)}"
        )
        return Response({'detail': exc.message}, status=status.HTTP_400_BAD_REQUEST)

    def meeting_context(self, meetings, user_id):
        """Serializer context flagging which meetings the user may still edit."""
        manager = self.get_system().meeting_manager
        return {
            'edit_permissions': manager.get_edit_permissions(meetings, user_id),
            'edits_exhausted': manager.get_user_edit_too_many(meetings, user_id),
        }

    def meeting_response(self, request, pk):
        meeting = _meeting_queryset().get(pk=pk)
        context = self.meeting_context([meeting], request.user.id)
        return Response(MeetingSerializer(meeting, context=context).data)


def _meeting_queryset():
    return Meeting.objects.prefetch_related('proposals', 'confirmed_by')


def _transaction_queryset():
    return Transaction.objects.prefetch_related(
        'trades__items',
        'meetings__proposals',
        'meetings__confirmed_by',
    )


# ============================================================================
# Authentication
# ============================================================================

class EmailTokenObtainPairView(TokenObtainPairView):
    """
    Issue a JWT pair for email and password credentials.
    """
    serializer_class = EmailTokenObtainPairSerializer


class UserRegistrationView(generics.CreateAPIView):
    """
    API endpoint for trader registration.

    POST /api/auth/register/
    Request body: {
        "email": "sam@example.com",
        "password": "...",
        "confirm_password": "...",
        "home_city": "Toronto"
    }

    Success response (201): the created user without password fields.

    Error responses:
    - 400: Invalid data or email already registered
    """
    serializer_class = UserRegistrationSerializer
    permission_classes = [AllowAny]

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            self.perform_create(serializer)
        except IntegrityError:
            # A concurrent registration with the same email won the race
            return Response(
                {'email': ['A user with that email already exists.']},
                status=status.HTTP_400_BAD_REQUEST
            )

        logger.info(f"User registered: {serializer.data['email']}")
        return Response(serializer.data, status=status.HTTP_201_CREATED)


# ============================================================================
# Items
# ============================================================================

class ItemListCreateView(TradingAPIView):
    """
    API endpoint for browsing and listing items.

    GET /api/items/
    Returns every approved, not deleted, not reserved item of other users.

    POST /api/items/
    Request body: {
        "name": "Camping tent",
        "description": "Two person tent",
        "price": 80,
        "for_sale": false
    }

    Success response (201): the new item, invisible until approved.

    Error responses:
    - 401: Missing, invalid, or expired JWT token
    - 403: Frozen account
    - 400: Invalid data
    """
    permission_classes = [IsAuthenticated, IsNotFrozen]

    def get(self, request, *args, **kwargs):
        items = Item.objects.available().exclude(owner=request.user).order_by('id')
        return Response(ItemSerializer(items, many=True).data)

    def post(self, request, *args, **kwargs):
        serializer = ItemCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        data = serializer.validated_data
        item_id = self.get_system().item_editor.add_item_to_inventory(
            name=data['name'],
            description=data.get('description', ''),
            owner_id=request.user.id,
            price=data['price'],
            for_sale=data.get('for_sale', False),
        )
        item = Item.objects.get(pk=item_id)
        return Response(ItemSerializer(item).data, status=status.HTTP_201_CREATED)


class WishlistAddView(TradingAPIView):
    """
    API endpoint for adding an item to the caller's wishlist.

    POST /api/items/<id>/wishlist/

    Success responses:
    - 201: Item added, body contains the recorded history entry
    - 200: Item already in the wishlist

    Error responses:
    - 404: Item does not exist or is not approved
    """

    def post(self, request, pk, *args, **kwargs):
        item = get_object_or_404(Item.objects.only_approved().not_deleted(), pk=pk)
        history = self.get_system().add_to_wishlist.execute(item.id, request.user.id)

        if history is None:
            return Response({'detail': 'Item is already in your wishlist.'}, status=status.HTTP_200_OK)

        return Response(HistorySerializer(history).data, status=status.HTTP_201_CREATED)


# ============================================================================
# Transactions
# ============================================================================

class TransactionListCreateView(TradingAPIView):
    """
    API endpoint for the caller's transactions.

    GET /api/transactions/
    Returns every transaction the user is lender or borrower in.

    POST /api/transactions/
    Request body: {
        "borrow_item_id": 3,
        "lend_item_id": 7,
        "trade_type": "twoWay",
        "trade_duration": "temporary",
        "meeting_date": "2026-11-02",
        "meeting_location": "Library",
        "meeting_location2": "Station"
    }

    Success response (201): {"transaction": {...}, "history_id": 12}

    Error responses:
    - 401: Missing, invalid, or expired JWT token
    - 403: User may not borrow or the owner may not lend
    - 400: Invalid data or an item already reserved
    """
    permission_classes = [IsAuthenticated, IsNotFrozen]

    def get(self, request, *args, **kwargs):
        ids = self.get_system().transaction_manager.query().involves_user(request.user.id).ids()
        transactions = _transaction_queryset().filter(pk__in=ids).order_by('id')
        meetings = [meeting for tx in transactions for meeting in tx.meetings.all()]
        context = self.meeting_context(meetings, request.user.id)
        return Response(TransactionSerializer(transactions, many=True, context=context).data)

    def post(self, request, *args, **kwargs):
        serializer = InitiateTransactionSerializer(data=request.data, context={'request': request})
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        system = self.get_system()

        if not system.permissions.can_borrow(request.user.id):
            logger.warning(
                f"User may not borrow. User: {request.user.email}, "
                f"Status: {request.user.status}, IP: {self.get_client_ip(request)}"
            )
            return Response(
                {'detail': 'You cannot borrow right now. Lend more items or raise your credit.'},
                status=status.HTTP_403_FORBIDDEN
            )

        if not system.permissions.can_lend(data['lender_id']):
            return Response(
                {'detail': 'The owner of this item cannot lend right now.'},
                status=status.HTTP_403_FORBIDDEN
            )

        try:
            history = system.initiate_transaction.execute(
                request.user.id,
                data['lender_id'],
                data['borrow_item_id'],
                data['lend_item_id'],
                data['trade_type'],
                data['trade_duration'],
                data['meeting_date'],
                data['meeting_location'],
                data['meeting_location2'],
            )
        except PolicyViolation as e:
            return self.policy_error(request, e)
        except Exception as e:
            logger.error(
                f"Error initiating transaction for user {request.user.id}: {str(e)}",
                exc_info=True
            )
            return Response(
                {'detail': 'An error occurred while creating the transaction. Please try again.'},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR
            )

        tx = _transaction_queryset().get(pk=history.data['transactionId'])
        return Response(
            {
                'transaction': TransactionSerializer(
                    tx, context=self.meeting_context(tx.meetings.all(), request.user.id)
                ).data,
                'history_id': history.id,
            },
            status=status.HTTP_201_CREATED
        )


class TransactionCancelView(TradingAPIView):
    """
    API endpoint for cancelling a transaction before every meeting is agreed.

    POST /api/transactions/<id>/cancel/

    Error responses:
    - 403: Caller is not a participant
    - 404: Transaction does not exist
    - 400: Every meeting is already agreed
    """
    permission_classes = [IsAuthenticated, IsNotFrozen, IsTransactionParticipant]

    def post(self, request, pk, *args, **kwargs):
        tx = get_object_or_404(Transaction, pk=pk)
        self.check_object_permissions(request, tx)

        manager = self.get_system().transaction_manager
        if manager.check_agree(tx.id):
            return Response(
                {'detail': 'An agreed transaction cannot be cancelled.'},
                status=status.HTTP_400_BAD_REQUEST
            )

        manager.delete_transaction(tx.id)
        logger.info(f"Transaction {pk} cancelled by user {request.user.id}")
        return Response({'detail': 'Transaction cancelled.'}, status=status.HTTP_200_OK)


# ============================================================================
# Meetings
# ============================================================================

class MeetingEditView(TradingAPIView):
    """
    API endpoint for proposing a new place (and date) for a meeting.

    PUT /api/meetings/<id>/
    Request body: {"location": "Cafe", "date": "2026-11-05"}

    Error responses:
    - 400: Edit limit reached, meeting agreed, or invalid data
    - 403: Caller is not a participant
    - 404: Meeting does not exist
    """
    permission_classes = [IsAuthenticated, IsNotFrozen, IsTransactionParticipant]

    def get(self, request, pk, *args, **kwargs):
        meeting = get_object_or_404(_meeting_queryset(), pk=pk)
        self.check_object_permissions(request, meeting)
        return self.meeting_response(request, meeting.id)

    def put(self, request, pk, *args, **kwargs):
        meeting = get_object_or_404(_meeting_queryset(), pk=pk)
        self.check_object_permissions(request, meeting)

        serializer = MeetingEditSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        new_date = serializer.validated_data.get('date') or meeting.date

        try:
            self.get_system().meeting_manager.edit_meeting(
                request.user.id, meeting.id, serializer.validated_data['location'], new_date
            )
        except PolicyViolation as e:
            return self.policy_error(request, e)
        except DjangoValidationError as e:
            return Response({'detail': e.messages}, status=status.HTTP_400_BAD_REQUEST)

        return self.meeting_response(request, pk)


class MeetingAgreeView(TradingAPIView):
    """
    API endpoint for accepting the current proposal of a meeting.

    POST /api/meetings/<id>/agree/

    The user who made the current proposal cannot accept it.
    """
    permission_classes = [IsAuthenticated, IsNotFrozen, IsTransactionParticipant]

    def post(self, request, pk, *args, **kwargs):
        meeting = get_object_or_404(_meeting_queryset(), pk=pk)
        self.check_object_permissions(request, meeting)

        manager = self.get_system().meeting_manager
        if not meeting.is_agreed and meeting.id not in manager.users_edit_turn([meeting], request.user.id):
            return Response(
                {'detail': 'Wait for the other party to answer your proposal.'},
                status=status.HTTP_400_BAD_REQUEST
            )

        manager.agree_to_meeting(meeting.id)
        return self.meeting_response(request, pk)


class MeetingConfirmView(TradingAPIView):
    """
    API endpoint for confirming that an agreed meeting took place.

    POST /api/meetings/<id>/confirm/

    Once everyone who proposed for the meeting has confirmed, the items change
    hands: a loan starts, a loan ends, or ownership is transferred.

    Only a party that has not confirmed yet may confirm, and only after the
    meeting date. A complete meeting accepts no further confirmations.

    Error responses:
    - 400: Meeting not agreed, not yet held, complete, or already confirmed
    - 403: Caller is not a participant
    - 404: Meeting does not exist
    """
    permission_classes = [IsAuthenticated, IsNotFrozen, IsTransactionParticipant]

    def post(self, request, pk, *args, **kwargs):
        meeting = get_object_or_404(_meeting_queryset(), pk=pk)
        self.check_object_permissions(request, meeting)

        if not meeting.is_agreed:
            return Response(
                {'detail': 'Only an agreed meeting can be confirmed.'},
                status=status.HTTP_400_BAD_REQUEST
            )

        system = self.get_system()
        waiting = system.meeting_manager.get_confirm_permissions([meeting], timezone.localdate())
        if request.user.id not in waiting.get(meeting.id, []):
            logger.warning(
                f"Rejected confirmation of meeting {meeting.id} by user {request.user.id} "
                f"from IP: {self.get_client_ip(request)}"
            )
            return Response(
                {'detail': 'This meeting cannot be confirmed by you now.'},
                status=status.HTTP_400_BAD_REQUEST
            )

        system.meeting_manager.mark_conducted(meeting.id, request.user.id)

        # Incomplete before this confirmation, so completion here is new
        meeting = _meeting_queryset().get(pk=pk)
        if meeting.is_complete():
            system.transaction_manager.perform_meeting(meeting.id)

        return self.meeting_response(request, pk)


# ============================================================================
# Users
# ============================================================================

class SelfStatusView(TradingAPIView):
    """
    API endpoint for a user changing their own status.

    POST /api/users/me/status/
    Request body: {"action": "vacation" | "unvacation" | "request_unfreeze"}

    Error responses:
    - 403: Vacation not allowed while transactions are open
    - 400: Action does not apply to the current status
    """

    def post(self, request, *args, **kwargs):
        serializer = SelfStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        action = serializer.validated_data['action']
        system = self.get_system()
        user_id = request.user.id

        if action == 'vacation':
            if not system.permissions.can_vacation(user_id):
                return Response(
                    {'detail': 'You cannot go on vacation with open transactions.'},
                    status=status.HTTP_403_FORBIDDEN
                )
            changed = system.user_manager.set_vacation(user_id)
        elif action == 'unvacation':
            changed = system.user_manager.un_vacation(user_id)
        else:
            changed = system.permissions.is_frozen(user_id) and system.user_manager.request_unfreeze(user_id)

        if not changed:
            return Response(
                {'detail': f'Cannot {action.replace("_", " ")} from status {request.user.status}.'},
                status=status.HTTP_400_BAD_REQUEST
            )

        user = User.objects.get(pk=user_id)
        return Response(UserSummarySerializer(user).data)


class FrequentPartnersView(TradingAPIView):
    """
    GET /api/users/me/partners/

    Response (200): {"partners": [{"user": {...}, "count": 3}, ...]}
    """

    def get(self, request, *args, **kwargs):
        user_ids, counts = self.get_system().transaction_manager.frequent_partners(request.user.id)
        users = User.objects.in_bulk(user_ids)
        partners = [
            {'user': UserSummarySerializer(users[user_id]).data, 'count': count}
            for user_id, count in zip(user_ids, counts)
            if user_id in users
        ]
        return Response({'partners': partners})


# ============================================================================
# Admin
# ============================================================================

class AdminAlertsView(TradingAPIView):
    """
    GET /api/admin/alerts/

    Response (200): {
        "freeze_suggestions": [...users],
        "unfreeze_requests": [...users],
        "add_item_requests": [3, 8]
    }
    """
    permission_classes = [IsAuthenticated, IsTradingAdmin]

    def get(self, request, *args, **kwargs):
        alerts = self.get_system().alert_manager
        return Response({
            'freeze_suggestions': UserSummarySerializer(alerts.get_freeze_suggestions(), many=True).data,
            'unfreeze_requests': UserSummarySerializer(alerts.get_unfreeze_requests(), many=True).data,
            'add_item_requests': alerts.get_add_item_requests(),
        })


class AdminItemApproveView(TradingAPIView):
    """
    POST /api/admin/items/<id>/approve/

    Approves an item into the inventory and records an undoable history entry.
    """
    permission_classes = [IsAuthenticated, IsTradingAdmin]

    def post(self, request, pk, *args, **kwargs):
        history = self.get_system().approve_item.execute(pk)
        if history is None:
            return Response({'detail': 'Item not found.'}, status=status.HTTP_404_NOT_FOUND)
        return Response(HistorySerializer(history).data, status=status.HTTP_201_CREATED)


class AdminHistoryListView(TradingAPIView):
    """GET /api/admin/history/ lists every recorded action with its undo state."""
    permission_classes = [IsAuthenticated, IsTradingAdmin]

    def get(self, request, *args, **kwargs):
        commands = self.get_system().command_manager
        serializer = HistorySerializer(
            commands.all_actions(),
            many=True,
            context={'undo_permissions': commands.get_undo_permissions()},
        )
        return Response(serializer.data)


class AdminHistoryUndoView(TradingAPIView):
    """
    POST /api/admin/history/<id>/undo/

    Error responses:
    - 404: History entry does not exist
    - 400: Action can no longer be undone, or undoing failed
    """
    permission_classes = [IsAuthenticated, IsTradingAdmin]

    def post(self, request, pk, *args, **kwargs):
        try:
            history = self.get_system().command_manager.undo(pk)
        except History.DoesNotExist:
            return Response({'detail': 'History entry not found.'}, status=status.HTTP_404_NOT_FOUND)
        except CommandExecutionException as e:
            logger.warning(
                f"Undo of history {pk} failed: {e.cause}, "
                f"Admin: {request.user.email}, IP: {self.get_client_ip(request)}"
            )
            return Response({'detail': str(e.cause)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(HistorySerializer(history).data)


class AdminConfigView(TradingAPIView):
    """
    GET /api/admin/config/ returns the current trading configuration.

    PUT /api/admin/config/
    Request body: {"name": "maxMeetingEdits", "value": 5}
    """
    permission_classes = [IsAuthenticated, IsTradingAdmin]

    def get(self, request, *args, **kwargs):
        return Response(self.get_system().config.all())

    def put(self, request, *args, **kwargs):
        serializer = ConfigUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        config = self.get_system().config

        try:
            config.edit(serializer.validated_data['name'], serializer.validated_data['value'])
        except PolicyViolation as e:
            return self.policy_error(request, e)

        logger.info(f"Config {serializer.validated_data['name']} changed by {request.user.email}")
        return Response(config.all())


class AdminUserStatusView(TradingAPIView):
    """
    POST /api/admin/users/<id>/status/
    Request body: {"action": "freeze" | "unfreeze" | "promote" | "demo"}
    """
    permission_classes = [IsAuthenticated, IsTradingAdmin]

    def post(self, request, pk, *args, **kwargs):
        user = get_object_or_404(User, pk=pk)
        serializer = AdminStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        users = self.get_system().user_manager
        actions = {
            'freeze': users.freeze_user,
            'unfreeze': users.unfreeze_user,
            'promote': users.promote,
            'demo': users.set_account_to_demo,
        }
        actions[serializer.validated_data['action']](user.id)

        user.refresh_from_db()
        return Response(UserSummarySerializer(user).data)


class AdminStatsView(TradingAPIView):
    """
    GET /api/admin/stats/

    Response (200): {
        "most_traded_items": [{"item": 5, "count": 2}, ...],
        "high_credit_users": [{"user": 2, "credit": 1500}, ...]
    }
    """
    permission_classes = [IsAuthenticated, IsTradingAdmin]

    def get(self, request, *args, **kwargs):
        system = self.get_system()
        item_ids, item_counts = system.transaction_manager.most_traded_items()
        user_ids, credits = system.user_manager.user_high_credit()
        return Response({
            'most_traded_items': [
                {'item': item_id, 'count': count} for item_id, count in zip(item_ids, item_counts)
            ],
            'high_credit_users': [
                {'user': user_id, 'credit': credit} for user_id, credit in zip(user_ids, credits)
            ],
        })
