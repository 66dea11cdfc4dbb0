"""
Custom permission classes for the lending marketplace API.
"""

from rest_framework import permissions


class IsTradingAdmin(permissions.BasePermission):
    """
    Permission class that allows only marketplace admins.

    A user is an admin when their status is 'admin' or they are staff.

    Usage:
        class MyView(APIView):
            permission_classes = [IsAuthenticated, IsTradingAdmin]
    """

    message = 'You do not have permission to perform this action. Admin privileges required.'

    def has_permission(self, request, view):
        """
        Check if user is authenticated and is an admin.

        Args:
            request: HTTP request object
            view: View being accessed

        Returns:
            bool: True if user is an admin, False otherwise
        """
        if not request.user or not request.user.is_authenticated:
            return False

        return request.user.is_staff or getattr(request.user, 'status', None) == 'admin'


class IsNotFrozen(permissions.BasePermission):
    """
    Permission class that blocks frozen accounts from mutating requests.

    Frozen users may still read, so they can see why they were frozen and
    request to be unfrozen.
    """

    message = 'Your account is frozen. Request an unfreeze to trade again.'

    def has_permission(self, request, view):
        if request.method in permissions.SAFE_METHODS:
            return True

        if not request.user or not request.user.is_authenticated:
            return False

        return getattr(request.user, 'status', None) != 'frozen'


class IsTransactionParticipant(permissions.BasePermission):
    """
    Object-level permission for transactions and meetings.

    Only the lender or borrower of one of the transaction's trades may act on
    it. For a meeting, the transactions it belongs to are checked.
    """

    message = 'You are not a participant in this transaction.'

    def has_object_permission(self, request, view, obj):
        """
        Check if request.user takes part in the transaction.

        Args:
            request: HTTP request object
            view: View being accessed
            obj: Transaction or Meeting instance

        Returns:
            bool: True if user is lender or borrower, False otherwise
        """
        user_id = request.user.id
        transactions = obj.transactions.all() if hasattr(obj, 'transactions') else [obj]
        for tx in transactions:
            for trade in tx.trades.all():
                if user_id in (trade.lender_id, trade.borrower_id):
                    return True
        return False
