"""
URL configuration for lending_marketplace project.
"""
from django.contrib import admin
from django.urls import path
from rest_framework_simplejwt.views import TokenRefreshView, TokenVerifyView

from trading.views import (
    AdminAlertsView,
    AdminConfigView,
    AdminHistoryListView,
    AdminHistoryUndoView,
    AdminItemApproveView,
    AdminStatsView,
    AdminUserStatusView,
    EmailTokenObtainPairView,
    FrequentPartnersView,
    ItemListCreateView,
    MeetingAgreeView,
    MeetingConfirmView,
    MeetingEditView,
    SelfStatusView,
    TransactionCancelView,
    TransactionListCreateView,
    UserRegistrationView,
    WishlistAddView,
)


urlpatterns = [
    path('admin/', admin.site.urls),

    # Authentication endpoints
    path('api/auth/register/', UserRegistrationView.as_view(), name='user_register'),
    path('api/token/', EmailTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('api/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('api/token/verify/', TokenVerifyView.as_view(), name='token_verify'),

    # Item endpoints
    path('api/items/', ItemListCreateView.as_view(), name='item_list_create'),
    path('api/items/<int:pk>/wishlist/', WishlistAddView.as_view(), name='item_wishlist_add'),

    # Transaction endpoints
    path('api/transactions/', TransactionListCreateView.as_view(), name='transaction_list_create'),
    path('api/transactions/<int:pk>/cancel/', TransactionCancelView.as_view(), name='transaction_cancel'),

    # Meeting endpoints
    path('api/meetings/<int:pk>/', MeetingEditView.as_view(), name='meeting_edit'),
    path('api/meetings/<int:pk>/agree/', MeetingAgreeView.as_view(), name='meeting_agree'),
    path('api/meetings/<int:pk>/confirm/', MeetingConfirmView.as_view(), name='meeting_confirm'),

    # User endpoints
    path('api/users/me/status/', SelfStatusView.as_view(), name='self_status'),
    path('api/users/me/partners/', FrequentPartnersView.as_view(), name='frequent_partners'),

    # Admin endpoints
    path('api/admin/alerts/', AdminAlertsView.as_view(), name='admin_alerts'),
    path('api/admin/items/<int:pk>/approve/', AdminItemApproveView.as_view(), name='admin_item_approve'),
    path('api/admin/history/', AdminHistoryListView.as_view(), name='admin_history'),
    path('api/admin/history/<int:pk>/undo/', AdminHistoryUndoView.as_view(), name='admin_history_undo'),
    path('api/admin/config/', AdminConfigView.as_view(), name='admin_config'),
    path('api/admin/users/<int:pk>/status/', AdminUserStatusView.as_view(), name='admin_user_status'),
    path('api/admin/stats/', AdminStatsView.as_view(), name='admin_stats'),
]
