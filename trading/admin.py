"""
Django admin configuration for the lending marketplace.
"""

from django.contrib import admin, messages
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.translation import gettext_lazy as _

from .exceptions import CommandExecutionException
from .models import Config, History, Item, Meeting, MeetingProposal, Trade, Transaction, User
from .services.commands import ApproveItemToInventory, CommandManager
from .services.users import UserManager


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """
    Custom admin interface for User model.

    Extends Django's UserAdmin with trading status, credit and wishlist.
    """

    list_display = [
        'email',
        'username',
        'status',
        'credit',
        'home_city',
        'is_staff',
        'is_active',
        'created_at',
    ]

    list_filter = [
        'status',
        'is_staff',
        'is_superuser',
        'is_active',
        'created_at',
    ]

    search_fields = [
        'email',
        'username',
        'first_name',
        'last_name',
        'home_city',
    ]

    ordering = ['-created_at']

    fieldsets = (
        (None, {
            'fields': ('username', 'password')
        }),
        (_('Personal Info'), {
            'fields': (
                'first_name',
                'last_name',
                'email',
                'home_city',
            )
        }),
        (_('Trading'), {
            'fields': ('status', 'credit', 'wishlist')
        }),
        (_('Permissions'), {
            'fields': (
                'is_active',
                'is_staff',
                'is_superuser',
                'groups',
                'user_permissions',
            ),
            'classes': ('collapse',),
        }),
        (_('Important Dates'), {
            'fields': ('last_login', 'date_joined', 'created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': (
                'username',
                'email',
                'password1',
                'password2',
                'home_city',
            ),
        }),
    )

    readonly_fields = ['credit', 'created_at', 'updated_at', 'last_login', 'date_joined']
    filter_horizontal = ['wishlist', 'groups', 'user_permissions']
    date_hierarchy = 'created_at'
    list_per_page = 25
    actions = ['freeze_users', 'unfreeze_users']

    def get_readonly_fields(self, request, obj=None):
        if obj:
            return self.readonly_fields
        return []

    @admin.action(description=_('Freeze selected users'))
    def freeze_users(self, request, queryset):
        manager = UserManager()
        changed = sum(1 for user in queryset if manager.freeze_user(user.id))
        self.message_user(request, f"{changed} user(s) frozen.", messages.SUCCESS)

    @admin.action(description=_('Unfreeze selected users'))
    def unfreeze_users(self, request, queryset):
        manager = UserManager()
        changed = sum(1 for user in queryset if manager.unfreeze_user(user.id))
        self.message_user(request, f"{changed} user(s) unfrozen.", messages.SUCCESS)


@admin.register(Item)
class ItemAdmin(admin.ModelAdmin):
    """Admin interface for Item model."""

    list_display = [
        'name',
        'owner',
        'holder',
        'price',
        'for_sale',
        'is_visible',
        'is_reserved',
        'is_soft_deleted',
        'created_at',
    ]
    list_filter = ['is_visible', 'for_sale', 'is_reserved', 'is_soft_deleted']
    search_fields = ['name', 'description', 'owner__email']
    readonly_fields = ['created_at', 'updated_at']
    raw_id_fields = ['owner', 'holder']
    list_per_page = 25
    actions = ['approve_items']

    @admin.action(description=_('Approve selected items into the inventory'))
    def approve_items(self, request, queryset):
        """Approve through the command layer so each approval can be undone."""
        command = ApproveItemToInventory()
        approved = 0
        for item in queryset.filter(is_visible=False):
            if command.execute(item.id) is not None:
                approved += 1
        self.message_user(request, f"{approved} item(s) approved.", messages.SUCCESS)


class MeetingProposalInline(admin.TabularInline):
    """Inline admin for the proposals of a meeting."""
    model = MeetingProposal
    extra = 0
    fields = ['date', 'location', 'editor', 'created_at']
    readonly_fields = ['created_at']


@admin.register(Meeting)
class MeetingAdmin(admin.ModelAdmin):
    list_display = ['id', 'date', 'location', 'is_agreed', 'is_second_meeting', 'created_at']
    list_filter = ['is_agreed', 'is_second_meeting']
    inlines = [MeetingProposalInline]

    def date(self, obj):
        return obj.date

    def location(self, obj):
        return obj.location


@admin.register(Trade)
class TradeAdmin(admin.ModelAdmin):
    list_display = ['id', 'lender', 'borrower', 'is_complete', 'is_sell', 'created_at']
    list_filter = ['is_complete', 'is_sell']
    raw_id_fields = ['lender', 'borrower']


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ['id', 'created_at']
    filter_horizontal = ['trades', 'meetings']


@admin.register(History)
class HistoryAdmin(admin.ModelAdmin):
    """
    Admin interface for the action history.

    Rows are written by the command layer only. The undo action goes through
    the same checks as the API.
    """

    list_display = ['id', 'action_name', 'display_string', 'is_undone', 'created_at']
    list_filter = ['action_name', 'is_undone']
    search_fields = ['display_string']
    readonly_fields = ['action_name', 'data', 'display_string', 'is_undone', 'created_at']
    actions = ['undo_actions']

    def has_add_permission(self, request):
        return False

    @admin.action(description=_('Undo selected actions'))
    def undo_actions(self, request, queryset):
        manager = CommandManager()
        for history in queryset:
            try:
                manager.undo(history.id)
            except CommandExecutionException as e:
                self.message_user(request, f"History {history.id}: {e.cause}", messages.WARNING)
            else:
                self.message_user(request, f"History {history.id} undone.", messages.SUCCESS)


@admin.register(Config)
class ConfigAdmin(admin.ModelAdmin):
    list_display = ['name', 'value']
    search_fields = ['name']
