"""
Models for the peer-to-peer lending marketplace.

Items are listed by users, traded through Transactions made of one or two
Trades, and exchanged at negotiated Meetings. Every audited user action leaves
a History row.
"""

from django.contrib.auth.models import AbstractUser
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from .validators import validate_config_value, validate_location


class User(AbstractUser):
    """
    Custom User model extending Django's AbstractUser.

    Additional fields:
    - email: Required, unique email address
    - status: Account status driving trading permissions
    - credit: Credit points earned through completed transactions
    - home_city: City the user trades in
    - wishlist: Items the user would like to borrow
    - created_at: Account creation timestamp
    - updated_at: Last update timestamp
    """

    STATUS_CHOICES = [
        ('normal', 'Normal'),
        ('admin', 'Admin'),
        ('frozen', 'Frozen'),
        ('vacation', 'On Vacation'),
        ('demo', 'Demo'),
        ('requestUnfreeze', 'Requested Unfreeze'),
    ]

    email = models.EmailField(
        _('email address'),
        unique=True,
        blank=False,
        null=False,
        error_messages={
            'unique': _('A user with that email already exists.'),
        },
        help_text=_('Required. Enter a valid email address.')
    )

    status = models.CharField(
        _('status'),
        max_length=20,
        choices=STATUS_CHOICES,
        default='normal',
        help_text=_('Account status. Frozen and vacation accounts cannot trade.')
    )

    credit = models.IntegerField(
        _('credit'),
        default=0,
        help_text=_('Credit points earned from completed transactions.')
    )

    home_city = models.CharField(
        _('home city'),
        max_length=100,
        blank=True,
        default='',
        help_text=_('City where the user usually meets other traders.')
    )

    wishlist = models.ManyToManyField(
        'Item',
        blank=True,
        related_name='wishlisted_by',
        help_text=_('Items this user would like to borrow.')
    )

    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True,
        help_text=_('Timestamp when the account was created.')
    )

    updated_at = models.DateTimeField(
        _('updated at'),
        auto_now=True,
        help_text=_('Timestamp when the account was last updated.')
    )

    class Meta:
        verbose_name = _('user')
        verbose_name_plural = _('users')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['email'], name='trading_use_email_7a3b1c_idx'),
            models.Index(fields=['status'], name='trading_use_status_0e9d4f_idx'),
        ]

    def __str__(self):
        """Return email as string representation."""
        return self.email or self.username

    def clean(self):
        """
        Validate model fields.

        Ensures:
        - Email is provided and lowercase for case-insensitive uniqueness

        Raises:
            ValidationError: If validation fails
        """
        super().clean()

        if self.email:
            self.email = self.email.lower()

        if not self.email:
            raise ValidationError({
                'email': _('Email address is required.')
            })

    def save(self, *args, **kwargs):
        """
        Override save to normalize email and validate updates.

        Creation skips full_clean so duplicate emails surface as IntegrityError.
        """
        if self.email:
            self.email = self.email.lower()

        if self.pk is not None:
            self.full_clean(exclude=['password'])

        super().save(*args, **kwargs)


class ItemQuerySet(models.QuerySet):
    """Chainable item filters used by browsing, alerts and undo checks."""

    def only_approved(self):
        return self.filter(is_visible=True)

    def not_deleted(self):
        return self.filter(is_soft_deleted=False)

    def held_by_owner(self):
        return self.filter(holder_id=models.F('owner_id'))

    def owned_by_unfrozen_user(self):
        return self.exclude(owner__status='frozen')

    def in_wishlist_of(self, user_id):
        return self.filter(wishlisted_by__id=user_id)

    def not_reserved(self):
        return self.filter(is_reserved=False)

    def available(self):
        """Items other users can currently ask to borrow."""
        return self.only_approved().not_deleted().not_reserved()


class Item(models.Model):
    """
    Item listed in the marketplace.

    Fields:
    - name: Item name
    - description: Free text description
    - owner: User holding title to the item
    - holder: User currently in possession (differs from owner during a loan)
    - price: Price in whole currency units
    - for_sale: Whether the owner accepts selling it
    - is_visible: Approved by an admin
    - is_soft_deleted: Removed from the marketplace after a permanent trade
    - is_reserved: Locked into an incomplete trade
    """

    name = models.CharField(
        _('name'),
        max_length=200,
        help_text=_('Name of the item')
    )

    description = models.TextField(
        _('description'),
        blank=True,
        default='',
        help_text=_('Detailed description of the item')
    )

    owner = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='owned_items',
        help_text=_('User who owns the item')
    )

    holder = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='held_items',
        help_text=_('User currently holding the item')
    )

    price = models.PositiveIntegerField(
        _('price'),
        default=0,
        validators=[MinValueValidator(0)],
        help_text=_('Price in whole currency units')
    )

    for_sale = models.BooleanField(
        _('for sale'),
        default=False,
        help_text=_('Whether the owner is willing to sell the item')
    )

    is_visible = models.BooleanField(
        _('is visible'),
        default=False,
        help_text=_('Whether an admin approved the item into the inventory')
    )

    is_soft_deleted = models.BooleanField(
        _('is soft deleted'),
        default=False,
        help_text=_('Whether the item left the marketplace after a permanent transaction')
    )

    is_reserved = models.BooleanField(
        _('is reserved'),
        default=False,
        help_text=_('Whether the item is locked into an incomplete trade')
    )

    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True,
        help_text=_('Timestamp when the item was listed')
    )

    updated_at = models.DateTimeField(
        _('updated at'),
        auto_now=True,
        help_text=_('Timestamp when the item was last updated')
    )

    objects = ItemQuerySet.as_manager()

    class Meta:
        verbose_name = _('item')
        verbose_name_plural = _('items')
        ordering = ['id']
        indexes = [
            models.Index(fields=['owner'], name='trading_ite_owner_i_3f0c9a_idx'),
            models.Index(fields=['holder'], name='trading_ite_holder__d41b7e_idx'),
            models.Index(fields=['is_visible'], name='trading_ite_is_visi_a92e10_idx'),
            models.Index(fields=['is_reserved'], name='trading_ite_is_rese_6e5f22_idx'),
        ]

    def __str__(self):
        """Return name as string representation."""
        return self.name

    def clean(self):
        """
        Validate model fields.

        Raises:
            ValidationError: If name is blank
        """
        super().clean()

        if not self.name or not self.name.strip():
            raise ValidationError({
                'name': _('Item name cannot be empty.')
            })

    def save(self, *args, **kwargs):
        """Override save to ensure validation."""
        self.full_clean()
        super().save(*args, **kwargs)

    def swap_holder(self, first_user_id, second_user_id):
        """Hand the item to whichever of the two users is not holding it."""
        if self.holder_id == first_user_id:
            self.holder_id = second_user_id
        else:
            self.holder_id = first_user_id

    def swap_owner(self, first_user_id, second_user_id):
        """Transfer title to whichever of the two users does not own it."""
        if self.owner_id == first_user_id:
            self.owner_id = second_user_id
        else:
            self.owner_id = first_user_id


class Trade(models.Model):
    """
    One direction of an exchange: the lender hands items to the borrower.

    A one-way or sell transaction has a single trade, a two-way transaction
    has a second trade with the roles swapped.
    """

    lender = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='lent_trades',
        help_text=_('User handing over the items')
    )

    borrower = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='borrowed_trades',
        help_text=_('User receiving the items')
    )

    items = models.ManyToManyField(
        Item,
        related_name='trades',
        help_text=_('Items exchanged in this trade')
    )

    is_complete = models.BooleanField(
        _('is complete'),
        default=False,
        help_text=_('Whether the items changed hands')
    )

    is_sell = models.BooleanField(
        _('is sell'),
        default=False,
        help_text=_('Whether this trade is a sale')
    )

    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True
    )

    class Meta:
        verbose_name = _('trade')
        verbose_name_plural = _('trades')
        ordering = ['id']
        indexes = [
            models.Index(fields=['lender'], name='trading_tra_lender__9b2c6d_idx'),
            models.Index(fields=['borrower'], name='trading_tra_borrowe_5d7e80_idx'),
        ]

    def __str__(self):
        return f"Trade {self.pk}: {self.lender_id} -> {self.borrower_id}"

    def clean(self):
        super().clean()

        if self.lender_id and self.borrower_id and self.lender_id == self.borrower_id:
            raise ValidationError({
                'borrower': _('Lender and borrower cannot be the same user.')
            })

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    def item_list(self):
        """Return the trade's items ordered by id."""
        return list(self.items.all())


class Meeting(models.Model):
    """
    A negotiated real-world exchange appointment.

    The date and location live in an append-only list of MeetingProposal rows;
    the latest proposal is the current one. Once agreed the proposal is frozen.
    A meeting is complete when every user who ever proposed has confirmed it.
    """

    is_agreed = models.BooleanField(
        _('is agreed'),
        default=False,
        help_text=_('Whether both parties accepted the current proposal')
    )

    is_second_meeting = models.BooleanField(
        _('is second meeting'),
        default=False,
        help_text=_('Return meeting of a temporary transaction; its date is fixed')
    )

    confirmed_by = models.ManyToManyField(
        User,
        blank=True,
        related_name='confirmed_meetings',
        help_text=_('Users who confirmed the meeting took place')
    )

    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True
    )

    class Meta:
        verbose_name = _('meeting')
        verbose_name_plural = _('meetings')
        ordering = ['id']
        indexes = [
            models.Index(fields=['is_agreed'], name='trading_mee_is_agre_41c8b3_idx'),
        ]

    def __str__(self):
        return f"Meeting {self.pk} at {self.location} on {self.date}"

    def proposal_list(self):
        return list(self.proposals.all())

    @property
    def current_proposal(self):
        proposals = self.proposal_list()
        return proposals[-1] if proposals else None

    @property
    def date(self):
        proposal = self.current_proposal
        return proposal.date if proposal else None

    @property
    def location(self):
        proposal = self.current_proposal
        return proposal.location if proposal else None

    @property
    def last_editor_id(self):
        proposal = self.current_proposal
        return proposal.editor_id if proposal else None

    def editor_ids(self):
        """Editor id of every proposal, in order, repeats included."""
        return [proposal.editor_id for proposal in self.proposal_list()]

    def edit_count(self, user_id):
        return self.editor_ids().count(user_id)

    def confirmed_ids(self):
        return {user.id for user in self.confirmed_by.all()}

    def is_confirmed_by(self, user_id):
        return user_id in self.confirmed_ids()

    def is_complete(self):
        """
        Check whether every user who edited the meeting confirmed it.

        Returns:
            bool: True if all distinct editors are in confirmed_by
        """
        confirmed = self.confirmed_ids()
        return all(editor_id in confirmed for editor_id in self.editor_ids())

    def has_passed(self, today=None):
        """
        Check whether the meeting date is strictly before today.

        Args:
            today: Date to compare against (defaults to the local date)
        """
        if self.date is None:
            return False
        today = today or timezone.localdate()
        return today > self.date


class MeetingProposal(models.Model):
    """One (date, location, editor) entry in a meeting's edit history."""

    meeting = models.ForeignKey(
        Meeting,
        on_delete=models.CASCADE,
        related_name='proposals',
        help_text=_('Meeting this proposal belongs to')
    )

    date = models.DateField(
        _('date'),
        help_text=_('Proposed meeting date')
    )

    location = models.CharField(
        _('location'),
        max_length=255,
        validators=[validate_location],
        help_text=_('Proposed meeting location')
    )

    editor = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='meeting_proposals',
        help_text=_('User who made this proposal')
    )

    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True
    )

    class Meta:
        verbose_name = _('meeting proposal')
        verbose_name_plural = _('meeting proposals')
        ordering = ['id']

    def __str__(self):
        return f"{self.location} on {self.date} by {self.editor_id}"

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)


class Transaction(models.Model):
    """
    A full negotiated exchange: one or two trades plus one or two meetings.

    A transaction with a single meeting is treated as permanent (title
    transfer); two meetings mean a temporary loan with a return meeting.
    """

    trades = models.ManyToManyField(
        Trade,
        related_name='transactions',
        help_text=_('Trades making up this transaction')
    )

    meetings = models.ManyToManyField(
        Meeting,
        related_name='transactions',
        help_text=_('Meetings scheduled for this transaction')
    )

    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True,
        help_text=_('Timestamp when the transaction was initiated')
    )

    class Meta:
        verbose_name = _('transaction')
        verbose_name_plural = _('transactions')
        ordering = ['id']

    def __str__(self):
        return f"Transaction {self.pk}"

    def trade_list(self):
        return list(self.trades.all())

    def meeting_list(self):
        return list(self.meetings.all())

    def is_one_way(self):
        return len(self.trade_list()) == 1

    def is_permanent(self):
        return len(self.meeting_list()) < 2


class History(models.Model):
    """
    Audit record of a user action.

    Rows are never deleted. Undoing the action marks the row undone and
    appends a note to its display string.
    """

    action_name = models.CharField(
        _('action name'),
        max_length=100,
        help_text=_('Name of the action that produced this entry')
    )

    data = models.JSONField(
        _('data'),
        default=dict,
        blank=True,
        help_text=_('Snapshot of the action inputs')
    )

    display_string = models.TextField(
        _('display string'),
        help_text=_('Human readable summary of the action')
    )

    is_undone = models.BooleanField(
        _('is undone'),
        default=False,
        help_text=_('Whether the action has been undone')
    )

    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True
    )

    class Meta:
        verbose_name = _('history')
        verbose_name_plural = _('history')
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['action_name'], name='trading_his_action__5c1d2e_idx'),
            models.Index(fields=['is_undone'], name='trading_his_is_undo_8b7a41_idx'),
        ]

    def __str__(self):
        return self.display_string


class Config(models.Model):
    """Persisted override of a trading policy setting."""

    name = models.CharField(
        _('name'),
        max_length=100,
        unique=True,
        help_text=_('Configuration key, e.g. maxMeetingEdits')
    )

    value = models.CharField(
        _('value'),
        max_length=100,
        validators=[validate_config_value],
        help_text=_('Configuration value stored as text')
    )

    class Meta:
        verbose_name = _('config')
        verbose_name_plural = _('config')
        ordering = ['name']

    def __str__(self):
        return f"{self.name}={self.value}"

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)
