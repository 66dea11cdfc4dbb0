import django.contrib.auth.models
import django.contrib.auth.validators
import django.core.validators
import django.db.models.deletion
import django.utils.timezone
import trading.validators
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='User',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('username', models.CharField(error_messages={'unique': 'A user with that username already exists.'}, help_text='Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.', max_length=150, unique=True, validators=[django.contrib.auth.validators.UnicodeUsernameValidator()], verbose_name='username')),
                ('first_name', models.CharField(blank=True, max_length=150, verbose_name='first name')),
                ('last_name', models.CharField(blank=True, max_length=150, verbose_name='last name')),
                ('is_staff', models.BooleanField(default=False, help_text='Designates whether the user can log into this admin site.', verbose_name='staff status')),
                ('is_active', models.BooleanField(default=True, help_text='Designates whether this user should be treated as active. Unselect this instead of deleting accounts.', verbose_name='active')),
                ('date_joined', models.DateTimeField(default=django.utils.timezone.now, verbose_name='date joined')),
                ('email', models.EmailField(error_messages={'unique': 'A user with that email already exists.'}, help_text='Required. Enter a valid email address.', max_length=254, unique=True, verbose_name='email address')),
                ('status', models.CharField(choices=[('normal', 'Normal'), ('admin', 'Admin'), ('frozen', 'Frozen'), ('vacation', 'On Vacation'), ('demo', 'Demo'), ('requestUnfreeze', 'Requested Unfreeze')], default='normal', help_text='Account status. Frozen and vacation accounts cannot trade.', max_length=20, verbose_name='status')),
                ('credit', models.IntegerField(default=0, help_text='Credit points earned from completed transactions.', verbose_name='credit')),
                ('home_city', models.CharField(blank=True, default='', help_text='City where the user usually meets other traders.', max_length=100, verbose_name='home city')),
                ('created_at', models.DateTimeField(auto_now_add=True, help_text='Timestamp when the account was created.', verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when the account was last updated.', verbose_name='updated at')),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'user',
                'verbose_name_plural': 'users',
                'ordering': ['-created_at'],
            },
            managers=[
                ('objects', django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name='Config',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(help_text='Configuration key, e.g. maxMeetingEdits', max_length=100, unique=True, verbose_name='name')),
                ('value', models.CharField(help_text='Configuration value stored as text', max_length=100, validators=[trading.validators.validate_config_value], verbose_name='value')),
            ],
            options={
                'verbose_name': 'config',
                'verbose_name_plural': 'config',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='History',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action_name', models.CharField(help_text='Name of the action that produced this entry', max_length=100, verbose_name='action name')),
                ('data', models.JSONField(blank=True, default=dict, help_text='Snapshot of the action inputs', verbose_name='data')),
                ('display_string', models.TextField(help_text='Human readable summary of the action', verbose_name='display string')),
                ('is_undone', models.BooleanField(default=False, help_text='Whether the action has been undone', verbose_name='is undone')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
            ],
            options={
                'verbose_name': 'history',
                'verbose_name_plural': 'history',
                'ordering': ['-created_at', '-id'],
                'indexes': [
                    models.Index(fields=['action_name'], name='trading_his_action__5c1d2e_idx'),
                    models.Index(fields=['is_undone'], name='trading_his_is_undo_8b7a41_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Item',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(help_text='Name of the item', max_length=200, verbose_name='name')),
                ('description', models.TextField(blank=True, default='', help_text='Detailed description of the item', verbose_name='description')),
                ('price', models.PositiveIntegerField(default=0, help_text='Price in whole currency units', validators=[django.core.validators.MinValueValidator(0)], verbose_name='price')),
                ('for_sale', models.BooleanField(default=False, help_text='Whether the owner is willing to sell the item', verbose_name='for sale')),
                ('is_visible', models.BooleanField(default=False, help_text='Whether an admin approved the item into the inventory', verbose_name='is visible')),
                ('is_soft_deleted', models.BooleanField(default=False, help_text='Whether the item left the marketplace after a permanent transaction', verbose_name='is soft deleted')),
                ('is_reserved', models.BooleanField(default=False, help_text='Whether the item is locked into an incomplete trade', verbose_name='is reserved')),
                ('created_at', models.DateTimeField(auto_now_add=True, help_text='Timestamp when the item was listed', verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when the item was last updated', verbose_name='updated at')),
                ('holder', models.ForeignKey(help_text='User currently holding the item', on_delete=django.db.models.deletion.CASCADE, related_name='held_items', to=settings.AUTH_USER_MODEL)),
                ('owner', models.ForeignKey(help_text='User who owns the item', on_delete=django.db.models.deletion.CASCADE, related_name='owned_items', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'item',
                'verbose_name_plural': 'items',
                'ordering': ['id'],
                'indexes': [
                    models.Index(fields=['owner'], name='trading_ite_owner_i_3f0c9a_idx'),
                    models.Index(fields=['holder'], name='trading_ite_holder__d41b7e_idx'),
                    models.Index(fields=['is_visible'], name='trading_ite_is_visi_a92e10_idx'),
                    models.Index(fields=['is_reserved'], name='trading_ite_is_rese_6e5f22_idx'),
                ],
            },
        ),
        migrations.AddField(
            model_name='user',
            name='wishlist',
            field=models.ManyToManyField(blank=True, help_text='Items this user would like to borrow.', related_name='wishlisted_by', to='trading.item'),
        ),
        migrations.AddIndex(
            model_name='user',
            index=models.Index(fields=['email'], name='trading_use_email_7a3b1c_idx'),
        ),
        migrations.AddIndex(
            model_name='user',
            index=models.Index(fields=['status'], name='trading_use_status_0e9d4f_idx'),
        ),
        migrations.CreateModel(
            name='Meeting',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('is_agreed', models.BooleanField(default=False, help_text='Whether both parties accepted the current proposal', verbose_name='is agreed')),
                ('is_second_meeting', models.BooleanField(default=False, help_text='Return meeting of a temporary transaction; its date is fixed', verbose_name='is second meeting')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('confirmed_by', models.ManyToManyField(blank=True, help_text='Users who confirmed the meeting took place', related_name='confirmed_meetings', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'meeting',
                'verbose_name_plural': 'meetings',
                'ordering': ['id'],
                'indexes': [
                    models.Index(fields=['is_agreed'], name='trading_mee_is_agre_41c8b3_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='MeetingProposal',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('date', models.DateField(help_text='Proposed meeting date', verbose_name='date')),
                ('location', models.CharField(help_text='Proposed meeting location', max_length=255, validators=[trading.validators.validate_location], verbose_name='location')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('editor', models.ForeignKey(help_text='User who made this proposal', on_delete=django.db.models.deletion.CASCADE, related_name='meeting_proposals', to=settings.AUTH_USER_MODEL)),
                ('meeting', models.ForeignKey(help_text='Meeting this proposal belongs to', on_delete=django.db.models.deletion.CASCADE, related_name='proposals', to='trading.meeting')),
            ],
            options={
                'verbose_name': 'meeting proposal',
                'verbose_name_plural': 'meeting proposals',
                'ordering': ['id'],
            },
        ),
        migrations.CreateModel(
            name='Trade',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('is_complete', models.BooleanField(default=False, help_text='Whether the items changed hands', verbose_name='is complete')),
                ('is_sell', models.BooleanField(default=False, help_text='Whether this trade is a sale', verbose_name='is sell')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('borrower', models.ForeignKey(help_text='User receiving the items', on_delete=django.db.models.deletion.CASCADE, related_name='borrowed_trades', to=settings.AUTH_USER_MODEL)),
                ('lender', models.ForeignKey(help_text='User handing over the items', on_delete=django.db.models.deletion.CASCADE, related_name='lent_trades', to=settings.AUTH_USER_MODEL)),
                ('items', models.ManyToManyField(help_text='Items exchanged in this trade', related_name='trades', to='trading.item')),
            ],
            options={
                'verbose_name': 'trade',
                'verbose_name_plural': 'trades',
                'ordering': ['id'],
                'indexes': [
                    models.Index(fields=['lender'], name='trading_tra_lender__9b2c6d_idx'),
                    models.Index(fields=['borrower'], name='trading_tra_borrowe_5d7e80_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Transaction',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True, help_text='Timestamp when the transaction was initiated', verbose_name='created at')),
                ('meetings', models.ManyToManyField(help_text='Meetings scheduled for this transaction', related_name='transactions', to='trading.meeting')),
                ('trades', models.ManyToManyField(help_text='Trades making up this transaction', related_name='transactions', to='trading.trade')),
            ],
            options={
                'verbose_name': 'transaction',
                'verbose_name_plural': 'transactions',
                'ordering': ['id'],
            },
        ),
    ]
