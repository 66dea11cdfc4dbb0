import os
import sys
import django
import random
from datetime import timedelta
from django.utils import timezone
from faker import Faker

# Add project root to Python path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Set up Django environment
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'lending_marketplace.settings')
django.setup()

from trading.exceptions import PolicyViolation
from trading.models import Item, User
from trading.services.system import TradingSystem

fake = Faker()

ITEM_NAMES = [
    "Camping Tent", "Power Drill", "Road Bike", "Board Game", "Projector",
    "Ladder", "Sewing Machine", "Kayak", "Textbook", "Stand Mixer",
]


def create_users(num_users=20, num_admins=2):
    print(f"Creating {num_users} traders and {num_admins} admins...")
    users = []

    for index in range(num_users + num_admins):
        email = fake.unique.email()
        user = User.objects.create_user(
            username=email.split('@')[0][:30],
            email=email,
            password='password123',
            first_name=fake.first_name(),
            last_name=fake.last_name(),
            home_city=fake.city(),
            status='admin' if index < num_admins else 'normal',
        )
        users.append(user)

    print(f"Created {len(users)} users.")
    return users


def create_items(system, users):
    print("Creating items...")
    item_ids = []

    for user in users:
        # Each user lists 1-3 items
        for _ in range(random.randint(1, 3)):
            item_id = system.item_editor.add_item_to_inventory(
                name=f"{random.choice(['Old', 'Sturdy', 'Like New', 'Compact'])} {random.choice(ITEM_NAMES)}",
                description=fake.sentence(),
                owner_id=user.id,
                price=random.randint(10, 400),
                for_sale=random.random() < 0.3,
            )
            item_ids.append(item_id)

    # Approve about 80% of listings through the audited command
    approved = 0
    for item_id in item_ids:
        if random.random() < 0.8:
            system.approve_item.execute(item_id)
            approved += 1

    print(f"Created {len(item_ids)} items, approved {approved}.")
    return item_ids


def create_wishlists(system, users):
    print("Creating wishlists...")
    count = 0

    for user in users:
        candidates = list(Item.objects.available().exclude(owner=user).values_list('id', flat=True))
        for item_id in random.sample(candidates, min(len(candidates), random.randint(0, 3))):
            if system.add_to_wishlist.execute(item_id, user.id) is not None:
                count += 1

    print(f"Added {count} wishlist entries.")


def create_transactions(system, users, num_transactions=15):
    print("Creating transactions...")
    created = []

    for _ in range(num_transactions):
        borrower = random.choice(users)
        borrow_item = Item.objects.available().exclude(owner=borrower).order_by('?').first()
        if borrow_item is None:
            break

        trade_type = 'sell' if borrow_item.for_sale else random.choice(['oneWay', 'twoWay'])
        lend_item = None
        if trade_type == 'twoWay':
            lend_item = Item.objects.available().filter(owner=borrower).first()
            if lend_item is None:
                trade_type = 'oneWay'

        duration = 'permanent' if trade_type == 'sell' else random.choice(['permanent', 'temporary'])
        meeting_date = timezone.localdate() + timedelta(days=random.randint(1, 30))

        try:
            history = system.initiate_transaction.execute(
                borrower.id,
                borrow_item.owner_id,
                borrow_item.id,
                lend_item.id if lend_item else None,
                trade_type,
                duration,
                meeting_date,
                fake.street_address(),
                fake.street_address() if duration == 'temporary' else None,
            )
        except PolicyViolation as e:
            print(f"Skipped transaction: {e.message}")
            continue

        created.append(history.data['transactionId'])

    print(f"Created {len(created)} transactions.")
    return created


def conduct_first_meetings(system, transaction_ids):
    print("Conducting some first meetings...")
    conducted = 0

    for transaction_id in transaction_ids:
        # 40% of transactions get their first meeting agreed and held
        if random.random() >= 0.4:
            continue

        tx = system.transaction_manager.get_transaction(transaction_id)
        meeting = tx.meeting_list()[0]
        trade = tx.trade_list()[0]

        system.meeting_manager.agree_to_meeting(meeting.id)
        for user_id in (trade.borrower_id, trade.lender_id):
            system.meeting_manager.mark_conducted(meeting.id, user_id)
        system.transaction_manager.perform_meeting(meeting.id)
        conducted += 1

    print(f"Conducted {conducted} meetings.")


def main():
    print("Starting database population...")

    system = TradingSystem()

    users = create_users(num_users=20, num_admins=2)
    create_items(system, users)
    create_wishlists(system, users)
    transaction_ids = create_transactions(system, users)
    conduct_first_meetings(system, transaction_ids)

    print("Database population completed successfully!")


if __name__ == '__main__':
    main()
