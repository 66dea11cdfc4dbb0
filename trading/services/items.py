"""
Item listing, approval and wishlists.
"""

import logging

from ..models import Item, User

logger = logging.getLogger(__name__)


class ItemEditor:
    """Mutates items outside of transactions."""

    def get(self, item_ids):
        return list(Item.objects.filter(pk__in=item_ids))

    def add_item_to_inventory(self, name, description, owner_id, price, for_sale=False):
        """
        List a new item. It stays invisible until an admin approves it.

        Returns:
            int: Id of the new item
        """
        item = Item.objects.create(
            name=name,
            description=description or '',
            owner_id=owner_id,
            holder_id=owner_id,
            price=price,
            for_sale=for_sale,
            is_visible=False,
        )
        logger.info(f"User {owner_id} listed item {item.id} ({item.name})")
        return item.id

    def approve_item(self, item_id):
        return self._set_visibility(item_id, True)

    def disapprove_item(self, item_id):
        return self._set_visibility(item_id, False)

    def _set_visibility(self, item_id, visible):
        updated = Item.objects.filter(pk=item_id).update(is_visible=visible)
        if updated:
            logger.info(f"Item {item_id} {'approved' if visible else 'disapproved'}")
        return bool(updated)

    def add_item_to_wishlist(self, item_id, user_id):
        """
        Add an item to a user's wishlist.

        Returns:
            bool: False if the item is already wishlisted
        """
        user = User.objects.get(pk=user_id)
        if user.wishlist.filter(pk=item_id).exists():
            return False
        user.wishlist.add(item_id)
        return True

    def remove_item_from_wishlist(self, item_id, user_id):
        User.objects.get(pk=user_id).wishlist.remove(item_id)

    def wishlist(self, user_id):
        return list(Item.objects.in_wishlist_of(user_id).order_by('id'))
