"""Customer list cache invalidation"""
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver

from bakery.core.cache_utils import invalidate_owner
from .models import Customer

CUSTOMER_LIST_CACHE_PREFIX = 'customer_list'


@receiver(post_save, sender=Customer)
@receiver(post_delete, sender=Customer)
def invalidate_customer_list(sender, instance, **kwargs):
    invalidate_owner(CUSTOMER_LIST_CACHE_PREFIX, instance.owner_id)
