"""
Cache invalidation signals
Automatically invalidate cache when promotions or products change
"""
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import logging

from .cache_utils import invalidate_promotions_cache, invalidate_filter_options_cache

logger = logging.getLogger(__name__)


@receiver([post_save, post_delete], sender='pricing.Promotion')
def invalidate_promotions_on_change(sender, instance, **kwargs):
    logger.debug(f"Promotion {instance.pk} changed, invalidating promotions cache")
    invalidate_promotions_cache()


@receiver([post_save, post_delete], sender='catalog.Product')
def invalidate_filter_options_on_change(sender, instance, **kwargs):
    invalidate_filter_options_cache()
