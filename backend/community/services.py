"""Publishing and moderation rules for the newsfeed"""
import logging

from django.utils import timezone

from backend.core.exceptions import BusinessRuleError
from backend.core.models import Setting
from backend.core.permissions import has_any_role, ROLE_MANAGER
from .models import Post, PostReaction

logger = logging.getLogger(__name__)

ATTACHMENT_DIR = 'post-attachments'
STAFF_ONLY_TYPES = ['announcement', 'news', 'award']


def can_moderate(user):
    return has_any_role(user, ROLE_MANAGER)


def initial_post_status(user, post_type, draft=False):
    """
    Managers publish straight away. Everyone else may only post suggestions,
    which are published directly only when suggestion_moderation_mode is 'auto'.
    """
    if draft:
        return 'draft'
    if can_moderate(user):
        return 'published'
    if post_type in STAFF_ONLY_TYPES:
        raise BusinessRuleError(f'Only managers can post {post_type} items')
    mode = Setting.get_value('suggestion_moderation_mode', 'manual')
    return 'published' if mode == 'auto' else 'pending_approval'


def create_post(author, data, draft=False):
    post_status = initial_post_status(author, data.get('post_type', 'suggestion'), draft)
    if data.get('is_pinned') and not can_moderate(author):
        raise BusinessRuleError('Only managers can pin posts')
    post = Post.objects.create(
        author=author,
        status=post_status,
        published_at=timezone.now() if post_status == 'published' else None,
        **data,
    )
    logger.info(f"Post {post.id} by {author.username} created as {post_status}")
    return post


def submit_draft(post, user):
    if post.status != 'draft':
        raise BusinessRuleError('Only drafts can be submitted')
    post.status = initial_post_status(user, post.post_type)
    if post.status == 'published':
        post.published_at = timezone.now()
    post.save(update_fields=['status', 'published_at', 'updated_at'])
    return post


def moderate_post(post, user, approve, reason=''):
    """Approve or reject a post waiting in the moderation queue"""
    if post.status != 'pending_approval':
        raise BusinessRuleError(f'Post is {post.status}, not pending approval')
    now = timezone.now()
    post.moderated_by = user
    post.moderated_at = now
    if approve:
        post.status = 'published'
        post.published_at = now
        post.rejection_reason = ''
    else:
        if not reason.strip():
            raise BusinessRuleError('A reason is required to reject a post')
        post.status = 'rejected'
        post.rejection_reason = reason.strip()
    post.save()
    return post


def toggle_reaction(post, user, reaction_type='like'):
    """Add the user's reaction, or remove it when present. Returns True when the post is now liked."""
    if post.status != 'published':
        raise BusinessRuleError('Only published posts can be liked')
    deleted, _ = PostReaction.objects.filter(post=post, user=user).delete()
    if deleted:
        return False
    PostReaction.objects.get_or_create(post=post, user=user, defaults={'reaction_type': reaction_type})
    return True
