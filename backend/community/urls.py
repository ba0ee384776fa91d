from django.urls import path
from .views import (
    post_list_create, post_detail, post_submit, moderation_queue, post_moderate,
    post_comments, comment_delete, post_like, post_attachment_upload,
)

urlpatterns = [
    path('posts/', post_list_create, name='post-list-create'),
    path('posts/moderation/', moderation_queue, name='post-moderation-queue'),
    path('posts/attachments/', post_attachment_upload, name='post-attachment-upload'),
    path('posts/<int:pk>/', post_detail, name='post-detail'),
    path('posts/<int:pk>/submit/', post_submit, name='post-submit'),
    path('posts/<int:pk>/moderate/', post_moderate, name='post-moderate'),
    path('posts/<int:pk>/comments/', post_comments, name='post-comments'),
    path('posts/<int:pk>/like/', post_like, name='post-like'),
    path('comments/<int:pk>/', comment_delete, name='comment-delete'),
]
