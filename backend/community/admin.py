from django.contrib import admin
from .models import Post, Comment, PostReaction


class CommentInline(admin.TabularInline):
    model = Comment
    extra = 0


@admin.register(Post)
class PostAdmin(admin.ModelAdmin):
    list_display = ['title', 'author', 'post_type', 'status', 'is_pinned', 'created_at']
    list_filter = ['post_type', 'status', 'is_pinned']
    search_fields = ['title', 'content', 'author__username']
    inlines = [CommentInline]


admin.site.register(PostReaction)
