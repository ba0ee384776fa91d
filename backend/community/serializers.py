from rest_framework import serializers
from .models import Post, Comment


class CommentSerializer(serializers.ModelSerializer):
    author_name = serializers.SerializerMethodField()

    class Meta:
        model = Comment
        fields = ['id', 'post', 'author', 'author_name', 'content', 'created_at']
        read_only_fields = ['post', 'author', 'created_at']

    def get_author_name(self, obj):
        return obj.author.full_name or obj.author.username

    def validate_content(self, value):
        if not value.strip():
            raise serializers.ValidationError('Comment cannot be empty')
        return value.strip()


class PostSerializer(serializers.ModelSerializer):
    author_name = serializers.SerializerMethodField()
    comment_count = serializers.SerializerMethodField()
    like_count = serializers.SerializerMethodField()
    liked_by_me = serializers.SerializerMethodField()

    class Meta:
        model = Post
        fields = [
            'id', 'author', 'author_name', 'title', 'content', 'post_type', 'status', 'is_pinned',
            'attachments', 'rejection_reason', 'moderated_by', 'moderated_at', 'published_at',
            'comment_count', 'like_count', 'liked_by_me', 'created_at', 'updated_at'
        ]

    def get_author_name(self, obj):
        return obj.author.full_name or obj.author.username

    def get_comment_count(self, obj):
        if hasattr(obj, 'comment_count'):
            return obj.comment_count
        return obj.comments.count()

    def get_like_count(self, obj):
        if hasattr(obj, 'like_count'):
            return obj.like_count
        return obj.reactions.count()

    def get_liked_by_me(self, obj):
        request = self.context.get('request')
        if not request or not request.user.is_authenticated:
            return False
        return obj.reactions.filter(user=request.user).exists()


class PostDetailSerializer(PostSerializer):
    comments = CommentSerializer(many=True, read_only=True)

    class Meta(PostSerializer.Meta):
        fields = PostSerializer.Meta.fields + ['comments']


class AttachmentSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    url = serializers.CharField(max_length=500)


class PostWriteSerializer(serializers.ModelSerializer):
    attachments = AttachmentSerializer(many=True, required=False)
    draft = serializers.BooleanField(required=False, default=False, write_only=True)

    class Meta:
        model = Post
        fields = ['title', 'content', 'post_type', 'is_pinned', 'attachments', 'draft']

    def validate_title(self, value):
        if not value.strip():
            raise serializers.ValidationError('Title cannot be empty')
        return value.strip()


class ModerateSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=['approve', 'reject'])
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class PostAttachmentUploadSerializer(serializers.Serializer):
    file = serializers.FileField()
