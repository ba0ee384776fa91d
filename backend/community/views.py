import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, parser_classes
from rest_framework.parsers import MultiPartParser, FormParser
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Q, Count
from django.shortcuts import get_object_or_404
from backend.core.exceptions import BusinessRuleError, business_error_response
from backend.core.permissions import IsManager
from backend.core.utils import create_audit_log, paginate_queryset, save_upload
from .models import Post, Comment
from .serializers import (
    PostSerializer, PostDetailSerializer, PostWriteSerializer, CommentSerializer, ModerateSerializer,
    PostAttachmentUploadSerializer,
)
from . import services

logger = logging.getLogger(__name__)


def _visible(post, user):
    return post.status == 'published' or post.author_id == user.id or services.can_moderate(user)


def _annotated_posts():
    return Post.objects.select_related('author').annotate(
        comment_count=Count('comments', distinct=True),
        like_count=Count('reactions', distinct=True),
    )


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def post_list_create(request):
    """Newsfeed (published posts, pinned first) or publish/submit a post"""
    if request.method == 'GET':
        if request.query_params.get('mine') == 'true':
            queryset = _annotated_posts().filter(author=request.user)
        else:
            queryset = _annotated_posts().filter(status='published')
        post_type = request.query_params.get('post_type')
        if post_type:
            queryset = queryset.filter(post_type__in=post_type.split(','))
        search = request.query_params.get('search', '').strip()
        if search:
            queryset = queryset.filter(Q(title__icontains=search) | Q(content__icontains=search))
        queryset = queryset.order_by('-is_pinned', '-published_at', '-created_at')
        return Response(paginate_queryset(queryset, request, PostSerializer))

    serializer = PostWriteSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = dict(serializer.validated_data)
    draft = data.pop('draft', False)
    try:
        post = services.create_post(request.user, data, draft=draft)
    except BusinessRuleError as e:
        return business_error_response(e)
    return Response(PostSerializer(post, context={'request': request}).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def post_detail(request, pk):
    """Post with comments and reaction counts; author or manager may edit or delete"""
    post = get_object_or_404(Post.objects.select_related('author'), pk=pk)
    if not _visible(post, request.user):
        return Response({'error': 'Post not found'}, status=status.HTTP_404_NOT_FOUND)

    if request.method == 'GET':
        return Response(PostDetailSerializer(post, context={'request': request}).data)

    is_moderator = services.can_moderate(request.user)
    if post.author_id != request.user.id and not is_moderator:
        return Response({'error': 'Only the author or a manager can change this post'},
                        status=status.HTTP_403_FORBIDDEN)

    if request.method in ('PUT', 'PATCH'):
        serializer = PostWriteSerializer(post, data=request.data, partial=request.method == 'PATCH')
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = dict(serializer.validated_data)
        data.pop('draft', None)
        if not is_moderator and (data.get('is_pinned') or data.get('post_type') in services.STAFF_ONLY_TYPES):
            return Response({'error': 'Only managers can pin or post announcements'},
                            status=status.HTTP_403_FORBIDDEN)
        for field, value in data.items():
            setattr(post, field, value)
        if not is_moderator and post.status in ('published', 'rejected'):
            # edited content goes back through moderation
            post.status = services.initial_post_status(request.user, post.post_type)
        post.save()
        return Response(PostSerializer(post, context={'request': request}).data)
    else:  # DELETE
        if post.author_id != request.user.id:
            create_audit_log(request=request, action='delete', model_name='Post', object_id=post.id,
                             object_name=post.title)
        post.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def post_submit(request, pk):
    """Send a draft for publishing"""
    post = get_object_or_404(Post, pk=pk, author=request.user)
    try:
        post = services.submit_draft(post, request.user)
    except BusinessRuleError as e:
        return business_error_response(e)
    return Response(PostSerializer(post, context={'request': request}).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsManager])
def moderation_queue(request):
    """Posts waiting for approval, oldest first"""
    queryset = _annotated_posts().filter(status='pending_approval').order_by('created_at')
    return Response(paginate_queryset(queryset, request, PostSerializer))


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsManager])
def post_moderate(request, pk):
    post = get_object_or_404(Post, pk=pk)
    serializer = ModerateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    try:
        post = services.moderate_post(post, request.user, serializer.validated_data['action'] == 'approve',
                                      serializer.validated_data['reason'])
    except BusinessRuleError as e:
        return business_error_response(e)
    create_audit_log(request=request, action='post_moderate', model_name='Post', object_id=post.id,
                     object_name=post.title, changes={'status': post.status, 'reason': post.rejection_reason})
    return Response(PostSerializer(post, context={'request': request}).data)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def post_comments(request, pk):
    post = get_object_or_404(Post, pk=pk)
    if not _visible(post, request.user):
        return Response({'error': 'Post not found'}, status=status.HTTP_404_NOT_FOUND)

    if request.method == 'GET':
        comments = post.comments.select_related('author')
        return Response(CommentSerializer(comments, many=True).data)

    if post.status != 'published':
        return Response({'error': 'Only published posts can be commented on'}, status=status.HTTP_400_BAD_REQUEST)
    serializer = CommentSerializer(data=request.data)
    if serializer.is_valid():
        serializer.save(post=post, author=request.user)
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated])
def comment_delete(request, pk):
    comment = get_object_or_404(Comment, pk=pk)
    if comment.author_id != request.user.id and not services.can_moderate(request.user):
        return Response({'error': 'Only the author or a manager can delete this comment'},
                        status=status.HTTP_403_FORBIDDEN)
    comment.delete()
    return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def post_like(request, pk):
    """Toggle the current user's like"""
    post = get_object_or_404(Post, pk=pk)
    try:
        liked = services.toggle_reaction(post, request.user)
    except BusinessRuleError as e:
        return business_error_response(e)
    return Response({'liked': liked, 'like_count': post.reactions.count()})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@parser_classes([MultiPartParser, FormParser])
def post_attachment_upload(request):
    serializer = PostAttachmentUploadSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    upload = serializer.validated_data['file']
    url = save_upload(upload, services.ATTACHMENT_DIR)
    return Response({'name': upload.name, 'url': url}, status=status.HTTP_201_CREATED)
