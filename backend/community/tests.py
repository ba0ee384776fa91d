"""
Test suite for the community newsfeed
Tests: publishing rules, moderation, drafts, comments, likes and attachments
"""
import shutil
import tempfile
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from rest_framework import status
from backend.core.models import Setting
from backend.core.permissions import ROLE_MANAGER, ROLE_SALES, ROLE_DOCTOR
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.community.models import Post, PostReaction


class PostPublishingTests(TestCase):
    """Test who publishes directly and who goes through moderation"""

    def setUp(self):
        self.manager = TestDataFactory.create_user(roles=[ROLE_MANAGER])
        self.staff = TestDataFactory.create_user(roles=[ROLE_SALES])
        self.client = AuthenticatedAPIClient()

    def create_post(self, user, **data):
        self.client.authenticate_user(user)
        payload = {'title': 'Tet holiday schedule', 'content': 'Clinic closes on the 28th.'}
        payload.update(data)
        return self.client.post('/api/v1/posts/', payload, format='json')

    def test_manager_announcement_is_published(self):
        response = self.create_post(self.manager, post_type='announcement', is_pinned=True)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'published')
        self.assertIsNotNone(response.data['published_at'])

    def test_staff_suggestion_waits_for_approval(self):
        response = self.create_post(self.staff, post_type='suggestion')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'pending_approval')
        self.assertIsNone(response.data['published_at'])

    def test_auto_moderation_mode(self):
        Setting.objects.create(key='suggestion_moderation_mode', value='auto')
        response = self.create_post(self.staff, post_type='suggestion')
        self.assertEqual(response.data['status'], 'published')

    def test_staff_cannot_post_announcements_or_pin(self):
        response = self.create_post(self.staff, post_type='news')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.create_post(self.staff, is_pinned=True)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Post.objects.exists())

    def test_draft_then_submit(self):
        post_id = self.create_post(self.staff, draft=True).data['id']
        self.assertEqual(Post.objects.get(pk=post_id).status, 'draft')

        response = self.client.post(f'/api/v1/posts/{post_id}/submit/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'pending_approval')

        response = self.client.post(f'/api/v1/posts/{post_id}/submit/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_feed_shows_only_published_pinned_first(self):
        self.create_post(self.manager, title='Older news', post_type='news')
        self.create_post(self.manager, title='Pinned', post_type='announcement', is_pinned=True)
        self.create_post(self.manager, title='Newest news', post_type='news')
        self.create_post(self.staff, title='Hidden suggestion')

        response = self.client.get('/api/v1/posts/')
        self.assertEqual([p['title'] for p in response.data['results']], ['Pinned', 'Newest news', 'Older news'])

        response = self.client.get('/api/v1/posts/?mine=true')
        self.assertEqual([p['title'] for p in response.data['results']], ['Hidden suggestion'])

    def test_pending_post_is_hidden_from_other_staff(self):
        post_id = self.create_post(self.staff).data['id']
        self.client.authenticate_user(TestDataFactory.create_user(roles=[ROLE_DOCTOR]))
        response = self.client.get(f'/api/v1/posts/{post_id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_editing_published_suggestion_requires_new_approval(self):
        Setting.objects.create(key='suggestion_moderation_mode', value='auto')
        post_id = self.create_post(self.staff).data['id']
        Setting.objects.filter(key='suggestion_moderation_mode').update(value='manual')
        response = self.client.patch(f'/api/v1/posts/{post_id}/', {'content': 'Edited'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'pending_approval')

    def test_only_author_or_manager_can_edit(self):
        post_id = self.create_post(self.manager, post_type='news').data['id']
        self.client.authenticate_user(self.staff)
        response = self.client.patch(f'/api/v1/posts/{post_id}/', {'content': 'Hacked'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class ModerationTests(TestCase):
    """Test the moderation queue"""

    def setUp(self):
        self.manager = TestDataFactory.create_user(roles=[ROLE_MANAGER])
        self.staff = TestDataFactory.create_user(roles=[ROLE_SALES])
        self.post = Post.objects.create(author=self.staff, title='More parking', content='Please',
                                        post_type='suggestion', status='pending_approval')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.manager)

    def test_queue_is_for_managers(self):
        response = self.client.get('/api/v1/posts/moderation/')
        self.assertEqual(response.data['count'], 1)
        self.client.authenticate_user(self.staff)
        response = self.client.get('/api/v1/posts/moderation/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_approve(self):
        response = self.client.post(f'/api/v1/posts/{self.post.id}/moderate/', {'action': 'approve'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'published')
        self.assertEqual(response.data['moderated_by'], self.manager.id)

    def test_reject_needs_reason(self):
        url = f'/api/v1/posts/{self.post.id}/moderate/'
        response = self.client.post(url, {'action': 'reject'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.post(url, {'action': 'reject', 'reason': 'Not feasible this year'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['rejection_reason'], 'Not feasible this year')

    def test_only_pending_posts_are_moderated(self):
        self.post.status = 'published'
        self.post.save()
        response = self.client.post(f'/api/v1/posts/{self.post.id}/moderate/', {'action': 'approve'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class InteractionTests(TestCase):
    """Test comments and likes"""

    def setUp(self):
        self.manager = TestDataFactory.create_user(roles=[ROLE_MANAGER])
        self.staff = TestDataFactory.create_user(roles=[ROLE_SALES])
        self.published = Post.objects.create(author=self.manager, title='New X-ray machine', content='Arrives Monday',
                                             post_type='news', status='published')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.staff)

    def test_like_toggles(self):
        url = f'/api/v1/posts/{self.published.id}/like/'
        response = self.client.post(url)
        self.assertEqual(response.data, {'liked': True, 'like_count': 1})
        response = self.client.post(url)
        self.assertEqual(response.data, {'liked': False, 'like_count': 0})
        self.assertFalse(PostReaction.objects.exists())

    def test_cannot_like_unpublished_post(self):
        pending = Post.objects.create(author=self.staff, title='Idea', content='...', status='pending_approval')
        response = self.client.post(f'/api/v1/posts/{pending.id}/like/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_comments(self):
        url = f'/api/v1/posts/{self.published.id}/comments/'
        response = self.client.post(url, {'content': '  Great news  '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['content'], 'Great news')

        response = self.client.post(url, {'content': '   '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.get(f'/api/v1/posts/{self.published.id}/')
        self.assertEqual(response.data['comment_count'], 1)
        self.assertEqual(len(response.data['comments']), 1)

    def test_no_comments_on_pending_posts(self):
        pending = Post.objects.create(author=self.staff, title='Idea', content='...', status='pending_approval')
        response = self.client.post(f'/api/v1/posts/{pending.id}/comments/', {'content': 'hi'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_comment_delete_permissions(self):
        comment_id = self.client.post(f'/api/v1/posts/{self.published.id}/comments/', {'content': 'Mine'},
                                      format='json').data['id']
        self.client.authenticate_user(TestDataFactory.create_user(roles=[ROLE_DOCTOR]))
        response = self.client.delete(f'/api/v1/comments/{comment_id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.client.authenticate_user(self.manager)
        response = self.client.delete(f'/api/v1/comments/{comment_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)


class AttachmentUploadTests(TestCase):

    def setUp(self):
        self.media_root = tempfile.mkdtemp()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_user(roles=[ROLE_SALES]))

    def tearDown(self):
        shutil.rmtree(self.media_root, ignore_errors=True)

    def test_upload_sanitizes_name(self):
        upload = SimpleUploadedFile('Báo cáo tháng 5.pdf', b'%PDF-1.4', content_type='application/pdf')
        with override_settings(MEDIA_ROOT=self.media_root):
            response = self.client.post('/api/v1/posts/attachments/', {'file': upload}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('post-attachments/', response.data['url'])
        self.assertTrue(response.data['url'].endswith('_Bao_cao_thang_5.pdf'))
