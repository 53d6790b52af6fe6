"""
Test suite for accounts, approval and the session state machine
Tests: capabilities, session transitions, login, register, admin user management, audit logs
"""
from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.core.management import call_command
from django.test import TestCase
from rest_framework import status

from bakery.core.access import (
    Capabilities, SessionEvent, SessionState, current_user_capabilities,
    resolve_session_state, transition,
)
from bakery.core.cache_utils import get_owner_version, invalidate_owner, owner_cache_key
from bakery.core.models import AuditLog
from bakery.core.test_utils import TestDataFactory, AuthenticatedAPIClient

User = get_user_model()


class CapabilitiesTests(TestCase):
    """Test the single capability query"""

    def test_approved_staff(self):
        user = TestDataFactory.create_user()
        self.assertEqual(current_user_capabilities(user), Capabilities('staff', True))

    def test_unapproved_user(self):
        user = TestDataFactory.create_user(is_approved=False)
        self.assertFalse(current_user_capabilities(user).is_approved)

    def test_inactive_user_is_not_approved(self):
        user = TestDataFactory.create_user()
        user.is_active = False
        self.assertFalse(current_user_capabilities(user).is_approved)

    def test_superuser_is_approved_admin(self):
        user = TestDataFactory.create_user(is_approved=False, is_superuser=True)
        self.assertEqual(current_user_capabilities(user), Capabilities('admin', True))

    def test_anonymous(self):
        self.assertEqual(current_user_capabilities(None), Capabilities(None, False))


class SessionStateTests(TestCase):
    """Test session transitions"""

    def test_sign_in_to_active(self):
        state = transition(SessionState.ANONYMOUS, SessionEvent.SIGN_IN_STARTED)
        self.assertEqual(state, SessionState.AUTHENTICATING)
        state = transition(state, SessionEvent.SIGN_IN_SUCCEEDED, Capabilities('staff', True))
        self.assertEqual(state, SessionState.ACTIVE)

    def test_sign_in_pending_then_approved(self):
        state = transition(SessionState.AUTHENTICATING, SessionEvent.SIGN_IN_SUCCEEDED, Capabilities('staff', False))
        self.assertEqual(state, SessionState.PENDING_APPROVAL)
        self.assertEqual(transition(state, SessionEvent.APPROVED), SessionState.ACTIVE)

    def test_sign_in_failed_returns_to_anonymous(self):
        self.assertEqual(
            transition(SessionState.AUTHENTICATING, SessionEvent.SIGN_IN_FAILED),
            SessionState.ANONYMOUS,
        )

    def test_sign_out_from_any_state(self):
        for state in SessionState:
            self.assertEqual(transition(state, SessionEvent.SIGNED_OUT), SessionState.ANONYMOUS)

    def test_invalid_event_raises(self):
        with self.assertRaises(ValueError):
            transition(SessionState.ACTIVE, SessionEvent.SIGN_IN_SUCCEEDED, Capabilities('staff', True))
        with self.assertRaises(ValueError):
            transition(SessionState.AUTHENTICATING, SessionEvent.SIGN_IN_SUCCEEDED)

    def test_resolve_session_state(self):
        self.assertEqual(resolve_session_state(None), SessionState.ANONYMOUS)
        self.assertEqual(
            resolve_session_state(TestDataFactory.create_user(is_approved=False)),
            SessionState.PENDING_APPROVAL,
        )
        self.assertEqual(resolve_session_state(TestDataFactory.create_user()), SessionState.ACTIVE)


class AuthTests(TestCase):
    """Test login, registration and the approval gate"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()

    def test_login_reports_session_state(self):
        TestDataFactory.create_user(username='baker', password='testpass123')
        response = self.client.post('/api/v1/auth/login/', {'username': 'baker', 'password': 'testpass123'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertEqual(response.data['session_state'], 'active')
        self.assertEqual(response.data['capabilities'], {'role': 'staff', 'is_approved': True})

    def test_login_unapproved_user_is_pending(self):
        TestDataFactory.create_user(username='newbie', password='testpass123', is_approved=False)
        response = self.client.post('/api/v1/auth/login/', {'username': 'newbie', 'password': 'testpass123'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['session_state'], 'pending_approval')

    def test_login_wrong_password(self):
        TestDataFactory.create_user(username='baker', password='testpass123')
        response = self.client.post('/api/v1/auth/login/', {'username': 'baker', 'password': 'nope'})
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_register_creates_pending_staff(self):
        response = self.client.post('/api/v1/auth/register/', {
            'username': 'apprentice',
            'email': 'apprentice@test.com',
            'password': 'Str0ng-pass-123',
            'password_confirm': 'Str0ng-pass-123',
        })
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['session_state'], 'pending_approval')
        user = User.objects.get(username='apprentice')
        self.assertEqual(user.role, 'staff')
        self.assertFalse(user.is_approved)
        self.assertTrue(AuditLog.objects.filter(action='user_register', object_id=str(user.pk)).exists())

    def test_register_password_mismatch(self):
        response = self.client.post('/api/v1/auth/register/', {
            'username': 'apprentice',
            'password': 'Str0ng-pass-123',
            'password_confirm': 'Other-pass-123',
        })
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unapproved_user_gets_403_on_protected_endpoint(self):
        user = TestDataFactory.create_user(is_approved=False)
        self.client.authenticate_user(user)
        response = self.client.get('/api/v1/products/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_unapproved_user_can_read_me(self):
        user = TestDataFactory.create_user(is_approved=False)
        self.client.authenticate_user(user)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['session_state'], 'pending_approval')

    def test_unauthenticated_gets_401(self):
        response = self.client.get('/api/v1/orders/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_profile_update(self):
        user = TestDataFactory.create_user()
        self.client.authenticate_user(user)
        response = self.client.patch('/api/v1/profile/', {'first_name': 'Ana', 'role': 'admin'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        user.refresh_from_db()
        self.assertEqual(user.first_name, 'Ana')
        self.assertEqual(user.role, 'staff')


class UserAdministrationTests(TestCase):
    """Test admin-only user management"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

    def test_staff_cannot_list_users(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_creates_preapproved_user_with_internal_email(self):
        response = self.client.post('/api/v1/users/', {
            'username': 'cashier',
            'password': 'Str0ng-pass-123',
            'first_name': 'Luz',
            'role': 'staff',
        })
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        user = User.objects.get(username='cashier')
        self.assertTrue(user.is_approved)
        self.assertEqual(user.email, 'cashier@bakery.local')

    def test_list_pending_users(self):
        pending = TestDataFactory.create_user(is_approved=False)
        response = self.client.get('/api/v1/users/?pending=true')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['id'] for row in response.data], [pending.pk])

    def test_approve_user(self):
        pending = TestDataFactory.create_user(is_approved=False)
        response = self.client.post(f'/api/v1/users/{pending.pk}/approve/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        pending.refresh_from_db()
        self.assertTrue(pending.is_approved)
        log = AuditLog.objects.get(action='user_approve')
        self.assertEqual(log.changes['session_state'], ['pending_approval', 'active'])

    def test_approve_inactive_user_logs_reached_state(self):
        inactive = TestDataFactory.create_user(is_approved=False)
        inactive.is_active = False
        inactive.save(update_fields=['is_active'])
        response = self.client.post(f'/api/v1/users/{inactive.pk}/approve/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        inactive.refresh_from_db()
        self.assertTrue(inactive.is_approved)
        self.assertEqual(resolve_session_state(inactive), SessionState.PENDING_APPROVAL)
        log = AuditLog.objects.get(action='user_approve')
        self.assertEqual(log.changes['session_state'], ['pending_approval', 'pending_approval'])

    def test_cannot_delete_self(self):
        response = self.client.delete(f'/api/v1/users/{self.admin.pk}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_audit_log_list(self):
        TestDataFactory.create_user(is_approved=False)
        self.client.post('/api/v1/users/', {'username': 'x1', 'password': 'Str0ng-pass-123', 'role': 'staff'})
        response = self.client.get('/api/v1/audit-logs/?action=user_register')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)


class ApproveUserCommandTests(TestCase):
    """Test the approve_user management command"""

    def test_approve_user_command(self):
        user = TestDataFactory.create_user(username='waiting', is_approved=False)
        call_command('approve_user', 'waiting', '--admin')
        user.refresh_from_db()
        self.assertTrue(user.is_approved)
        self.assertEqual(user.role, 'admin')


class OwnerCacheVersionTests(TestCase):
    """Test owner-versioned cache keys"""

    def setUp(self):
        cache.clear()

    def test_invalidate_changes_key(self):
        before = owner_cache_key('customers', 1, search='')
        invalidate_owner('customers', 1)
        self.assertNotEqual(owner_cache_key('customers', 1, search=''), before)
        self.assertEqual(owner_cache_key('customers', 2, search=''), owner_cache_key('customers', 2, search=''))

    def test_evicted_version_is_not_reused(self):
        seen = {get_owner_version('customers', 1)}
        invalidate_owner('customers', 1)
        seen.add(get_owner_version('customers', 1))

        cache.delete('customers:version:1')
        invalidate_owner('customers', 1)
        self.assertNotIn(get_owner_version('customers', 1), seen)
