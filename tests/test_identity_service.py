"""
Tests for Identity Service

Covers the persisted role slot, sign-in / sign-up / sign-out flows,
and the session change stream.
"""

import pytest
from unittest.mock import MagicMock
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from data.models import Role, Screen, Session, UserProfile
from services.identity_service import IdentityService
from services.session_resolver import SessionResolver
from utils.exceptions import (
    AuthenticationError, IdentityError, PersistenceReadError, PersistenceWriteError, ProfileNotFoundError,
    ValidationError
)


# =============================================================================
# Persisted Slot Tests
# =============================================================================

class TestPersistedRole:
    """Tests for read_role and the persisted accessors."""

    def test_missing_role_is_none(self, identity):
        assert identity.read_role() is None

    @pytest.mark.parametrize('stored,expected', [
        ('Doctor', Role.DOCTOR),
        ('NonDoctor', Role.NON_DOCTOR),
        ('Nurse', Role.UNKNOWN),
        ('', None),
    ])
    def test_read_role(self, identity, memory_store, stored, expected):
        memory_store.set('userRole', stored)
        assert identity.read_role() is expected

    def test_store_failure_becomes_read_error(self, fake_provider):
        store = MagicMock()
        store.get.side_effect = OSError("disk gone")
        identity = IdentityService(fake_provider, store, role_key='userRole')

        with pytest.raises(PersistenceReadError):
            identity.read_role()

    def test_set_and_remove(self, identity, memory_store):
        identity.set_persisted('userRole', 'Doctor')
        assert memory_store.get('userRole') == 'Doctor'
        identity.remove_persisted('userRole')
        assert identity.get_persisted('userRole') is None

    def test_write_failure_becomes_write_error(self, fake_provider):
        store = MagicMock()
        store.set.side_effect = OSError("read-only")
        identity = IdentityService(fake_provider, store, role_key='userRole')

        with pytest.raises(PersistenceWriteError):
            identity.set_persisted('userRole', 'Doctor')


# =============================================================================
# Sign-in Tests
# =============================================================================

class TestSignIn:
    """Tests for sign_in."""

    def test_doctor_sign_in_persists_role(self, identity, memory_store):
        session = identity.sign_in('doc@example.com', 'secret')

        assert session == Session(signed_in=True, user_id='uid-doc', email='doc@example.com', role=Role.DOCTOR)
        assert memory_store.get('userRole') == 'Doctor'

    def test_non_doctor_sign_in_persists_role(self, identity, memory_store):
        identity.sign_in('reader@example.com', 'secret')
        assert memory_store.get('userRole') == 'NonDoctor'

    def test_wrong_password(self, identity, memory_store):
        with pytest.raises(AuthenticationError):
            identity.sign_in('doc@example.com', 'wrong')
        assert memory_store.get('userRole') is None

    def test_missing_profile(self, identity, memory_store):
        with pytest.raises(ProfileNotFoundError) as exc_info:
            identity.sign_in('ghost@example.com', 'secret')

        assert str(exc_info.value) == 'User data not found.'
        assert memory_store.get('userRole') is None

    def test_listeners_notified_after_role_is_written(self, identity, memory_store):
        seen = []
        identity.on_session_change(lambda session: seen.append((session, memory_store.get('userRole'))))

        identity.sign_in('doc@example.com', 'secret')

        assert len(seen) == 1
        session, role_at_notification = seen[0]
        assert session.signed_in is True
        assert session.role is None
        assert role_at_notification == 'Doctor'

    def test_failed_sign_in_delivers_signed_out_session(self, identity, fake_provider):
        seen = []
        identity.on_session_change(seen.append)

        with pytest.raises(ProfileNotFoundError):
            identity.sign_in('ghost@example.com', 'secret')

        assert [s.signed_in for s in seen] == [False]
        assert fake_provider.current_user() is None

    def test_failed_sign_in_clears_previous_accounts_role(self, identity, fake_provider, memory_store):
        memory_store.set('userRole', 'Doctor')

        with pytest.raises(ProfileNotFoundError):
            identity.sign_in('ghost@example.com', 'secret')

        assert memory_store.get('userRole') is None
        assert identity.current_session() == Session.signed_out()

    def test_failed_sign_in_routes_to_login(self, identity, fake_provider, memory_store, navigator):
        memory_store.set('userRole', 'Doctor')

        with SessionResolver(identity, navigator):
            with pytest.raises(ProfileNotFoundError):
                identity.sign_in('ghost@example.com', 'secret')

            assert navigator.current is Screen.LOGIN

    def test_profile_read_error_signs_out(self, identity, fake_provider):
        fake_provider.get_profile = MagicMock(side_effect=IdentityError("Failed to fetch user data. Status: 500"))

        with pytest.raises(IdentityError):
            identity.sign_in('doc@example.com', 'secret')

        assert fake_provider.current_user() is None


# =============================================================================
# Sign-up Tests
# =============================================================================

class TestSignUp:
    """Tests for sign_up."""

    def test_doctor_sign_up(self, identity, fake_provider, memory_store):
        profile = UserProfile(name='Dr. C', email='new@example.com', is_doctor=True,
                              phone='123', place_of_practice='Delhi')

        session = identity.sign_up(profile, 'pw', 'pw')

        assert session.role is Role.DOCTOR
        assert memory_store.get('userRole') == 'Doctor'
        stored = fake_provider.profiles[session.user_id]
        assert stored['isDoctor'] is True
        assert stored['placeOfPractice'] == 'Delhi'

    def test_non_doctor_profile_drops_place_of_practice(self, identity, fake_provider):
        profile = UserProfile(name='D', email='d@example.com', is_doctor=False, place_of_practice='Ignored')

        session = identity.sign_up(profile, 'pw')

        assert session.role is Role.NON_DOCTOR
        assert fake_provider.profiles[session.user_id]['placeOfPractice'] is None

    def test_password_mismatch(self, identity, fake_provider):
        profile = UserProfile(name='E', email='e@example.com', is_doctor=False)

        with pytest.raises(ValidationError, match='Passwords do not match'):
            identity.sign_up(profile, 'pw', 'other')
        assert 'e@example.com' not in fake_provider.accounts

    def test_doctor_requires_place_of_practice(self, identity):
        profile = UserProfile(name='F', email='f@example.com', is_doctor=True, place_of_practice='  ')

        with pytest.raises(ValidationError, match='place of practice'):
            identity.sign_up(profile, 'pw')

    def test_existing_email(self, identity):
        profile = UserProfile(name='G', email='doc@example.com', is_doctor=True, place_of_practice='X')

        with pytest.raises(AuthenticationError):
            identity.sign_up(profile, 'pw')


# =============================================================================
# Sign-out and Session Tests
# =============================================================================

class TestSignOut:
    """Tests for sign_out and current_session."""

    def test_sign_out_clears_role_then_signs_out(self, identity, fake_provider, memory_store):
        identity.sign_in('doc@example.com', 'secret')
        roles_at_event = []
        identity.on_session_change(lambda s: roles_at_event.append(memory_store.get('userRole')))

        identity.sign_out()

        assert fake_provider.current_user() is None
        assert roles_at_event == [None]
        assert identity.current_session() == Session.signed_out()

    def test_sign_out_keeps_user_when_role_cannot_be_removed(self, fake_provider):
        store = MagicMock()
        store.remove.side_effect = PersistenceWriteError("locked")
        identity = IdentityService(fake_provider, store, role_key='userRole')
        fake_provider.sign_in_with_password('doc@example.com', 'secret')

        with pytest.raises(PersistenceWriteError):
            identity.sign_out()
        assert fake_provider.current_user() is not None

    def test_current_session_includes_role(self, identity):
        identity.sign_in('reader@example.com', 'secret')
        session = identity.current_session()
        assert session.signed_in is True
        assert session.role is Role.NON_DOCTOR

    def test_current_session_without_readable_role(self, fake_provider):
        store = MagicMock()
        store.get.side_effect = PersistenceReadError("corrupt")
        identity = IdentityService(fake_provider, store, role_key='userRole')
        fake_provider.sign_in_with_password('doc@example.com', 'secret')

        session = identity.current_session()

        assert session.signed_in is True
        assert session.role is None

    def test_provider_subscription_is_shared_and_released(self, identity, fake_provider):
        first = identity.on_session_change(lambda s: None)
        second = identity.on_session_change(lambda s: None)
        assert fake_provider.listener_count == 1

        first()
        assert fake_provider.listener_count == 1
        second()
        assert fake_provider.listener_count == 0


def test_signed_out_session_cannot_carry_role():
    with pytest.raises(ValueError):
        Session(signed_in=False, role=Role.DOCTOR)
