"""
Authorization capability query and the session state machine.

Every protected view asks ``current_user_capabilities`` instead of checking
roles or approval flags on its own. Session transitions are returned to the
caller; deciding where to navigate is the client's job.
"""
from collections import namedtuple

from django.db import models

Capabilities = namedtuple('Capabilities', ['role', 'is_approved'])

ANONYMOUS_CAPABILITIES = Capabilities(role=None, is_approved=False)


def current_user_capabilities(user):
    """Return the (role, is_approved) pair for a user; superusers are approved admins"""
    if user is None or not user.is_authenticated:
        return ANONYMOUS_CAPABILITIES
    if user.is_superuser:
        return Capabilities(role='admin', is_approved=True)
    return Capabilities(role=user.role, is_approved=bool(user.is_approved and user.is_active))


class SessionState(models.TextChoices):
    ANONYMOUS = 'anonymous', 'Anonymous'
    AUTHENTICATING = 'authenticating', 'Authenticating'
    PENDING_APPROVAL = 'pending_approval', 'Authenticated, pending approval'
    ACTIVE = 'active', 'Authenticated, active'


class SessionEvent(models.TextChoices):
    SIGN_IN_STARTED = 'sign_in_started', 'Sign-in started'
    SIGN_IN_SUCCEEDED = 'sign_in_succeeded', 'Sign-in succeeded'
    SIGN_IN_FAILED = 'sign_in_failed', 'Sign-in failed'
    APPROVED = 'approved', 'Account approved'
    SIGNED_OUT = 'signed_out', 'Signed out'


def _state_for(capabilities):
    if capabilities.is_approved:
        return SessionState.ACTIVE
    return SessionState.PENDING_APPROVAL


def transition(state, event, capabilities=None):
    """
    Apply a session event and return the next state.

    ``capabilities`` is required for SIGN_IN_SUCCEEDED. Events that make no
    sense in the current state raise ValueError.
    """
    if event == SessionEvent.SIGNED_OUT:
        return SessionState.ANONYMOUS

    if state == SessionState.ANONYMOUS and event == SessionEvent.SIGN_IN_STARTED:
        return SessionState.AUTHENTICATING

    if state == SessionState.AUTHENTICATING:
        if event == SessionEvent.SIGN_IN_FAILED:
            return SessionState.ANONYMOUS
        if event == SessionEvent.SIGN_IN_SUCCEEDED:
            if capabilities is None:
                raise ValueError('capabilities are required to complete sign-in')
            return _state_for(capabilities)

    if state == SessionState.PENDING_APPROVAL and event == SessionEvent.APPROVED:
        return SessionState.ACTIVE

    raise ValueError(f'invalid session event {event!r} in state {state!r}')


def resolve_session_state(user):
    """Snapshot of the state for an already-resolved request user"""
    if user is None or not user.is_authenticated:
        return SessionState.ANONYMOUS
    return _state_for(current_user_capabilities(user))
