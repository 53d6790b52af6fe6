import logging

from django.contrib.auth import get_user_model
from django.core.exceptions import ObjectDoesNotExist
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import AuthenticationFailed, InvalidToken, TokenError
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from .access import (
    SessionEvent, SessionState, current_user_capabilities, resolve_session_state, transition,
)
from .models import AuditLog
from .permissions import IsAdminRole
from .serializers import (
    UserSerializer, RegisterSerializer, AdminUserCreateSerializer,
    ProfileSerializer, AuditLogSerializer,
)
from .utils import create_audit_log

logger = logging.getLogger(__name__)

User = get_user_model()


def capabilities_payload(user):
    capabilities = current_user_capabilities(user)
    return {'role': capabilities.role, 'is_approved': capabilities.is_approved}


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        data = super().validate(attrs)
        if not self.user.is_active:
            raise AuthenticationFailed('User account is disabled.')
        # Sign-in completed: report where the session lands instead of redirecting
        state = transition(
            SessionState.AUTHENTICATING,
            SessionEvent.SIGN_IN_SUCCEEDED,
            current_user_capabilities(self.user),
        )
        data['session_state'] = state.value
        data['capabilities'] = capabilities_payload(self.user)
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        capabilities = current_user_capabilities(user)
        token['username'] = user.username
        token['role'] = capabilities.role
        token['is_approved'] = capabilities.is_approved
        return token


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Token refresh that reports deleted users as an invalid token"""
    def validate(self, attrs):
        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except ObjectDoesNotExist:
            raise InvalidToken('Token is invalid. User no longer exists.')


class CustomTokenRefreshView(TokenRefreshView):
    serializer_class = CustomTokenRefreshSerializer


@api_view(['POST'])
@permission_classes([AllowAny])
def register(request):
    """Self-registration; the new account is pending approval"""
    serializer = RegisterSerializer(data=request.data)
    if serializer.is_valid():
        user = serializer.save()
        create_audit_log(request=request, action='user_register', instance=user, user=user,
                         object_name=user.username)
        logger.info("User %s registered, pending approval", user.username)
        token = CustomTokenObtainPairSerializer.get_token(user)
        return Response({
            'user': UserSerializer(user).data,
            'session_state': resolve_session_state(user).value,
            'access': str(token.access_token),
            'refresh': str(token),
        }, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Current user, capabilities and session state; available to unapproved users too"""
    user_data = UserSerializer(request.user).data
    user_data['capabilities'] = capabilities_payload(request.user)
    user_data['session_state'] = resolve_session_state(request.user).value
    return Response(user_data)


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated])
def profile(request):
    """Read or update the caller's own profile"""
    if request.method == 'GET':
        return Response(ProfileSerializer(request.user).data)
    serializer = ProfileSerializer(request.user, data=request.data, partial=True)
    if serializer.is_valid():
        serializer.save()
        return Response(serializer.data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


# User administration
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def user_list_create(request):
    """List all users or register a new one on someone's behalf"""
    if request.method == 'GET':
        users = User.objects.all().order_by('username')
        pending = request.query_params.get('pending')
        if pending == 'true':
            users = users.filter(is_approved=False)
        serializer = UserSerializer(users, many=True)
        return Response(serializer.data)
    else:
        serializer = AdminUserCreateSerializer(data=request.data)
        if serializer.is_valid():
            user = serializer.save()
            create_audit_log(request=request, action='user_register', instance=user,
                             object_name=user.username, changes={'role': user.role})
            return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def user_detail(request, pk):
    """Retrieve, update or delete a user"""
    user = get_object_or_404(User, pk=pk)

    if request.method == 'GET':
        serializer = UserSerializer(user)
        return Response(serializer.data)
    elif request.method == 'PATCH':
        serializer = UserSerializer(user, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if user.pk == request.user.pk:
            return Response({'error': 'You cannot delete your own account'},
                            status=status.HTTP_400_BAD_REQUEST)
        user.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def user_approve(request, pk):
    """Approve a pending account"""
    user = get_object_or_404(User, pk=pk)
    previous_state = resolve_session_state(user)
    if previous_state == SessionState.ACTIVE:
        return Response(UserSerializer(user).data)
    user.is_approved = True
    user.save(update_fields=['is_approved', 'updated_at'])
    # Inactive accounts stay pending until they are reactivated
    new_state = resolve_session_state(user)
    create_audit_log(request=request, action='user_approve', instance=user, object_name=user.username,
                     changes={'session_state': [previous_state.value, new_state.value]})
    logger.info("User %s approved by %s", user.username, request.user.username)
    return Response(UserSerializer(user).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def audit_log_list(request):
    """List audit log entries, newest first"""
    logs = AuditLog.objects.select_related('user').all()
    action = request.query_params.get('action')
    if action:
        logs = logs.filter(action=action)
    model_name = request.query_params.get('model_name')
    if model_name:
        logs = logs.filter(model_name=model_name)
    try:
        limit = int(request.query_params.get('limit', 100))
    except ValueError:
        limit = 100
    serializer = AuditLogSerializer(logs[:limit], many=True)
    return Response(serializer.data)
