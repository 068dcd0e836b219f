"""REST clients for the authentication, user-administration and job-search services."""
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from ..error_handling import ErrorHandler
from ..errors import AuthorizationError, JobBoardError, ValidationError
from ..models import JobRecord, normalize_jobs
from ..storage import KeyValueStore

logger = logging.getLogger(__name__)

TOKEN_KEY = 'token'
ROLES = ('ADMIN', 'USER')

_EMAIL = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')


class ApiClient:
    """Thin wrapper around a requests session.

    Attaches the stored bearer token to every request, unwraps the
    ``{success, data, message, error, meta}`` envelope and routes every
    failure through one ErrorHandler.
    """

    def __init__(self, base_url: str, storage: KeyValueStore,
                 error_handler: Optional[ErrorHandler] = None,
                 timeout: float = 15.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip('/')
        self.storage = storage
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({'Content-Type': 'application/json'})
        self.error_handler = error_handler or ErrorHandler()
        if self.error_handler.on_unauthorized is None:
            self.error_handler.on_unauthorized = self.clear_token

    @property
    def token(self) -> Optional[str]:
        return self.storage.get(TOKEN_KEY)

    def set_token(self, token: str) -> None:
        self.storage.set(TOKEN_KEY, token)

    def clear_token(self) -> None:
        self.storage.delete(TOKEN_KEY)

    def request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        """Send a request and return the decoded response envelope.

        Raises:
            JobBoardError: Typed error produced by the error handler
        """
        headers = dict(kwargs.pop('headers', None) or {})
        token = self.token
        if token:
            headers['Authorization'] = f"Bearer {token}"
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            response = self.session.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            raise self.error_handler.handle_exception(e) from e

        if response.status_code >= 400:
            raise self.error_handler.handle_response(response)

        self.error_handler.record_success()
        try:
            body = response.json()
        except ValueError:
            return {'success': True, 'data': None}
        if isinstance(body, dict) and 'success' in body:
            return body
        return {'success': True, 'data': body}


def _validate_credentials(email: str, password: str) -> None:
    if not email or not _EMAIL.match(email):
        raise ValidationError("Invalid email format")
    if not password or len(password) < 6:
        raise ValidationError("Password must be at least 6 characters")


@dataclass(frozen=True)
class AuthSession:
    user: Dict[str, Any]
    token: str


class AuthClient:
    """Login, registration and current-user lookup."""

    def __init__(self, api: ApiClient):
        self.api = api

    def _start_session(self, body: Dict[str, Any]) -> AuthSession:
        data = body.get('data') or {}
        token = data.get('token')
        if not token:
            raise AuthorizationError(body.get('error') or "No token in response")
        self.api.set_token(token)
        return AuthSession(user=data.get('user') or {}, token=token)

    def login(self, email: str, password: str) -> AuthSession:
        _validate_credentials(email, password)
        body = self.api.request('POST', '/auth/login', json={'email': email, 'password': password})
        session = self._start_session(body)
        logger.info(f"Logged in as {email}")
        return session

    def register(self, email: str, username: str, password: str,
                 first_name: Optional[str] = None, last_name: Optional[str] = None) -> AuthSession:
        _validate_credentials(email, password)
        if not username or len(username) < 3:
            raise ValidationError("Username must be at least 3 characters")
        payload = {'email': email, 'username': username, 'password': password}
        if first_name:
            payload['firstName'] = first_name
        if last_name:
            payload['lastName'] = last_name
        body = self.api.request('POST', '/auth/register', json=payload)
        return self._start_session(body)

    def current_user(self) -> Dict[str, Any]:
        if not self.api.token:
            raise AuthorizationError("Access token required")
        body = self.api.request('GET', '/auth/me')
        return (body.get('data') or {}).get('user') or {}

    def logout(self) -> None:
        # The server keeps no session state; dropping the token is the logout
        try:
            self.api.request('POST', '/auth/logout')
        finally:
            self.api.clear_token()


@dataclass(frozen=True)
class AdminResult:
    success: bool
    message: str
    data: Any = None
    error: Optional[JobBoardError] = None


@dataclass(frozen=True)
class UserListing:
    users: List[Dict[str, Any]]
    total: int
    active: int
    inactive: int
    warning: Optional[str] = None


class UserAdminClient:
    """Admin-only user management.

    Mutations return an AdminResult instead of raising so the caller can
    show the message either way.
    """

    def __init__(self, api: ApiClient, current_user_id: Optional[str] = None):
        self.api = api
        self.current_user_id = current_user_id

    def _mutate(self, method: str, path: str, fallback: str, **kwargs) -> AdminResult:
        try:
            body = self.api.request(method, path, **kwargs)
        except JobBoardError as e:
            return AdminResult(success=False, message=e.message, error=e)
        return AdminResult(success=True, message=body.get('message') or fallback, data=body.get('data'))

    def _reject_self(self, user_id: str, message: str) -> Optional[AdminResult]:
        if self.current_user_id is not None and user_id == self.current_user_id:
            return AdminResult(success=False, message=message, error=AuthorizationError(message))
        return None

    def list_users(self, hide_inactive: bool = False) -> UserListing:
        body = self.api.request('GET', '/users/all', params={'hideInactive': str(hide_inactive).lower()})
        users = body.get('data') or []
        meta = body.get('meta') or {}
        total = meta.get('total', len(users))
        active = meta.get('active', sum(1 for user in users if user.get('isActive')))
        return UserListing(
            users=users,
            total=total,
            active=active,
            inactive=meta.get('inactive', total - active),
            warning=meta.get('warning'),
        )

    def toggle_active(self, user_id: str) -> AdminResult:
        rejected = self._reject_self(user_id, "You cannot deactivate your own account")
        if rejected:
            return rejected
        return self._mutate('PATCH', f'/users/{user_id}/toggle-active', "User status updated")

    def change_role(self, user_id: str, role: str) -> AdminResult:
        if role not in ROLES:
            message = "Invalid role. Must be ADMIN or USER"
            return AdminResult(success=False, message=message, error=ValidationError(message))
        rejected = self._reject_self(user_id, "You cannot change your own role")
        if rejected:
            return rejected
        return self._mutate('PATCH', f'/users/{user_id}/change-role',
                            f"User role changed to {role} successfully", json={'role': role})

    def bulk_activate(self, user_ids: List[str]) -> AdminResult:
        if not user_ids:
            message = "Please provide an array of user IDs to activate"
            return AdminResult(success=False, message=message, error=ValidationError(message))
        return self._mutate('POST', '/users/bulk-activate', "Users activated", json={'userIds': list(user_ids)})

    def delete_user(self, user_id: str) -> AdminResult:
        rejected = self._reject_self(user_id, "You cannot delete your own account")
        if rejected:
            return rejected
        return self._mutate('DELETE', f'/users/{user_id}', "User deleted successfully")


class JobSearchClient:
    """Job search and location suggestions from the aggregation service."""

    def __init__(self, api: ApiClient):
        self.api = api

    def search_jobs(self, query: str, location: str) -> List[JobRecord]:
        body = self.api.request('GET', '/search/jobs', params={'q': query or '', 'location': location or ''})
        data = body.get('data')
        if isinstance(data, dict):
            data = data.get('jobs') or data.get('data') or []
        jobs = normalize_jobs(data or [])
        logger.info(f"Search {query!r} in {location!r} returned {len(jobs)} jobs")
        return jobs

    def search_locations(self, text: str) -> List[str]:
        body = self.api.request('GET', '/locations/search', params={'q': text})
        suggestions = []
        for item in body.get('data') or []:
            if isinstance(item, str):
                suggestions.append(item)
            elif isinstance(item, dict) and item.get('name'):
                suggestions.append(str(item['name']))
        return suggestions
