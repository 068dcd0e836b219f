"""Tests for the REST clients using mocked HTTP."""
import pytest
import requests

from jobboard.delivery.notifiers import MemoryNotifier
from jobboard.error_handling import ErrorHandler, UNAUTHORIZED_MESSAGE
from jobboard.errors import AuthorizationError, NetworkError, ValidationError
from jobboard.ingest import ApiClient, AuthClient, JobSearchClient, UserAdminClient
from jobboard.ingest.client import TOKEN_KEY

BASE_URL = "https://api.example.com/api"


@pytest.fixture
def notifier():
    return MemoryNotifier()


@pytest.fixture
def api(storage, notifier) -> ApiClient:
    """API client over the in-memory store.

    Args:
        storage: In-memory store fixture
        notifier: Collecting notifier fixture
    """
    return ApiClient(BASE_URL, storage, error_handler=ErrorHandler(notifier=notifier))


class TestApiClient:
    """Request plumbing."""

    def test_attaches_bearer_token(self, api, requests_mock):
        api.set_token("secret")
        requests_mock.get(f"{BASE_URL}/auth/me", json={'success': True, 'data': {'user': {}}})

        api.request('GET', '/auth/me')

        assert requests_mock.last_request.headers['Authorization'] == "Bearer secret"

    def test_no_token_no_header(self, api, requests_mock):
        requests_mock.get(f"{BASE_URL}/search/jobs", json={'success': True, 'data': []})

        api.request('GET', '/search/jobs')

        assert 'Authorization' not in requests_mock.last_request.headers

    def test_wraps_bare_payloads(self, api, requests_mock):
        requests_mock.get(f"{BASE_URL}/locations/search", json=["Austin, TX"])
        assert api.request('GET', '/locations/search') == {'success': True, 'data': ["Austin, TX"]}

    def test_unauthorized_clears_token(self, api, storage, notifier, requests_mock):
        api.set_token("expired")
        requests_mock.get(f"{BASE_URL}/auth/me", status_code=401, json={'error': 'Invalid token'})

        with pytest.raises(AuthorizationError):
            api.request('GET', '/auth/me')
        with pytest.raises(AuthorizationError):
            api.request('GET', '/auth/me')

        assert api.token is None
        assert storage.get(TOKEN_KEY) is None
        assert [n.message for n in notifier.drain()] == [UNAUTHORIZED_MESSAGE]

    def test_connection_failure_becomes_network_error(self, api, requests_mock):
        requests_mock.get(f"{BASE_URL}/search/jobs", exc=requests.exceptions.ConnectTimeout)

        with pytest.raises(NetworkError) as exc_info:
            api.request('GET', '/search/jobs')

        assert exc_info.value.kind == 'network'


class TestAuthClient:
    """Login and registration."""

    def test_login_stores_token(self, api, requests_mock):
        requests_mock.post(f"{BASE_URL}/auth/login", json={
            'success': True,
            'data': {'user': {'id': 'u1', 'email': 'ann@example.com'}, 'token': 'jwt-token'},
        })

        session = AuthClient(api).login("ann@example.com", "hunter22")

        assert session.token == 'jwt-token'
        assert session.user['id'] == 'u1'
        assert api.token == 'jwt-token'
        assert requests_mock.last_request.json() == {'email': 'ann@example.com', 'password': 'hunter22'}

    @pytest.mark.parametrize("email,password,match", [
        ("not-an-email", "hunter22", "email"),
        ("ann@example.com", "short", "6 characters"),
        ("", "", "email"),
    ])
    def test_login_validates_locally(self, api, requests_mock, email, password, match):
        with pytest.raises(ValidationError, match=match):
            AuthClient(api).login(email, password)
        assert not requests_mock.called

    def test_register_sends_optional_names(self, api, requests_mock):
        requests_mock.post(f"{BASE_URL}/auth/register", status_code=201, json={
            'success': True,
            'data': {'user': {'id': 'u2'}, 'token': 'new-token'},
        })

        AuthClient(api).register("bo@example.com", "bo_dev", "secret1", first_name="Bo")

        assert requests_mock.last_request.json() == {
            'email': 'bo@example.com', 'username': 'bo_dev', 'password': 'secret1', 'firstName': 'Bo',
        }
        assert api.token == 'new-token'

    def test_register_rejects_short_username(self, api):
        with pytest.raises(ValidationError, match="Username"):
            AuthClient(api).register("bo@example.com", "bo", "secret1")

    def test_current_user_requires_token(self, api):
        with pytest.raises(AuthorizationError):
            AuthClient(api).current_user()

    def test_logout_clears_token_even_on_failure(self, api, requests_mock):
        api.set_token("jwt-token")
        requests_mock.post(f"{BASE_URL}/auth/logout", status_code=500)

        with pytest.raises(NetworkError):
            AuthClient(api).logout()

        assert api.token is None


class TestUserAdminClient:
    """Admin user management."""

    def test_list_users_uses_meta(self, api, requests_mock):
        requests_mock.get(f"{BASE_URL}/users/all", json={
            'success': True,
            'data': [{'id': 'u1', 'isActive': True}, {'id': 'u2', 'isActive': False}],
            'meta': {'total': 2, 'active': 1, 'inactive': 1, 'warning': '1 inactive user'},
        })

        listing = UserAdminClient(api).list_users(hide_inactive=True)

        assert listing.total == 2
        assert listing.inactive == 1
        assert listing.warning == '1 inactive user'
        assert requests_mock.last_request.qs == {'hideinactive': ['true']}

    def test_list_users_counts_without_meta(self, api, requests_mock):
        requests_mock.get(f"{BASE_URL}/users/all", json={
            'success': True,
            'data': [{'id': 'u1', 'isActive': True}, {'id': 'u2', 'isActive': True}],
        })

        listing = UserAdminClient(api).list_users()

        assert (listing.total, listing.active, listing.inactive) == (2, 2, 0)

    @pytest.mark.parametrize("action", [
        lambda admin: admin.toggle_active('me'),
        lambda admin: admin.change_role('me', 'USER'),
        lambda admin: admin.delete_user('me'),
    ])
    def test_self_targeting_is_rejected_locally(self, api, requests_mock, action):
        result = action(UserAdminClient(api, current_user_id='me'))

        assert not result.success
        assert isinstance(result.error, AuthorizationError)
        assert not requests_mock.called

    def test_change_role_validates_role(self, api):
        result = UserAdminClient(api).change_role('u1', 'SUPERUSER')
        assert not result.success
        assert "ADMIN or USER" in result.message

    def test_change_role_success(self, api, requests_mock):
        requests_mock.patch(f"{BASE_URL}/users/u1/change-role", json={
            'success': True, 'data': {'id': 'u1', 'role': 'ADMIN'}, 'message': 'Role updated',
        })

        result = UserAdminClient(api).change_role('u1', 'ADMIN')

        assert result.success
        assert result.message == 'Role updated'
        assert requests_mock.last_request.json() == {'role': 'ADMIN'}

    def test_failures_are_returned_not_raised(self, api, requests_mock):
        requests_mock.delete(f"{BASE_URL}/users/u9", status_code=404, json={'error': 'User not found'})

        result = UserAdminClient(api).delete_user('u9')

        assert not result.success
        assert result.message == 'User not found'

    def test_bulk_activate(self, api, requests_mock):
        requests_mock.post(f"{BASE_URL}/users/bulk-activate", json={'success': True, 'data': {'count': 2}})

        assert not UserAdminClient(api).bulk_activate([]).success
        result = UserAdminClient(api).bulk_activate(['u1', 'u2'])

        assert result.success
        assert requests_mock.last_request.json() == {'userIds': ['u1', 'u2']}


class TestJobSearchClient:
    """Job search and location lookups."""

    def test_search_jobs_normalizes_results(self, api, requests_mock):
        requests_mock.get(f"{BASE_URL}/search/jobs", json={'success': True, 'data': [
            {'id': 'job_1', 'title': 'Python Developer', 'type': 'Full-time'},
            None,
            {'title': 'Analyst', 'company': 'Acme', 'source': 'indeed'},
        ]})

        jobs = JobSearchClient(api).search_jobs("python", "Austin")

        assert [job.id for job in jobs] == ['job_1', 'Analyst-Acme-indeed']
        assert requests_mock.last_request.qs == {'q': ['python'], 'location': ['austin']}

    def test_search_locations(self, api, requests_mock):
        requests_mock.get(f"{BASE_URL}/locations/search", json={'success': True, 'data': [
            {'name': 'Austin, TX'}, 'Austin, MN', {'id': 3},
        ]})

        assert JobSearchClient(api).search_locations("Aus") == ['Austin, TX', 'Austin, MN']
