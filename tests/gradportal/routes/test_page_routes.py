import asyncio
from types import SimpleNamespace

import httpx
import pytest
from fastapi.testclient import TestClient

from conftest import PASSWORD, FakeAuth, FakeProfiles, profile_row
from gradportal.auth.client import SessionUser
from gradportal.auth.dependencies import get_page_cache
from gradportal.backend_client import get_backend_client
from gradportal.core import config
from gradportal.core.enums import GraduationStatus
from gradportal.main import app
from gradportal.pages.admin import AdminDashboard
from gradportal.pages.cache import PageCache
from gradportal.pages.student import CONFIRM_BUSY_LABEL, StudentDashboard


@pytest.fixture
def client(backend):
    app.dependency_overrides[get_backend_client] = lambda: backend
    cache = PageCache()
    app.dependency_overrides[get_page_cache] = lambda: cache
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _login(client: TestClient, email: str, password: str = PASSWORD):
    return client.post('/login', data={'email': email, 'password': password}, follow_redirects=False)


def test_health_endpoint(client) -> None:
    response = client.get('/health')

    assert response.status_code == 200
    assert response.json() == {'status': 'Graduation Attendance Portal Running'}


@pytest.mark.parametrize('path', ['/dashboard', '/admin'])
def test_protected_views_redirect_to_login_without_session(client, path: str) -> None:
    response = client.get(path, follow_redirects=False)

    assert response.status_code == 303
    assert response.headers['location'] == '/'


def test_login_with_bad_password_sets_no_cookie(client, make_account) -> None:
    make_account('student@example.edu', student_id='S1')

    response = _login(client, 'student@example.edu', 'wrong-password')

    assert response.status_code == 401
    assert 'Invalid email or password.' in response.text
    assert config.SESSION_COOKIE_NAME not in response.cookies


def test_student_login_lands_on_dashboard(client, make_account) -> None:
    make_account('student@example.edu', student_id='S1', full_name='Ada Lovelace')

    response = _login(client, 'student@example.edu')

    assert response.status_code == 303
    assert response.headers['location'] == '/dashboard'

    dashboard = client.get('/dashboard')
    assert dashboard.status_code == 200
    assert 'Welcome, Ada Lovelace' in dashboard.text
    assert 'Graduation Status: <span class="status">pending</span>' in dashboard.text
    assert 'Confirm Graduation Attendance' in dashboard.text


def test_student_confirms_attendance(client, backend, make_account) -> None:
    created = make_account('student@example.edu', student_id='S1')
    _login(client, 'student@example.edu')
    client.get('/dashboard')

    response = client.post('/dashboard/confirm')

    assert response.status_code == 200
    assert '<span class="status">confirmed</span>' in response.text
    assert 'Confirm Graduation Attendance' not in response.text
    stored = asyncio.run(backend.profiles.get_by_id(created.id))
    assert stored.graduation_status == GraduationStatus.CONFIRMED.value


def test_student_is_redirected_away_from_admin(client, make_account) -> None:
    make_account('student@example.edu', student_id='S1')
    _login(client, 'student@example.edu')

    response = client.get('/admin', follow_redirects=False)

    assert response.status_code == 303
    assert response.headers['location'] == '/dashboard'


def test_admin_sees_ordered_roster_and_toggles(client, backend, make_account) -> None:
    make_account('admin@example.edu', role='admin', full_name='Registrar')
    second = make_account('b@example.edu', student_id='A2', full_name='Second Student')
    make_account('a@example.edu', student_id='A1', full_name='First Student')

    response = _login(client, 'admin@example.edu')
    assert response.headers['location'] == '/admin'

    roster = client.get('/admin')
    assert roster.status_code == 200
    assert roster.text.index('A1') < roster.text.index('A2')
    assert 'Registrar' not in roster.text
    assert roster.text.count('class="badge badge-warning"') == 2

    toggled = client.post(f'/admin/students/{second.id}/toggle')
    assert toggled.status_code == 200
    assert toggled.text.count('class="badge badge-positive"') == 1
    assert 'Set Pending' in toggled.text
    stored = asyncio.run(backend.profiles.get_by_id(second.id))
    assert stored.graduation_status == 'confirmed'


def test_sign_out_invalidates_session(client, make_account) -> None:
    make_account('student@example.edu', student_id='S1')
    _login(client, 'student@example.edu')
    token = client.cookies.get(config.SESSION_COOKIE_NAME)
    client.get('/dashboard')

    response = client.post('/signout', follow_redirects=False)

    assert response.status_code == 303
    assert response.headers['location'] == '/?notice=signed_out'

    client.cookies.set(config.SESSION_COOKIE_NAME, token)
    after = client.get('/dashboard', follow_redirects=False)
    assert after.headers['location'] == '/'


def test_sign_out_without_session_still_returns_to_login(client) -> None:
    response = client.post('/signout', follow_redirects=False)

    assert response.status_code == 303
    assert response.headers['location'] == '/?notice=signed_out'


def test_login_page_shows_notice(client) -> None:
    response = client.get('/?notice=signed_out')

    assert response.status_code == 200
    assert 'You have been signed out.' in response.text


def test_signed_in_visitor_skips_login_page(client, make_account) -> None:
    make_account('student@example.edu', student_id='S1')
    _login(client, 'student@example.edu')

    response = client.get('/', follow_redirects=False)

    assert response.status_code == 303
    assert response.headers['location'] == '/dashboard'


def test_signup_creates_pending_student(client, backend) -> None:
    response = client.post(
        '/signup',
        data={
            'email': 'new@example.edu',
            'password': PASSWORD,
            'full_name': 'New Student',
            'student_id': 'N1',
        },
        follow_redirects=False,
    )

    assert response.status_code == 303
    assert response.headers['location'] == '/?notice=signed_up'

    login = _login(client, 'new@example.edu')
    assert login.headers['location'] == '/dashboard'
    assert 'Student ID: N1' in client.get('/dashboard').text


def test_signup_with_taken_student_id_is_reported(client, make_account) -> None:
    make_account('first@example.edu', student_id='S1')

    response = client.post(
        '/signup',
        data={
            'email': 'second@example.edu',
            'password': PASSWORD,
            'full_name': 'Second Student',
            'student_id': 'S1',
        },
    )

    assert response.status_code == 400
    assert 'student ID already exists' in response.text


def test_me_requires_session(client) -> None:
    response = client.get('/me')

    assert response.status_code == 401
    assert response.json() == {'detail': 'Not authenticated'}


def test_me_reports_role(client, make_account) -> None:
    created = make_account('admin@example.edu', role='admin')
    _login(client, 'admin@example.edu')

    response = client.get('/me')

    assert response.json() == {'id': created.id, 'email': 'admin@example.edu', 'role': 'admin'}


def test_sign_out_failure_is_reported_on_login_page(client) -> None:
    client.cookies.set(config.SESSION_COOKIE_NAME, 'not-a-session-token')

    response = client.post('/signout', follow_redirects=False)

    assert response.status_code == 303
    assert response.headers['location'] == '/?notice=signout_failed'

    login = client.get(response.headers['location'])
    assert login.status_code == 200
    assert 'the server could not end your session' in login.text


def _post_twice_while_update_is_held(monkeypatch, profiles, user, page_cls, action, view_path, post_path):
    """Send two overlapping POSTs; the first update is held until both have reached the page."""
    backend = SimpleNamespace(auth=FakeAuth({'token': user}), profiles=profiles)
    cache = PageCache()
    entered = []
    original_action = getattr(page_cls, action)

    async def counted_action(page, *args):
        entered.append(page)
        await original_action(page, *args)

    monkeypatch.setattr(page_cls, action, counted_action)

    async def wait_for_both():
        while len(entered) < 2:
            await asyncio.sleep(0.01)

    async def scenario():
        profiles.hold = asyncio.Event()
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(
            transport=transport,
            base_url='http://testserver',
            cookies={config.SESSION_COOKIE_NAME: 'token'},
        ) as http:
            await http.get(view_path)
            first = asyncio.ensure_future(http.post(post_path))
            second = asyncio.ensure_future(http.post(post_path))
            await asyncio.wait_for(wait_for_both(), timeout=5)
            profiles.hold.set()
            return await asyncio.gather(first, second)

    app.dependency_overrides[get_backend_client] = lambda: backend
    app.dependency_overrides[get_page_cache] = lambda: cache
    try:
        return asyncio.run(scenario())
    finally:
        app.dependency_overrides.clear()


def test_overlapping_confirm_posts_both_render_confirmed(monkeypatch: pytest.MonkeyPatch) -> None:
    profiles = FakeProfiles([profile_row('s1', student_id='S1', graduation_status='pending')])

    responses = _post_twice_while_update_is_held(
        monkeypatch,
        profiles,
        SessionUser(id='s1', email='s1@example.edu'),
        StudentDashboard,
        'confirm_attendance',
        '/dashboard',
        '/dashboard/confirm',
    )

    assert profiles.update_calls == [('s1', GraduationStatus.CONFIRMED)]
    for response in responses:
        assert response.status_code == 200
        assert 'Graduation Status: <span class="status">confirmed</span>' in response.text
        assert CONFIRM_BUSY_LABEL not in response.text
        assert 'Confirm Graduation Attendance' not in response.text


def test_overlapping_toggle_posts_both_render_toggled_row(monkeypatch: pytest.MonkeyPatch) -> None:
    profiles = FakeProfiles(
        [
            profile_row('admin', role='admin'),
            profile_row('s1', student_id='A1', graduation_status='pending'),
        ]
    )

    responses = _post_twice_while_update_is_held(
        monkeypatch,
        profiles,
        SessionUser(id='admin', email='admin@example.edu'),
        AdminDashboard,
        'toggle_status',
        '/admin',
        '/admin/students/s1/toggle',
    )

    assert profiles.update_calls == [('s1', GraduationStatus.CONFIRMED)]
    for response in responses:
        assert response.status_code == 200
        assert response.text.count('class="badge badge-positive"') == 1
        assert 'Set Pending' in response.text
        assert ' disabled>' not in response.text
