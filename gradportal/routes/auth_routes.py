import logging

from fastapi import APIRouter, Depends, Form, Query, Request, status

from gradportal.auth.client import SessionUser
from gradportal.auth.dependencies import get_current_user, get_page_cache, get_session_token
from gradportal.backend_client import BackendClient, create_account, get_backend_client
from gradportal.core.exceptions import AuthenticationError, BackendError, DuplicateRecordError
from gradportal.guards import LOGIN_PATH, fetch_role, landing_path
from gradportal.pages.cache import PageCache
from gradportal.routes.rendering import clear_session_cookie, redirect, set_session_cookie, templates
from gradportal.session import SessionContext

router = APIRouter(tags=['auth'])

logger = logging.getLogger(__name__)

NOTICES = {
    'signed_out': 'You have been signed out.',
    'signout_failed': 'You have been signed out on this device, but the server could not end your session.',
    'signed_up': 'Account created. Please sign in.',
}
SERVICE_UNAVAILABLE_ERROR = 'The sign-in service is unavailable right now. Please try again later.'


def render_login(request: Request, error: str | None = None, notice: str | None = None, status_code: int = 200):
    return templates.TemplateResponse(
        request,
        'login.html',
        {'error': error, 'notice': notice},
        status_code=status_code,
    )


@router.get('/')
async def login_page(
    request: Request,
    notice: str | None = Query(default=None),
    token: str | None = Depends(get_session_token),
    backend: BackendClient = Depends(get_backend_client),
):
    context = SessionContext(backend.auth, token)
    try:
        user = await context.initialize()
    finally:
        context.close()

    if user is not None:
        return redirect(await landing_path(user, backend.profiles))
    return render_login(request, notice=NOTICES.get(notice))


@router.post('/login')
async def login(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    backend: BackendClient = Depends(get_backend_client),
):
    try:
        session = await backend.auth.sign_in(email, password)
    except AuthenticationError as exc:
        return render_login(request, error=str(exc), status_code=status.HTTP_401_UNAUTHORIZED)
    except BackendError:
        logger.exception('Sign in failed')
        return render_login(request, error=SERVICE_UNAVAILABLE_ERROR, status_code=status.HTTP_503_SERVICE_UNAVAILABLE)

    response = redirect(await landing_path(session.user, backend.profiles))
    set_session_cookie(response, session)
    return response


@router.post('/signup')
async def signup(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    full_name: str = Form(...),
    student_id: str = Form(default=''),
    backend: BackendClient = Depends(get_backend_client),
):
    if not full_name.strip():
        return render_login(request, error='Full name is required.', status_code=status.HTTP_400_BAD_REQUEST)

    try:
        await create_account(backend, email, password, full_name, student_id=student_id)
    except (AuthenticationError, DuplicateRecordError) as exc:
        return render_login(request, error=str(exc), status_code=status.HTTP_400_BAD_REQUEST)
    except BackendError:
        logger.exception('Sign up failed for %s', email)
        return render_login(request, error=SERVICE_UNAVAILABLE_ERROR, status_code=status.HTTP_503_SERVICE_UNAVAILABLE)

    return redirect(f'{LOGIN_PATH}?notice=signed_up')


@router.post('/signout')
async def signout(
    token: str | None = Depends(get_session_token),
    backend: BackendClient = Depends(get_backend_client),
    cache: PageCache = Depends(get_page_cache),
):
    if token:
        cache.drop_session(token)
    context = SessionContext(backend.auth, token)
    try:
        signed_out = await context.sign_out()
    finally:
        context.close()

    notice = 'signed_out' if signed_out else 'signout_failed'
    response = redirect(f'{LOGIN_PATH}?notice={notice}')
    clear_session_cookie(response)
    return response


@router.get('/me')
async def me(
    current_user: SessionUser = Depends(get_current_user),
    backend: BackendClient = Depends(get_backend_client),
):
    return {
        'id': current_user.id,
        'email': current_user.email,
        'role': await fetch_role(current_user, backend.profiles),
    }
