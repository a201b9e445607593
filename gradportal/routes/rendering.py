from pathlib import Path

from fastapi import Request, status
from fastapi.responses import RedirectResponse, Response
from fastapi.templating import Jinja2Templates

from gradportal.auth.client import IssuedSession
from gradportal.core import config
from gradportal.pages.base import Page

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent.parent / 'templates'))


def redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=status.HTTP_303_SEE_OTHER)


def render_page(request: Request, page: Page, template_name: str) -> Response:
    if not page.renderable:
        return redirect(page.redirect_to or '/')
    return templates.TemplateResponse(request, template_name, {'page': page})


def set_session_cookie(response: Response, session: IssuedSession) -> None:
    response.set_cookie(
        key=config.SESSION_COOKIE_NAME,
        value=session.access_token,
        max_age=config.JWT_EXPIRES_MINUTES * 60,
        httponly=True,
        secure=config.SESSION_COOKIE_SECURE,
        samesite='lax',
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(key=config.SESSION_COOKIE_NAME)
