from fastapi import APIRouter, Depends, Request

from gradportal.auth.dependencies import get_page_cache, get_session_token
from gradportal.backend_client import BackendClient, get_backend_client
from gradportal.pages.cache import PageCache
from gradportal.pages.student import StudentDashboard
from gradportal.routes.rendering import render_page

router = APIRouter(tags=['dashboard'])


@router.get('/dashboard')
async def student_dashboard(
    request: Request,
    token: str | None = Depends(get_session_token),
    backend: BackendClient = Depends(get_backend_client),
    cache: PageCache = Depends(get_page_cache),
):
    page = await cache.open(StudentDashboard, token, backend)
    return render_page(request, page, 'dashboard.html')


@router.post('/dashboard/confirm')
async def confirm_attendance(
    request: Request,
    token: str | None = Depends(get_session_token),
    backend: BackendClient = Depends(get_backend_client),
    cache: PageCache = Depends(get_page_cache),
):
    page = await cache.open(StudentDashboard, token, backend, reuse=True)
    await page.confirm_attendance()
    return render_page(request, page, 'dashboard.html')
