from fastapi import APIRouter, Depends, Request

from gradportal.auth.dependencies import get_page_cache, get_session_token
from gradportal.backend_client import BackendClient, get_backend_client
from gradportal.pages.admin import AdminDashboard
from gradportal.pages.cache import PageCache
from gradportal.routes.rendering import render_page

router = APIRouter(tags=['admin'])


@router.get('/admin')
async def admin_dashboard(
    request: Request,
    token: str | None = Depends(get_session_token),
    backend: BackendClient = Depends(get_backend_client),
    cache: PageCache = Depends(get_page_cache),
):
    page = await cache.open(AdminDashboard, token, backend)
    return render_page(request, page, 'admin.html')


@router.post('/admin/students/{profile_id}/toggle')
async def toggle_student_status(
    profile_id: str,
    request: Request,
    token: str | None = Depends(get_session_token),
    backend: BackendClient = Depends(get_backend_client),
    cache: PageCache = Depends(get_page_cache),
):
    page = await cache.open(AdminDashboard, token, backend, reuse=True)
    await page.toggle_status(profile_id)
    return render_page(request, page, 'admin.html')
