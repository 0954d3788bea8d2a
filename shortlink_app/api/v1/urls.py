from typing import List

from fastapi import APIRouter, Depends, status

from shortlink_app.dependencies import get_click_recorder, get_current_user, get_url_service
from shortlink_app.schemas.auth import CurrentUser
from shortlink_app.schemas.url import MessageResponse, URLAnalytics, URLCreate, URLResponse
from shortlink_app.services.click_service import ClickRecorder
from shortlink_app.services.url_service import URLService

router = APIRouter(prefix="/urls", tags=["urls"])


@router.post("", response_model=URLResponse, status_code=status.HTTP_201_CREATED)
async def create_short_url(
    url_data: URLCreate,
    user: CurrentUser = Depends(get_current_user),
    url_service: URLService = Depends(get_url_service)
):
    """Shorten a URL for the authenticated user"""
    return await url_service.create_short_url(user.id, url_data.original_url)


@router.get("/list/all", response_model=List[URLResponse])
async def list_urls(
    user: CurrentUser = Depends(get_current_user),
    url_service: URLService = Depends(get_url_service)
):
    """All of the caller's URLs, newest first"""
    return await url_service.list_urls(user.id)


@router.get("/detail/{url_id}", response_model=URLResponse)
async def get_url(
    url_id: str,
    user: CurrentUser = Depends(get_current_user),
    url_service: URLService = Depends(get_url_service)
):
    return await url_service.get_url_by_id(url_id, user.id)


@router.delete("/detail/{url_id}", response_model=MessageResponse)
async def delete_url(
    url_id: str,
    user: CurrentUser = Depends(get_current_user),
    url_service: URLService = Depends(get_url_service)
):
    await url_service.delete_url(url_id, user.id)
    return MessageResponse(message="URL deleted successfully")


@router.get("/analytics/{url_id}", response_model=URLAnalytics)
async def get_url_analytics(
    url_id: str,
    user: CurrentUser = Depends(get_current_user),
    url_service: URLService = Depends(get_url_service),
    click_recorder: ClickRecorder = Depends(get_click_recorder)
):
    """Click aggregates for one of the caller's URLs"""
    # Ownership check first: someone else's URL is a 404
    url = await url_service.get_url_by_id(url_id, user.id)
    return await click_recorder.get_analytics(url.id)
