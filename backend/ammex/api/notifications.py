"""
Notifications API Endpoints
"""
from fastapi import APIRouter, Depends, Query

from ammex.api.responses import success
from ammex.core.auth import get_current_user, require_warehouse
from ammex.core.pagination import paginate
from ammex.domain.user import User
from ammex.services.notification_service import NotificationService

router = APIRouter()


def get_notification_service() -> NotificationService:
    return NotificationService()


@router.get("/")
def list_notifications(
    unread_only: bool = Query(False, alias="unreadOnly"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    user: User = Depends(get_current_user),
    notifications: NotificationService = Depends(get_notification_service)
):
    size, offset = paginate(page, limit)
    items, unread = notifications.list_for(user, unread_only=unread_only, limit=size, offset=offset)
    return success([n.to_dict() for n in items], unreadCount=unread)


@router.get("/stock")
def stock_notifications(
    unread_only: bool = Query(False, alias="unreadOnly"),
    limit: int = Query(50, ge=1, le=200),
    user: User = Depends(require_warehouse),
    notifications: NotificationService = Depends(get_notification_service)
):
    items, unread = notifications.list_stock(unread_only=unread_only, limit=limit)
    return success([n.to_dict() for n in items], unreadCount=unread)


@router.get("/stats")
def notification_stats(
    user: User = Depends(get_current_user),
    notifications: NotificationService = Depends(get_notification_service)
):
    return success(notifications.stats(user))


@router.patch("/read-all")
def mark_all_read(
    user: User = Depends(get_current_user),
    notifications: NotificationService = Depends(get_notification_service)
):
    count = notifications.mark_all_read(user)
    return success({"updated": count}, message="All notifications marked as read")


@router.patch("/{notification_id}/read")
def mark_read(
    notification_id: int,
    user: User = Depends(get_current_user),
    notifications: NotificationService = Depends(get_notification_service)
):
    notification = notifications.mark_read(user, notification_id)
    return success(notification.to_dict(), message="Notification marked as read")
