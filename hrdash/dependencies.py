"""Shared FastAPI dependencies: process-wide singletons and repositories."""

from fastapi import Depends, Request

from hrdash.cache.query_cache import QueryCache
from hrdash.dashboard.service import DashboardService
from hrdash.leave.service import LeaveRequestRepository
from hrdash.notifications.service import NotificationAggregator
from hrdash.profiles.service import ProfileRepository
from hrdash.session.registry import SessionRegistry
from hrdash.store.service import RemoteStore


def get_store(request: Request) -> RemoteStore:
    return request.app.state.store


def get_query_cache(request: Request) -> QueryCache:
    return request.app.state.query_cache


def get_session_registry(request: Request) -> SessionRegistry:
    return request.app.state.sessions


# ── Repositories ────────────────────────────────────────────────────

def get_profile_repository(
    store: RemoteStore = Depends(get_store),
    cache: QueryCache = Depends(get_query_cache),
) -> ProfileRepository:
    return ProfileRepository(store, cache)


def get_leave_repository(
    store: RemoteStore = Depends(get_store),
    cache: QueryCache = Depends(get_query_cache),
) -> LeaveRequestRepository:
    return LeaveRequestRepository(store, cache)


def get_notification_aggregator(
    leave: LeaveRequestRepository = Depends(get_leave_repository),
) -> NotificationAggregator:
    return NotificationAggregator(leave)


def get_dashboard_service(
    profiles: ProfileRepository = Depends(get_profile_repository),
    leave: LeaveRequestRepository = Depends(get_leave_repository),
    notifications: NotificationAggregator = Depends(get_notification_aggregator),
) -> DashboardService:
    return DashboardService(profiles, leave, notifications)
