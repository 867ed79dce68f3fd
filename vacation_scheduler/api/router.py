from fastapi import APIRouter

from vacation_scheduler.api.intersections import intersections_router
from vacation_scheduler.api.limits import employee_limits_router, limits_router
from vacation_scheduler.api.requests import requests_router

api_router = APIRouter()
api_router.include_router(requests_router)
api_router.include_router(employee_limits_router)
api_router.include_router(limits_router)
api_router.include_router(intersections_router)
