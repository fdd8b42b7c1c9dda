# medstock/api/router.py
from fastapi import APIRouter

from medstock.api import routes_inventory_issue

api_router = APIRouter()

api_router.include_router(routes_inventory_issue.router)
