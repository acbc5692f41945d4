# FILE: curex/api/router.py
from fastapi import APIRouter

from curex.api import (
    routes_auth,
    routes_medications,
    routes_inventory,
    routes_cart,
    routes_favorites,
    routes_orders,
    routes_prescriptions,
    routes_pharmacies,
    routes_dashboard,
    routes_health_records,
)

api_router = APIRouter()

# Core
api_router.include_router(routes_auth.router)

# Catalogue / stock
api_router.include_router(routes_medications.router)
api_router.include_router(routes_inventory.router)
api_router.include_router(routes_pharmacies.router)

# Shopping
api_router.include_router(routes_cart.router)
api_router.include_router(routes_favorites.router)
api_router.include_router(routes_orders.router)

# Clinical
api_router.include_router(routes_prescriptions.router)
api_router.include_router(routes_health_records.router)

# Reporting
api_router.include_router(routes_dashboard.router)
