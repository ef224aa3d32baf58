"""
Registre central des routers (API v1, health).
- API v1: auth, addresses, products, cart, orders, payments
- Health: health_router
"""
from fastapi import FastAPI
from backend.auth.views import api_router as auth_api_router
from backend.addresses import views as addresses_views
from backend.products import views as products_views
from backend.cart import views as cart_views
from backend.orders import views as orders_views
from backend.payments import views as payments_views
from backend.health.router import router as health_router

def register_routers(app: FastAPI) -> None:
    """
    Agrège tous les routers de l'application.
    L'ordre n'a pas d'impact sauf conflits de chemins (évités par préfixes).
    """
    # API v1
    app.include_router(auth_api_router)
    app.include_router(addresses_views.router)
    app.include_router(products_views.router)
    app.include_router(cart_views.router)
    app.include_router(orders_views.router)
    app.include_router(payments_views.router)
    # Health & monitoring
    app.include_router(health_router)
