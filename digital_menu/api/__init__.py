from fastapi import APIRouter

from digital_menu.api import billing, catalog, establishments, orders, public_menu

api_router = APIRouter()

api_router.include_router(establishments.router)
api_router.include_router(catalog.categories_router)
api_router.include_router(catalog.products_router)
api_router.include_router(orders.router)
api_router.include_router(orders.manage_router)
api_router.include_router(public_menu.router)
api_router.include_router(billing.router)
