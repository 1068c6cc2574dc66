from fastapi import APIRouter

from . import (
    admin,
    auth,
    health,
    menu,
    orders,
    payments,
    points,
    printer,
    promo_codes,
    rewards,
    vouchers,
)


def get_api_router() -> APIRouter:
    router = APIRouter()
    router.include_router(health.router)
    router.include_router(auth.router)
    router.include_router(menu.router)
    router.include_router(orders.router)
    router.include_router(points.router)
    router.include_router(rewards.router)
    router.include_router(vouchers.router)
    router.include_router(promo_codes.router)
    router.include_router(payments.router)
    router.include_router(printer.router)
    router.include_router(admin.router)
    return router
