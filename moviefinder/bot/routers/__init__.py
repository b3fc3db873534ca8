from aiogram import Router

from moviefinder.bot.routers import browse


def setup_routers() -> Router:
    router = Router()
    router.include_router(browse.router)
    return router


__all__ = ["setup_routers"]
