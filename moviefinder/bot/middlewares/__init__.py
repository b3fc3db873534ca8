from moviefinder.bot.middlewares.browse_session import BrowseSessionMiddleware

__all__ = ["BrowseSessionMiddleware"]
