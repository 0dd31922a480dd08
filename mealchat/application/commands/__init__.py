"""Commands for local/remote meal CRUD."""

from .delete_meal import (
    DeleteMealCommand,
    DeleteMealCommandHandler,
)
from .log_favorite import (
    LogFavoriteCommand,
    LogFavoriteCommandHandler,
)

__all__ = [
    "DeleteMealCommand",
    "DeleteMealCommandHandler",
    "LogFavoriteCommand",
    "LogFavoriteCommandHandler",
]
