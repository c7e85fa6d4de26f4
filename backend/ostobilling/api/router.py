"""Router that serves every path with and without a trailing slash."""

from typing import Any, Callable

from fastapi import APIRouter
from fastapi.types import DecoratedCallable


class TrailingSlashRouter(APIRouter):
    """APIRouter that answers both ``/path`` and ``/path/`` without redirecting.

    Only the slash-less form appears in the OpenAPI schema. An empty path
    registers the router prefix itself and the prefix followed by a slash.
    """

    def api_route(
        self, path: str, *, include_in_schema: bool = True, **kwargs: Any
    ) -> Callable[[DecoratedCallable], DecoratedCallable]:
        """Register the endpoint under both spellings of the path.

        Args:
            path (str): The path for the endpoint, with or without a trailing slash
            include_in_schema (bool): Whether the slash-less path is documented
            **kwargs: Additional arguments passed to APIRouter.api_route

        Returns:
            Callable[[DecoratedCallable], DecoratedCallable]: The registering decorator.
        """
        bare = path.rstrip("/") if path != "/" else ""
        register_bare = super().api_route(bare, include_in_schema=include_in_schema, **kwargs)
        register_slashed = super().api_route(bare + "/", include_in_schema=False, **kwargs)

        def decorator(func: DecoratedCallable) -> DecoratedCallable:
            register_slashed(func)
            return register_bare(func)

        return decorator
