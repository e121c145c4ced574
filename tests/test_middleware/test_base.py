"""Tests for middleware base classes."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from kubehop.middleware.base import KubehopMiddleware


class PassThroughMiddleware(KubehopMiddleware):
    """Concrete implementation for testing."""

    async def on_message(self, context, call_next):
        return await call_next(context)


def test_kubehop_middleware_has_logger() -> None:
    """KubehopMiddleware provides a module logger by default."""
    middleware = PassThroughMiddleware()
    assert middleware.logger.name == "kubehop.middleware.base"


def test_kubehop_middleware_accepts_custom_logger() -> None:
    """KubehopMiddleware accepts a custom logger."""
    custom_logger = MagicMock()
    middleware = PassThroughMiddleware(logger=custom_logger)
    assert middleware.logger is custom_logger


@pytest.mark.asyncio
async def test_subclass_passes_through() -> None:
    """Subclasses chain to the next handler."""
    middleware = PassThroughMiddleware()
    call_next = AsyncMock(return_value="done")
    context = MagicMock()

    assert await middleware.on_message(context, call_next) == "done"
    call_next.assert_awaited_once_with(context)
