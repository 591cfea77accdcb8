# habitpulse/core/notifications/providers/__init__.py

from __future__ import annotations

import importlib
import logging
from typing import Callable, Dict, Type

from habitpulse.config import settings
from .base import BaseNotificationProvider

logger = logging.getLogger(__name__)


def _lazy_import(module_suffix: str, class_name: str) -> Type[BaseNotificationProvider]:
    """
    _lazy_import(".log", "LogNotificationProvider")  →  <class LogNotificationProvider>
    """
    module_name = f"{__name__}{module_suffix}"
    try:
        module = importlib.import_module(module_name)
        provider_class = getattr(module, class_name)
    except (ModuleNotFoundError, AttributeError) as e:
        logger.error("Failed to lazy-import provider '%s%s': %s", module_suffix, class_name, e)
        raise ImportError(f"Could not import provider {class_name} from {module_name}") from e
    if not issubclass(provider_class, BaseNotificationProvider):
        raise TypeError(f"Class {class_name} is not a subclass of BaseNotificationProvider")  # pragma: no cover
    return provider_class


# --- Реестр доступных провайдеров ---
_PROVIDER_LOADERS: Dict[str, Callable[[], Type[BaseNotificationProvider]]] = {
    "log": lambda: _lazy_import(".log", "LogNotificationProvider"),
}

_provider_instance: BaseNotificationProvider | None = None


def get_notification_provider() -> BaseNotificationProvider:
    """Фабрика для получения ЕДИНСТВЕННОГО экземпляра провайдера доставки."""
    global _provider_instance
    if _provider_instance is None:
        provider_key = settings.NOTIFICATION_PROVIDER.lower()
        loader = _PROVIDER_LOADERS.get(provider_key)
        if not loader:
            raise ValueError(f"Unknown notification provider: {settings.NOTIFICATION_PROVIDER}")
        _provider_instance = loader()()
        logger.info("Initialized notification provider: %s", _provider_instance.name)
    return _provider_instance


__all__ = [
    "BaseNotificationProvider",
    "get_notification_provider",
]
