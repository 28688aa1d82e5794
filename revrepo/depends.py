import typing as t
from bevy import Inject, auto_inject, get_container
from contextlib import suppress


@t.runtime_checkable
class DependsProtocol(t.Protocol):
    @staticmethod
    def inject(func: t.Callable[..., t.Any]) -> t.Callable[..., t.Any]: ...
    @staticmethod
    def set(class_: t.Any, instance: t.Any = None) -> t.Any: ...
    @staticmethod
    def get_sync(category: t.Any) -> t.Any: ...


class Depends:
    """Dependency injection manager for revrepo.

    Thin wrapper around the bevy container. Settings, registries and the
    repositories they build are published here so application code can
    request them with ``Inject[...]`` annotations.
    """

    @staticmethod
    def inject(func: t.Callable[..., t.Any]) -> t.Callable[..., t.Any]:
        """Decorator to inject dependencies into a function."""
        return t.cast("t.Callable[..., t.Any]", auto_inject(func))

    @staticmethod
    def set(class_: t.Any, instance: t.Any = None) -> t.Any:
        """Register a class/instance in the dependency container.

        Returns the instance that was registered.
        """
        if instance is None:
            instance = class_()
        get_container().add(class_, instance)
        return instance

    @staticmethod
    def get_sync(category: t.Any) -> t.Any:
        """Get a registered dependency instance."""
        result = get_container().get(category)
        if isinstance(result, tuple):
            if len(result) == 1:
                return result[0]
            msg = f"Dependency '{category}' not found in container"
            raise RuntimeError(msg)
        return result

    @staticmethod
    def clear() -> None:
        """Clear the dependency container (testing helper).

        Resets the default bevy container when its internals are reachable,
        otherwise falls back to whatever reset API the container exposes.
        """
        try:
            from bevy import DEFAULT_CONTAINER

            DEFAULT_CONTAINER._instances.clear()
            for attr in ("_factories", "_qualifier_map", "_type_map", "_cache"):
                if hasattr(DEFAULT_CONTAINER, attr):
                    getattr(DEFAULT_CONTAINER, attr).clear()
        except Exception:
            try:
                container = get_container()
            except Exception:
                return

            with suppress(Exception):
                container.reset()  # type: ignore[attr-defined]
                return
            with suppress(Exception):
                container.clear()  # type: ignore[attr-defined]


depends = Depends()

__all__ = ["Depends", "DependsProtocol", "Inject", "depends", "get_container"]
