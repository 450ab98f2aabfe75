"""Site adapters and the registry of supported sites."""

from adapters.base import NovelDetail, RawLink, RawRow, RawSection, ScraperAdapter
from adapters.ddxsku import DdxskuAdapter
from adapters.qubige import QubigeAdapter
from config.exceptions import InvalidConfigError

ADAPTERS: dict[str, type[ScraperAdapter]] = {
    DdxskuAdapter.spider_id: DdxskuAdapter,
    QubigeAdapter.spider_id: QubigeAdapter,
}


def get_adapter(name: str) -> ScraperAdapter:
    """Instantiate the adapter registered under `name`.

    Raises:
        InvalidConfigError: If no adapter has that name.
    """
    try:
        return ADAPTERS[name]()
    except KeyError:
        raise InvalidConfigError(
            f"Unknown site: {name}", {"available": ", ".join(sorted(ADAPTERS))}
        ) from None


__all__ = [
    "ADAPTERS",
    "DdxskuAdapter",
    "NovelDetail",
    "QubigeAdapter",
    "RawLink",
    "RawRow",
    "RawSection",
    "ScraperAdapter",
    "get_adapter",
]
