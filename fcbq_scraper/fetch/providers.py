"""CORS relay providers, tried in order by the fetch client."""
from dataclasses import dataclass
from typing import Iterable, Optional
from urllib.parse import quote

# Same reserved set as JavaScript's encodeURIComponent
_URI_COMPONENT_SAFE = "-_.!~*'()"


@dataclass(frozen=True)
class ProxyProvider:
    """A relay that fetches a target URL on our behalf.

    `url_template` holds a `{url}` placeholder for the percent-encoded
    target. Wrapped providers return a JSON envelope
    (`{"contents": ..., "status": {"http_code": ...}}`) instead of the raw
    body.
    """

    name: str
    url_template: str
    is_wrapped: bool = False

    def build_url(self, target_url: str) -> str:
        return self.url_template.format(url=quote(target_url, safe=_URI_COMPONENT_SAFE))


# corsproxy.io last: it is the one most often blocked by corporate filters
DEFAULT_PROVIDERS: tuple[ProxyProvider, ...] = (
    ProxyProvider(
        name="allorigins-wrapped",
        url_template="https://api.allorigins.win/get?url={url}",
        is_wrapped=True,
    ),
    ProxyProvider(
        name="codetabs",
        url_template="https://api.codetabs.com/v1/proxy?quest={url}",
    ),
    ProxyProvider(
        name="corsproxy.io",
        url_template="https://corsproxy.io/?{url}",
    ),
)


def select_providers(names: Optional[Iterable[str]] = None) -> tuple[ProxyProvider, ...]:
    """Return the providers named in `names`, in that order.

    No names means the built-in order. Unknown names raise ValueError.
    """
    names = list(names or [])
    if not names:
        return DEFAULT_PROVIDERS
    by_name = {provider.name: provider for provider in DEFAULT_PROVIDERS}
    selected = []
    for name in names:
        if name not in by_name:
            raise ValueError(f"Unknown relay provider: {name}")
        selected.append(by_name[name])
    return tuple(selected)
