"""
Listing import from external web pages.

The page is fetched with httpx and its text is pulled out field by field using
class selectors (".a.b" matches an element carrying both classes `a` and `b`).
Only the first element matching a selector contributes; its text, including
descendants, is whitespace-collapsed. Later matches are ignored rather than
concatenated, so a selector shared by several fields yields the same first text
for each of them.

When a container selector is configured, fields are only looked up inside the
first element matching it.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from html.parser import HTMLParser

import httpx

from .models import CONTENT_FIELDS, Listing

logger = logging.getLogger(__name__)

DEFAULT_CONTAINER = ".css-y6l269.er0e7w63"

DEFAULT_SELECTORS: Mapping[str, str] = {
    "title": ".css-1wnihf5.efcnut38",
    "price": ".css-t3wmkv.e1l1avn10",
    "address": ".e1w8sadu0.css-1helwne.exgq9l20",
    "surface": ".css-1wi2w6s.enb64yk5",
    "rooms": ".css-19yhkv9.enb64yk08",
    "floor": ".css-1wi2w6s.enb64yk5",
    "available_from": ".css-x0kl3j.e1k3ukdh0",
    "rent": ".css-1wi2w6s.enb64yk5",
    "deposit": ".css-1wi2w6s.enb64yk5",
    "description": ".css-1ugtzj2.e175i4j93",
}

# Elements that never carry an end tag.
_VOID_TAGS = frozenset(
    {"area", "base", "br", "col", "embed", "hr", "img", "input", "link", "meta", "source", "track", "wbr"}
)


class ImportFailed(RuntimeError):
    pass


def parse_class_selector(selector: str) -> frozenset[str]:
    """
    ".a.b" -> {"a", "b"}. Only class selectors are supported.
    """
    selector = (selector or "").strip()
    if not selector.startswith("."):
        raise ValueError(f"unsupported selector: {selector!r}")
    classes = frozenset(part for part in selector.split(".") if part)
    if not classes:
        raise ValueError(f"unsupported selector: {selector!r}")
    return classes


class _ClassTextExtractor(HTMLParser):
    def __init__(self, selectors: Mapping[str, frozenset[str]], container: frozenset[str] | None) -> None:
        super().__init__(convert_charrefs=True)
        self._selectors = selectors
        self._container = container
        self._stack: list[str] = []
        # depth at which the container was opened; 0 = not inside one
        self._container_depth = 0
        self._container_seen = container is None
        # field -> stack depth of the element being captured
        self._active: dict[str, int] = {}
        self._parts: dict[str, list[str]] = {}
        self.texts: dict[str, str] = {}

    def _in_scope(self) -> bool:
        return self._container is None or self._container_depth > 0

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        classes: set[str] = set()
        for name, value in attrs:
            if name == "class" and value:
                classes.update(value.split())

        if tag in _VOID_TAGS:
            return
        self._stack.append(tag)
        depth = len(self._stack)

        if self._container is not None and not self._container_seen and self._container <= classes:
            self._container_seen = True
            self._container_depth = depth

        if not self._in_scope():
            return
        for field, required in self._selectors.items():
            if field in self.texts or field in self._active:
                continue
            if required <= classes:
                self._active[field] = depth
                self._parts[field] = []

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        return None

    def handle_data(self, data: str) -> None:
        for field in self._active:
            self._parts[field].append(data)

    def handle_endtag(self, tag: str) -> None:
        if tag not in self._stack:
            return
        while self._stack:
            depth = len(self._stack)
            open_tag = self._stack.pop()
            self._close_depth(depth)
            if open_tag == tag:
                break

    def _close_depth(self, depth: int) -> None:
        for field, field_depth in list(self._active.items()):
            if field_depth == depth:
                del self._active[field]
                self.texts[field] = " ".join("".join(self._parts.pop(field)).split())
        if self._container_depth == depth:
            self._container_depth = 0

    def close(self) -> None:
        super().close()
        while self._stack:
            self._close_depth(len(self._stack))
            self._stack.pop()


def extract_listing(
    html: str,
    *,
    selectors: Mapping[str, str] = DEFAULT_SELECTORS,
    container: str | None = DEFAULT_CONTAINER,
) -> Listing:
    """
    Build a Listing from page HTML. Fields whose selector matches nothing stay "".
    """
    unknown = set(selectors) - set(CONTENT_FIELDS)
    if unknown:
        raise ValueError(f"unknown listing fields: {sorted(unknown)}")

    parser = _ClassTextExtractor(
        {field: parse_class_selector(sel) for field, sel in selectors.items()},
        parse_class_selector(container) if container else None,
    )
    parser.feed(html)
    parser.close()
    return Listing(**parser.texts)


class ListingImporter:
    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        selectors: Mapping[str, str] = DEFAULT_SELECTORS,
        container: str | None = DEFAULT_CONTAINER,
    ) -> None:
        self._client = client
        self._selectors = dict(selectors)
        self._container = container

    @classmethod
    def with_timeout(cls, timeout_s: float) -> ListingImporter:
        return cls(httpx.AsyncClient(timeout=timeout_s, follow_redirects=True))

    async def fetch(self, url: str) -> Listing:
        try:
            resp = await self._client.get(url)
        except httpx.HTTPError as exc:
            raise ImportFailed(f"Listing page request failed: {exc}") from exc

        if resp.status_code != 200:
            raise ImportFailed(f"Listing page request failed: {resp.status_code}")

        listing = extract_listing(resp.text, selectors=self._selectors, container=self._container)
        if not any(getattr(listing, field) for field in CONTENT_FIELDS):
            logger.warning("listing_import_empty url=%s", url)
        return listing

    async def aclose(self) -> None:
        await self._client.aclose()
