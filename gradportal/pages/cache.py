from __future__ import annotations

from collections import OrderedDict
from typing import TypeVar

from gradportal.backend_client import BackendClient
from gradportal.core import config
from gradportal.pages.base import Page
from gradportal.session import SessionContext

PageT = TypeVar('PageT', bound=Page)


class PageCache:
    """Mounted pages keyed by (session token, view path), least recently used evicted first."""

    def __init__(self, max_size: int | None = None):
        self._max_size = max_size or config.PAGE_CACHE_SIZE
        self._pages: OrderedDict[tuple[str, str], Page] = OrderedDict()

    def __len__(self) -> int:
        return len(self._pages)

    def get(self, token: str, path: str) -> Page | None:
        key = (token, path)
        page = self._pages.get(key)
        if page is not None:
            self._pages.move_to_end(key)
        return page

    def put(self, token: str, page: Page) -> None:
        key = (token, page.path)
        previous = self._pages.pop(key, None)
        if previous is not None and previous is not page:
            previous.close()
        self._pages[key] = page
        while len(self._pages) > self._max_size:
            _, evicted = self._pages.popitem(last=False)
            evicted.close()

    def discard(self, token: str, path: str) -> None:
        page = self._pages.pop((token, path), None)
        if page is not None:
            page.close()

    def drop_session(self, token: str) -> None:
        for key in [key for key in self._pages if key[0] == token]:
            self._pages.pop(key).close()

    async def open(
        self,
        page_cls: type[PageT],
        token: str | None,
        backend: BackendClient,
        reuse: bool = False,
    ) -> PageT:
        """Return a mounted page for ``token``.

        With ``reuse`` the cached page from the current visit is returned as-is
        (its local state is never re-fetched) as long as its session is still
        valid; otherwise a new visit starts with a fresh mount.
        """
        page = self.get(token, page_cls.path) if (reuse and token) else None
        if page is not None:
            await page.context.refresh()
            if page.renderable:
                return page
            self.discard(token, page_cls.path)

        page = page_cls(SessionContext(backend.auth, token), backend.profiles)
        await page.mount()
        if token and page.renderable:
            self.put(token, page)
        else:
            page.close()
        return page
