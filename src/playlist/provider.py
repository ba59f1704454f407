from __future__ import annotations
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests
import yaml

from errors import ScreenNotFound, SignageError
from .fetch import make_session
from .models import (
    DEFAULT_PAGE_DURATION, Playlist, PlaylistEntry,
    coerce_page_duration, sort_entries,
)

log = logging.getLogger(__name__)


class HttpPlaylistProvider:
    """
    Reads the public player endpoint of the signage server.

    GET {base_url}/api/player/{screen_id} ->
        {"pdfs": [{id, filename, filepath, sortOrder}, ...],
         "settings": {"pageDuration": 60},
         "user": {"name": "..."}}
    """
    def __init__(self, base_url: str, use_proxy: bool = True,
                 session: Optional[requests.Session] = None, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.use_proxy = use_proxy
        self.timeout = timeout
        self._session = session or make_session()

    def get_playlist(self, screen_id: str) -> Playlist:
        url = f"{self.base_url}/api/player/{screen_id}"
        log.info("Fetching playlist from %s", url)
        try:
            response = self._session.get(url, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise SignageError(f"Playlist source unreachable: {e}") from e
        if response.status_code == 404:
            raise ScreenNotFound(screen_id)
        try:
            response.raise_for_status()
            payload = response.json()
        except (requests.exceptions.HTTPError, ValueError) as e:
            raise SignageError(f"Bad playlist response from {url}: {e}") from e
        return self.parse(screen_id, payload)

    def parse(self, screen_id: str, payload: Dict[str, Any]) -> Playlist:
        entries: List[PlaylistEntry] = []
        for pos, pdf in enumerate(payload.get("pdfs") or []):
            doc_id = str(pdf.get("id", pos))
            location = (
                f"{self.base_url}/api/pdfs/proxy/{doc_id}" if self.use_proxy
                else str(pdf.get("filepath", ""))
            )
            entries.append(PlaylistEntry(
                document_id=doc_id,
                display_name=str(pdf.get("filename") or doc_id),
                source_location=location,
                sort_order=int(pdf.get("sortOrder", pos)),
            ))
        settings = payload.get("settings") or {}
        user = payload.get("user") or {}
        return Playlist(
            screen_id=screen_id,
            screen_name=str(user.get("name") or screen_id),
            entries=tuple(sort_entries(entries)),
            page_duration=coerce_page_duration(settings.get("pageDuration"), DEFAULT_PAGE_DURATION),
        )


class FilePlaylistProvider:
    """
    Local YAML playlist, handy for kiosks without a server:

        screens:
          lobby:
            name: Lobby
            page_duration: 30
            pdfs:
              - {id: a, filename: Menu.pdf, path: decks/menu.pdf, sort_order: 0}

    Relative paths resolve against the YAML file's directory.
    """
    def __init__(self, path: str | Path):
        self.path = Path(path).expanduser()

    def get_playlist(self, screen_id: str) -> Playlist:
        try:
            data = yaml.safe_load(self.path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as e:
            raise SignageError(f"Cannot read playlist file {self.path}: {e}") from e

        screens = data.get("screens") or {}
        screen = screens.get(screen_id)
        if screen is None:
            raise ScreenNotFound(screen_id)

        base = self.path.resolve().parent
        entries: List[PlaylistEntry] = []
        for pos, pdf in enumerate(screen.get("pdfs") or []):
            raw = str(pdf.get("path") or pdf.get("url") or "")
            if "://" in raw:
                location = raw
            else:
                p = Path(raw).expanduser()
                location = str(p if p.is_absolute() else base / p)
            doc_id = str(pdf.get("id", pos))
            entries.append(PlaylistEntry(
                document_id=doc_id,
                display_name=str(pdf.get("filename") or Path(raw).name or doc_id),
                source_location=location,
                sort_order=int(pdf.get("sort_order", pos)),
            ))
        return Playlist(
            screen_id=screen_id,
            screen_name=str(screen.get("name") or screen_id),
            entries=tuple(sort_entries(entries)),
            page_duration=coerce_page_duration(screen.get("page_duration"), DEFAULT_PAGE_DURATION),
        )
