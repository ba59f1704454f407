# src/app.py
from __future__ import annotations

import argparse
import copy
import logging
import sys
from functools import partial
from pathlib import Path
from typing import Dict, Any, Optional

import yaml

# local imports
from pdfio import FitzDecoder
from playlist import BlobFetcher, FilePlaylistProvider, HttpPlaylistProvider
from session import PlayerSession

log = logging.getLogger(__name__)


# ---------------------------
# Config loading
# ---------------------------

DEFAULT_CONFIG: Dict[str, Any] = {
    "source": {
        "kind": "http",              # http | file
        "base_url": "http://localhost:3000",
        "path": None,                # YAML playlist when kind == file
        "use_proxy": True,           # fetch PDFs through /api/pdfs/proxy/{id}
    },
    "player": {
        "tick_seconds": 1.0,
        "swipe_threshold_px": 50,
        "touch_idle_seconds": 3.0,
        "transition_ms": 250,
        "fullscreen": True,
    },
    "loader": {
        "workers": 4,
        "timeout_seconds": 30,
    },
    "renderer": {
        "cache_pages": 12,
        "workers": 1,
    },
    "logging": {
        "level": "INFO",
    },
}

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def load_config(path: Optional[str]) -> Dict[str, Any]:
    cfg = copy.deepcopy(DEFAULT_CONFIG)
    if path:
        p = Path(path)
        if not p.exists():
            log.warning("config not found: %s (using defaults)", p)
            return cfg
        with p.open("r", encoding="utf-8") as f:
            user = yaml.safe_load(f) or {}
        if not isinstance(user, dict):
            raise ValueError(f"{p}: top level must be a mapping")
        # shallow merge per section is enough here
        for k, v in user.items():
            if isinstance(v, dict) and k in cfg and isinstance(cfg[k], dict):
                cfg[k].update(v)
            else:
                cfg[k] = v
    return cfg


def apply_cli_overrides(cfg: Dict[str, Any], args: argparse.Namespace) -> Dict[str, Any]:
    if args.base_url:
        cfg["source"]["kind"] = "http"
        cfg["source"]["base_url"] = args.base_url
    if args.playlist:
        cfg["source"]["kind"] = "file"
        cfg["source"]["path"] = args.playlist
    if args.windowed:
        cfg["player"]["fullscreen"] = False
    if args.log_level:
        cfg["logging"]["level"] = args.log_level
    return cfg


def validate_config(cfg: Dict[str, Any]) -> None:
    src = cfg["source"]
    if src.get("kind") not in ("http", "file"):
        raise ValueError(f"source.kind must be 'http' or 'file', got {src.get('kind')!r}")
    if src["kind"] == "file" and not src.get("path"):
        raise ValueError("source.path is required when source.kind is 'file'")
    if src["kind"] == "http" and not src.get("base_url"):
        raise ValueError("source.base_url is required when source.kind is 'http'")
    if float(cfg["player"]["tick_seconds"]) <= 0:
        raise ValueError("player.tick_seconds must be positive")
    if int(cfg["loader"]["workers"]) < 1 or int(cfg["renderer"]["workers"]) < 1:
        raise ValueError("worker counts must be at least 1")


def setup_logging(level: str) -> None:
    logging.basicConfig(level=getattr(logging, str(level).upper(), logging.INFO), format=LOG_FORMAT)


def build_provider(cfg: Dict[str, Any]):
    src = cfg["source"]
    if src["kind"] == "file":
        return FilePlaylistProvider(src["path"])
    return HttpPlaylistProvider(src["base_url"], use_proxy=bool(src.get("use_proxy", True)))


def session_factory(cfg: Dict[str, Any], screen_id: str):
    """partial(PlayerSession, ...) with everything but the host-provided timers and post hook."""
    return partial(
        PlayerSession,
        screen_id,
        build_provider(cfg),
        BlobFetcher(),
        FitzDecoder(),
        loader_workers=int(cfg["loader"]["workers"]),
        loader_timeout=float(cfg["loader"]["timeout_seconds"]),
        cache_pages=int(cfg["renderer"]["cache_pages"]),
        render_workers=int(cfg["renderer"]["workers"]),
        tick_seconds=float(cfg["player"]["tick_seconds"]),
        idle_seconds=float(cfg["player"]["touch_idle_seconds"]),
    )


# ---------------------------
# App bootstrap
# ---------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="PDF signage player")
    parser.add_argument("screen_id", help="Screen (tenant) whose playlist should be shown")
    parser.add_argument("--config", "-c", help="Path to config.yaml", default=None)
    src = parser.add_mutually_exclusive_group()
    src.add_argument("--base-url", help="Signage server, e.g. https://signage.example.com")
    src.add_argument("--playlist", help="Local YAML playlist instead of a server")
    parser.add_argument("--windowed", action="store_true", help="Do not go fullscreen")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ERROR")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    cfg = apply_cli_overrides(load_config(args.config), args)
    setup_logging(cfg["logging"]["level"])
    try:
        validate_config(cfg)
    except ValueError as e:
        log.error("invalid configuration: %s", e)
        return 2

    from PySide6 import QtWidgets
    from ui import PlayerWindow

    qt = QtWidgets.QApplication(sys.argv[:1])
    player = cfg["player"]
    window = PlayerWindow(
        session_factory(cfg, args.screen_id),
        args.screen_id,
        swipe_threshold=float(player["swipe_threshold_px"]),
        transition_ms=int(player["transition_ms"]),
        fullscreen=bool(player["fullscreen"]),
    )
    if not player["fullscreen"]:
        window.show()
    window.start()
    qt.aboutToQuit.connect(window.session.close)
    return qt.exec()


if __name__ == "__main__":
    raise SystemExit(main())
