from __future__ import annotations

import argparse
from pathlib import Path

import requests


# ---------------------------------------------------------------------------
# Core logic
# ---------------------------------------------------------------------------


def _normalise_url(url: str) -> str:
    """
    Calendar subscription links are often published as webcal://...
    """
    url = url.strip()
    if url.lower().startswith("webcal://"):
        return "https://" + url[len("webcal://") :]
    return url


def is_url(source: str) -> bool:
    return source.strip().lower().startswith(("http://", "https://", "webcal://"))


def fetch_feed(url: str, timeout: float = 30) -> str:
    """
    Download a calendar feed and return its text.

    HTTP errors are raised as requests.HTTPError.
    """
    resp = requests.get(_normalise_url(url), timeout=timeout)
    resp.raise_for_status()
    # feeds are UTF-8 even when the server does not say so
    if not resp.encoding or resp.encoding.lower() == "iso-8859-1":
        resp.encoding = "utf-8"
    return resp.text


def read_feed_source(source: str, timeout: float = 30) -> str:
    """
    Return feed text from a URL or a local file path.
    """
    if is_url(source):
        return fetch_feed(source, timeout=timeout)
    return Path(source).expanduser().read_text(encoding="utf-8")


# ---------------------------------------------------------------------------
# CLI entry
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="mytimetable.fetch", description="Download a calendar feed to a file")
    p.add_argument("url", type=str, help="Feed URL (https:// or webcal://)")
    p.add_argument("out", type=Path, help="Output .ics path")
    p.add_argument("--timeout", type=float, default=30, help="Request timeout in seconds")
    return p


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    text = fetch_feed(args.url, timeout=args.timeout)
    args.out.parent.mkdir(parents=True, exist_ok=True)
    args.out.write_text(text, encoding="utf-8")
    print(f"Saved feed to {args.out}")


if __name__ == "__main__":
    main()
