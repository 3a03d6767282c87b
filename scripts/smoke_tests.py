#!/usr/bin/env python3
"""Minimal smoke tests against a running server: list view, next page, map view."""

from __future__ import annotations

import json
import os
import sys
import urllib.error
import urllib.parse
import urllib.request

# центр Минска
LAT = 53.9006
LNG = 27.5590
RADIUS_M = 2000
CATEGORY = "Ресторан"
PAGE_SIZE = 10


def _get(base: str, path: str, params: dict) -> dict:
    url = f"{base.rstrip('/')}{path}?{urllib.parse.urlencode(params)}"
    try:
        with urllib.request.urlopen(url) as response:
            return json.load(response)
    except urllib.error.URLError as exc:  # pragma: no cover - network failure
        print(f"Request to {url} failed: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc


def _check_list(base: str) -> None:
    params = {
        "lat": LAT, "lon": LNG, "radius": RADIUS_M,
        "category": CATEGORY, "page_size": PAGE_SIZE,
    }
    payload = _get(base, "/api/v1/search/establishments", params)
    items = payload["establishments"]
    if len(items) > PAGE_SIZE:
        raise AssertionError(f"Page has {len(items)} items, expected at most {PAGE_SIZE}")

    for item in items:
        if item["distance_m"] > RADIUS_M:
            raise AssertionError(f"{item['name']} is {item['distance_m']:.0f} m away, outside radius")
        if CATEGORY not in item["categories"]:
            raise AssertionError(f"{item['name']} is not in category {CATEGORY}")

    keys = [(-item["score"], item["id"]) for item in items]
    if keys != sorted(keys):
        raise AssertionError("List view is not ordered by score DESC, id ASC")

    pagination = payload["pagination"]
    if pagination["has_more"]:
        second = _get(base, "/api/v1/search/establishments", {**params, "cursor": pagination["next_cursor"]})
        overlap = {i["id"] for i in items} & {i["id"] for i in second["establishments"]}
        if overlap:
            raise AssertionError(f"Pages overlap: {sorted(overlap)}")

    print(f"✅ List view: {len(items)} items, has_more={pagination['has_more']}")


def _check_map(base: str) -> None:
    box = {"north": LAT + 0.05, "south": LAT - 0.05, "east": LNG + 0.08, "west": LNG - 0.08}
    payload = _get(base, "/api/v1/search/map", {**box, "limit": 100})
    for marker in payload["establishments"]:
        if not (box["south"] <= marker["latitude"] <= box["north"]
                and box["west"] <= marker["longitude"] <= box["east"]):
            raise AssertionError(f"Marker {marker['id']} is outside the bounding box")
    print(f"✅ Map view: {payload['total']} markers")


def main() -> None:
    base = os.environ.get("BASE", "http://localhost:8000")
    _check_list(base)
    _check_map(base)


if __name__ == "__main__":
    main()
