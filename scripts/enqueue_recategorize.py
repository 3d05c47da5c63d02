#!/usr/bin/env python3
"""Re-run the protected-redirect trigger for a category after a failed sweep."""

from __future__ import annotations

import argparse
import json
import os
import sys

import httpx


def build_payload(category: str, *, namespace_name: str) -> dict[str, str]:
    title = " ".join(category.replace("_", " ").split())
    prefix = f"{namespace_name}:"
    if not title.lower().startswith(prefix.lower()):
        title = prefix + title
    return {"title": title}


def main() -> int:
    parser = argparse.ArgumentParser(description="Ask the API to queue a recategorization for one category.")
    parser.add_argument("category", help="Category title, with or without the namespace prefix")
    parser.add_argument("--namespace-name", default="Category", help="Localized category namespace name")
    parser.add_argument("--api-base-url", default=os.getenv("RTC_API_BASE_URL", "http://localhost:8000"))
    parser.add_argument("--module-id", default=os.getenv("RTC_HOOK_MODULE_ID", "local-wiki"))
    parser.add_argument("--api-key", default=os.getenv("RTC_HOOK_API_KEY", "local-wiki-key"))
    parser.add_argument("--dry-run", action="store_true", help="Print the request payload without sending it")
    args = parser.parse_args()

    payload = build_payload(args.category, namespace_name=args.namespace_name)
    if args.dry_run:
        print(json.dumps(payload, ensure_ascii=False))
        return 0

    response = httpx.post(
        f"{args.api_base_url.rstrip('/')}/hooks/page-saved",
        json=payload,
        headers={"X-Module-Id": args.module_id, "X-API-Key": args.api_key},
        timeout=10.0,
    )
    print(json.dumps(response.json(), ensure_ascii=False))
    if response.status_code >= 400:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
