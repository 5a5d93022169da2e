#!/usr/bin/env python3
"""
Integration Smoke Test Script
=============================

Standalone script exercising a running thumbnail service over HTTP.

This script:
    1. Checks /health
    2. Requests a thumbnail (cold, expected cache miss)
    3. Requests it again (expected cache hit, identical bytes)
    4. Verifies /cache-status reports a hit
    5. Fires a burst of concurrent requests for distinct URLs
    6. Reports latency and the /metrics snapshot

Prerequisites:
    - The service must be running (e.g. `thumbnailer`)
    - Install dependencies: pip install -e .[scripts]

Usage:
    python scripts/smoke_thumbnail.py --video https://example.com/a.mp4
    python scripts/smoke_thumbnail.py --base-url http://localhost:3000 --burst 8
"""

import argparse
import logging
import os
import sys
import time
from concurrent.futures import ThreadPoolExecutor

import requests


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
logger = logging.getLogger(__name__)


def fetch_thumbnail(base_url: str, video: str, timeout: float) -> tuple:
    """Return (status_code, body, elapsed_seconds)."""
    started = time.time()
    response = requests.get(
        f"{base_url}/thumbnail",
        params={"url": video},
        timeout=timeout,
    )
    return response.status_code, response.content, time.time() - started


def run_test(base_url: str, video: str, burst: int, timeout: float) -> bool:
    """
    Run the smoke test.

    Returns:
        True if every check passed
    """
    logger.info("=" * 60)
    logger.info("Thumbnail Service Smoke Test")
    logger.info("=" * 60)
    logger.info(f"Base URL: {base_url}")
    logger.info(f"Video: {video}")
    logger.info("=" * 60)

    passed = True

    health = requests.get(f"{base_url}/health", timeout=timeout)
    logger.info(f"Health: {health.status_code} {health.json()}")
    if health.status_code != 200:
        logger.error("Service is not healthy")
        return False

    status, cold, cold_time = fetch_thumbnail(base_url, video, timeout)
    logger.info(f"Cold request: status={status}, bytes={len(cold)}, {cold_time:.2f}s")
    if status != 200 or cold[:2] != b"\xff\xd8":
        logger.error("Cold request did not return a JPEG")
        return False

    status, warm, warm_time = fetch_thumbnail(base_url, video, timeout)
    logger.info(f"Warm request: status={status}, bytes={len(warm)}, {warm_time:.2f}s")
    if warm != cold:
        logger.error("Warm request returned different bytes")
        passed = False

    cache_status = requests.get(
        f"{base_url}/cache-status",
        params={"url": video},
        timeout=timeout,
    ).json()
    logger.info(f"Cache status: {cache_status}")
    if not cache_status.get("cacheHit"):
        logger.error("Expected a cache hit after generation")
        passed = False

    if burst > 0:
        videos = [f"{video}?burst={i}" for i in range(burst)]
        started = time.time()
        with ThreadPoolExecutor(max_workers=burst) as pool:
            results = list(pool.map(lambda v: fetch_thumbnail(base_url, v, timeout), videos))
        statuses = [r[0] for r in results]
        logger.info(f"Burst of {burst}: statuses={statuses}, total={time.time() - started:.2f}s")

    metrics = requests.get(f"{base_url}/metrics", timeout=timeout).json()
    logger.info(f"Metrics: {metrics}")

    logger.info("=" * 60)
    if passed:
        logger.info("TEST PASSED")
    else:
        logger.error("TEST FAILED")
    return passed


def main():
    parser = argparse.ArgumentParser(
        description="Smoke test for a running thumbnail service"
    )
    parser.add_argument(
        "--base-url",
        type=str,
        default=os.environ.get("THUMBNAILER_BASE_URL", "http://localhost:3000"),
        help="Base URL of the service",
    )
    parser.add_argument(
        "--video",
        type=str,
        required=True,
        help="Video URL to thumbnail",
    )
    parser.add_argument(
        "--burst",
        type=int,
        default=4,
        help="Concurrent distinct requests to fire (default: 4)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=60.0,
        help="Per-request timeout in seconds (default: 60)",
    )

    args = parser.parse_args()

    ok = run_test(
        base_url=args.base_url.rstrip("/"),
        video=args.video,
        burst=args.burst,
        timeout=args.timeout,
    )
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
