#!/usr/bin/env python3
"""Create a booking on a running gateway and let several contractors race for it."""
from __future__ import annotations

import argparse
import threading
from typing import Any

import httpx
from httpx import ConnectError


def build_booking(service: str) -> dict[str, Any]:
    return {
        "firstName": "Test",
        "lastName": "Customer",
        "email": "test@example.com",
        "serviceName": service,
        "preferredDate": "2025-06-25",
        "preferredTime": "10:00",
        "address": "1 Main St",
        "notes": "created by race_claims.py",
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Race concurrent job claims against a live gateway")
    parser.add_argument("--base-url", default="http://127.0.0.1:8001")
    parser.add_argument("--contractors", type=int, default=5)
    parser.add_argument("--service", default="Plumbing")
    parser.add_argument("--api-key", default="", help="Optional X-API-Key header")
    args = parser.parse_args()

    headers = {"X-API-Key": args.api_key} if args.api_key else {}

    try:
        resp = httpx.post(f"{args.base_url}/api/v1/bookings", json=build_booking(args.service), headers=headers, timeout=10.0)
    except ConnectError:
        print("Connection refused. Is the FastAPI server running?")
        print("Try: uvicorn app.main:app --reload --port 8001")
        return
    resp.raise_for_status()
    booking_id = resp.json()["id"]
    print(f"Created booking {booking_id}")

    barrier = threading.Barrier(args.contractors)
    results: dict[int, int] = {}

    def claim(contractor_id: int) -> None:
        barrier.wait()
        r = httpx.post(
            f"{args.base_url}/api/v1/jobs/accept",
            json={"bookingId": booking_id, "contractorId": contractor_id, "price": 100.0 + contractor_id},
            headers=headers,
            timeout=10.0,
        )
        results[contractor_id] = r.status_code

    threads = [threading.Thread(target=claim, args=(i,)) for i in range(1, args.contractors + 1)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    for contractor_id, status in sorted(results.items()):
        print(f"contractor {contractor_id}: {status}")

    winners = [c for c, s in results.items() if s == 200]
    print(f"winners={winners}")

    booking = httpx.get(f"{args.base_url}/api/v1/bookings/{booking_id}", headers=headers, timeout=10.0).json()
    print(f"booking status={booking['status']} contractorId={booking['contractorId']}")

    stats = httpx.get(f"{args.base_url}/api/v1/stats", headers=headers, timeout=10.0).json()
    print(f"totalRequests={stats['totalRequests']} errorRate={stats['errorRate']}")


if __name__ == "__main__":
    main()
