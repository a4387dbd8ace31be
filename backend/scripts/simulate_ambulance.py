#!/usr/bin/env python
"""
Ambulance Simulator

Requests a corridor route from the running service and drives a simulated
ambulance along its waypoints, posting one telemetry sample per step.
Run from backend directory: python scripts/simulate_ambulance.py

Options:
    --src LAT,LON       Route source (prompted if omitted)
    --dst LAT,LON       Route destination (prompted if omitted)
    --speed KMH         Simulated speed (default 40)
    --interval SECONDS  Wall-clock pause between samples (default 1)
"""

import sys
import os
import argparse
import asyncio
import time

import aiohttp

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from green_corridor.geo import haversine_m


def parse_lat_lon(raw: str):
    """'26.92,75.78' or '26.92 75.78' -> (lat, lon), None if malformed"""
    parts = raw.strip().replace(",", " ").split()
    if len(parts) != 2:
        return None
    try:
        return float(parts[0]), float(parts[1])
    except ValueError:
        return None


def ask_lat_lon(label: str, example: str):
    while True:
        value = parse_lat_lon(input(f"{label} (lat,lon): "))
        if value:
            return value
        print(f"   [WARN] Try: {example}")


async def drive(args, src, dst):
    base = args.server.rstrip("/")
    speed_ms = args.speed * 1000 / 3600

    async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=10)) as session:
        # Server check
        try:
            async with session.get(f"{base}/health") as response:
                health = await response.json()
        except aiohttp.ClientError as e:
            print(f"[ERROR] Cannot reach server at {base}: {e}")
            print("   Run: python -m green_corridor.main")
            return 1

        if health.get("status") != "ready":
            print("[ERROR] Server is still loading the map. Wait a moment and retry.")
            return 1

        # Route
        print("\n[1/2] Finding road route...")
        body = {"srcLat": src[0], "srcLon": src[1], "dstLat": dst[0], "dstLon": dst[1]}
        async with session.post(f"{base}/route", json=body) as response:
            route = await response.json()

        waypoints = route.get("waypoints") or []
        if not waypoints:
            print(f"[ERROR] No route found: {route.get('message', 'Unknown error')}")
            return 1

        print("   [OK] Route found")
        print(f"   Distance     : {route['distanceM']:.0f} m")
        print(f"   Road nodes   : {len(waypoints)}")
        print(f"   Intersections: {route['intersectionCount']}")
        for i, node in enumerate(route.get("intersections", []), start=1):
            print(f"      {i}. {(node.get('tag') or 'node'):<18} @ ({node['lat']:.5f}, {node['lon']:.5f})")

        # Drive
        print("\n[2/2] Driving")
        print("=" * 60)
        print(f"Speed: {args.speed} km/h (simulated) | vehicle {args.vehicle}")
        print("=" * 60)

        timestamp = int(time.time())
        total = len(waypoints)

        for i, wp in enumerate(waypoints):
            sample = {"id": args.vehicle, "lat": wp["lat"], "lon": wp["lon"], "timestamp": timestamp}
            async with session.post(f"{base}/telemetry", json=sample) as response:
                result = await response.json()

            prefix = f"[{i + 1:>4}/{total}] ({wp['lat']:.5f}, {wp['lon']:.5f})"
            stats = result.get("stats") if result.get("success") else None
            if stats:
                tti = stats.get("ttiSeconds")
                dist = stats.get("distanceToSignalM")
                tti_str = f"{tti:6.1f} s" if tti is not None else "   inf s"
                dist_str = f"{dist:5.0f} m" if dist is not None else "    - m"
                done = stats["triggeredIntersections"]
                greened = f"[{done}/{done + stats['remainingIntersections']} greened]"
                marker = "  GREEN SIGNAL" if stats.get("signalEvents") else ""
                print(f"{prefix} | {stats.get('velocityKmh', 0):5.1f} km/h | dist {dist_str} | "
                      f"TTI {tti_str} {greened}{marker}")
            else:
                print(f"{prefix} | {result}")

            if i < total - 1:
                nxt = waypoints[i + 1]
                travel_s = haversine_m(wp["lat"], wp["lon"], nxt["lat"], nxt["lon"]) / speed_ms
                timestamp += round(max(1.0, travel_s))
                await asyncio.sleep(args.interval)

    print("\n[OK] Ambulance reached destination. Green corridor complete.")
    return 0


def main():
    parser = argparse.ArgumentParser(description='Green Corridor Ambulance Simulator')
    parser.add_argument('--server', default='http://localhost:8000', help='Service base URL')
    parser.add_argument('--vehicle', default='AMB_SIM_01', help='Ambulance ID')
    parser.add_argument('--src', default=None, help='Source lat,lon')
    parser.add_argument('--dst', default=None, help='Destination lat,lon')
    parser.add_argument('--speed', type=float, default=40.0, help='Speed in km/h')
    parser.add_argument('--interval', type=float, default=1.0, help='Seconds between samples')
    args = parser.parse_args()

    print("=" * 60)
    print("GREEN CORRIDOR - AMBULANCE SIMULATOR")
    print("=" * 60)

    src = parse_lat_lon(args.src) if args.src else ask_lat_lon("Source     ", "26.8860,75.7873")
    dst = parse_lat_lon(args.dst) if args.dst else ask_lat_lon("Destination", "26.9350,75.8050")
    if src is None or dst is None:
        parser.error("--src/--dst must be 'lat,lon'")

    sys.exit(asyncio.run(drive(args, src, dst)))


if __name__ == "__main__":
    main()
