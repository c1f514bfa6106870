#!/usr/bin/env python3
"""
Parameter sweep for the AGV coordination engine.

Runs run_headless() across combinations of vehicle counts and collision
modes, reports congestion metrics, and optionally writes CSV output.

Usage:
    python sweep.py
    python sweep.py --vehicles 2,4,8 --modes advanced --duration 300
    python sweep.py --csv results.csv --parallel
"""
import argparse
import csv
import logging
import multiprocessing

from agv_coordination import CollisionMode, run_headless


def _run_single(args):
    """Wrapper for multiprocessing: unpack args and call run_headless."""
    num_vehicles, mode, width, depth, duration, tick_dt, seed = args
    return run_headless(
        num_vehicles=num_vehicles,
        width=width,
        depth=depth,
        collision_mode=mode,
        sim_duration=duration,
        tick_dt=tick_dt,
        seed=seed,
    )


def main(argv=None):
    parser = argparse.ArgumentParser(description="AGV coordination parameter sweep")
    parser.add_argument("--duration", type=float, default=600.0,
                        help="Simulation duration in sim-seconds (default: 600)")
    parser.add_argument("--tick-dt", type=float, default=0.05,
                        help="Simulation tick timestep in seconds (default: 0.05)")
    parser.add_argument("--vehicles", type=str, default="2,4,6,8,10",
                        help="Comma-separated list of vehicle counts to sweep")
    parser.add_argument("--modes", type=str, default="simple,advanced",
                        help="Comma-separated list of collision modes to sweep")
    parser.add_argument("--width", type=int, default=8, help="Grid width in cells")
    parser.add_argument("--depth", type=int, default=6, help="Grid depth in cells")
    parser.add_argument("--seed", type=int, default=1, help="Random seed for every run")
    parser.add_argument("--csv", type=str, default=None,
                        help="Optional CSV output file path")
    parser.add_argument("--parallel", action="store_true",
                        help="Run sweep using multiprocessing")
    parser.add_argument("--workers", type=int, default=None,
                        help="Number of parallel workers (default: cpu_count, capped at 8)")
    parser.add_argument("--verbose", action="store_true", help="Log engine events")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(message)s",
    )

    vehicle_counts = [int(x.strip()) for x in args.vehicles.split(",")]
    modes = [m.strip() for m in args.modes.split(",")]
    known_modes = [m.value for m in CollisionMode]
    unknown = [m for m in modes if m not in known_modes]
    if unknown:
        parser.error(
            f"unknown collision mode(s): {', '.join(unknown)} "
            f"(choose from {', '.join(known_modes)})"
        )
    combos = [
        (n, mode, args.width, args.depth, args.duration, args.tick_dt, args.seed)
        for n in vehicle_counts for mode in modes
    ]
    total = len(combos)

    print(f"Sweep: {len(vehicle_counts)} vehicle counts x {len(modes)} modes = {total} runs")
    print(f"Grid: {args.width}x{args.depth}, duration: {args.duration:.0f}s, tick_dt: {args.tick_dt}s")
    print()

    results = []

    if args.parallel:
        n_workers = args.workers or min(multiprocessing.cpu_count(), 8)
        print(f"Mode: parallel ({n_workers} workers)")
        with multiprocessing.Pool(processes=n_workers) as pool:
            for i, result in enumerate(pool.imap_unordered(_run_single, combos), 1):
                results.append(result)
                print(f"  [{i}/{total}] Vehicles={result['num_vehicles']:>2}  "
                      f"Mode={result['collision_mode']:<8}  "
                      f"Arrivals={result['arrivals']:>4}  "
                      f"Wall={result['wall_clock_seconds']:.1f}s")
    else:
        print("Mode: serial")
        for i, combo in enumerate(combos, 1):
            print(f"  [{i}/{total}] Vehicles={combo[0]}, Mode={combo[1]} ...", end="", flush=True)
            result = _run_single(combo)
            results.append(result)
            print(f"  Arrivals={result['arrivals']:>4}  "
                  f"Wall={result['wall_clock_seconds']:.1f}s")

    results.sort(key=lambda r: (r["num_vehicles"], r["collision_mode"]))

    print()
    header = f"{'Veh':>4}  {'Mode':<8}  {'Arr':>5}  {'Arr/min':>7}  " \
             f"{'Wait%':>6}  {'Dlock':>5}  {'Yield':>5}  {'Replan':>6}  {'Shared':>6}"
    print(header)
    print("-" * len(header))

    best = None
    for r in results:
        print(f"{r['num_vehicles']:>4}  {r['collision_mode']:<8}  "
              f"{r['arrivals']:>5}  "
              f"{r['arrivals_per_minute']:>7.1f}  "
              f"{r['waiting_fraction']*100:>5.1f}%  "
              f"{r['deadlocks_resolved']:>5}  "
              f"{r['forced_yields']:>5}  "
              f"{r['replans']:>6}  "
              f"{r['shared_cell_ticks']:>6}")
        if best is None or r["arrivals_per_minute"] > best["arrivals_per_minute"]:
            best = r

    if best:
        print(f"\nBest throughput: {best['arrivals_per_minute']:.1f} arrivals/min "
              f"with {best['num_vehicles']} vehicles in {best['collision_mode']} mode")

    if args.csv:
        fieldnames = [
            "num_vehicles", "collision_mode", "arrivals", "arrivals_per_minute",
            "pickups", "drops", "failed_plans", "waiting_fraction",
            "shared_cell_ticks", "deadlocks_resolved", "forced_yields", "replans",
            "sim_duration", "wall_clock_seconds", "total_ticks",
        ]
        with open(args.csv, "w", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames)
            writer.writeheader()
            for r in results:
                writer.writerow({k: r[k] for k in fieldnames})
        print(f"\nCSV written to: {args.csv}")


if __name__ == "__main__":
    main()
