"""
Workforce sweep from the command line. Prints the per-count table and the recommendation.

Usage:
  python -m qcommerce.sim.debug.run_workforce_sweep --min 5 --max 15 --runs 3
  python -m qcommerce.sim.debug.run_workforce_sweep --profile default_opt_peak_ccr --placed-stores 4 --store 2
"""

import argparse
import logging
import math

from qcommerce.sim.application.config import BUILTIN_PROFILES, LOG_LEVEL
from qcommerce.sim.application.simulation_controller import default_dark_stores
from qcommerce.sim.application.use_cases.place_dark_stores import plan_dark_stores
from qcommerce.sim.application.use_cases.run_workforce_sweep import run_workforce_sweep
from qcommerce.sim.domain.constraints import SweepTargets
from qcommerce.sim.domain.errors import ConfigurationError


def main() -> int:
    parser = argparse.ArgumentParser(description="Sweep agent counts and recommend a workforce size")
    parser.add_argument("--min", dest="min_agents", type=int, default=5)
    parser.add_argument("--max", dest="max_agents", type=int, default=15)
    parser.add_argument("--runs", type=int, default=3, help="repetitions per agent count")
    parser.add_argument("--horizon", type=float, default=120.0, help="minutes per run")
    parser.add_argument("--target", type=float, default=25.0, help="target avg delivery time (min)")
    parser.add_argument("--profile", default="default_opt_uniform_ccr", choices=sorted(BUILTIN_PROFILES))
    parser.add_argument("--placed-stores", type=int, default=0)
    parser.add_argument("--store", type=int, default=0, help="store index")
    parser.add_argument("--seed", type=int, default=42)
    args = parser.parse_args()

    logging.basicConfig(level=LOG_LEVEL, format="%(levelname)s %(name)s: %(message)s")

    try:
        stores = default_dark_stores()
        if args.placed_stores > 0:
            stores = plan_dark_stores(args.placed_stores, seed=args.seed).dark_stores
        outcome = run_workforce_sweep(
            stores,
            args.store,
            BUILTIN_PROFILES[args.profile],
            args.min_agents,
            args.max_agents,
            args.runs,
            horizon_min=args.horizon,
            targets=SweepTargets(target_avg_delivery_time=args.target),
            seed=args.seed,
        )
    except ConfigurationError as e:
        print(f"Configuration error: {e}")
        return 2

    print(f"Store: {outcome.store.name} ({outcome.store.lat:.4f}, {outcome.store.lng:.4f})")
    print(f"{'Agents':>6} {'Deliv':>7} {'Time':>6} {'SLA%':>6} {'Compl%':>7} {'Util%':>6} {'Cost':>9} {'Km':>7}")
    for r in outcome.results:
        cost = f"{r.avg_cost_per_order:9.2f}" if math.isfinite(r.avg_cost_per_order) else f"{'N/A':>9}"
        print(
            f"{r.num_agents:6d} {r.avg_delivered_orders:7.1f} {r.avg_delivery_time:6.1f} "
            f"{r.percentage_meeting_sla:6.1f} {r.completion_rate:7.1f} {r.avg_agent_utilization:6.1f} "
            f"{cost} {r.avg_travel_distance_km:7.1f}"
        )
    print(f"\n[{outcome.recommendation.candidates_rule}]")
    print(outcome.recommendation.text)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
