"""
Headless simulation run. Prints KPIs every N steps and a final summary.

Usage:
  python -m qcommerce.sim.debug.run_simulation --agents 15 --steps 96 --profile default_uniform_ccr
  python -m qcommerce.sim.debug.run_simulation --placed-stores 3 --dynamic-traffic --seed 7
"""

import argparse
import json
import logging
from pathlib import Path

from qcommerce.sim.application.config import LOG_LEVEL
from qcommerce.sim.application.simulation_controller import SimulationController
from qcommerce.sim.application.use_cases.place_dark_stores import plan_dark_stores
from qcommerce.sim.core.simulation_engine.stepper import count_active, count_pending
from qcommerce.sim.domain.errors import ConfigurationError
from qcommerce.sim.domain.models import SimulationParams
from qcommerce.sim.infrastructure.profile_loader import profiles_from_records


def main() -> int:
    parser = argparse.ArgumentParser(description="Run the CCR delivery simulation headless")
    parser.add_argument("--agents", type=int, default=15)
    parser.add_argument("--speed", type=float, default=25.0, help="agent speed km/h")
    parser.add_argument("--profile", default="default_uniform_ccr")
    parser.add_argument("--profiles-file", type=Path, help="JSON list of custom profile records")
    parser.add_argument("--steps", type=int, default=96, help="5-minute steps (96 = 8 h)")
    parser.add_argument("--traffic", type=float, default=1.0, help="base traffic factor")
    parser.add_argument("--dynamic-traffic", action="store_true")
    parser.add_argument("--day-start-hour", type=float, default=8.0)
    parser.add_argument("--placed-stores", type=int, default=0, help="place N stores with KMeans first")
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--every", type=int, default=12, help="print KPIs every N steps")
    args = parser.parse_args()

    logging.basicConfig(level=LOG_LEVEL, format="%(levelname)s %(name)s: %(message)s")

    params = SimulationParams(
        num_agents=args.agents,
        agent_speed_kmph=args.speed,
        profile_id=args.profile,
        base_traffic_factor=args.traffic,
        enable_dynamic_traffic=args.dynamic_traffic,
        enable_heatmap=True,
        day_start_hour=args.day_start_hour,
    )
    try:
        stores = None
        if args.placed_stores > 0:
            stores = plan_dark_stores(args.placed_stores, seed=args.seed).dark_stores
            print("Stores:", ", ".join(f"{s.name} ({s.lat:.4f}, {s.lng:.4f})" for s in stores))
        custom = []
        if args.profiles_file:
            custom = profiles_from_records(json.loads(args.profiles_file.read_text(encoding="utf-8")))
        controller = SimulationController(dark_stores=stores, seed=args.seed)
        for profile in custom:
            controller.save_profile(profile)
        controller.configure(params=params)
    except ConfigurationError as e:
        print(f"Configuration error: {e}")
        return 2

    controller.start()
    for i in range(1, args.steps + 1):
        controller.tick()
        if i % args.every == 0 or i == args.steps:
            s = controller.stats()
            state = controller.state
            print(
                f"t={state.clock_min:6.0f} min  gen={s.total_orders_generated:4d}  "
                f"del={s.total_orders_delivered:4d}  pending={count_pending(state):3d}  "
                f"active={count_active(state):3d}  avg={s.average_delivery_time_min:5.1f} min  "
                f"util={s.average_agent_utilization_percent:5.1f}%  traffic={state.traffic_factor:.2f}"
            )
    controller.pause()

    s = controller.stats()
    print("\n--- Summary ---")
    print(f"  Orders generated:  {s.total_orders_generated}")
    print(f"  Orders delivered:  {s.total_orders_delivered}")
    print(f"  Avg delivery time: {s.average_delivery_time_min:.1f} min")
    print(f"  Travel distance:   {s.total_agent_travel_distance_km:.1f} km")
    print(f"  Utilization:       {s.average_agent_utilization_percent:.1f}%")
    print(f"  Heatmap cells:     {len(controller.state.heatmap)} (max {controller.state.heatmap_max})")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
