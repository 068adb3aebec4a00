"""
FastAPI application for the quick-commerce delivery simulator.

HTTP layer over qcommerce.sim. Routes live in qcommerce.sim.api.router under /sim.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from qcommerce.sim.api.router import router as sim_router
from qcommerce.sim.application.config import LOG_LEVEL
from qcommerce.sim.application.services import SimulationServices, build_services

logger = logging.getLogger(__name__)


def create_app(services: Optional[SimulationServices] = None, start_driver: bool = True) -> FastAPI:
    services = services or build_services()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if start_driver:
            services.start_driver()
        yield
        services.shutdown()

    app = FastAPI(
        title="Q-Commerce CCR Simulator API",
        description="Delivery simulation, dark-store placement and workforce sizing for CCR",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    def root():
        return {"message": "Q-Commerce CCR Simulator API", "status": "ok"}

    app.include_router(sim_router, prefix="/sim", tags=["simulation"])
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    uvicorn.run(app, host="0.0.0.0", port=8000)
