from typing import Callable, Optional

from fastapi import FastAPI
from contextlib import asynccontextmanager
from listsync.api.lists import router as lists_router
from listsync.jobs.scheduler import create_scheduler, start_scheduler, shutdown_scheduler, add_connectivity_probe_job
from listsync.services.engine import ListSyncEngine


def create_app(engine_factory: Optional[Callable[[], ListSyncEngine]] = None, probe: bool = True) -> FastAPI:

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup logic
        engine = (engine_factory or ListSyncEngine)()
        app.state.engine = engine
        app.state.controllers = {}
        scheduler = create_scheduler()
        if probe:
            start_scheduler(scheduler)
            add_connectivity_probe_job(scheduler, engine.monitor)
        yield
        # Shutdown logic
        for ctl in app.state.controllers.values():
            ctl.close()
        app.state.controllers.clear()
        shutdown_scheduler(scheduler)
        engine.close()

    app = FastAPI(title="listsync", lifespan=lifespan)

    # include routes
    app.include_router(lists_router)
    return app


app = create_app()
