import asyncio
from typing import Dict

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from listsync.core.exceptions.exceptions import CacheIOError, InvalidFilterError
from listsync.middleware.security import Security
from listsync.schemas.lists import ConnectivityOut, FilterRequest, ListStateOut
from listsync.services.engine import ListSyncEngine
from listsync.services.list_controller import ListController
from listsync.utils.log import app_logger

router = APIRouter(tags=["Lists"])


def get_engine(request: Request) -> ListSyncEngine:
    return request.app.state.engine


def get_controllers(request: Request) -> Dict[str, ListController]:
    return request.app.state.controllers


def _checked_resource(resource: str, engine: ListSyncEngine) -> str:
    sec = Security()
    if not sec.is_valid_resource(resource, known=engine.resources):
        raise HTTPException(status_code=404, detail=f"unknown resource: {resource}")
    return resource


def _controller_for(resource: str, engine: ListSyncEngine, controllers: Dict[str, ListController]) -> ListController:
    ctl = controllers.get(resource)
    if ctl is None or ctl.closed:
        ctl = controllers[resource] = engine.controller(resource)
    return ctl


def _out(ctl: ListController) -> ListStateOut:
    return ListStateOut(**ctl.state.public_dict())


@router.get("/lists/{resource}", response_model=ListStateOut)
async def list_state(
    resource: str,
    engine: ListSyncEngine = Depends(get_engine),
    controllers: Dict[str, ListController] = Depends(get_controllers),
) -> ListStateOut:
    """Current state of the list screen for `resource` (mounted on first access)."""
    ctl = _controller_for(_checked_resource(resource, engine), engine, controllers)
    return _out(ctl)


@router.post("/lists/{resource}/refresh", response_model=ListStateOut)
async def refresh(
    resource: str,
    engine: ListSyncEngine = Depends(get_engine),
    controllers: Dict[str, ListController] = Depends(get_controllers),
) -> ListStateOut:
    ctl = _controller_for(_checked_resource(resource, engine), engine, controllers)
    await ctl.refresh()
    app_logger.info("api.lists.refresh", resource=resource, status=ctl.state.status.value)
    return _out(ctl)


@router.post("/lists/{resource}/load-more", response_model=ListStateOut)
async def load_more(
    resource: str,
    engine: ListSyncEngine = Depends(get_engine),
    controllers: Dict[str, ListController] = Depends(get_controllers),
) -> ListStateOut:
    ctl = _controller_for(_checked_resource(resource, engine), engine, controllers)
    await ctl.load_more()
    return _out(ctl)


@router.put("/lists/{resource}/filter", response_model=ListStateOut)
async def set_filter(
    resource: str,
    payload: FilterRequest,
    engine: ListSyncEngine = Depends(get_engine),
    controllers: Dict[str, ListController] = Depends(get_controllers),
) -> ListStateOut:
    ctl = _controller_for(_checked_resource(resource, engine), engine, controllers)
    try:
        filters = Security().clean_filters(payload.filters)
    except InvalidFilterError as e:
        raise HTTPException(status_code=400, detail=e.message)
    await ctl.set_filter(filters)
    return _out(ctl)


@router.delete("/lists/{resource}", status_code=status.HTTP_204_NO_CONTENT)
async def unmount(
    resource: str,
    engine: ListSyncEngine = Depends(get_engine),
    controllers: Dict[str, ListController] = Depends(get_controllers),
) -> Response:
    """Screen went away: drop its controller and fetch state."""
    ctl = controllers.pop(_checked_resource(resource, engine), None)
    if ctl is not None:
        ctl.close()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/cache", status_code=status.HTTP_204_NO_CONTENT)
async def reset_cache(engine: ListSyncEngine = Depends(get_engine)) -> Response:
    """App-level data reset (logout)."""
    try:
        await asyncio.to_thread(engine.reset)
    except CacheIOError as e:
        app_logger.error("api.cache.reset_failed", error=e.message)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to clear the cache. Please try again later.",
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/connectivity", response_model=ConnectivityOut)
async def connectivity(engine: ListSyncEngine = Depends(get_engine)) -> ConnectivityOut:
    online = await asyncio.to_thread(engine.monitor.current)
    return ConnectivityOut(online=online)
