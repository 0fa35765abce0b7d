"""Discovery endpoints: a thin adapter over the result-set controller."""
import logging
from typing import Awaitable, Callable

from fastapi import APIRouter, Depends, HTTPException
from fastapi.concurrency import run_in_threadpool

from creator_discovery.core.errors import FetchError
from creator_discovery.core.location import available_regions, display
from creator_discovery.core.pagination import format_number, page_window, showing_range
from creator_discovery.dependencies import get_controller, get_location_classifier
from creator_discovery.models.api import (
    ClassifiedLocation,
    ClassifyRequest,
    ClassifyResponse,
    CreatorsResponse,
    FiltersRequest,
    MetricsResponse,
    ModeRequest,
    NichesResponse,
    PageRequest,
    RegionsResponse,
    SortRequest,
    StateResponse,
)
from creator_discovery.models.creator import ResultPage

router = APIRouter()

logger = logging.getLogger("discover_api")
if not logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter("[DiscoverAPI] %(asctime)s %(levelname)s: %(message)s")
    handler.setFormatter(formatter)
    logger.addHandler(handler)
logger.setLevel(logging.INFO)


def _creators_response(controller, result: ResultPage) -> CreatorsResponse:
    start, end = showing_range(result.page, result.page_size, result.total_count)
    return CreatorsResponse(
        mode=controller.mode,
        sort=controller.sort_state,
        rows=result.rows,
        total_count=result.total_count,
        total_formatted=format_number(result.total_count),
        page=result.page,
        page_size=result.page_size,
        total_pages=result.total_pages,
        page_window=page_window(result.page, result.total_pages),
        showing_start=start,
        showing_end=end,
    )


async def _run_transition(label: str, transition: Callable[[], Awaitable[ResultPage]]) -> ResultPage:
    try:
        return await transition()
    except FetchError as exc:
        logger.error("%s failed: %s (%s)", label, exc, exc.cause)
        raise HTTPException(status_code=502, detail=f"{exc}: {exc.cause}" if exc.cause else str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except HTTPException:
        raise
    except Exception as exc:  # pylint: disable=broad-except
        logger.exception("%s crashed", label)
        raise HTTPException(status_code=500, detail=f"{label} failed: {exc}")


@router.get("/creators", response_model=CreatorsResponse)
async def get_creators(controller=Depends(get_controller)):
    """Current page; performs the initial load when nothing has been fetched yet."""
    result = controller.result
    if not controller.loaded:
        result = await _run_transition("Initial load", controller.load)
    return _creators_response(controller, result)


@router.post("/filters", response_model=CreatorsResponse)
async def apply_filters(request: FiltersRequest, controller=Depends(get_controller)):
    logger.info("Applying filters (mode=%s)", request.mode or controller.mode)
    result = await _run_transition(
        "Apply filters", lambda: controller.apply_filters(request.filters, mode=request.mode)
    )
    return _creators_response(controller, result)


@router.post("/mode", response_model=CreatorsResponse)
async def switch_mode(request: ModeRequest, controller=Depends(get_controller)):
    result = await _run_transition("Switch mode", lambda: controller.switch_mode(request.mode))
    return _creators_response(controller, result)


@router.post("/sort", response_model=CreatorsResponse)
async def sort_creators(request: SortRequest, controller=Depends(get_controller)):
    result = await _run_transition("Sort", lambda: controller.sort(request.field))
    return _creators_response(controller, result)


@router.post("/page", response_model=CreatorsResponse)
async def change_page(request: PageRequest, controller=Depends(get_controller)):
    if request.step == "next":
        transition = controller.next_page
    elif request.step == "previous":
        transition = controller.previous_page
    elif request.page is not None:
        transition = lambda: controller.change_page(request.page)  # noqa: E731
    else:
        raise HTTPException(status_code=400, detail="Provide either 'page' or 'step'")
    result = await _run_transition("Change page", transition)
    return _creators_response(controller, result)


@router.get("/metrics", response_model=MetricsResponse)
async def get_metrics(controller=Depends(get_controller)):
    metrics = controller.metrics
    return MetricsResponse(
        metrics=metrics,
        total_creators_formatted=format_number(metrics.total_creators),
        avg_followers_formatted=format_number(metrics.avg_followers),
        avg_views_formatted=format_number(metrics.avg_views),
    )


@router.get("/niches", response_model=NichesResponse)
async def list_niches(controller=Depends(get_controller)):
    try:
        niches = await controller.list_niches()
    except FetchError as exc:
        logger.error("Niche listing failed: %s (%s)", exc, exc.cause)
        raise HTTPException(status_code=502, detail=str(exc))
    return NichesResponse(niches=niches)


@router.get("/state", response_model=StateResponse)
async def get_state(controller=Depends(get_controller)):
    return StateResponse(
        state=controller.state,
        loading=controller.loading,
        last_error=str(controller.last_error) if controller.last_error else None,
    )


@router.get("/regions", response_model=RegionsResponse)
async def list_regions():
    return RegionsResponse(regions=available_regions())


@router.post("/locations/classify", response_model=ClassifyResponse)
async def classify_locations(request: ClassifyRequest, classifier=Depends(get_location_classifier)):
    results = []
    for raw in request.locations:
        parsed = await run_in_threadpool(classifier.classify, raw)
        results.append(
            ClassifiedLocation(
                raw=raw,
                city=parsed.city,
                country=parsed.country,
                region=parsed.region,
                is_global=parsed.is_global,
                display=display(parsed),
            )
        )
    return ClassifyResponse(results=results, count=len(results))
