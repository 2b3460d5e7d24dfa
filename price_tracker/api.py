import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware

from price_tracker.config import Settings
from price_tracker.errors import InvalidTrackingRequest, ProductNotFoundError
from price_tracker.logging_config import setup_logging
from price_tracker.models.database import Database
from price_tracker.models.schemas import ProductDetail, ProductView, TrackRequest
from price_tracker.scrapers.extractor import Extractor
from price_tracker.services.price_analysis import PriceAnalyzer
from price_tracker.services.tracking import TrackingService
from price_tracker.tasks.check_prices import PriceChecker
from price_tracker.tasks.scheduler import PriceScheduler

logger = logging.getLogger('api')

router = APIRouter(prefix="/api", tags=["products"])


def get_analyzer(request: Request) -> PriceAnalyzer:
    return request.app.state.analyzer


def get_tracking(request: Request) -> TrackingService:
    return request.app.state.tracking


def get_checker(request: Request) -> PriceChecker:
    return request.app.state.checker


@router.get("/products", response_model=List[ProductView])
def list_products(analyzer: PriceAnalyzer = Depends(get_analyzer)):
    return analyzer.list_products()


@router.get("/products/{product_id}", response_model=ProductDetail)
def get_product(product_id: str, analyzer: PriceAnalyzer = Depends(get_analyzer)):
    try:
        return analyzer.get_product_detail(product_id)
    except ProductNotFoundError:
        raise HTTPException(status_code=404, detail="Product not found")


@router.post("/products", response_model=ProductDetail)
def track_product(
    response: Response,
    payload: Optional[TrackRequest] = None,
    tracking: TrackingService = Depends(get_tracking),
):
    try:
        detail, created = tracking.track(payload.url if payload else None)
    except InvalidTrackingRequest as e:
        logger.warning(f"Rejected tracking request: {e}")
        raise HTTPException(status_code=400, detail=str(e))

    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return detail


@router.post("/products/{product_id}/refresh", response_model=ProductDetail)
def refresh_product(product_id: str, checker: PriceChecker = Depends(get_checker)):
    try:
        return checker.check_product(product_id)
    except ProductNotFoundError:
        raise HTTPException(status_code=404, detail="Product not found")


def create_app(
    settings: Optional[Settings] = None,
    db: Optional[Database] = None,
    extractor: Optional[Extractor] = None,
    enable_scheduler: Optional[bool] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    db = db or Database(settings.database_url)
    extractor = extractor or Extractor(settings)
    checker = PriceChecker(db, extractor, max_workers=settings.sweep_workers)
    scheduler = PriceScheduler(checker, interval_hours=settings.scrape_interval_hours)
    if enable_scheduler is None:
        enable_scheduler = settings.enable_scheduler

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if enable_scheduler:
            scheduler.start()
        yield
        if scheduler.running:
            scheduler.stop()
        db.close()

    app = FastAPI(title="Price Tracker", lifespan=lifespan)
    app.state.settings = settings
    app.state.db = db
    app.state.analyzer = PriceAnalyzer(db)
    app.state.tracking = TrackingService(db, extractor)
    app.state.checker = checker
    app.state.scheduler = scheduler

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.get("/health", tags=["health"])
    def health():
        return {"status": "ok"}

    app.include_router(router)
    return app


def run():
    import uvicorn

    settings = Settings.from_env()
    setup_logging(settings.log_level, settings.log_file)
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
