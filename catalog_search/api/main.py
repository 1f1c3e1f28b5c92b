"""
FastAPI приложение - поиск по каталогу для веб-слоя
"""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Query, Depends, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..core.config import Config, configure_logging
from ..core.errors import InvalidQueryError, InvalidDocumentError
from ..core.models import SearchQuery
from ..service import CatalogSearchService
from .schemas import ProductRecord, BulkIndexRequest, ClickTrack


def get_service(request: Request) -> CatalogSearchService:
    return request.app.state.service


def create_app(service: Optional[CatalogSearchService] = None) -> FastAPI:
    """
    Создание приложения

    Args:
        service: Готовый сервис (тесты). Без него сервис строится
            из переменных окружения и инициализируется в lifespan.
    """
    config = service.config if service else Config.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Инициализация и очистка ресурсов"""
        if service is not None:
            app.state.service = service
            yield
            return

        configure_logging(config.log_level)
        app.state.service = CatalogSearchService(config)
        await app.state.service.init()

        yield

        await app.state.service.close()

    app = FastAPI(
        title="Catalog Search API",
        description="API поиска и подбора товаров каталога",
        version="1.0.0",
        debug=config.debug,
        lifespan=lifespan,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(InvalidQueryError)
    @app.exception_handler(InvalidDocumentError)
    async def invalid_input_handler(request: Request, exc: ValueError):
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    # ============ SEARCH ENDPOINTS ============

    @app.get("/api/v1/search")
    async def search(
        q: Optional[str] = Query(None, description="Поисковый запрос"),
        category: Optional[str] = None,
        brand: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        min_rating: Optional[float] = None,
        in_stock: bool = False,
        sort: str = Query("relevance", description="relevance, price, rating, newest, popularity"),
        order: Optional[str] = Query(None, description="asc или desc (для сортировки по цене)"),
        page: int = Query(1, ge=1),
        page_size: int = Query(20, ge=1),
        user_id: Optional[str] = None,
        session_id: Optional[str] = None,
        service: CatalogSearchService = Depends(get_service),
    ):
        """
        Поиск товаров

        meta.available = false - движок недоступен, веб-слой
        показывает обычный каталог без поиска
        """
        query = SearchQuery.from_params(
            text=q,
            sort=sort,
            order=order,
            page=page,
            page_size=page_size,
            category=category,
            brand=brand,
            price_min=min_price,
            price_max=max_price,
            min_rating=min_rating,
            in_stock_only=in_stock,
        )

        result = await service.search(query, user_id=user_id, session_id=session_id)

        return {
            "documents": [hit.to_dict() for hit in result.documents],
            "total": result.total,
            "facets": result.facets,
            "aggregates": result.aggregates,
            "page": result.page,
            "pages": result.pages,
            "meta": {
                "took_ms": result.took_ms,
                "available": result.available,
            },
        }

    @app.get("/api/v1/suggest")
    async def suggest(
        q: str = Query(""),
        category: Optional[str] = None,
        limit: Optional[int] = Query(None, ge=1),
        service: CatalogSearchService = Depends(get_service),
    ):
        """Подсказки для автодополнения"""
        suggestions = await service.autocomplete(q, category=category, limit=limit)
        return {
            "suggestions": [
                {"text": s.text, "score": s.score, "category": s.category, "id": s.id}
                for s in suggestions
            ]
        }

    @app.get("/api/v1/products/{product_id}/similar")
    async def similar(
        product_id: str,
        limit: Optional[int] = Query(None, ge=1),
        service: CatalogSearchService = Depends(get_service),
    ):
        """Похожие товары"""
        hits = await service.find_similar(product_id, limit=limit)
        return {"documents": [hit.to_dict() for hit in hits]}

    # ============ ANALYTICS ENDPOINTS ============

    @app.get("/api/v1/analytics/trending")
    async def trending(
        limit: Optional[int] = Query(None, ge=1, le=100),
        window: Optional[str] = None,
        service: CatalogSearchService = Depends(get_service),
    ):
        """Популярные запросы"""
        terms = await service.get_trending_searches(limit=limit, window=window)
        return {"trending": [{"term": t.term, "count": t.count} for t in terms]}

    @app.get("/api/v1/analytics/zero-results")
    async def zero_results(
        limit: Optional[int] = Query(None, ge=1, le=100),
        window: Optional[str] = None,
        service: CatalogSearchService = Depends(get_service),
    ):
        """Запросы без результатов"""
        terms = await service.get_zero_result_queries(limit=limit, window=window)
        return {"queries": [{"term": t.term, "count": t.count} for t in terms]}

    @app.post("/api/v1/track/click")
    async def track_click(
        data: ClickTrack,
        service: CatalogSearchService = Depends(get_service),
    ):
        """Трекинг клика по товару"""
        service.log_click(
            data.query,
            data.product_id,
            user_id=data.user_id,
            session_id=data.session_id,
        )
        return {"success": True}

    # ============ CATALOG HOOKS ============

    @app.put("/api/v1/index/products/{product_id}")
    async def index_product(
        product_id: str,
        data: ProductRecord,
        refresh: bool = False,
        service: CatalogSearchService = Depends(get_service),
    ):
        """Создание/обновление товара в индексе"""
        ok = await service.index_product(data.to_record(product_id), refresh=refresh)
        if not ok:
            return JSONResponse(status_code=503, content={"success": False, "id": product_id})
        return {"success": True, "id": product_id}

    @app.post("/api/v1/index/products/bulk")
    async def bulk_index(
        data: BulkIndexRequest,
        service: CatalogSearchService = Depends(get_service),
    ):
        """Пакетная синхронизация товаров"""
        result = await service.bulk_index(
            [product.to_record() for product in data.products],
            refresh=data.refresh,
        )
        return {
            "success": result.ok,
            "indexed": result.indexed,
            "failed_ids": result.failed_ids,
            "errors": result.errors,
        }

    @app.delete("/api/v1/index/products/{product_id}")
    async def delete_product(
        product_id: str,
        refresh: bool = False,
        service: CatalogSearchService = Depends(get_service),
    ):
        """Удаление товара из индекса"""
        ok = await service.delete_product(product_id, refresh=refresh)
        if not ok:
            return JSONResponse(status_code=503, content={"success": False, "id": product_id})
        return {"success": True, "id": product_id}

    # ============ HEALTH CHECK ============

    @app.get("/health")
    async def health(service: CatalogSearchService = Depends(get_service)):
        """Health check"""
        status = await service.health_check()
        if not status.healthy:
            return JSONResponse(status_code=503, content=status.to_dict())
        return status.to_dict()

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "service": "Catalog Search API",
            "version": "1.0.0",
            "docs": "/docs"
        }

    return app


app = create_app()


def run() -> None:
    """Запуск API сервера"""
    import uvicorn

    config = Config.from_env()
    uvicorn.run(
        "catalog_search.api.main:app",
        host=config.api.host,
        port=config.api.port,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    run()
